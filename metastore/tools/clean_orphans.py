"""
Clean orphaned attributes CLI tool for MetaStore.

Deletes attribute rows whose parent entity no longer exists.

Usage:
    metastore-clean-orphans --entity Book [--registry entities.yaml]
        [--database meta.db] [--yes] [--dry-run]

Invariants:
    - Nothing is deleted without confirmation (prompt or --yes)
    - The prompt defaults to No
    - Unknown entity types and missing tables exit non-zero without
      touching the database

How to change safely:
    - Keep output lines stable; scripts parse "Deleted N orphaned records"
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Callable
from typing import TextIO

from ..config import Settings
from ..errors import ConfigurationError
from ..logging_setup import setup_logging
from ..reconcile import OrphanReconciler, ReconcileErrorKind, ReconcilePlan, ReconcileResult

logger = logging.getLogger(__name__)

YES_ANSWERS = ("y", "yes")


class CleanOrphansCLI:
    """Interactive front end for OrphanReconciler.

    Example:
        >>> cli = CleanOrphansCLI(reconciler)
        >>> result = cli.run("Book", assume_yes=True)
        Deleted 3 orphaned records from book_meta.
    """

    def __init__(
        self,
        reconciler: OrphanReconciler,
        out: TextIO | None = None,
        ask: Callable[[str], str] | None = None,
    ) -> None:
        """Initialize the CLI.

        Args:
            reconciler: Reconciler to drive
            out: Stream for user-facing output (default: stdout)
            ask: Prompt function returning the user's answer (default: input)
        """
        self.reconciler = reconciler
        self.out = out or sys.stdout
        self.ask = ask or input
        self._last_count = 0

    def _print(self, message: str) -> None:
        print(message, file=self.out)

    def confirm(self, plan: ReconcilePlan) -> bool:
        """Warn about the deletion and ask for confirmation, defaulting to No."""
        self._print(
            f"Found {plan.orphan_count} orphaned records in {plan.attribute_table} "
            f"(no matching row in {plan.parent_table})."
        )
        self._print("WARNING: This command will delete orphaned metadata records from the database.")
        self._print("It is strongly recommended to backup your database before proceeding.")
        try:
            answer = self.ask("Do you want to continue? [y/N] ")
        except EOFError:
            answer = ""
        return answer.strip().lower() in YES_ANSWERS

    def run(self, entity_type: str | None, assume_yes: bool = False) -> ReconcileResult:
        """Reconcile an entity type and report the outcome.

        Args:
            entity_type: Entity type name
            assume_yes: Skip the prompt and confirm

        Returns:
            ReconcileResult from the reconciler
        """
        confirm = (lambda plan: True) if assume_yes else self.confirm
        result = self.reconciler.reconcile(entity_type, confirm)

        if result.success:
            self._print(f"Deleted {result.deleted} orphaned records from {result.attribute_table}.")
        elif result.error_kind is ReconcileErrorKind.CANCELLED:
            self._print(result.error or "Operation cancelled by user.")
        else:
            self._print(f"Error: {result.error}")
        return result

    def preview(self, entity_type: str | None) -> int:
        """Print the orphan count without deleting anything.

        Returns:
            Number of orphans, or -1 if the entity type cannot be checked
        """
        result = self.reconciler.reconcile(entity_type, self._report_only)
        if result.error_kind is not ReconcileErrorKind.CANCELLED:
            self._print(f"Error: {result.error}")
            return -1
        return self._last_count

    def _report_only(self, plan: ReconcilePlan) -> bool:
        self._last_count = plan.orphan_count
        self._print(f"{plan.orphan_count} orphaned records in {plan.attribute_table} (dry run).")
        return False


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the clean orphans tool."""
    parser = argparse.ArgumentParser(
        description="Clean orphaned metadata records where the parent record no longer exists"
    )
    parser.add_argument("--entity", "--model", dest="entity", help="Entity type to clean")
    parser.add_argument("--registry", help="Entity registry YAML file")
    parser.add_argument("--database", help="SQLite database file")
    parser.add_argument("--batch-size", type=int, help="Rows deleted per transaction")
    parser.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")
    parser.add_argument("--dry-run", action="store_true", help="Only count orphans")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    args = parser.parse_args(argv)

    overrides = {}
    if args.registry:
        overrides["registry_path"] = args.registry
    if args.database:
        overrides["database_path"] = args.database
    if args.batch_size:
        overrides["reconcile_batch_size"] = args.batch_size
    settings = Settings(**overrides)

    setup_logging(settings, verbose=args.verbose)

    if not args.entity:
        print("Error: Please specify an entity type using --entity")
        sys.exit(1)

    try:
        registry = settings.load_registry()
    except ConfigurationError as e:
        print(f"Error: {e.message}")
        sys.exit(1)

    reconciler = OrphanReconciler(
        settings.open_database(),
        registry,
        batch_size=settings.reconcile_batch_size,
    )
    cli = CleanOrphansCLI(reconciler)

    if args.dry_run:
        sys.exit(0 if cli.preview(args.entity) >= 0 else 1)

    result = cli.run(args.entity, assume_yes=args.yes)
    sys.exit(0 if result.success or result.error_kind is ReconcileErrorKind.CANCELLED else 1)


if __name__ == "__main__":
    main()
