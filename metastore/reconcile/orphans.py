"""
Orphaned attribute cleanup for MetaStore.

Attribute tables have no enforced foreign key, so deleting a parent row
out-of-band leaves its attribute rows behind. The OrphanReconciler finds
attribute rows whose foreign key matches no parent row (NOT EXISTS
anti-join) and deletes them.

The process:
1. Resolve the entity type through the registry
2. Check that the attribute and parent tables exist
3. Count orphans and ask the caller for confirmation
4. Delete orphans in bounded batches

Invariants:
    - Nothing is deleted without an explicit confirmation signal
    - Each batch is its own short write transaction
    - A parent created during reconciliation never loses its attributes:
      the anti-join is re-evaluated inside every batch
    - Precondition failures are returned in ReconcileResult, not raised

How to change safely:
    - Keep batches bounded; large deletes hold the write lock
    - Keep the anti-join inside the DELETE statement itself
"""

from __future__ import annotations

import logging
import sqlite3
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from ..errors import ConfigurationError, ConfirmationRequiredError, SchemaError
from ..schema import AttributeTableDef, EntityRegistry
from ..schema.types import IDENTIFIER_PATTERN
from ..storage import Database

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 1000


class ReconcileErrorKind(Enum):
    """Why a reconciliation did not run."""

    CONFIGURATION = "ConfigurationError"
    SCHEMA = "SchemaError"
    CANCELLED = "Cancelled"


@dataclass
class ReconcilePlan:
    """What a reconciliation is about to delete.

    Attributes:
        entity_type: Entity type name
        attribute_table: Table rows will be deleted from
        parent_table: Table checked for live parents
        foreign_key: Column linking the two
        orphan_count: Orphans found when the plan was made
    """

    entity_type: str
    attribute_table: str
    parent_table: str
    foreign_key: str
    orphan_count: int


@dataclass
class ReconcileResult:
    """Result of a reconciliation.

    Attributes:
        success: Whether the deletion ran
        deleted: Number of rows deleted
        attribute_table: Table cleaned (None if unresolved)
        error_kind: Failure category if not successful
        error: Error message if not successful
        duration_ms: Total duration
    """

    success: bool
    deleted: int
    attribute_table: str | None = None
    error_kind: ReconcileErrorKind | None = None
    error: str | None = None
    duration_ms: int = 0


ConfirmCallback = Callable[[ReconcilePlan], bool]


class OrphanReconciler:
    """Deletes attribute rows whose parent row no longer exists.

    Example:
        >>> reconciler = OrphanReconciler(db, registry)
        >>> result = reconciler.reconcile("Book", confirm=lambda plan: True)
        >>> print(f"Deleted {result.deleted} orphaned records")
    """

    def __init__(
        self,
        database: Database,
        registry: EntityRegistry | None = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        """Initialize the reconciler.

        Args:
            database: Storage holding attribute and parent tables
            registry: Entity types that can be reconciled by name
            batch_size: Maximum rows deleted per transaction
        """
        if batch_size < 1:
            raise ValueError("batch_size must be positive")
        self.database = database
        self.registry = registry or EntityRegistry()
        self.batch_size = batch_size

    def reconcile(self, entity_type: str | None, confirm: ConfirmCallback) -> ReconcileResult:
        """Reconcile one entity type.

        Args:
            entity_type: Registered entity type name
            confirm: Called with the plan; deletion runs only if it returns True

        Returns:
            ReconcileResult with the deleted count or the failure
        """
        start_time = time.time()

        def failed(kind: ReconcileErrorKind, message: str, table: str | None = None) -> ReconcileResult:
            logger.warning(f"Orphan reconciliation skipped: {message}")
            return ReconcileResult(
                success=False,
                deleted=0,
                attribute_table=table,
                error_kind=kind,
                error=message,
                duration_ms=int((time.time() - start_time) * 1000),
            )

        try:
            table_def = self.registry.resolve(entity_type)
            self.check_tables(table_def)
        except ConfigurationError as e:
            return failed(ReconcileErrorKind.CONFIGURATION, e.message)
        except SchemaError as e:
            return failed(ReconcileErrorKind.SCHEMA, e.message, e.table)

        plan = ReconcilePlan(
            entity_type=table_def.name,
            attribute_table=table_def.attribute_table,
            parent_table=table_def.parent_table,
            foreign_key=table_def.foreign_key,
            orphan_count=self.count_orphans(
                table_def.attribute_table,
                table_def.parent_table,
                table_def.foreign_key,
                table_def.parent_key,
            ),
        )

        if not confirm(plan):
            return failed(
                ReconcileErrorKind.CANCELLED,
                "Operation cancelled by user.",
                table_def.attribute_table,
            )

        deleted = self.delete_orphans(
            table_def.attribute_table,
            table_def.parent_table,
            table_def.foreign_key,
            confirmed=True,
            parent_key=table_def.parent_key,
        )

        return ReconcileResult(
            success=True,
            deleted=deleted,
            attribute_table=table_def.attribute_table,
            duration_ms=int((time.time() - start_time) * 1000),
        )

    def check_tables(self, table_def: AttributeTableDef) -> None:
        """Verify both tables of an entity type and their linking columns exist.

        Raises:
            SchemaError: If a table or linking column is missing
        """
        if not self.database.table_exists(table_def.attribute_table):
            raise SchemaError(
                f"Meta table {table_def.attribute_table} does not exist!",
                table=table_def.attribute_table,
            )
        if not self.database.table_exists(table_def.parent_table):
            raise SchemaError(
                f"Parent table {table_def.parent_table} does not exist!",
                table=table_def.parent_table,
            )
        if table_def.foreign_key not in self.database.columns(table_def.attribute_table):
            raise SchemaError(
                f"Column {table_def.foreign_key} does not exist in meta table "
                f"{table_def.attribute_table}!",
                table=table_def.attribute_table,
            )
        if table_def.parent_key not in self.database.columns(table_def.parent_table):
            raise SchemaError(
                f"Column {table_def.parent_key} does not exist in parent table "
                f"{table_def.parent_table}!",
                table=table_def.parent_table,
            )

    def count_orphans(
        self,
        attribute_table: str,
        parent_table: str,
        foreign_key: str,
        parent_key: str = "id",
    ) -> int:
        """Count attribute rows without a parent."""
        _check_identifiers(attribute_table, parent_table, foreign_key, parent_key)
        return self.database.count(
            f"{attribute_table} m",
            f"NOT EXISTS (SELECT 1 FROM {parent_table} p WHERE p.{parent_key} = m.{foreign_key})",
        )

    def delete_orphans(
        self,
        attribute_table: str,
        parent_table: str,
        foreign_key: str,
        *,
        confirmed: bool,
        parent_key: str = "id",
    ) -> int:
        """Delete attribute rows without a parent.

        Args:
            attribute_table: Table to clean
            parent_table: Table holding live parents
            foreign_key: Column of attribute_table referencing parent_table
            confirmed: Explicit go-ahead for the irreversible deletion
            parent_key: Primary key column of parent_table

        Returns:
            Number of rows deleted

        Raises:
            ConfirmationRequiredError: If confirmed is not True
        """
        _check_identifiers(attribute_table, parent_table, foreign_key, parent_key)
        if confirmed is not True:
            raise ConfirmationRequiredError(
                f"Deleting orphans from {attribute_table} requires confirmation",
                table=attribute_table,
            )

        sql = (
            f"DELETE FROM {attribute_table} WHERE id IN ("
            f"SELECT m.id FROM {attribute_table} m "
            f"WHERE NOT EXISTS (SELECT 1 FROM {parent_table} p WHERE p.{parent_key} = m.{foreign_key}) "
            f"LIMIT ?)"
        )

        def delete_batch(conn: sqlite3.Connection) -> int:
            return conn.execute(sql, (self.batch_size,)).rowcount

        total = 0
        while True:
            deleted = self.database.write(delete_batch)
            total += deleted
            if deleted < self.batch_size:
                break
            logger.debug(f"Deleted batch of {deleted} orphans from {attribute_table}")

        logger.info(
            f"Deleted {total} orphaned records from {attribute_table}",
            extra={
                "attribute_table": attribute_table,
                "parent_table": parent_table,
                "deleted": total,
            },
        )
        return total


def _check_identifiers(*identifiers: str) -> None:
    for ident in identifiers:
        if not IDENTIFIER_PATTERN.match(ident or ""):
            raise ConfigurationError(f"Invalid table or column name: {ident!r}")
