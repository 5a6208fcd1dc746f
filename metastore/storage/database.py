"""
SQLite storage for MetaStore.

This module manages the SQLite database holding parent entity tables and
their attribute tables. It provides:
- Per-operation connections with tuned pragmas
- Write transactions (BEGIN IMMEDIATE) with retry on lock contention
- Attribute table provisioning and table existence checks

Invariants:
    - Every write runs inside a single BEGIN IMMEDIATE transaction, so
      writers are serialized by SQLite's reserved lock
    - A write that cannot take the lock within busy_timeout is retried
      up to max_retries times, then ConcurrencyConflictError is raised
    - Attribute tables carry no FOREIGN KEY constraint

How to change safely:
    - Attribute table layout changes must be additive
    - Keep write units small; they hold the database write lock

Table schema (per entity type):
    <entity>_meta:
        - id INTEGER PRIMARY KEY AUTOINCREMENT
        - <entity>_id INTEGER (indexed)
        - key TEXT
        - type TEXT DEFAULT 'string'
        - value TEXT NULL
        - created_at INTEGER (Unix ms)
        - updated_at INTEGER (Unix ms)
        - INDEX on (<entity>_id, key)
"""

from __future__ import annotations

import logging
import sqlite3
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TypeVar

from ..errors import ConcurrencyConflictError
from ..schema import AttributeTableDef, EntityRegistry

logger = logging.getLogger(__name__)

T = TypeVar("T")


def is_lock_error(error: sqlite3.Error) -> bool:
    """Whether an error means another writer holds the lock."""
    message = str(error).lower()
    return isinstance(error, sqlite3.OperationalError) and (
        "locked" in message or "busy" in message
    )


class Database:
    """SQLite database shared by attribute stores and the reconciler.

    Thread safety:
        Each operation opens its own connection.
        SQLite handles concurrent access via WAL mode.

    Example:
        >>> db = Database("/var/lib/metastore/meta.db")
        >>> db.create_attribute_table(AttributeTableDef.for_entity("Book"))
        >>> db.table_exists("book_meta")
        True
    """

    def __init__(
        self,
        path: str | Path,
        wal_mode: bool = True,
        busy_timeout_ms: int = 5000,
        max_retries: int = 3,
        retry_delay_ms: int = 50,
    ) -> None:
        """Initialize the database.

        Args:
            path: SQLite database file
            wal_mode: Enable SQLite WAL mode
            busy_timeout_ms: SQLite busy timeout
            max_retries: Retries for writes that hit a locked database
            retry_delay_ms: Base delay between retries (linear backoff)
        """
        self.path = Path(path)
        self.wal_mode = wal_mode
        self.busy_timeout_ms = busy_timeout_ms
        self.max_retries = max_retries
        self.retry_delay_ms = retry_delay_ms

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        """Open a connection in autocommit mode.

        Yields:
            SQLite connection with sqlite3.Row rows
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)

        conn = sqlite3.connect(
            str(self.path),
            timeout=self.busy_timeout_ms / 1000.0,
            isolation_level=None,  # Autocommit by default, explicit transactions
        )
        conn.row_factory = sqlite3.Row

        try:
            conn.execute(f"PRAGMA busy_timeout = {int(self.busy_timeout_ms)}")
            if self.wal_mode:
                conn.execute("PRAGMA journal_mode = WAL")
            conn.execute("PRAGMA synchronous = NORMAL")

            yield conn
        finally:
            conn.close()

    def write(self, work: Callable[[sqlite3.Connection], T]) -> T:
        """Run a unit of work inside one write transaction.

        The work is retried from scratch when the database is locked.

        Args:
            work: Callable receiving the connection; its result is returned

        Returns:
            Result of work

        Raises:
            ConcurrencyConflictError: If the lock is still held after retries
            sqlite3.Error: Any other storage failure, unmodified
        """
        attempt = 0
        while True:
            try:
                with self.connect() as conn:
                    conn.execute("BEGIN IMMEDIATE")
                    try:
                        result = work(conn)
                        conn.execute("COMMIT")
                    except Exception:
                        if conn.in_transaction:
                            conn.execute("ROLLBACK")
                        raise
                    return result
            except sqlite3.OperationalError as e:
                if not is_lock_error(e):
                    raise
                attempt += 1
                if attempt > self.max_retries:
                    raise ConcurrencyConflictError(
                        f"Database still locked after {attempt} attempts: {self.path}",
                        attempts=attempt,
                    ) from e
                logger.warning(
                    f"Database locked, retrying write (attempt {attempt}/{self.max_retries})"
                )
                time.sleep(self.retry_delay_ms * attempt / 1000.0)

    def fetch_all(self, sql: str, params: tuple | list = ()) -> list[sqlite3.Row]:
        """Run a read query and return all rows."""
        with self.connect() as conn:
            return conn.execute(sql, params).fetchall()

    def fetch_one(self, sql: str, params: tuple | list = ()) -> sqlite3.Row | None:
        """Run a read query and return the first row."""
        with self.connect() as conn:
            return conn.execute(sql, params).fetchone()

    def table_exists(self, name: str) -> bool:
        """Check whether a table exists."""
        row = self.fetch_one(
            "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?",
            (name,),
        )
        return row is not None

    def columns(self, table: str) -> list[str]:
        """Column names of a table (empty if it does not exist)."""
        return [row["name"] for row in self.fetch_all(f"PRAGMA table_info({table})")]

    def create_attribute_table(self, table_def: AttributeTableDef) -> None:
        """Create the attribute table for an entity type if missing.

        Args:
            table_def: Entity type definition
        """
        table = table_def.attribute_table
        fk = table_def.foreign_key
        with self.connect() as conn:
            conn.executescript(f"""
                CREATE TABLE IF NOT EXISTS {table} (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    {fk} INTEGER NOT NULL,
                    key TEXT NOT NULL,
                    type TEXT NOT NULL DEFAULT 'string',
                    value TEXT,
                    created_at INTEGER NOT NULL,
                    updated_at INTEGER NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_{table}_{fk} ON {table}({fk});
                CREATE INDEX IF NOT EXISTS idx_{table}_{fk}_key ON {table}({fk}, key);
            """)
        logger.info(f"Ensured attribute table: {table}")

    def ensure_schema(self, registry: EntityRegistry) -> None:
        """Create the attribute table of every registered entity type."""
        for table_def in registry:
            self.create_attribute_table(table_def)

    def count(self, table: str, where: str = "", params: tuple | list = ()) -> int:
        """Count rows of a table, optionally filtered by a WHERE clause."""
        sql = f"SELECT COUNT(*) FROM {table}"
        if where:
            sql += f" WHERE {where}"
        row = self.fetch_one(sql, params)
        return int(row[0]) if row else 0

    def stats(self, registry: EntityRegistry) -> dict[str, int]:
        """Row counts of every existing attribute table."""
        return {
            table_def.attribute_table: self.count(table_def.attribute_table)
            for table_def in registry
            if self.table_exists(table_def.attribute_table)
        }
