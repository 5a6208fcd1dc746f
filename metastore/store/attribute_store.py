"""
Attribute store for a single parent entity.

An AttributeStore reads and writes the attribute rows of one parent
entity (one ``<entity>_id`` value in one attribute table). Values are
classified with codec.classify, serialized with codec.encode and read
back with codec.decode.

Invariants:
    - At most one row per key: set() is an update-or-insert inside one
      BEGIN IMMEDIATE transaction, so concurrent setters of the same key
      cannot both insert
    - get() never writes, even when it returns a default
    - sync() deletes and re-inserts inside one transaction; readers see
      either the old or the new attribute set, never an empty one
    - set_many() commits key by key; a failure leaves earlier keys applied

How to change safely:
    - Keep every multi-statement write inside Database.write()
    - Storage failures must keep propagating (wrapped in StorageError)
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Optional, Union

from ..clock import Clock, SystemClock
from ..codec import TypeTag, classify, decode, encode
from ..errors import StorageError
from ..schema import AttributeTableDef
from ..storage import Database
from .query import AttributeFilter, filter_has_attribute

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AttributeRow:
    """One stored attribute.

    Attributes:
        id: Row identifier (stable across updates)
        parent_id: Owning parent entity id
        key: Attribute name
        type: Stored type tag name
        value: Serialized value (None iff the value was None)
        created_at: Creation timestamp (Unix ms)
        updated_at: Last update timestamp (Unix ms)
    """

    id: int
    parent_id: int
    key: str
    type: str
    value: Optional[str]
    created_at: int
    updated_at: int

    def decoded(self) -> Any:
        """Typed value of this row."""
        return decode(self.value, self.type)


class AttributeStore:
    """Typed key/value attributes of one parent entity.

    Example:
        >>> store = AttributeStore(db, AttributeTableDef.for_entity("Book"), parent_id=1)
        >>> store.set("pages", 320)
        >>> store.get("pages")
        320
        >>> store.get("missing", default=0)
        0
        >>> store.has("missing")
        False
    """

    def __init__(
        self,
        database: Database,
        table_def: AttributeTableDef,
        parent_id: int,
        clock: Clock | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            database: Storage holding the attribute table
            table_def: Entity type the parent belongs to
            parent_id: Parent entity identifier
            clock: Timestamp source (defaults to the wall clock)
        """
        self.database = database
        self.table_def = table_def
        self.parent_id = parent_id
        self.clock = clock or SystemClock()
        self._table = table_def.attribute_table
        self._fk = table_def.foreign_key

    def __repr__(self) -> str:
        return f"AttributeStore(table={self._table!r}, parent_id={self.parent_id!r})"

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(
        self,
        key: str,
        default: Any = None,
        type_hint: Union[TypeTag, str, None] = None,
    ) -> Any:
        """Get an attribute value.

        Args:
            key: Attribute name
            default: Returned when the key is absent, after a round trip
                through the codec so it has the type a stored value would
            type_hint: Tag to normalize the default with (inferred if omitted)

        Returns:
            Decoded value, normalized default, or None

        Raises:
            DecodeError: If the stored value is malformed for its tag
        """
        row = self.row(key)
        if row is not None:
            return row.decoded()

        if default is None:
            return None

        tag = type_hint if type_hint is not None else classify(default)
        return decode(encode(default, tag), tag)

    def row(self, key: str) -> AttributeRow | None:
        """Get the stored row for a key, if any."""
        with self._storage_context(key):
            found = self.database.fetch_one(
                f"SELECT * FROM {self._table} WHERE {self._fk} = ? AND key = ? "
                "ORDER BY id LIMIT 1",
                (self.parent_id, key),
            )
        return self._to_row(found) if found else None

    def has(self, key: str) -> bool:
        """Check whether an attribute exists, whatever its value."""
        with self._storage_context(key):
            found = self.database.fetch_one(
                f"SELECT 1 FROM {self._table} WHERE {self._fk} = ? AND key = ? LIMIT 1",
                (self.parent_id, key),
            )
        return found is not None

    def rows(self) -> list[AttributeRow]:
        """All stored rows of this parent, oldest first."""
        with self._storage_context():
            found = self.database.fetch_all(
                f"SELECT * FROM {self._table} WHERE {self._fk} = ? ORDER BY id",
                (self.parent_id,),
            )
        return [self._to_row(r) for r in found]

    def all(self) -> dict[str, Any]:
        """All attributes of this parent, decoded, keyed by name."""
        return {row.key: row.decoded() for row in self.rows()}

    def keys(self) -> list[str]:
        return [row.key for row in self.rows()]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def set(self, key: str, value: Any) -> AttributeRow:
        """Set an attribute, updating it in place if it exists.

        Args:
            key: Attribute name
            value: Any value; its type tag is inferred

        Returns:
            The stored row
        """
        tag = classify(value)
        raw = encode(value, tag)
        now = self.clock.now_ms()

        def upsert(conn: sqlite3.Connection) -> AttributeRow:
            cursor = conn.execute(
                f"UPDATE {self._table} SET type = ?, value = ?, updated_at = ? "
                f"WHERE {self._fk} = ? AND key = ?",
                (tag.value, raw, now, self.parent_id, key),
            )
            if cursor.rowcount == 0:
                conn.execute(
                    f"INSERT INTO {self._table} ({self._fk}, key, type, value, created_at, updated_at) "
                    "VALUES (?, ?, ?, ?, ?, ?)",
                    (self.parent_id, key, tag.value, raw, now, now),
                )
            stored = conn.execute(
                f"SELECT * FROM {self._table} WHERE {self._fk} = ? AND key = ? "
                "ORDER BY id LIMIT 1",
                (self.parent_id, key),
            ).fetchone()
            return self._to_row(stored)

        with self._storage_context(key, tag):
            row = self.database.write(upsert)

        logger.debug(
            "Set attribute",
            extra={
                "table": self._table,
                "parent_id": self.parent_id,
                "key": key,
                "type": tag.value,
            },
        )
        return row

    def set_many(self, attributes: Mapping[str, Any]) -> AttributeStore:
        """Set several attributes, one transaction per key.

        Args:
            attributes: Attribute names to values

        Returns:
            This store, for chaining
        """
        for key, value in attributes.items():
            self.set(key, value)
        return self

    def sync(self, attributes: Mapping[str, Any]) -> bool:
        """Replace all attributes of this parent with the given ones.

        Afterwards exactly the given keys exist.

        Args:
            attributes: Complete new attribute set

        Returns:
            True once the new set is stored
        """
        now = self.clock.now_ms()
        records = []
        for key, value in attributes.items():
            tag = classify(value)
            records.append((self.parent_id, key, tag.value, encode(value, tag), now, now))

        def replace(conn: sqlite3.Connection) -> int:
            cursor = conn.execute(
                f"DELETE FROM {self._table} WHERE {self._fk} = ?",
                (self.parent_id,),
            )
            if records:
                conn.executemany(
                    f"INSERT INTO {self._table} ({self._fk}, key, type, value, created_at, updated_at) "
                    "VALUES (?, ?, ?, ?, ?, ?)",
                    records,
                )
            return cursor.rowcount

        with self._storage_context():
            removed = self.database.write(replace)

        logger.debug(
            "Synced attributes",
            extra={
                "table": self._table,
                "parent_id": self.parent_id,
                "removed": removed,
                "inserted": len(records),
            },
        )
        return True

    def remove(self, key: str) -> int:
        """Remove an attribute.

        Returns:
            Number of rows removed (0 or 1)
        """

        def delete(conn: sqlite3.Connection) -> int:
            cursor = conn.execute(
                f"DELETE FROM {self._table} WHERE {self._fk} = ? AND key = ?",
                (self.parent_id, key),
            )
            return cursor.rowcount

        with self._storage_context(key):
            return self.database.write(delete)

    def clear(self) -> int:
        """Remove every attribute of this parent."""

        def delete(conn: sqlite3.Connection) -> int:
            return conn.execute(
                f"DELETE FROM {self._table} WHERE {self._fk} = ?",
                (self.parent_id,),
            ).rowcount

        with self._storage_context():
            return self.database.write(delete)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def filter_has_attribute(self, key: str, value: Any = None) -> AttributeFilter:
        """Predicate selecting parents of this entity type that own ``key``.

        See query.filter_has_attribute.
        """
        return filter_has_attribute(self.table_def, key, value)

    # Long-form aliases
    get_attribute = get
    set_attribute = set
    set_attributes = set_many
    sync_attributes = sync
    has_attribute = has
    remove_attribute = remove

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @contextmanager
    def _storage_context(
        self,
        key: str | None = None,
        tag: TypeTag | None = None,
    ) -> Iterator[None]:
        """Re-raise sqlite3 errors as StorageError with attribute context."""
        try:
            yield
        except sqlite3.Error as e:
            tag_name = tag.value if tag else None
            logger.error(
                f"Storage failure on {self._table} (parent={self.parent_id}, key={key}): {e}"
            )
            raise StorageError(
                f"Storage failure on {self._table} for key {key!r} (type={tag_name}): {e}",
                table=self._table,
                key=key,
                tag=tag_name,
            ) from e

    def _to_row(self, row: sqlite3.Row) -> AttributeRow:
        return AttributeRow(
            id=row["id"],
            parent_id=row[self._fk],
            key=row["key"],
            type=row["type"],
            value=row["value"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
