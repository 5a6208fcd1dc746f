"""
Shared fixtures for MetaStore unit tests.

Every test gets its own SQLite file in a temporary directory. The
``books`` fixture provisions a ``books`` parent table with ids 1 and 2
and the ``book_meta`` attribute table.
"""

import tempfile
from pathlib import Path

import pytest

from metastore.clock import FixedClock
from metastore.schema import AttributeTableDef, EntityRegistry
from metastore.storage import Database


@pytest.fixture
def data_dir():
    """Create temporary data directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def database(data_dir):
    """Database without WAL, one file per test."""
    return Database(Path(data_dir) / "meta.db", wal_mode=False)


@pytest.fixture
def clock():
    return FixedClock(1_700_000_000_000)


@pytest.fixture
def book_def():
    return AttributeTableDef.for_entity("Book")


@pytest.fixture
def registry(book_def):
    registry = EntityRegistry()
    registry.register(book_def)
    return registry


@pytest.fixture
def make_parents(database):
    """Create a parent table holding the given ids."""

    def make(table, ids=()):
        with database.connect() as conn:
            conn.execute(f"CREATE TABLE IF NOT EXISTS {table} (id INTEGER PRIMARY KEY, title TEXT)")
            conn.executemany(
                f"INSERT INTO {table} (id, title) VALUES (?, ?)",
                [(i, f"{table} {i}") for i in ids],
            )

    return make


@pytest.fixture
def books(database, registry, make_parents):
    """Database with books 1 and 2 and an empty book_meta table."""
    make_parents("books", ids=(1, 2))
    database.ensure_schema(registry)
    return database
