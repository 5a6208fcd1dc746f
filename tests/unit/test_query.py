"""
Unit tests for attribute filters and entity bindings.

Tests cover:
- filter_has_attribute predicates
- Composing filters in find_parents
- Raw value matching
- AttributeStores / Entity
"""

import pytest

from metastore.errors import ConfigurationError
from metastore.schema import AttributeTableDef
from metastore.store import (
    AttributeCapable,
    AttributeStore,
    AttributeStores,
    Entity,
    filter_has_attribute,
    find_parents,
)


class TestAttributeFilter:
    def test_to_sql_key_only(self, book_def):
        sql, params = filter_has_attribute(book_def, "color").to_sql()

        assert sql == (
            "EXISTS (SELECT 1 FROM book_meta m WHERE m.book_id = p.id AND m.key = ?)"
        )
        assert params == ["color"]

    def test_to_sql_with_value(self, book_def):
        sql, params = filter_has_attribute(book_def, "color", "red").to_sql("b")

        assert "m.book_id = b.id" in sql
        assert sql.endswith("AND m.value = ?)")
        assert params == ["color", "red"]

    def test_non_string_value_is_encoded(self, book_def):
        assert filter_has_attribute(book_def, "pages", 320).value == "320"
        assert filter_has_attribute(book_def, "active", True).value == "1"
        assert filter_has_attribute(book_def, "tags", ["a"]).value == '["a"]'

    def test_string_value_is_matched_raw(self, book_def):
        assert filter_has_attribute(book_def, "pages", "320").value == "320"


class TestFindParents:
    """Tests for find_parents()."""

    @pytest.fixture
    def populated(self, books, book_def, make_parents, clock):
        make_parents("books", ids=(3, 4))
        for parent_id, attributes in {
            1: {"color": "red", "pages": 320},
            2: {"color": "blue", "pages": 100},
            3: {"color": "red"},
        }.items():
            AttributeStore(books, book_def, parent_id, clock=clock).set_many(attributes)
        return books

    def test_key_only(self, populated, book_def):
        ids = find_parents(populated, book_def, filter_has_attribute(book_def, "pages"))

        assert ids == [1, 2]

    def test_key_and_value(self, populated, book_def):
        ids = find_parents(populated, book_def, filter_has_attribute(book_def, "color", "red"))

        assert ids == [1, 3]

    def test_filters_combine_with_and(self, populated, book_def):
        ids = find_parents(
            populated,
            book_def,
            filter_has_attribute(book_def, "color", "red"),
            filter_has_attribute(book_def, "pages"),
        )

        assert ids == [1]

    def test_numeric_value(self, populated, book_def):
        assert find_parents(populated, book_def, filter_has_attribute(book_def, "pages", 100)) == [2]

    def test_no_filters_returns_all(self, populated, book_def):
        assert find_parents(populated, book_def) == [1, 2, 3, 4]

    def test_pagination(self, populated, book_def):
        f = filter_has_attribute(book_def, "color")

        assert find_parents(populated, book_def, f, limit=2) == [1, 2]
        assert find_parents(populated, book_def, f, limit=2, offset=2) == [3]

    def test_foreign_filter_rejected(self, populated, book_def):
        author_def = AttributeTableDef.for_entity("Author")

        with pytest.raises(ValueError, match="cannot apply"):
            find_parents(populated, book_def, filter_has_attribute(author_def, "name"))

    def test_store_builds_filters(self, populated, book_def):
        store = AttributeStore(populated, book_def, parent_id=1)

        ids = find_parents(populated, book_def, store.filter_has_attribute("color", "blue"))

        assert ids == [2]


class TestAttributeStores:
    """Tests for AttributeStores and Entity."""

    @pytest.fixture
    def stores(self, books, registry, clock):
        return AttributeStores(books, registry, clock=clock)

    def test_for_entity(self, stores):
        store = stores.for_entity("book", 1)

        assert store.table_def.attribute_table == "book_meta"
        assert store.parent_id == 1
        assert store.clock is stores.clock

    def test_unknown_entity_type(self, stores):
        with pytest.raises(ConfigurationError, match="Entity type Author not found!"):
            stores.for_entity("Author", 1)

    def test_entity_has_attributes(self, stores):
        book = stores.entity("Book", 2)
        book.attributes.set("color", "red")

        assert isinstance(book, Entity)
        assert isinstance(book, AttributeCapable)
        assert stores.for_entity("Book", 2).get("color") == "red"

    def test_find(self, stores):
        stores.for_entity("Book", 1).set("color", "red")
        stores.for_entity("Book", 2).set("color", "blue")

        assert stores.find("Book", "color") == [1, 2]
        assert stores.find("Book", "color", "blue") == [2]
        assert stores.find("Book", "color", limit=1, offset=1) == [2]

    def test_filter(self, stores, book_def):
        f = stores.filter("Book", "color", "red")

        assert f.table_def == book_def
        assert f.value == "red"
