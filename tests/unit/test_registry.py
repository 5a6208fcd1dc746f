"""
Unit tests for entity type definitions and the entity registry.

Tests cover:
- Conventional table naming
- Identifier validation
- Registration and lookup
- Registry freezing
- Duplicate detection
- YAML serialization
"""

from pathlib import Path

import pytest

from metastore.errors import ConfigurationError
from metastore.schema import (
    AttributeTableDef,
    DuplicateRegistrationError,
    EntityRegistry,
    RegistryFrozenError,
)
from metastore.schema.types import pluralize, snake_case, studly_case


class TestNaming:
    def test_snake_case(self):
        assert snake_case("BookChapter") == "book_chapter"
        assert snake_case("book-chapter") == "book_chapter"

    def test_studly_case(self):
        assert studly_case("book_chapter") == "BookChapter"
        assert studly_case("book") == "Book"

    @pytest.mark.parametrize(
        "word,plural",
        [("book", "books"), ("category", "categories"), ("box", "boxes"), ("day", "days")],
    )
    def test_pluralize(self, word, plural):
        assert pluralize(word) == plural


class TestAttributeTableDef:
    """Tests for AttributeTableDef."""

    def test_for_entity_conventions(self):
        Book = AttributeTableDef.for_entity("Book")

        assert Book.name == "Book"
        assert Book.parent_table == "books"
        assert Book.attribute_table == "book_meta"
        assert Book.foreign_key == "book_id"
        assert Book.parent_key == "id"

    def test_for_entity_multiword(self):
        chapter = AttributeTableDef.for_entity("book_chapter")

        assert chapter.name == "BookChapter"
        assert chapter.attribute_table == "book_chapter_meta"
        assert chapter.foreign_key == "book_chapter_id"

    def test_for_entity_overrides(self):
        person = AttributeTableDef.for_entity("Person", parent_table="people")

        assert person.parent_table == "people"
        assert person.attribute_table == "person_meta"

    def test_invalid_identifier_rejected(self):
        with pytest.raises(ConfigurationError, match="Invalid attribute_table"):
            AttributeTableDef.for_entity("Book", attribute_table="book_meta; DROP TABLE books")

    def test_empty_name_rejected(self):
        with pytest.raises(ConfigurationError):
            AttributeTableDef(name="", parent_table="a", attribute_table="b", foreign_key="c")

    def test_dict_round_trip(self):
        Book = AttributeTableDef.for_entity("Book", parent_key="book_pk")

        assert AttributeTableDef.from_dict(Book.to_dict()) == Book

    def test_from_dict_fills_conventions(self):
        Book = AttributeTableDef.from_dict({"name": "Book"})

        assert Book == AttributeTableDef.for_entity("Book")

    def test_from_dict_requires_name(self):
        with pytest.raises(ConfigurationError, match="requires a name"):
            AttributeTableDef.from_dict({"parent_table": "books"})

    def test_immutable(self):
        Book = AttributeTableDef.for_entity("Book")

        with pytest.raises(AttributeError):
            Book.attribute_table = "other"


class TestEntityRegistry:
    """Tests for EntityRegistry."""

    def test_register_and_get(self):
        registry = EntityRegistry()
        Book = AttributeTableDef.for_entity("Book")

        registry.register(Book)

        assert registry.get("Book") == Book
        assert registry.get("book") == Book
        assert "book" in registry
        assert len(registry) == 1
        assert list(registry) == [Book]

    def test_get_unknown_returns_none(self):
        registry = EntityRegistry()

        assert registry.get("Book") is None
        assert registry.get(None) is None
        assert "Book" not in registry

    def test_resolve_unknown_raises(self):
        registry = EntityRegistry()

        with pytest.raises(ConfigurationError, match="Entity type Author not found!") as exc_info:
            registry.resolve("Author")

        assert exc_info.value.entity_type == "Author"

    def test_resolve_missing_name_raises(self):
        with pytest.raises(ConfigurationError, match="Please specify an entity type"):
            EntityRegistry().resolve("")

    def test_duplicate_name_raises(self):
        registry = EntityRegistry()
        registry.register(AttributeTableDef.for_entity("Book"))

        with pytest.raises(DuplicateRegistrationError, match="'Book' already registered"):
            registry.register(AttributeTableDef.for_entity("Book", attribute_table="book_attrs"))

    def test_duplicate_attribute_table_raises(self):
        registry = EntityRegistry()
        registry.register(AttributeTableDef.for_entity("Book"))

        with pytest.raises(DuplicateRegistrationError, match="already used by 'Book'"):
            registry.register(AttributeTableDef.for_entity("Novel", attribute_table="book_meta"))

    def test_frozen_rejects_registration(self):
        registry = EntityRegistry()
        registry.freeze()

        assert registry.frozen is True
        with pytest.raises(RegistryFrozenError):
            registry.register(AttributeTableDef.for_entity("Book"))

    def test_freeze_twice_raises(self):
        registry = EntityRegistry()
        registry.freeze()

        with pytest.raises(RegistryFrozenError, match="already frozen"):
            registry.freeze()

    def test_yaml_round_trip(self):
        registry = EntityRegistry()
        registry.register(AttributeTableDef.for_entity("Book"))
        registry.register(AttributeTableDef.for_entity("Person", parent_table="people"))

        loaded = EntityRegistry.from_yaml(registry.to_yaml())

        assert loaded.to_dict() == registry.to_dict()
        assert loaded.resolve("Person").parent_table == "people"

    def test_to_dict_sorted_by_name(self):
        registry = EntityRegistry()
        registry.register(AttributeTableDef.for_entity("Person"))
        registry.register(AttributeTableDef.for_entity("Book"))

        names = [entry["name"] for entry in registry.to_dict()["entities"]]

        assert names == ["Book", "Person"]

    def test_from_yaml_malformed(self):
        with pytest.raises(ConfigurationError):
            EntityRegistry.from_yaml("entities: {not: a list}")

        with pytest.raises(ConfigurationError):
            EntityRegistry.from_yaml("entities: [")

    def test_from_yaml_empty_document(self):
        assert len(EntityRegistry.from_yaml("")) == 0

    def test_load_file(self, data_dir):
        path = f"{data_dir}/entities.yaml"
        with open(path, "w", encoding="utf-8") as f:
            f.write("entities:\n  - name: Book\n  - name: Author\n    parent_table: writers\n")

        registry = EntityRegistry.load(path)

        assert len(registry) == 2
        assert registry.resolve("Author").parent_table == "writers"

    def test_registration_errors_are_configuration_errors(self):
        registry = EntityRegistry()
        registry.register(AttributeTableDef.for_entity("Book"))

        with pytest.raises(ConfigurationError) as exc_info:
            registry.register(AttributeTableDef.for_entity("Book"))

        assert exc_info.value.code == "CONFIGURATION_ERROR"
        assert exc_info.value.entity_type == "Book"

        registry.freeze()
        with pytest.raises(ConfigurationError):
            registry.register(AttributeTableDef.for_entity("Author"))

    def test_from_yaml_duplicate_entries(self):
        with pytest.raises(ConfigurationError, match="already registered"):
            EntityRegistry.from_yaml("entities:\n  - name: Book\n  - name: book\n")

    def test_load_missing_file(self, data_dir):
        with pytest.raises(ConfigurationError, match="Registry file not found"):
            EntityRegistry.load(f"{data_dir}/missing.yaml")

    def test_example_registry_file(self):
        path = Path(__file__).resolve().parents[2] / "entities.example.yaml"

        registry = EntityRegistry.load(path)

        assert registry.resolve("Person").parent_table == "people"
        assert registry.resolve("Order").attribute_table == "order_attributes"
