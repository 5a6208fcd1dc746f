"""
Entity type definitions for MetaStore.

An AttributeTableDef ties an entity type to the tables that back it:
- parent_table: the entity's own table (external, never written here)
- attribute_table: the key/value table holding its attributes
- foreign_key: column in attribute_table referencing parent_table

Invariants:
    - All identifiers are plain SQL identifiers; they are interpolated
      into statements, so anything else is rejected at construction
    - Definitions are immutable once created

Example:
    >>> Book = AttributeTableDef.for_entity("Book")
    >>> Book.attribute_table, Book.parent_table, Book.foreign_key
    ('book_meta', 'books', 'book_id')
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from ..errors import ConfigurationError

IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def snake_case(name: str) -> str:
    """Convert ``BookChapter`` or ``book-chapter`` to ``book_chapter``."""
    name = re.sub(r"[\s\-]+", "_", name.strip())
    name = re.sub(r"(?<=[a-z0-9])([A-Z])", r"_\1", name)
    return name.lower()


def studly_case(name: str) -> str:
    """Convert ``book_chapter`` or ``book chapter`` to ``BookChapter``."""
    parts = re.split(r"[\s_\-]+", name.strip())
    return "".join(p[:1].upper() + p[1:] for p in parts if p)


def pluralize(word: str) -> str:
    """Naive English plural for table names."""
    if re.search(r"[^aeiou]y$", word):
        return word[:-1] + "ies"
    if re.search(r"(s|x|z|ch|sh)$", word):
        return word + "es"
    return word + "s"


@dataclass(frozen=True)
class AttributeTableDef:
    """Definition of an entity type that carries attributes.

    Attributes:
        name: Entity type name (e.g. "Book")
        parent_table: Table holding the entities
        attribute_table: Table holding their attributes
        foreign_key: Column in attribute_table referencing the parent
        parent_key: Primary key column of parent_table
    """

    name: str
    parent_table: str
    attribute_table: str
    foreign_key: str
    parent_key: str = "id"

    def __post_init__(self) -> None:
        if not self.name:
            raise ConfigurationError("Entity type name must not be empty")
        for label in ("parent_table", "attribute_table", "foreign_key", "parent_key"):
            ident = getattr(self, label)
            if not IDENTIFIER_PATTERN.match(ident or ""):
                raise ConfigurationError(
                    f"Invalid {label} '{ident}' for entity type '{self.name}'",
                    entity_type=self.name,
                )

    @classmethod
    def for_entity(cls, name: str, **overrides: str) -> AttributeTableDef:
        """Build a definition from conventional names.

        ``Book`` maps to parent table ``books``, attribute table
        ``book_meta`` and foreign key ``book_id``. Any of these can be
        overridden by keyword.
        """
        studly = studly_case(name)
        snake = snake_case(studly)
        values = {
            "parent_table": pluralize(snake),
            "attribute_table": f"{snake}_meta",
            "foreign_key": f"{snake}_id",
        }
        values.update(overrides)
        return cls(name=studly, **values)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "name": self.name,
            "parent_table": self.parent_table,
            "attribute_table": self.attribute_table,
            "foreign_key": self.foreign_key,
            "parent_key": self.parent_key,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AttributeTableDef:
        """Create from dictionary.

        Missing table names fall back to the conventional ones.
        """
        if not isinstance(data, dict) or not data.get("name"):
            raise ConfigurationError(f"Entity definition requires a name: {data!r}")
        overrides = {
            key: data[key]
            for key in ("parent_table", "attribute_table", "foreign_key", "parent_key")
            if data.get(key)
        }
        return cls.for_entity(data["name"], **overrides)
