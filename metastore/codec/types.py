"""
Type tag vocabulary for attribute values.

Every attribute row stores one of these tags next to its serialized value.
The tag decides how the value is encoded to text and decoded back.

Invariants:
    - The vocabulary is closed; unknown tags read from storage are
      decoded as raw strings
    - Tag values are persisted, so they must never be renamed
"""

from __future__ import annotations

from enum import Enum
from typing import Optional, Union


class TypeTag(Enum):
    """Canonical classification of an attribute value."""

    STRING = "string"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    FLOAT = "float"
    DOUBLE = "double"
    JSON = "json"
    DATETIME = "datetime"
    DATE = "date"
    TIME = "time"
    TIMESTAMP = "timestamp"
    LONGTEXT = "longtext"
    TEXT = "text"
    BINARY = "binary"
    DECIMAL = "decimal"

    @classmethod
    def parse(cls, value: Union[TypeTag, str, None]) -> Optional[TypeTag]:
        """Resolve a tag from its stored name.

        Returns None for names outside the vocabulary.
        """
        if value is None or isinstance(value, TypeTag):
            return value
        try:
            return cls(value.lower())
        except ValueError:
            return None


# Tags that decode to a float
NUMERIC_FLOAT_TAGS = frozenset({TypeTag.FLOAT, TypeTag.DOUBLE, TypeTag.DECIMAL})

# Tags whose decoded value is the stored string itself
TEXT_TAGS = frozenset({TypeTag.LONGTEXT, TypeTag.TEXT, TypeTag.STRING})
