"""
Type inference for attribute values.

classify() maps any runtime value to exactly one TypeTag. The rules are
evaluated in order and the first match wins; the order matters because the
categories overlap (a bool is an int, a date-shaped string is a string).

Invariants:
    - classify() is total: every value gets a tag, None included
    - classify() has no side effects and never reads binary streams
    - A string is tagged date, time or timestamp only if it names a real
      calendar value, so everything tagged that way decodes

How to change safely:
    - Insert new rules only where they cannot shadow an existing one
    - Keep the length limits in step with the attribute column types
"""

from __future__ import annotations

import datetime as dt
import io
import re
from collections.abc import Callable
from decimal import Decimal
from typing import Any

from .types import TypeTag

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TIME_PATTERN = re.compile(r"^\d{2}:\d{2}:\d{2}$")
TIMESTAMP_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}$")
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
NUMERIC_PATTERN = re.compile(r"^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?\s*$")

LONGTEXT_THRESHOLD = 65535
TEXT_THRESHOLD = 255

BINARY_TYPES = (bytes, bytearray, memoryview)
BINARY_STREAM_TYPES = (io.RawIOBase, io.BufferedIOBase)


def classify(value: Any) -> TypeTag:
    """Infer the type tag for a value.

    Args:
        value: Any runtime value

    Returns:
        The first matching TypeTag

    Example:
        >>> classify(30)
        <TypeTag.INTEGER: 'integer'>
        >>> classify("2024-05-01")
        <TypeTag.DATE: 'date'>
    """
    if value is None:
        return TypeTag.STRING
    if isinstance(value, bool):
        return TypeTag.BOOLEAN
    if isinstance(value, int):
        return TypeTag.INTEGER
    # Python floats are IEEE doubles; DOUBLE is only reachable as an
    # explicit hint.
    if isinstance(value, float):
        return TypeTag.FLOAT
    if isinstance(value, (dict, list, tuple)):
        return TypeTag.JSON
    if isinstance(value, (dt.datetime, dt.date)):
        return TypeTag.DATETIME
    if isinstance(value, BINARY_TYPES) or isinstance(value, BINARY_STREAM_TYPES):
        return TypeTag.BINARY

    text = value if isinstance(value, str) else str(value)
    if DATE_PATTERN.match(text) and _parses(dt.date.fromisoformat, text):
        return TypeTag.DATE
    if TIME_PATTERN.match(text) and _parses(dt.time.fromisoformat, text):
        return TypeTag.TIME
    if TIMESTAMP_PATTERN.match(text) and _parses(_parse_timestamp, text):
        return TypeTag.TIMESTAMP

    if isinstance(value, str):
        size = _utf8_length(value)
        if size > LONGTEXT_THRESHOLD:
            return TypeTag.LONGTEXT
        if size > TEXT_THRESHOLD:
            return TypeTag.TEXT
        if not is_valid_utf8(value):
            return TypeTag.BINARY

    if isinstance(value, (str, Decimal)) and "." in text and NUMERIC_PATTERN.match(text):
        return TypeTag.DECIMAL
    return TypeTag.STRING


def is_valid_utf8(text: str) -> bool:
    """Whether a string can be written out as UTF-8.

    Strings carrying lone surrogates (for example bytes decoded with
    ``surrogateescape``) cannot.
    """
    try:
        text.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


def _utf8_length(text: str) -> int:
    return len(text.encode("utf-8", "surrogatepass"))


def _parse_timestamp(text: str) -> dt.datetime:
    return dt.datetime.strptime(text, TIMESTAMP_FORMAT)


def _parses(parse: Callable[[str], Any], text: str) -> bool:
    """Whether a calendar-shaped string names a real date or time."""
    try:
        parse(text)
    except ValueError:
        return False
    return True
