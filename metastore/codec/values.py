"""
Value codec for attribute rows.

encode() turns a value into the text stored in the ``value`` column and
decode() turns stored text back into a typed value, both driven by a
TypeTag.

Round trip:
    decode(encode(v, classify(v)), classify(v)) equals v except for the
    narrowings below, which are part of the stored format:
    - date drops the time of day (decodes to midnight)
    - float, double and decimal all decode to float
    - time decodes to an ``HH:MM:SS`` string, not a time object
    - json decodes tuples as lists
    - date objects tagged datetime decode as datetimes at midnight

Invariants:
    - encode(None, tag) is None for every tag
    - decode(None, tag) is None for every tag
    - Unknown tags encode with the generic string cast and decode to the
      raw string
    - Malformed stored text raises DecodeError, never a partial value
"""

from __future__ import annotations

import base64
import binascii
import datetime as dt
import json
from decimal import Decimal
from typing import Any, Optional, Union

from ..errors import DecodeError
from .inference import BINARY_STREAM_TYPES, BINARY_TYPES
from .types import NUMERIC_FLOAT_TAGS, TEXT_TAGS, TypeTag

DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"
DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M:%S"

TagLike = Union[TypeTag, str]


def encode(value: Any, tag: TagLike) -> Optional[str]:
    """Serialize a value for storage under a type tag.

    Args:
        value: Value to serialize
        tag: TypeTag (or its stored name) to serialize under

    Returns:
        Text for the value column, or None when value is None
    """
    if value is None:
        return None

    resolved = TypeTag.parse(tag)

    if resolved is TypeTag.BOOLEAN:
        return "1" if value else "0"
    if resolved is TypeTag.JSON:
        return json.dumps(value, default=_json_default)
    if resolved in (TypeTag.DATETIME, TypeTag.TIMESTAMP):
        if isinstance(value, (dt.datetime, dt.date)):
            return _format_calendar(value, DATETIME_FORMAT)
        return _cast(value)
    if resolved is TypeTag.DATE:
        if isinstance(value, (dt.datetime, dt.date)):
            return _format_calendar(value, DATE_FORMAT)
        return _cast(value)
    if resolved is TypeTag.BINARY:
        return base64.b64encode(_read_bytes(value)).decode("ascii")
    return _cast(value)


def decode(raw: Optional[str], tag: TagLike) -> Any:
    """Deserialize stored text under a type tag.

    Args:
        raw: Stored text (may be None)
        tag: TypeTag (or its stored name) the text was stored under

    Returns:
        The typed value

    Raises:
        DecodeError: If the text is malformed for the tag
    """
    if raw is None:
        return None

    resolved = TypeTag.parse(tag)
    if resolved is None:
        return raw

    tag_name = resolved.value
    if resolved is TypeTag.BOOLEAN:
        return raw not in ("", "0")
    if resolved is TypeTag.INTEGER:
        return _parse_int(raw, tag_name)
    if resolved in NUMERIC_FLOAT_TAGS:
        try:
            return float(raw)
        except ValueError as e:
            raise DecodeError(f"Invalid number for tag '{tag_name}': {raw!r}", tag_name, raw) from e
    if resolved is TypeTag.JSON:
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise DecodeError(f"Invalid JSON for tag 'json': {e}", tag_name, raw) from e
    if resolved in (TypeTag.DATETIME, TypeTag.TIMESTAMP):
        return _parse_calendar(raw, tag_name)
    if resolved is TypeTag.DATE:
        return _parse_calendar(raw, tag_name).replace(hour=0, minute=0, second=0, microsecond=0)
    if resolved is TypeTag.TIME:
        return _parse_time(raw).strftime(TIME_FORMAT)
    if resolved is TypeTag.BINARY:
        try:
            return base64.b64decode(raw, validate=True)
        except (binascii.Error, ValueError) as e:
            raise DecodeError(f"Invalid base64 for tag 'binary': {e}", tag_name, raw) from e
    if resolved in TEXT_TAGS:
        return str(raw)
    return raw


def _cast(value: Any) -> str:
    """Generic string cast used by every tag without a dedicated encoder."""
    if isinstance(value, bool):
        return "1" if value else ""
    if isinstance(value, dt.datetime):
        return _format_calendar(value, DATETIME_FORMAT)
    if isinstance(value, BINARY_TYPES):
        return bytes(value).decode("utf-8", "surrogateescape")
    return str(value)


def _format_calendar(value: dt.date, fmt: str) -> str:
    # strftime does not zero pad %Y below year 1000 on every platform
    return value.strftime(fmt.replace("%Y", f"{value.year:04d}"))


def _read_bytes(value: Any) -> bytes:
    if isinstance(value, BINARY_TYPES):
        return bytes(value)
    if isinstance(value, BINARY_STREAM_TYPES):
        return value.read()
    if isinstance(value, str):
        try:
            return value.encode("utf-8", "surrogateescape")
        except UnicodeEncodeError:
            return value.encode("utf-8", "surrogatepass")
    return _cast(value).encode("utf-8", "surrogatepass")


def _json_default(obj: Any) -> Any:
    if isinstance(obj, (dt.datetime, dt.date)):
        return _format_calendar(obj, DATETIME_FORMAT)
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, BINARY_TYPES):
        return base64.b64encode(bytes(obj)).decode("ascii")
    return str(obj)


def _parse_int(raw: str, tag_name: str) -> int:
    try:
        return int(raw)
    except ValueError:
        pass
    # Other producers may store integral values as "3.0"
    try:
        return int(float(raw))
    except (ValueError, OverflowError) as e:
        raise DecodeError(f"Invalid integer for tag '{tag_name}': {raw!r}", tag_name, raw) from e


def _parse_calendar(raw: str, tag_name: str) -> dt.datetime:
    try:
        return dt.datetime.fromisoformat(raw.strip())
    except ValueError as e:
        raise DecodeError(f"Invalid calendar value for tag '{tag_name}': {raw!r}", tag_name, raw) from e


def _parse_time(raw: str) -> dt.time:
    text = raw.strip()
    try:
        return dt.time.fromisoformat(text)
    except ValueError:
        return _parse_calendar(text, TypeTag.TIME.value).time()
