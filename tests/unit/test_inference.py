"""
Unit tests for type inference.

Tests cover:
- Native Python types
- Calendar-shaped strings
- Length thresholds (measured in UTF-8 bytes)
- Binary detection
- Decimal detection
"""

import datetime as dt
import io
from decimal import Decimal

import pytest

from metastore.codec import TypeTag, classify, is_valid_utf8


class TestClassifyNativeTypes:
    """Values classified by their Python type."""

    def test_none_is_string(self):
        assert classify(None) is TypeTag.STRING

    def test_bool_before_int(self):
        """bool is a subclass of int but classifies as boolean."""
        assert classify(True) is TypeTag.BOOLEAN
        assert classify(False) is TypeTag.BOOLEAN

    def test_int(self):
        assert classify(30) is TypeTag.INTEGER
        assert classify(-7) is TypeTag.INTEGER
        assert classify(10**20) is TypeTag.INTEGER

    def test_float(self):
        assert classify(1.5) is TypeTag.FLOAT
        assert classify(0.0) is TypeTag.FLOAT

    def test_containers_are_json(self):
        assert classify({"a": 1}) is TypeTag.JSON
        assert classify([1, 2]) is TypeTag.JSON
        assert classify((1, 2)) is TypeTag.JSON
        assert classify({}) is TypeTag.JSON

    def test_calendar_objects_are_datetime(self):
        assert classify(dt.datetime(2024, 5, 1, 10, 30)) is TypeTag.DATETIME
        assert classify(dt.date(2024, 5, 1)) is TypeTag.DATETIME

    def test_bytes_are_binary(self):
        assert classify(b"\x00\x01") is TypeTag.BINARY
        assert classify(bytearray(b"abc")) is TypeTag.BINARY
        assert classify(memoryview(b"abc")) is TypeTag.BINARY

    def test_stream_is_binary(self):
        """Streams classify as binary without being read."""
        stream = io.BytesIO(b"payload")

        assert classify(stream) is TypeTag.BINARY
        assert stream.tell() == 0


class TestClassifyStrings:
    """Strings classified by their content."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("2024-05-01", TypeTag.DATE),
            ("10:30:00", TypeTag.TIME),
            ("2024-05-01 10:30:00", TypeTag.TIMESTAMP),
            ("red", TypeTag.STRING),
            ("", TypeTag.STRING),
            ("123", TypeTag.STRING),
            ("12.50", TypeTag.DECIMAL),
            ("-0.5", TypeTag.DECIMAL),
            ("1.2.3", TypeTag.STRING),
        ],
    )
    def test_content_rules(self, value, expected):
        assert classify(value) is expected

    @pytest.mark.parametrize(
        "value",
        ["2024-13-45", "0000-00-00", "2024-02-30", "24:00:00", "99:99:99", "2024-01-01 25:61:00"],
    )
    def test_impossible_calendar_values_are_strings(self, value):
        """Calendar-shaped text that names no real date or time stays a string."""
        assert classify(value) is TypeTag.STRING

    def test_leap_day(self):
        assert classify("2024-02-29") is TypeTag.DATE
        assert classify("2023-02-29") is TypeTag.STRING

    def test_iso_t_separator_is_plain_string(self):
        assert classify("2024-05-01T10:30:00") is TypeTag.STRING

    def test_time_object_classifies_by_text(self):
        assert classify(dt.time(10, 30)) is TypeTag.TIME

    def test_length_thresholds(self):
        assert classify("x" * 255) is TypeTag.STRING
        assert classify("x" * 256) is TypeTag.TEXT
        assert classify("x" * 65535) is TypeTag.TEXT
        assert classify("x" * 65536) is TypeTag.LONGTEXT

    def test_length_counts_utf8_bytes(self):
        """200 two-byte characters exceed the 255 byte limit."""
        assert classify("é" * 200) is TypeTag.TEXT

    def test_long_decimal_is_text(self):
        """Length rules win over the decimal rule."""
        assert classify("1." + "0" * 300) is TypeTag.TEXT

    def test_invalid_utf8_is_binary(self):
        raw = b"\xff\xfe".decode("utf-8", "surrogateescape")

        assert classify(raw) is TypeTag.BINARY

    def test_decimal_object(self):
        assert classify(Decimal("1.50")) is TypeTag.DECIMAL
        assert classify(Decimal("150")) is TypeTag.STRING


class TestIsValidUtf8:
    def test_plain_text(self):
        assert is_valid_utf8("héllo") is True

    def test_lone_surrogate(self):
        assert is_valid_utf8("\udcff") is False
