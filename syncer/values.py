"""
syncer/values.py
----------------
Tagged value normalisation and equality for row comparison.

Every driver value is normalised once into a :class:`TaggedValue`:

    NULL     – ``None``; equal only to another NULL.
    INTEGER  – ``int`` and ``bool`` (MySQL ``TINYINT(1)``); exact.
    DECIMAL  – ``Decimal``; exact numeric equality (``1.10 == 1.1``).
    FLOAT    – ``float``; exact.
    TEXT     – ``str`` and MySQL ``SET`` values (sorted, comma-joined); exact.
    DATE     – ``date`` / ``datetime``; aware values are compared in UTC.
    TIME     – ``timedelta`` (MySQL ``TIME``); compared in microseconds.
    BINARY   – ``bytes`` / ``bytearray`` / ``memoryview``; byte-equality.

Values with different tags fall back to comparing canonical strings, so the
integer ``5`` and the text ``"5"`` still compare equal.

Design Decision:
    Pure functions with no side effects, same as the type-safety rules in the
    rest of the engine.
"""
from __future__ import annotations

import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, NamedTuple


class ValueTag(str, Enum):
    NULL = "null"
    INTEGER = "integer"
    DECIMAL = "decimal"
    FLOAT = "float"
    TEXT = "text"
    DATE = "date"
    TIME = "time"
    BINARY = "binary"


class TaggedValue(NamedTuple):
    tag: ValueTag
    value: Any


NULL = TaggedValue(ValueTag.NULL, None)


def _canonical_instant(value: datetime.date) -> datetime.date:
    if isinstance(value, datetime.datetime) and value.tzinfo is not None:
        return value.astimezone(datetime.timezone.utc)
    return value


def tag_value(value: Any) -> TaggedValue:
    """
    Classify a driver value.

    Examples::

        tag_value(None)           →  TaggedValue(NULL, None)
        tag_value(True)           →  TaggedValue(INTEGER, 1)
        tag_value(b"\\x00")        →  TaggedValue(BINARY, b"\\x00")
        tag_value({"b", "a"})     →  TaggedValue(TEXT, "a,b")
    """
    if value is None:
        return NULL
    if isinstance(value, TaggedValue):
        return value
    if isinstance(value, bool):
        return TaggedValue(ValueTag.INTEGER, int(value))
    if isinstance(value, int):
        return TaggedValue(ValueTag.INTEGER, value)
    if isinstance(value, Decimal):
        return TaggedValue(ValueTag.DECIMAL, value)
    if isinstance(value, float):
        return TaggedValue(ValueTag.FLOAT, value)
    if isinstance(value, str):
        return TaggedValue(ValueTag.TEXT, value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return TaggedValue(ValueTag.BINARY, bytes(value))
    if isinstance(value, datetime.date):
        return TaggedValue(ValueTag.DATE, _canonical_instant(value))
    if isinstance(value, datetime.timedelta):
        return TaggedValue(ValueTag.TIME, value // datetime.timedelta(microseconds=1))
    if isinstance(value, (set, frozenset)):
        return TaggedValue(ValueTag.TEXT, ",".join(sorted(str(v) for v in value)))
    return TaggedValue(ValueTag.TEXT, str(value))


def canonical_text(tagged: TaggedValue) -> str | None:
    """String form used when two values carry different tags."""
    tag, value = tagged
    if tag is ValueTag.NULL:
        return None
    if tag is ValueTag.BINARY:
        try:
            return value.decode("utf-8")
        except UnicodeDecodeError:
            return value.hex()
    if tag is ValueTag.DECIMAL:
        return format(value.normalize(), "f")
    if tag is ValueTag.FLOAT and value.is_integer():
        return str(int(value))
    if tag is ValueTag.DATE:
        return value.isoformat(sep=" ") if isinstance(value, datetime.datetime) else value.isoformat()
    return str(value)


def tagged_equal(left: TaggedValue, right: TaggedValue) -> bool:
    if left.tag is ValueTag.NULL or right.tag is ValueTag.NULL:
        return left.tag is right.tag
    if left.tag is right.tag:
        return left.value == right.value
    return canonical_text(left) == canonical_text(right)


def values_equal(left: Any, right: Any) -> bool:
    """
    Compare two driver values under the tagged equality rules.

    Examples::

        values_equal(None, None)                    →  True
        values_equal(None, "")                      →  False
        values_equal(5, "5")                        →  True
        values_equal(Decimal("1.50"), Decimal("1.5"))  →  True
    """
    return tagged_equal(tag_value(left), tag_value(right))


def rows_differ(left: dict[str, Any], right: dict[str, Any], columns) -> list[str]:
    """Return the columns (from *columns*) whose values are not equal."""
    return [c for c in columns if not values_equal(left.get(c), right.get(c))]
