#!/usr/bin/env python3
"""
pgshift Value Encoder

Column values arrive from psycopg2 with whatever Python type the driver
picked. ``tag_value`` decides the variant once, at read time, and the two
renderers below only ever switch over ``ValueKind``:

- ``encode_sql_literal``: text for an INSERT statement
- ``encode_json_value``: a native JSON-compatible object

Temporal values are rendered as ISO-8601 with millisecond precision.
Timezone-aware timestamps are normalized to UTC and carry a ``Z`` suffix.
"""

import json
import re
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, Mapping
from uuid import UUID

from core.models import Row, TaggedValue, ValueKind

_NUMBER_RE = re.compile(r'^-?(\d+(\.\d*)?|\.\d+)([eE][-+]?\d+)?$')
_SPECIAL_FLOATS = {'nan': 'NaN', 'inf': 'Infinity', '-inf': '-Infinity',
                   'NaN': 'NaN', 'Infinity': 'Infinity', '-Infinity': '-Infinity'}

NULL = TaggedValue(ValueKind.NULL)


def _format_timestamp(value: datetime) -> str:
    if value.tzinfo is not None and value.utcoffset() is not None:
        utc = value.astimezone(timezone.utc).replace(tzinfo=None)
        return utc.isoformat(timespec='milliseconds') + 'Z'
    return value.isoformat(timespec='milliseconds')


def _format_temporal(value: Any) -> str:
    if isinstance(value, datetime):
        return _format_timestamp(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, time):
        if value.microsecond:
            return value.isoformat(timespec='milliseconds')
        return value.isoformat()
    raise TypeError(f"Not a temporal value: {type(value).__name__}")


def _json_default(value: Any) -> Any:
    """Fallback for objects the json module cannot serialize by itself"""
    if isinstance(value, (datetime, date, time)):
        return _format_temporal(value)
    if isinstance(value, Decimal):
        # exact text; NaN and the infinities come out as their names
        return str(value)
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, (bytes, memoryview)):
        return '\\x' + bytes(value).hex()
    if isinstance(value, timedelta):
        return _format_interval(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _format_interval(value: timedelta) -> str:
    return f"{value.days} days {value.seconds} seconds {value.microseconds} microseconds"


def _json_safe(value: Any) -> Any:
    """Replace non-finite floats, which JSON has no number for, with their names"""
    if isinstance(value, float):
        return _SPECIAL_FLOATS.get(str(value), value)
    if isinstance(value, dict):
        return {key: _json_safe(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(item) for item in value]
    return value


def _dump_json(value: Any) -> str:
    return json.dumps(_json_safe(value), separators=(',', ':'), ensure_ascii=False,
                      allow_nan=False, default=_json_default)


def _quote(text: str) -> str:
    return "'" + text.replace("'", "''") + "'"


def tag_value(value: Any) -> TaggedValue:
    """Classify a driver value into the closed ``ValueKind`` set"""
    if value is None:
        return NULL
    # bool is a subclass of int, so it has to be checked first
    if isinstance(value, bool):
        return TaggedValue(ValueKind.BOOL, value)
    if isinstance(value, (int, float, Decimal)):
        return TaggedValue(ValueKind.NUMBER, value)
    if isinstance(value, (datetime, date, time)):
        return TaggedValue(ValueKind.TIMESTAMP, value)
    if isinstance(value, (dict, list, tuple)):
        return TaggedValue(ValueKind.JSON, value)
    if isinstance(value, (bytes, memoryview)):
        return TaggedValue(ValueKind.STRING, '\\x' + bytes(value).hex())
    if isinstance(value, timedelta):
        return TaggedValue(ValueKind.STRING, _format_interval(value))
    return TaggedValue(ValueKind.STRING, str(value))


def tag_row(row: Mapping[str, Any]) -> Row:
    """Tag every column of a fetched row, keeping column order"""
    return {column: tag_value(value) for column, value in row.items()}


def encode_sql_literal(tagged: TaggedValue) -> str:
    """
    Render a tagged value as a SQL literal.

    NULL becomes the NULL keyword, numbers and booleans their literal text,
    temporal values a quoted ISO-8601 string, JSON values their compact
    serialization quoted, and everything else its quoted string form.
    Embedded single quotes are always doubled.
    """
    kind = tagged.kind
    value = tagged.value

    if kind is ValueKind.NULL:
        return 'NULL'
    if kind is ValueKind.BOOL:
        return 'true' if value else 'false'
    if kind is ValueKind.NUMBER:
        text = str(value)
        if text in _SPECIAL_FLOATS:
            # PostgreSQL only accepts these as quoted literals
            return _quote(_SPECIAL_FLOATS[text])
        return text
    if kind is ValueKind.TIMESTAMP:
        return _quote(_format_temporal(value))
    if kind is ValueKind.JSON:
        return _quote(_dump_json(value))
    return _quote(str(value))


def decode_sql_literal(literal: str) -> TaggedValue:
    """
    Parse a literal produced by ``encode_sql_literal`` back into a tagged value.

    Quoted literals come back as strings (the SQL text carries no type
    information beyond that), so ``encode(decode(encode(v))) == encode(v)``.
    """
    text = literal.strip()
    if text.upper() == 'NULL':
        return NULL
    if text == 'true':
        return TaggedValue(ValueKind.BOOL, True)
    if text == 'false':
        return TaggedValue(ValueKind.BOOL, False)
    if _NUMBER_RE.match(text):
        if re.fullmatch(r'-?\d+', text):
            return TaggedValue(ValueKind.NUMBER, int(text))
        # float when it prints back identically, else Decimal (keeps scale and exponent form)
        as_float = float(text)
        if str(as_float) == text:
            return TaggedValue(ValueKind.NUMBER, as_float)
        return TaggedValue(ValueKind.NUMBER, Decimal(text))
    if len(text) >= 2 and text[0] == "'" and text[-1] == "'":
        return TaggedValue(ValueKind.STRING, text[1:-1].replace("''", "'"))
    raise ValueError(f"Not a SQL literal: {literal!r}")


def encode_json_value(tagged: TaggedValue) -> Any:
    """Return a JSON-compatible object; composite, temporal and Decimal values as strings"""
    kind = tagged.kind
    value = tagged.value

    if kind is ValueKind.NULL:
        return None
    if kind is ValueKind.BOOL:
        return bool(value)
    if kind is ValueKind.NUMBER:
        if isinstance(value, Decimal):
            return _json_default(value)
        return _json_safe(value)
    if kind is ValueKind.TIMESTAMP:
        return _format_temporal(value)
    if kind is ValueKind.JSON:
        return _dump_json(value)
    return str(value)


def encode_json_row(row: Row) -> Dict[str, Any]:
    return {column: encode_json_value(tagged) for column, tagged in row.items()}
