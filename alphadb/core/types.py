"""
Column Types - The closed set of column kinds AlphaDB understands

Supports: string, number, boolean, date, object, array

Each kind owns a strict check (used when validating supplied values) and a
coercion to its canonical Python representation. Default values go through a
more lenient conversion because they usually arrive as raw query text.
"""

import math
import re
from datetime import date, datetime
from enum import Enum
from typing import Any

from .errors import SchemaViolation


_NUMBER_RE = re.compile(r'^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$')
_INT_RE = re.compile(r'^[+-]?\d+$')

DATE_FORMATS = ('%Y-%m-%d', '%Y-%m-%d %H:%M:%S', '%Y-%m-%dT%H:%M:%S')


def looks_numeric(text: str) -> bool:
    """True if ``text`` is a plain decimal or scientific number."""
    return bool(_NUMBER_RE.match(text))


def parse_number(text: str):
    """Parse numeric text into an int when it is integral, else a float."""
    if _INT_RE.match(text):
        return int(text)
    return float(text)


def parse_date(value: Any):
    """
    Parse a calendar date.

    Returns a ``date`` for date-only text and a ``datetime`` when a time part
    is present. Raises ValueError for anything that is not a date.
    """
    if isinstance(value, (date, datetime)):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Cannot convert {type(value).__name__} to date")

    text = value.strip()
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        for fmt in DATE_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue
        else:
            raise ValueError(f"Invalid date: '{value}'")

    if len(text) <= 10:
        return parsed.date()
    return parsed


class ColumnKind(Enum):
    """Supported column types"""
    STRING = 'string'
    NUMBER = 'number'
    BOOLEAN = 'boolean'
    DATE = 'date'
    OBJECT = 'object'
    ARRAY = 'array'

    @property
    def indexable(self) -> bool:
        """Structured values have no stable equality key."""
        return self not in (ColumnKind.OBJECT, ColumnKind.ARRAY)

    def accepts(self, value: Any) -> bool:
        """Strict type check for a supplied value."""
        if self is ColumnKind.STRING:
            return isinstance(value, str)
        if self is ColumnKind.NUMBER:
            return (isinstance(value, (int, float))
                    and not isinstance(value, bool)
                    and math.isfinite(value))
        if self is ColumnKind.BOOLEAN:
            return isinstance(value, bool)
        if self is ColumnKind.DATE:
            try:
                parse_date(value)
            except ValueError:
                return False
            return True
        if self is ColumnKind.OBJECT:
            return isinstance(value, dict)
        if self is ColumnKind.ARRAY:
            return isinstance(value, (list, tuple))
        raise AssertionError(f"Unhandled column kind: {self}")

    def coerce(self, value: Any) -> Any:
        """Convert an accepted value to its canonical representation."""
        if self is ColumnKind.STRING:
            return str(value)
        if self is ColumnKind.BOOLEAN:
            return bool(value)
        if self is ColumnKind.DATE:
            return parse_date(value)
        if self is ColumnKind.ARRAY:
            return list(value)
        return value

    def coerce_default(self, value: Any) -> Any:
        """
        Lenient conversion for declared default values.

        Raises ValueError when the value cannot be represented.
        """
        if self is ColumnKind.NUMBER and isinstance(value, str):
            if not looks_numeric(value.strip()):
                raise ValueError(f"'{value}' is not a number")
            value = parse_number(value.strip())
        elif self is ColumnKind.BOOLEAN and isinstance(value, str):
            if value.upper() in ('TRUE', '1', 'YES'):
                value = True
            elif value.upper() in ('FALSE', '0', 'NO'):
                value = False
        elif self is ColumnKind.STRING and not isinstance(value, (dict, list, tuple)):
            value = str(value)

        if not self.accepts(value):
            raise ValueError(f"expected {self.value}")
        return self.coerce(value)


# SQL spellings accepted in CREATE TABLE, mapped to the kind they declare
TYPE_ALIASES = {
    'STRING': ColumnKind.STRING,
    'TEXT': ColumnKind.STRING,
    'VARCHAR': ColumnKind.STRING,
    'CHAR': ColumnKind.STRING,
    'NUMBER': ColumnKind.NUMBER,
    'INT': ColumnKind.NUMBER,
    'INTEGER': ColumnKind.NUMBER,
    'FLOAT': ColumnKind.NUMBER,
    'REAL': ColumnKind.NUMBER,
    'DOUBLE': ColumnKind.NUMBER,
    'DECIMAL': ColumnKind.NUMBER,
    'BOOLEAN': ColumnKind.BOOLEAN,
    'BOOL': ColumnKind.BOOLEAN,
    'DATE': ColumnKind.DATE,
    'DATETIME': ColumnKind.DATE,
    'TIMESTAMP': ColumnKind.DATE,
    'OBJECT': ColumnKind.OBJECT,
    'JSON': ColumnKind.OBJECT,
    'ARRAY': ColumnKind.ARRAY,
    'LIST': ColumnKind.ARRAY,
}


def parse_kind(type_name: Any) -> ColumnKind:
    """Parse a type name (case-insensitive, SQL aliases allowed)."""
    if isinstance(type_name, ColumnKind):
        return type_name
    key = str(type_name).strip().upper()
    if key in TYPE_ALIASES:
        return TYPE_ALIASES[key]
    raise SchemaViolation(f"Unknown column type: {type_name}")
