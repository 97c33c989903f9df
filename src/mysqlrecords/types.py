"""
Consolidated type handling for database operations.

This module provides:
- TypeConverter: Convert Python values to database-compatible parameters
- TargetKind / resolve_kind: Map reported column type names to scan targets
- Scan targets: Nullable holders populated from one row value each
- Column: Column metadata from cursor descriptions
"""
import datetime
import decimal
import logging
import math
from enum import Enum
from typing import Any, Self

import numpy as np
import pandas as pd
from mysqlrecords.exceptions import TypeConversionError

logger = logging.getLogger(__name__)

NUMPY_FLOAT_TYPES = (np.floating,)
NUMPY_INT_TYPES = (np.integer, np.unsignedinteger)


# Type Converter - Handles Python -> Database value conversion

def _convert_numpy_value(val: Any) -> float | int | datetime.datetime | None:
    """Convert NumPy value to Python type."""
    if isinstance(val, np.floating) and np.isnan(val):
        return None

    if isinstance(val, np.datetime64):
        if np.isnat(val):
            return None
        return pd.Timestamp(val).to_pydatetime()

    if isinstance(val, (np.floating, np.integer | np.unsignedinteger, np.bool_)):
        return val.item()

    return val


class TypeConverter:
    """Universal type conversion for database parameters.

    Handles NumPy and pandas scalars, mapping their missing-value markers
    to NULL.
    """

    @staticmethod
    def convert_value(value: Any) -> Any:
        """Convert a single value to a database-compatible format."""
        if value is None:
            return None

        if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
            return None

        if isinstance(value, (*NUMPY_FLOAT_TYPES, *NUMPY_INT_TYPES, np.bool_, np.datetime64)):
            return _convert_numpy_value(value)

        if pd.api.types.is_scalar(value) and pd.isna(value):
            return None

        if isinstance(value, pd.Timestamp):
            return value.to_pydatetime()

        return value

    @staticmethod
    def convert_params(params: Any) -> Any:
        """Convert a collection of parameters for database operations."""
        if params is None:
            return None

        if isinstance(params, dict):
            return {k: TypeConverter.convert_value(v) for k, v in params.items()}

        if isinstance(params, list | tuple):
            return type(params)(TypeConverter.convert_value(v) for v in params)

        return TypeConverter.convert_value(params)


# Scan targets - Database row value -> nullable holder

class ScanTarget:
    """Nullable holder for one column of one row.

    A target is populated exactly once by ``scan`` and then read with
    ``get``. ``valid`` is False when the database value was NULL.
    """

    __slots__ = ('value', 'valid')

    def __init__(self) -> None:
        self.value = None
        self.valid = False

    def scan(self, src: Any) -> None:
        if src is None:
            self.value, self.valid = None, False
            return
        self.value = self._convert(src)
        self.valid = True

    def get(self) -> int | float | str | None:
        return self.value if self.valid else None

    def _convert(self, src: Any) -> Any:
        raise NotImplementedError

    def _fail(self, src: Any, reason: str = '') -> TypeConversionError:
        message = f'cannot scan {type(src).__name__} value {src!r} into {type(self).__name__}'
        if reason:
            message = f'{message}: {reason}'
        return TypeConversionError(message)

    def __repr__(self) -> str:
        return f'{type(self).__name__}(value={self.value!r}, valid={self.valid})'


class NullInt64(ScanTarget):
    """Nullable 64-bit integer target."""

    __slots__ = ()

    def _convert(self, src: Any) -> int:
        if isinstance(src, bool | int):
            return int(src)
        if isinstance(src, float | decimal.Decimal):
            if isinstance(src, float) and not src.is_integer():
                raise self._fail(src, 'not an integral value')
            if isinstance(src, decimal.Decimal) and src != src.to_integral_value():
                raise self._fail(src, 'not an integral value')
            return int(src)
        if isinstance(src, bytes | bytearray):
            # BIT(n) columns arrive as big-endian raw bytes
            return int.from_bytes(src, 'big')
        if isinstance(src, str):
            try:
                return int(src.strip())
            except ValueError as exc:
                raise self._fail(src, str(exc)) from exc
        raise self._fail(src)


class NullFloat64(ScanTarget):
    """Nullable 64-bit float target."""

    __slots__ = ()

    def _convert(self, src: Any) -> float:
        if isinstance(src, bool | int | float | decimal.Decimal):
            return float(src)
        if isinstance(src, bytes | bytearray):
            src = bytes(src).decode('ascii', errors='replace')
        if isinstance(src, str):
            try:
                return float(src.strip())
            except ValueError as exc:
                raise self._fail(src, str(exc)) from exc
        raise self._fail(src)


def _format_timedelta(value: datetime.timedelta) -> str:
    """Render a MySQL TIME value, which may be negative or exceed 24 hours."""
    sign = '-' if value < datetime.timedelta(0) else ''
    value = abs(value)
    hours, remainder = divmod(value.days * 86400 + value.seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    text = f'{sign}{hours:02d}:{minutes:02d}:{seconds:02d}'
    if value.microseconds:
        text += f'.{value.microseconds:06d}'
    return text


class NullString(ScanTarget):
    """Nullable string target.

    Temporal values keep MySQL's textual representation.
    """

    __slots__ = ()

    def _convert(self, src: Any) -> str:
        if isinstance(src, str):
            return src
        if isinstance(src, bytes | bytearray):
            return bytes(src).decode('utf-8', errors='surrogateescape')
        if isinstance(src, datetime.datetime):
            return src.isoformat(sep=' ')
        if isinstance(src, datetime.date):
            return src.isoformat()
        if isinstance(src, datetime.time):
            return src.isoformat()
        if isinstance(src, datetime.timedelta):
            return _format_timedelta(src)
        if isinstance(src, bool):
            return str(int(src))
        if isinstance(src, int | float | decimal.Decimal):
            return str(src)
        raise self._fail(src)


class TargetKind(Enum):
    """Scan target kind chosen for a column."""

    INTEGER = 'integer'
    FLOAT = 'float'
    STRING = 'string'

    def new_target(self) -> ScanTarget:
        """Allocate a fresh, unpopulated target of this kind."""
        return _target_classes[self]()


_target_classes: dict[TargetKind, type[ScanTarget]] = {
    TargetKind.INTEGER: NullInt64,
    TargetKind.FLOAT: NullFloat64,
    TargetKind.STRING: NullString,
}


# Type Resolution - Reported column type name -> target kind

_INTEGER_TYPES = ('INT', 'BIT', 'TINYINT', 'BOOL', 'BOOLEAN', 'SMALLINT',
                  'MEDIUMINT', 'INTEGER', 'BIGINT')
_FLOAT_TYPES = ('FLOAT', 'DOUBLE', 'DECIMAL', 'DEC')
_STRING_TYPES = ('CHAR', 'VARCHAR', 'BINARY', 'VARBINARY', 'TINYBLOB', 'TINYTEXT',
                 'TEXT', 'BLOB', 'MEDIUMTEXT', 'MEDIUMBLOB', 'LONGTEXT', 'LONGBLOB',
                 'ENUM', 'SET', 'DATE', 'DATETIME', 'TIMESTAMP', 'TIME', 'YEAR')

type_kinds: dict[str, TargetKind] = {}

for v in _INTEGER_TYPES:
    type_kinds[v] = TargetKind.INTEGER

for v in _FLOAT_TYPES:
    type_kinds[v] = TargetKind.FLOAT

for v in _STRING_TYPES:
    type_kinds[v] = TargetKind.STRING


def resolve_kind(type_name: str | None) -> TargetKind:
    """Resolve a reported column type name to a scan target kind.

    Matching is case-insensitive and exact. Unrecognized names fall back
    to ``TargetKind.STRING`` so the value keeps its textual form.

    >>> resolve_kind('bigint')
    <TargetKind.INTEGER: 'integer'>
    >>> resolve_kind('GEOMETRY').name
    'STRING'
    """
    if not type_name:
        return TargetKind.STRING
    return type_kinds.get(type_name.upper(), TargetKind.STRING)


# Column - Metadata from cursor descriptions

class Column:
    """Database column metadata."""

    def __init__(self,
                 name: str,
                 type_name: str = '',
                 type_code: Any = None,
                 display_size: int | None = None,
                 internal_size: int | None = None,
                 precision: int | None = None,
                 scale: int | None = None,
                 nullable: bool | None = None):
        self.name = name
        self.type_name = type_name
        self.type_code = type_code
        self.display_size = display_size
        self.internal_size = internal_size
        self.precision = precision
        self.scale = scale
        self.nullable = nullable

    @property
    def kind(self) -> TargetKind:
        return resolve_kind(self.type_name)

    @classmethod
    def from_cursor_description(cls, description_item: Any, strategy: Any) -> Self:
        """Create a Column from a DB-API 2.0 cursor description item."""
        item = tuple(description_item) + (None,) * (7 - len(description_item))
        name, type_code, display_size, internal_size, precision, scale, null_ok = item[:7]
        return cls(
            name=str(name),
            type_name=strategy.column_type_name(type_code),
            type_code=type_code,
            display_size=display_size,
            internal_size=internal_size,
            precision=precision,
            scale=scale,
            nullable=None if null_ok is None else bool(null_ok),
        )

    def __repr__(self) -> str:
        return f'Column(name={self.name!r}, type_name={self.type_name!r}, kind={self.kind.name})'

    def to_dict(self) -> dict:
        return {
            'name': self.name,
            'type_name': self.type_name,
            'type_code': self.type_code,
            'kind': self.kind.name,
            'display_size': self.display_size,
            'internal_size': self.internal_size,
            'precision': self.precision,
            'scale': self.scale,
            'nullable': self.nullable
        }

    @staticmethod
    def get_names(columns: list[Self]) -> list[str]:
        return [col.name for col in columns]

    @staticmethod
    def get_column_types_dict(columns: list[Self]) -> dict[str, dict]:
        return {col.name: col.to_dict() for col in columns}


def columns_from_cursor_description(description: Any, strategy: Any) -> list[Column]:
    """Create Column objects from a cursor description."""
    if description is None:
        return []
    return [Column.from_cursor_description(desc, strategy) for desc in description]
