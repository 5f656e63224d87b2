"""
Type handling for the adapter.

This module provides:
- native_type: Map abstract column type tags to backend keywords
- TypeConverter: Convert Python values to literal-friendly values
- Column: Column metadata from cursor descriptions
- resolve_type: Resolve backend type codes to Python types
"""
import datetime
import decimal
import math
from typing import Any, Self

import numpy as np
import pandas as pd
from dbadapter.exceptions import UnknownTypeError
from dbadapter.strategy import get_strategy
from pymysql.constants import FIELD_TYPE

NUMPY_FLOAT_TYPES = (np.floating,)
NUMPY_INT_TYPES = (np.integer, np.unsignedinteger)

mysql_types: dict[int, type] = {
    FIELD_TYPE.TINY: int,
    FIELD_TYPE.SHORT: int,
    FIELD_TYPE.LONG: int,
    FIELD_TYPE.LONGLONG: int,
    FIELD_TYPE.INT24: int,
    FIELD_TYPE.YEAR: int,
    FIELD_TYPE.FLOAT: float,
    FIELD_TYPE.DOUBLE: float,
    FIELD_TYPE.DECIMAL: decimal.Decimal,
    FIELD_TYPE.NEWDECIMAL: decimal.Decimal,
    FIELD_TYPE.DATE: datetime.date,
    FIELD_TYPE.NEWDATE: datetime.date,
    FIELD_TYPE.DATETIME: datetime.datetime,
    FIELD_TYPE.TIMESTAMP: datetime.datetime,
    FIELD_TYPE.TIME: datetime.timedelta,
    FIELD_TYPE.VARCHAR: str,
    FIELD_TYPE.VAR_STRING: str,
    FIELD_TYPE.STRING: str,
    FIELD_TYPE.ENUM: str,
    FIELD_TYPE.SET: str,
    FIELD_TYPE.JSON: str,
    FIELD_TYPE.BIT: bytes,
    FIELD_TYPE.TINY_BLOB: bytes,
    FIELD_TYPE.MEDIUM_BLOB: bytes,
    FIELD_TYPE.LONG_BLOB: bytes,
    FIELD_TYPE.BLOB: bytes,
    FIELD_TYPE.GEOMETRY: bytes,
    }


def native_type(tag: str, dialect: str = 'mysql') -> str:
    """Map an abstract column type tag (e.g. 'string') to the backend keyword.

    Raises UnknownTypeError if the tag has no mapping.
    """
    try:
        return get_strategy(dialect).native_type(tag)
    except KeyError:
        raise UnknownTypeError(f'Unknown column type: {tag!r}') from None


class TypeConverter:
    """Normalizes Python values before they are rendered as SQL literals.
    """

    @staticmethod
    def is_null(value: Any) -> bool:
        """Check for None, NaN and pandas missing values."""
        if value is None:
            return True
        if isinstance(value, float) and math.isnan(value):
            return True
        try:
            return bool(pd.isna(value)) if np.ndim(value) == 0 else False
        except (TypeError, ValueError):
            return False

    @staticmethod
    def convert_value(value: Any) -> Any:
        """Convert numpy/pandas values to plain Python, nulls to None.
        """
        if TypeConverter.is_null(value):
            return None
        if isinstance(value, np.bool_):
            return bool(value)
        if isinstance(value, NUMPY_INT_TYPES):
            return int(value)
        if isinstance(value, NUMPY_FLOAT_TYPES):
            return float(value)
        if isinstance(value, pd.Timestamp):
            return value.to_pydatetime()
        return value


def resolve_type(type_code: Any) -> type | None:
    """Resolve a MySQL field type code to a Python type."""
    if isinstance(type_code, type):
        return type_code
    return mysql_types.get(type_code)


class Column:
    """Result-set column metadata."""

    def __init__(self,
                 name: str,
                 type_code: Any,
                 python_type: type | None = None,
                 display_size: int | None = None,
                 internal_size: int | None = None,
                 precision: int | None = None,
                 scale: int | None = None,
                 nullable: bool | None = None):
        self.name = name
        self.type_code = type_code
        self.python_type = python_type
        self.display_size = display_size
        self.internal_size = internal_size
        self.precision = precision
        self.scale = scale
        self.nullable = nullable

    @classmethod
    def from_cursor_description(cls, description_item: Any) -> Self:
        """Create a Column from a DB-API description item."""
        padded = tuple(description_item) + (None,) * (7 - len(description_item))
        name, type_code, display_size, internal_size, precision, scale, nullable = padded[:7]
        return cls(
            name=str(name),
            type_code=type_code,
            python_type=resolve_type(type_code),
            display_size=display_size,
            internal_size=internal_size,
            precision=precision,
            scale=scale,
            nullable=None if nullable is None else bool(nullable),
        )

    @classmethod
    def synthetic(cls, name: str, python_type: type) -> Self:
        """Create a Column for a result that did not come from a result set."""
        return cls(name=name, type_code=None, python_type=python_type)

    def __repr__(self) -> str:
        return (f'Column(name={self.name!r}, type_code={self.type_code!r}, '
                f'python_type={self.python_type.__name__ if self.python_type else None})')

    def to_dict(self) -> dict:
        return {
            'name': self.name,
            'type_code': self.type_code,
            'python_type': self.python_type.__name__ if self.python_type else None,
            'display_size': self.display_size,
            'internal_size': self.internal_size,
            'precision': self.precision,
            'scale': self.scale,
            'nullable': self.nullable,
        }

    @staticmethod
    def get_names(columns: list['Column']) -> list[str]:
        """Extract column names from a list of Column objects."""
        return [col.name for col in columns]

    @staticmethod
    def get_column_types_dict(columns: list['Column']) -> dict[str, dict]:
        """Create a name -> metadata dictionary for DataFrame attrs."""
        return {col.name: col.to_dict() for col in columns}


def columns_from_cursor_description(cursor: Any) -> list[Column]:
    """Build Column objects from a cursor description."""
    if cursor.description is None:
        return []
    return [Column.from_cursor_description(item) for item in cursor.description]
