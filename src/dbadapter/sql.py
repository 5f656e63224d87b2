"""
Identifier and value escaping plus small SQL text helpers.

Main entry points:
- `escape_identifier()` - Quote table/column names, preserving qualification
- `escape_value()` - Render a Python value as a backend literal
- `collapse_whitespace()` - Normalize composed SQL text
"""
import re
from numbers import Number
from typing import Any

from dbadapter.strategy import get_strategy
from dbadapter.types import TypeConverter

_WHITESPACE = re.compile(r'\s+')


def escape_identifier(identifier: str, dialect: str = 'mysql') -> str:
    """Safely quote database identifiers.

    Parameters
        identifier: Table or column name, optionally qualified (table.column)
        dialect: Database dialect

    Returns
        Quoted identifier, e.g. `orders`.`id`
    """
    return get_strategy(dialect).quote_identifier(str(identifier))


def escape_value(value: Any, cn: Any = None, dialect: str = 'mysql') -> str:
    """Render a value as a SQL literal.

    Numbers pass through as text, booleans become TRUE/FALSE and nulls
    become NULL. Everything else is converted to text, escaped with the
    driver's native routine and single-quoted.

    Parameters
        value: Python value
        cn: Optional connection handle whose escaping routine is used
        dialect: Database dialect

    Returns
        SQL literal text
    """
    value = TypeConverter.convert_value(value)
    if value is None:
        return 'NULL'
    if isinstance(value, bool):
        return 'TRUE' if value else 'FALSE'
    if isinstance(value, Number):
        return str(value)
    escaped = get_strategy(dialect).escape_string(str(value), cn)
    return f"'{escaped}'"


def is_fully_qualified(name: str) -> bool:
    """Check whether a column reference already names its table."""
    return '.' in name


def to_fully_qualified(column: str, table: str) -> str:
    """Qualify a column name with its table."""
    return f'{table}.{column}'


def collapse_whitespace(sql: str) -> str:
    """Strip and turn every whitespace run into a single space."""
    return _WHITESPACE.sub(' ', sql.strip())


def index_name(table: str, column: str) -> str:
    """Deterministic default index name for a table column."""
    return f'{table}__idx_{column}'
