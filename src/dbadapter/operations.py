"""
Data operations built on the fragment builder and the executor.

These are the calls the model layer makes: schema lookups, counting,
finding, saving and deleting rows.
"""
import logging
from collections.abc import Sequence
from typing import Any

import pandas as pd
from dbadapter.builder import COUNT_COLUMN_LABEL, ModelRecord, delete_all_statement
from dbadapter.builder import delete_statement, render_insert_or_update
from dbadapter.builder import select_statement, table_columns_sql
from dbadapter.builder import to_count_query, to_random_query
from dbadapter.cache import get_schema_cache
from dbadapter.connection import ConnectionManager, ConnectionWrapper
from dbadapter.connection import get_manager
from dbadapter.executor import execute_sql
from dbadapter.query import SQLJoin, SQLQuery, StatementKind
from dbadapter.results import LAST_INSERT_ID_LABEL, ROWS_AFFECTED_LABEL
from dbadapter.types import TypeConverter

__all__ = [
    'COLUMN_FIELD_NAME',
    'columns',
    'count',
    'rand',
    'delete_all',
    'delete',
    'find',
    'save',
]

logger = logging.getLogger(__name__)

# Column of the SHOW COLUMNS result holding the column name
COLUMN_FIELD_NAME = 'Field'


def _active(manager: ConnectionManager | None) -> tuple[ConnectionManager, ConnectionWrapper]:
    manager = manager or get_manager()
    return manager, manager.active_connection()


def columns(table: str, bypass_cache: bool = False, *,
            manager: ConnectionManager | None = None) -> pd.DataFrame:
    """Column metadata for a table, one row per column.

    Results are cached per connection handle and forgotten when the handle
    closes.
    """
    manager, handle = _active(manager)
    cache = get_schema_cache(handle.cache_key)
    key = table.lower()

    if not bypass_cache and key in cache:
        logger.debug(f'Cache hit for columns of {table}')
        return cache[key]

    result = execute_sql(table_columns_sql(table), handle, internal=True, manager=manager)
    cache[key] = result
    return result


def count(table: str, query: SQLQuery | None = None, *,
          manager: ConnectionManager | None = None) -> int:
    """Number of rows matching the query."""
    manager, handle = _active(manager)
    statement = select_statement(table, to_count_query(query), cn=handle)
    result = execute_sql(statement, handle, manager=manager)
    return int(result[COUNT_COLUMN_LABEL].iloc[0])


def rand(table: str, limit: int = 1, *,
         manager: ConnectionManager | None = None) -> pd.DataFrame:
    """`limit` randomly chosen rows."""
    manager, handle = _active(manager)
    statement = select_statement(table, to_random_query(limit), cn=handle)
    return execute_sql(statement, handle, manager=manager)


def find(table: str, query: SQLQuery | None = None,
         joins: Sequence[SQLJoin | str] | None = None, *,
         manager: ConnectionManager | None = None) -> pd.DataFrame:
    """Rows of `table` matching the query."""
    manager, handle = _active(manager)
    statement = select_statement(table, query, joins, cn=handle)
    return execute_sql(statement, handle, manager=manager)


def _rows_affected(result: pd.DataFrame) -> int:
    return int(result[ROWS_AFFECTED_LABEL].iloc[0])


def delete_all(table: str, truncate: bool = True, *,
               manager: ConnectionManager | None = None) -> int:
    """Remove every row of `table` and return the affected-row count.

    TRUNCATE is used unless `truncate` is False.
    """
    manager, handle = _active(manager)
    result = execute_sql(delete_all_statement(table, truncate), handle, manager=manager)
    return _rows_affected(result)


def delete(table: str, id: Any, primary_key: str = 'id', *,
           manager: ConnectionManager | None = None) -> int:
    """Delete the row with the given key and return the affected-row count."""
    manager, handle = _active(manager)
    statement = delete_statement(table, id, primary_key, cn=handle)
    return _rows_affected(execute_sql(statement, handle, manager=manager))


def save(record: ModelRecord, conflict_strategy: str = 'error', *,
         manager: ConnectionManager | None = None) -> Any:
    """Insert or update a record and return its primary key value.

    Inserts report the generated id; when the backend generated none
    (an ignored duplicate, or an update) the record's own key is returned.
    """
    manager, handle = _active(manager)
    statement = render_insert_or_update(record, conflict_strategy, cn=handle)
    result = execute_sql(statement, handle, manager=manager)

    if statement.kind is StatementKind.INSERT:
        new_id = TypeConverter.convert_value(result[LAST_INSERT_ID_LABEL].iloc[0])
        if new_id:
            return new_id
    return record.id
