"""
MySQL adapter: connections, SQL generation, execution and schema migrations.

Typical use:
    import dbadapter as db

    db.connect({'host': 'localhost', 'username': 'app', 'database': 'shop'})
    db.find('users', db.SQLQuery(where=['age > 18'], limit=10))
    db.execute_sql('UPDATE `users` SET `active` = TRUE')

The module functions work on the process default connection manager; pass
`manager=` to any of them to use another one.
"""
__version__ = '0.1.0'

from dbadapter.builder import ModelRecord, render_insert_or_update, render_select
from dbadapter.builder import to_find_sql
from dbadapter.connection import ConnectionManager, ConnectionWrapper
from dbadapter.connection import active_connection, connect, disconnect
from dbadapter.connection import get_manager, set_manager
from dbadapter.exceptions import BackendError, ConnectionError, DatabaseError
from dbadapter.exceptions import DbConnectionError, IntegrityError
from dbadapter.exceptions import NotConnectedError, OperationalError
from dbadapter.exceptions import ProgrammingError, QueryError
from dbadapter.exceptions import TransientBackendError, UnknownTypeError
from dbadapter.exceptions import is_transient_error
from dbadapter.executor import Execution, ExecutionOutcome, execute_sql, run_sql
from dbadapter.migration import ColumnOptions, add_column, add_index, column
from dbadapter.migration import column_id, create_migrations_table
from dbadapter.migration import create_table, drop_table, remove_column
from dbadapter.migration import remove_index
from dbadapter.operations import columns, count, delete, delete_all, find
from dbadapter.operations import rand, save
from dbadapter.options import DatabaseOptions, pandas_numpy_data_loader
from dbadapter.options import pandas_pyarrow_data_loader
from dbadapter.query import SQLColumn, SQLInput, SQLJoin, SQLLimit, SQLOrder
from dbadapter.query import SQLQuery, SQLWhere, SQLWhereExpression, Statement
from dbadapter.query import StatementKind
from dbadapter.sql import escape_identifier, escape_value
from dbadapter.types import Column, native_type

__all__ = [
    # Connections
    'connect',
    'disconnect',
    'active_connection',
    'get_manager',
    'set_manager',
    'ConnectionManager',
    'ConnectionWrapper',
    'DatabaseOptions',
    'pandas_numpy_data_loader',
    'pandas_pyarrow_data_loader',
    # Query model and SQL generation
    'SQLColumn',
    'SQLInput',
    'SQLWhere',
    'SQLWhereExpression',
    'SQLJoin',
    'SQLOrder',
    'SQLLimit',
    'SQLQuery',
    'Statement',
    'StatementKind',
    'ModelRecord',
    'to_find_sql',
    'render_select',
    'render_insert_or_update',
    'escape_identifier',
    'escape_value',
    'native_type',
    'Column',
    # Execution
    'run_sql',
    'execute_sql',
    'Execution',
    'ExecutionOutcome',
    # Data operations
    'columns',
    'count',
    'rand',
    'find',
    'save',
    'delete',
    'delete_all',
    # Migrations
    'ColumnOptions',
    'column',
    'column_id',
    'create_table',
    'add_index',
    'remove_index',
    'add_column',
    'remove_column',
    'drop_table',
    'create_migrations_table',
    # Exceptions
    'DatabaseError',
    'NotConnectedError',
    'ConnectionError',
    'TransientBackendError',
    'QueryError',
    'UnknownTypeError',
    'BackendError',
    'DbConnectionError',
    'IntegrityError',
    'OperationalError',
    'ProgrammingError',
    'is_transient_error',
]
