"""
Schema migration DSL.

Each operation renders DDL with its `*_sql` twin and runs it as an internal
statement without reconnect-and-retry; schema changes are not safely
repeatable. Backend errors propagate unchanged and operations return None.

    >>> column('name', 'string', limit=100, not_null=True)
    '`name` VARCHAR(100) NOT NULL'
    >>> column_id()
    '`id` INT NOT NULL AUTO_INCREMENT PRIMARY KEY'
"""
import logging
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from dbadapter.cache import Cache
from dbadapter.connection import ConnectionManager
from dbadapter.executor import execute_sql
from dbadapter.query import Statement, StatementKind
from dbadapter.sql import escape_identifier, index_name
from dbadapter.strategy import get_strategy
from dbadapter.types import native_type

__all__ = [
    'ColumnOptions',
    'column',
    'column_id',
    'create_table',
    'create_table_sql',
    'add_index',
    'add_index_sql',
    'remove_index',
    'remove_index_sql',
    'add_column',
    'add_column_sql',
    'remove_column',
    'remove_column_sql',
    'drop_table',
    'drop_table_sql',
    'create_migrations_table',
    'create_migrations_table_sql',
]

logger = logging.getLogger(__name__)

MIGRATIONS_TABLE_NAME = 'schema_migrations'

_LIMIT_PATTERN = re.compile(r'^\d+(,\d+)?$')


@dataclass(frozen=True)
class ColumnOptions:
    """Modifiers of one column definition.

    - default: rendered verbatim after DEFAULT; quote string literals yourself
    - limit: length or precision, e.g. 100 or '10,2'
    - not_null: append NOT NULL
    - extra: free-form text appended last
    """
    default: Any = None
    limit: int | str | None = None
    not_null: bool = False
    extra: str = ''

    def __post_init__(self):
        if self.limit is not None:
            if isinstance(self.limit, bool) or not isinstance(self.limit, (int, str)):
                raise ValueError(f'limit must be an int or a string like "10,2", got {self.limit!r}')
            if isinstance(self.limit, int) and self.limit <= 0:
                raise ValueError(f'limit must be positive, got {self.limit}')
            if isinstance(self.limit, str) and not _LIMIT_PATTERN.match(self.limit):
                raise ValueError(f'limit must be digits optionally followed by ",digits", got {self.limit!r}')
        if not isinstance(self.not_null, bool):
            raise ValueError(f'not_null must be a bool, got {self.not_null!r}')
        if not isinstance(self.extra, str):
            raise ValueError(f'extra must be a str, got {self.extra!r}')


def column(name: str, type_tag: str, options: str | ColumnOptions = '', *,
           default: Any = None, limit: int | str | None = None,
           not_null: bool = False, dialect: str = 'mysql') -> str:
    """Render one column definition.

    `options` is either a ColumnOptions, which then replaces the keyword
    modifiers, or free-form text appended after them.

    Raises UnknownTypeError if `type_tag` has no mapping.
    """
    if not isinstance(options, ColumnOptions):
        options = ColumnOptions(default=default, limit=limit, not_null=not_null,
                                extra=options or '')

    type_sql = native_type(type_tag, dialect)
    if options.limit is not None:
        type_sql += f'({options.limit})'

    parts = [escape_identifier(name, dialect), type_sql]
    if options.default is not None:
        parts.append(f'DEFAULT {options.default}')
    if options.not_null:
        parts.append('NOT NULL')
    if options.extra:
        parts.append(options.extra)
    return ' '.join(parts)


def column_id(name: str = 'id', options: str = '', dialect: str = 'mysql') -> str:
    """Render the auto-incrementing primary key column."""
    definition = get_strategy(dialect).auto_increment_column(name)
    return f'{definition} {options}' if options else definition


def _with_options(sql: str, options: str) -> str:
    return f'{sql} {options}' if options else sql


def _run(sql: str, manager: ConnectionManager | None) -> None:
    execute_sql(Statement(sql, StatementKind.DDL), internal=True, retry=False, manager=manager)


def create_table_sql(name: str, column_builder: Callable[[], Iterable[str]],
                     options: str = '', dialect: str = 'mysql') -> str:
    """Render CREATE TABLE from the definitions `column_builder` returns."""
    definitions = ', '.join(column_builder())
    return _with_options(f'CREATE TABLE {escape_identifier(name, dialect)} ( {definitions} )', options)


def create_table(name: str, column_builder: Callable[[], Iterable[str]],
                 options: str = '', *, manager: ConnectionManager | None = None) -> None:
    """Create a table.

        >>> create_table('users', lambda: [column_id(), column('name', 'string', limit=100)])  # doctest: +SKIP
    """
    _run(create_table_sql(name, column_builder, options), manager)


def add_index_sql(table: str, column: str, *, name: str = '', unique: bool = False,
                  dialect: str = 'mysql') -> str:
    name = name or index_name(table, column)
    kind = 'UNIQUE INDEX' if unique else 'INDEX'
    return (f'CREATE {kind} {escape_identifier(name, dialect)} '
            f'ON {escape_identifier(table, dialect)} ({escape_identifier(column, dialect)})')


def add_index(table: str, column: str, *, name: str = '', unique: bool = False,
              manager: ConnectionManager | None = None) -> None:
    """Create an index on one column; named `<table>__idx_<column>` unless `name` is given."""
    _run(add_index_sql(table, column, name=name, unique=unique), manager)
    Cache.get_instance().clear_for_table(table)


def remove_index_sql(table: str, name: str, options: str = '', dialect: str = 'mysql') -> str:
    sql = f'DROP INDEX {escape_identifier(name, dialect)} ON {escape_identifier(table, dialect)}'
    return _with_options(sql, options)


def remove_index(table: str, name: str, options: str = '', *,
                 manager: ConnectionManager | None = None) -> None:
    _run(remove_index_sql(table, name, options), manager)
    Cache.get_instance().clear_for_table(table)


def add_column_sql(table: str, name: str, type_tag: str, *, default: Any = None,
                   limit: int | str | None = None, not_null: bool = False,
                   options: str | ColumnOptions = '', dialect: str = 'mysql') -> str:
    definition = column(name, type_tag, options, default=default, limit=limit,
                        not_null=not_null, dialect=dialect)
    return f'ALTER TABLE {escape_identifier(table, dialect)} ADD {definition}'


def add_column(table: str, name: str, type_tag: str, *, default: Any = None,
               limit: int | str | None = None, not_null: bool = False,
               options: str | ColumnOptions = '',
               manager: ConnectionManager | None = None) -> None:
    """Add a column to an existing table."""
    _run(add_column_sql(table, name, type_tag, default=default, limit=limit,
                        not_null=not_null, options=options), manager)
    Cache.get_instance().clear_for_table(table)


def remove_column_sql(table: str, name: str, options: str = '', dialect: str = 'mysql') -> str:
    sql = f'ALTER TABLE {escape_identifier(table, dialect)} DROP COLUMN {escape_identifier(name, dialect)}'
    return _with_options(sql, options)


def remove_column(table: str, name: str, options: str = '', *,
                  manager: ConnectionManager | None = None) -> None:
    _run(remove_column_sql(table, name, options), manager)
    Cache.get_instance().clear_for_table(table)


def drop_table_sql(name: str, dialect: str = 'mysql') -> str:
    return f'DROP TABLE {escape_identifier(name, dialect)}'


def drop_table(name: str, *, manager: ConnectionManager | None = None) -> None:
    _run(drop_table_sql(name), manager)
    Cache.get_instance().clear_for_table(name)


def create_migrations_table_sql(table_name: str = MIGRATIONS_TABLE_NAME,
                                dialect: str = 'mysql') -> str:
    return (f'CREATE TABLE {escape_identifier(table_name, dialect)} ( '
            "`version` varchar(30) NOT NULL DEFAULT '', "
            'PRIMARY KEY (`version`) '
            ') ENGINE=InnoDB DEFAULT CHARSET=utf8')


def create_migrations_table(table_name: str = MIGRATIONS_TABLE_NAME, *,
                            manager: ConnectionManager | None = None) -> None:
    """Create the table recording applied migration versions."""
    _run(create_migrations_table_sql(table_name), manager)
    logger.info(f'Created table {table_name}')
