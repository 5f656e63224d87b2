"""
SQL fragment builder.

Pure functions rendering individual clauses from the query model, and the
composers that assemble them into complete statements. No I/O happens here;
an optional connection handle is only used for its string-escaping routine.

Every clause builder returns an empty string when it has nothing to render,
so composed statements are passed through `collapse_whitespace()`.
"""
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from dbadapter.query import SQLColumn, SQLJoin, SQLLimit, SQLOrder, SQLQuery
from dbadapter.query import SQLWhereEntity, Statement, StatementKind, as_join
from dbadapter.sql import collapse_whitespace, escape_identifier, escape_value
from dbadapter.strategy import get_strategy

CONFLICT_STRATEGIES = ('error', 'ignore', 'update')
COUNT_COLUMN_LABEL = '__cid'


def to_select_part(columns: Sequence[SQLColumn], dialect: str = 'mysql') -> str:
    """Render the SELECT list; no columns selects everything."""
    if not columns:
        return 'SELECT *'
    return 'SELECT ' + ', '.join(c.render(dialect) for c in columns)


def to_from_part(table: str, dialect: str = 'mysql') -> str:
    return f'FROM {escape_identifier(table, dialect)}'


def to_join_part(joins: Sequence[SQLJoin] | None, dialect: str = 'mysql') -> str:
    """Render JOIN clauses in input order."""
    if not joins:
        return ''
    return ' '.join(j.render(dialect) for j in joins)


def _conditions_part(keyword: str, conditions: Sequence[SQLWhereEntity],
                     dialect: str, cn: Any) -> str:
    """Render a WHERE/HAVING chain.

    The chain is seeded with TRUE when the first connective is AND and with
    FALSE when it is OR, then the degenerate `<KEYWORD> TRUE AND ` prefix is
    reduced to `<KEYWORD> `.
    """
    if not conditions:
        return ''
    seed = 'TRUE ' if conditions[0].condition == 'AND' else 'FALSE '
    text = f"{keyword} {seed}{' '.join(c.render(dialect, cn) for c in conditions)}"
    return re.sub(rf'^{keyword} TRUE AND ', f'{keyword} ', text, count=1, flags=re.IGNORECASE)


def to_where_part(where: Sequence[SQLWhereEntity], dialect: str = 'mysql',
                  cn: Any = None) -> str:
    return _conditions_part('WHERE', where, dialect, cn)


def to_having_part(having: Sequence[SQLWhereEntity], dialect: str = 'mysql',
                   cn: Any = None) -> str:
    return _conditions_part('HAVING', having, dialect, cn)


def to_group_part(group: Sequence[SQLColumn], dialect: str = 'mysql') -> str:
    if not group:
        return ''
    return ' GROUP BY ' + ', '.join(c.render(dialect) for c in group)


def to_order_part(table: str, order: Sequence[SQLOrder], dialect: str = 'mysql') -> str:
    """Render ORDER BY; identifier columns are qualified against `table`."""
    if not order:
        return ''
    return 'ORDER BY ' + ', '.join(
        f'{o.column.render(dialect, table=table)} {o.direction}' for o in order)


def to_limit_part(limit: SQLLimit) -> str:
    return '' if limit.is_all else f'LIMIT {limit.value}'


def to_offset_part(offset: int) -> str:
    return f'OFFSET {offset}' if offset != 0 else ''


def to_find_sql(table: str, query: SQLQuery | None = None,
                joins: Sequence[SQLJoin | str] | None = None,
                dialect: str = 'mysql', cn: Any = None) -> str:
    """Compile a structured query against `table` into SELECT text.
    """
    query = query or SQLQuery()
    joins = [as_join(j) for j in joins] if joins else None
    parts = [
        to_select_part(query.columns, dialect),
        to_from_part(table, dialect),
        to_join_part(joins, dialect),
        to_where_part(query.where, dialect, cn),
        to_group_part(query.group, dialect),
        to_having_part(query.having, dialect, cn),
        to_order_part(table, query.order, dialect),
        to_limit_part(query.limit),
        to_offset_part(query.offset),
        ]
    return collapse_whitespace(' '.join(parts))


def render_select(table: str, columns=(), joins=None, where=(), group=(),
                  having=(), order=(), limit='ALL', offset: int = 0,
                  dialect: str = 'mysql', cn: Any = None) -> str:
    """Compile the pieces of a SELECT into SQL text.

    Plain strings are accepted everywhere and treated as raw fragments;
    see `SQLQuery` for the coercion rules.
    """
    query = SQLQuery(columns=columns, where=where, group=group, having=having,
                     order=order, limit=limit, offset=offset)
    return to_find_sql(table, query, joins, dialect, cn)


def select_statement(table: str, query: SQLQuery | None = None,
                     joins: Sequence[SQLJoin | str] | None = None,
                     dialect: str = 'mysql', cn: Any = None) -> Statement:
    return Statement(to_find_sql(table, query, joins, dialect, cn), StatementKind.SELECT)


@dataclass
class ModelRecord:
    """Persistable fields of one model instance, as handed over by the ORM.

    `fields` maps column name to value in column order and includes the
    primary key; a record whose key value is None has not been persisted.
    """
    table: str
    fields: Mapping[str, Any] = field(default_factory=dict)
    primary_key: str = 'id'

    @property
    def id(self) -> Any:
        return self.fields.get(self.primary_key)

    @property
    def persisted(self) -> bool:
        return self.id is not None


def _assignments(record: ModelRecord, dialect: str, cn: Any) -> list[str]:
    return [f'{escape_identifier(col, dialect)} = {escape_value(val, cn, dialect)}'
            for col, val in record.fields.items() if col != record.primary_key]


def render_insert_or_update(record: ModelRecord, conflict_strategy: str = 'error',
                            dialect: str = 'mysql', cn: Any = None) -> Statement:
    """Render the statement persisting `record`.

    New records, and any record saved with the `update` strategy, become an
    INSERT. `ignore` keeps an existing duplicate row untouched; `update`
    overwrites it when the record already has a key. Persisted records
    saved with `error` or `ignore` become a keyed UPDATE.
    """
    if conflict_strategy not in CONFLICT_STRATEGIES:
        raise ValueError(f'conflict_strategy must be one of {CONFLICT_STRATEGIES}, got {conflict_strategy!r}')

    strategy = get_strategy(dialect)
    table = escape_identifier(record.table, dialect)

    if not record.persisted or conflict_strategy == 'update':
        keep_key = record.persisted and conflict_strategy == 'update'
        fields = {col: val for col, val in record.fields.items()
                  if keep_key or col != record.primary_key}
        cols = ', '.join(escape_identifier(col, dialect) for col in fields)
        vals = ', '.join(escape_value(val, cn, dialect) for val in fields.values())
        sql = f'INSERT INTO {table} ( {cols} ) VALUES ( {vals} )'
        if conflict_strategy == 'ignore':
            sql += ' ' + strategy.on_duplicate_clause(record.primary_key)
        elif conflict_strategy == 'update' and record.persisted:
            sql += ' ' + strategy.on_duplicate_clause(record.primary_key,
                                                      _assignments(record, dialect, cn))
        return Statement(sql, StatementKind.INSERT)

    key = escape_identifier(f'{record.table}.{record.primary_key}', dialect)
    sql = (f"UPDATE {table} SET {', '.join(_assignments(record, dialect, cn))} "
           f'WHERE {key} = {escape_value(record.id, cn, dialect)}')
    return Statement(sql, StatementKind.UPDATE)


def to_count_query(query: SQLQuery | None = None) -> SQLQuery:
    """Add the COUNT(*) column used by `count()` to a query."""
    query = query or SQLQuery()
    count_column = SQLColumn(f'COUNT(*) AS {COUNT_COLUMN_LABEL}', raw=True)
    return query.clone(columns=query.columns + (count_column,))


def to_random_query(limit: int = 1, dialect: str = 'mysql') -> SQLQuery:
    """Query selecting `limit` random rows."""
    random_order = SQLOrder(SQLColumn(get_strategy(dialect).random_function, raw=True))
    return SQLQuery(order=(random_order,), limit=limit)


def delete_all_statement(table: str, truncate: bool = True,
                         dialect: str = 'mysql') -> Statement:
    table = escape_identifier(table, dialect)
    if truncate:
        return Statement(f'TRUNCATE {table}', StatementKind.DDL)
    return Statement(f'DELETE FROM {table}', StatementKind.DELETE)


def delete_statement(table: str, id: Any, primary_key: str = 'id',
                     dialect: str = 'mysql', cn: Any = None) -> Statement:
    sql = (f'DELETE FROM {escape_identifier(table, dialect)} '
           f'WHERE {escape_identifier(primary_key, dialect)} = {escape_value(id, cn, dialect)}')
    return Statement(sql, StatementKind.DELETE)


def table_columns_sql(table: str, dialect: str = 'mysql') -> str:
    """Statement listing column metadata for `table`."""
    return get_strategy(dialect).table_columns_sql(table)
