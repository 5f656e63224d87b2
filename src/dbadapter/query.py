"""
Dialect-neutral query model.

The structured query and its descriptors are immutable value objects. They
render themselves to SQL fragments; the fragment builder composes those
fragments into statements.

Descriptors distinguish three kinds of text:
- raw fragments, inserted verbatim (`SQLColumn(raw=True)`, `SQLInput(raw=True)`)
- identifiers, which are escaped (`SQLColumn`)
- literal values, which are escaped and quoted (`SQLInput`)
"""
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from enum import Enum, auto
from typing import Any, Self

from dbadapter.sql import escape_identifier, escape_value, is_fully_qualified
from dbadapter.sql import to_fully_qualified

LOGICAL_CONNECTIVES = ('AND', 'OR')
ORDER_DIRECTIONS = ('ASC', 'DESC')
JOIN_TYPES = ('INNER', 'LEFT', 'RIGHT', 'FULL', 'CROSS')
LIMIT_ALL = 'ALL'


def _connective(condition: str) -> str:
    condition = condition.upper()
    if condition not in LOGICAL_CONNECTIVES:
        raise ValueError(f'condition must be one of {LOGICAL_CONNECTIVES}, got {condition!r}')
    return condition


@dataclass(frozen=True, slots=True)
class SQLColumn:
    """Column reference or raw column expression."""
    value: str
    raw: bool = False
    table_name: str | None = None
    alias: str = ''

    def qualified(self, table: str | None = None) -> str:
        """Column name qualified with `table_name` (or `table`) unless already qualified."""
        table = self.table_name or table
        if self.raw or not table or is_fully_qualified(self.value):
            return self.value
        return to_fully_qualified(self.value, table)

    def render(self, dialect: str = 'mysql', table: str | None = None) -> str:
        if self.raw:
            text = self.value
        else:
            text = escape_identifier(self.qualified(table), dialect)
        if self.alias:
            text = f'{text} AS {escape_identifier(self.alias, dialect)}'
        return text

    def __str__(self) -> str:
        return self.render()


@dataclass(frozen=True, slots=True)
class SQLInput:
    """Literal value."""
    value: Any
    raw: bool = False

    def render(self, dialect: str = 'mysql', cn: Any = None) -> str:
        if self.raw:
            return str(self.value)
        return escape_value(self.value, cn, dialect)

    def __str__(self) -> str:
        return self.render()


@dataclass(frozen=True, slots=True)
class SQLWhere:
    """`<condition> <column> <operator> <value>` filter node."""
    column: SQLColumn | str
    value: Any
    condition: str = 'AND'
    operator: str = '='

    def __post_init__(self):
        object.__setattr__(self, 'condition', _connective(self.condition))
        if not isinstance(self.column, SQLColumn):
            object.__setattr__(self, 'column', SQLColumn(self.column))
        if not isinstance(self.value, SQLInput):
            object.__setattr__(self, 'value', SQLInput(self.value))

    def render(self, dialect: str = 'mysql', cn: Any = None) -> str:
        return (f'{self.condition} {self.column.render(dialect)} '
                f'{self.operator} {self.value.render(dialect, cn)}')

    def __str__(self) -> str:
        return self.render()


@dataclass(frozen=True, slots=True)
class SQLWhereExpression:
    """Free-form filter with `?` placeholders bound to escaped values.

    `SQLWhereExpression('age > ?', (18,))` renders as `AND age > 18`.
    """
    sql_expression: str
    values: tuple = ()
    condition: str = 'AND'

    def __post_init__(self):
        object.__setattr__(self, 'condition', _connective(self.condition))
        values = self.values
        if not isinstance(values, (list, tuple)):
            values = (values,)
        object.__setattr__(self, 'values', tuple(values))
        if self.sql_expression.count('?') != len(self.values):
            raise ValueError(f'Expected {self.sql_expression.count("?")} values, got {len(self.values)}')

    def render(self, dialect: str = 'mysql', cn: Any = None) -> str:
        parts = self.sql_expression.split('?')
        text = parts[0]
        for value, part in zip(self.values, parts[1:]):
            literal = value.render(dialect, cn) if isinstance(value, SQLInput) else escape_value(value, cn, dialect)
            text += literal + part
        return f'{self.condition} {text}'

    def __str__(self) -> str:
        return self.render()


SQLWhereEntity = SQLWhere | SQLWhereExpression


@dataclass(frozen=True, slots=True)
class SQLJoin:
    """JOIN clause descriptor."""
    table: str
    on: tuple[str, ...] = ()
    join_type: str = 'INNER'
    outer: bool = False
    natural: bool = False

    def __post_init__(self):
        join_type = self.join_type.upper()
        if join_type not in JOIN_TYPES:
            raise ValueError(f'join_type must be one of {JOIN_TYPES}, got {self.join_type!r}')
        object.__setattr__(self, 'join_type', join_type)
        on = (self.on,) if isinstance(self.on, str) else tuple(self.on)
        object.__setattr__(self, 'on', on)

    def render(self, dialect: str = 'mysql') -> str:
        parts = []
        if self.natural:
            parts.append('NATURAL')
        parts.append(self.join_type)
        if self.outer:
            parts.append('OUTER')
        parts.extend(['JOIN', escape_identifier(self.table, dialect)])
        if self.on:
            parts.extend(['ON', ' AND '.join(self.on)])
        return ' '.join(parts)

    def __str__(self) -> str:
        return self.render()


@dataclass(frozen=True, slots=True)
class SQLOrder:
    """ORDER BY entry."""
    column: SQLColumn | str
    direction: str = 'ASC'

    def __post_init__(self):
        direction = self.direction.upper()
        if direction not in ORDER_DIRECTIONS:
            raise ValueError(f'direction must be ASC or DESC, got {self.direction!r}')
        object.__setattr__(self, 'direction', direction)
        if not isinstance(self.column, SQLColumn):
            object.__setattr__(self, 'column', SQLColumn(self.column, raw=True))


@dataclass(frozen=True, slots=True)
class SQLLimit:
    """LIMIT value; 'ALL' means no limit."""
    value: int | str = LIMIT_ALL

    def __post_init__(self):
        if isinstance(self.value, str) and self.value.upper() == LIMIT_ALL:
            object.__setattr__(self, 'value', LIMIT_ALL)
        elif isinstance(self.value, bool) or not isinstance(self.value, int) or self.value < 0:
            raise ValueError(f"limit must be 'ALL' or a non-negative int, got {self.value!r}")

    @property
    def is_all(self) -> bool:
        return self.value == LIMIT_ALL

    def __str__(self) -> str:
        return str(self.value)


def as_column(value: SQLColumn | str) -> SQLColumn:
    """Coerce a plain string to a raw column expression."""
    return value if isinstance(value, SQLColumn) else SQLColumn(str(value), raw=True)


def as_where(value: SQLWhereEntity | str) -> SQLWhereEntity:
    """Coerce a plain string to an AND-connected expression."""
    if isinstance(value, (SQLWhere, SQLWhereExpression)):
        return value
    return SQLWhereExpression(str(value))


def as_order(value: SQLOrder | SQLColumn | str | tuple) -> SQLOrder:
    """Coerce a column or a (column, direction) pair to an SQLOrder."""
    if isinstance(value, SQLOrder):
        return value
    if isinstance(value, tuple):
        return SQLOrder(*value)
    return SQLOrder(value)


def as_limit(value: SQLLimit | int | str | None) -> SQLLimit:
    if isinstance(value, SQLLimit):
        return value
    return SQLLimit() if value is None else SQLLimit(value)


def as_join(value: SQLJoin | str) -> SQLJoin:
    return value if isinstance(value, SQLJoin) else SQLJoin(str(value))


def _as_tuple(values: Iterable | None, coerce) -> tuple:
    if values is None:
        return ()
    if isinstance(values, (str, SQLColumn, SQLOrder, SQLWhere, SQLWhereExpression, SQLJoin)):
        values = (values,)
    return tuple(coerce(v) for v in values)


@dataclass(frozen=True, slots=True)
class SQLQuery:
    """Structured query: columns, filters, grouping, ordering and paging.

    Immutable; use `clone()` to derive a modified copy.
    """
    columns: tuple[SQLColumn, ...] = ()
    where: tuple[SQLWhereEntity, ...] = ()
    group: tuple[SQLColumn, ...] = ()
    having: tuple[SQLWhereEntity, ...] = ()
    order: tuple[SQLOrder, ...] = ()
    limit: SQLLimit = field(default_factory=SQLLimit)
    offset: int = 0

    def __post_init__(self):
        object.__setattr__(self, 'columns', _as_tuple(self.columns, as_column))
        object.__setattr__(self, 'where', _as_tuple(self.where, as_where))
        object.__setattr__(self, 'group', _as_tuple(self.group, as_column))
        object.__setattr__(self, 'having', _as_tuple(self.having, as_where))
        object.__setattr__(self, 'order', _as_tuple(self.order, as_order))
        object.__setattr__(self, 'limit', as_limit(self.limit))
        if self.offset is None:
            object.__setattr__(self, 'offset', 0)
        if self.offset < 0:
            raise ValueError(f'offset must be non-negative, got {self.offset}')

    def clone(self, **changes: Any) -> Self:
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)


class StatementKind(Enum):
    """Statement kinds, deciding the shape of the result."""
    SELECT = auto()
    INSERT = auto()
    UPDATE = auto()
    DELETE = auto()
    DDL = auto()

    @property
    def returns_status(self) -> bool:
        """True for statements answered with a status + affected-row count."""
        return self in {StatementKind.UPDATE, StatementKind.DELETE, StatementKind.DDL}


_PREFIX_KINDS = (
    ('INSERT ', StatementKind.INSERT),
    ('UPDATE ', StatementKind.UPDATE),
    ('DELETE ', StatementKind.DELETE),
    ('ALTER ', StatementKind.DDL),
    ('CREATE ', StatementKind.DDL),
    ('DROP ', StatementKind.DDL),
    )


def classify(sql: str) -> StatementKind:
    """Classify raw SQL text by its leading keyword (case-sensitive)."""
    for prefix, kind in _PREFIX_KINDS:
        if sql.startswith(prefix):
            return kind
    return StatementKind.SELECT


@dataclass(frozen=True, slots=True)
class Statement:
    """Rendered SQL tagged with its statement kind."""
    sql: str
    kind: StatementKind = StatementKind.SELECT

    @classmethod
    def from_sql(cls, sql: 'str | Statement') -> 'Statement':
        if isinstance(sql, Statement):
            return sql
        return cls(sql, classify(sql))

    def __str__(self) -> str:
        return self.sql
