"""
Base strategy interface for backend-specific operations.

Defines the abstract base class that the backend strategy implementation
inherits from. The strategy encapsulates everything that depends on the SQL
dialect (identifier quoting, type keywords, connection URLs, error codes)
while the fragment builder, executor and migration DSL stay dialect-neutral.
"""
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa

if TYPE_CHECKING:
    from dbadapter.options import DatabaseOptions

# Registry of dialect name -> strategy class
# Defined here to avoid circular imports (concrete strategies import from base)
_STRATEGY_REGISTRY: dict[str, type['DatabaseStrategy']] = {}


def register_strategy(dialect: str):
    """Decorator to register a strategy class for a dialect.

    Usage:
        @register_strategy('mysql')
        class MySQLStrategy(DatabaseStrategy):
            ...
    """
    def decorator(cls: type['DatabaseStrategy']) -> type['DatabaseStrategy']:
        _STRATEGY_REGISTRY[dialect] = cls
        return cls
    return decorator


class DatabaseStrategy(ABC):
    """Base class for backend-specific operations.
    """

    type_mappings: dict[str, str] = {}

    @property
    @abstractmethod
    def dialect_name(self) -> str:
        """Return the dialect identifier (e.g., 'mysql')."""

    @property
    @abstractmethod
    def default_port(self) -> int:
        """Return the backend's standard TCP port."""

    @abstractmethod
    def quote_identifier(self, identifier: str) -> str:
        """Quote a (possibly qualified) table or column name.

        Args:
            identifier: Name to quote, segments separated by '.'

        Returns
            Quoted identifier
        """

    @abstractmethod
    def escape_string(self, value: str, connection: Any = None) -> str:
        """Escape string content for inclusion in a quoted literal.

        Args:
            value: Raw string
            connection: Optional open handle whose native routine is preferred

        Returns
            Escaped string without surrounding quotes
        """

    @abstractmethod
    def build_connection_url(self, options: 'DatabaseOptions') -> sa.URL:
        """Build the SQLAlchemy connection URL for this dialect.

        Args:
            options: DatabaseOptions containing connection parameters

        Returns
            URL suitable for sqlalchemy.create_engine
        """

    @abstractmethod
    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for this dialect.

        Args:
            options: DatabaseOptions containing connection parameters

        Returns
            Dictionary of keyword arguments for create_engine
        """

    @abstractmethod
    def configure_connection(self, raw_conn: Any) -> None:
        """Apply session settings to a freshly opened DBAPI connection.

        Args:
            raw_conn: The raw DBAPI connection (not wrapped)
        """

    @abstractmethod
    def enable_autocommit(self, raw_conn: Any) -> None:
        """Enable auto-commit mode on a raw database connection.

        Args:
            raw_conn: The raw DBAPI connection (not wrapped)
        """

    @abstractmethod
    def is_transient_error(self, exc: BaseException) -> bool:
        """Check whether a backend error means the session was lost.
        """

    @abstractmethod
    def table_columns_sql(self, table: str) -> str:
        """Return the statement listing column metadata for a table.
        """

    @abstractmethod
    def on_duplicate_clause(self, primary_key: str,
                            assignments: list[str] | None = None) -> str:
        """Render the conflict clause appended to an INSERT.

        Args:
            primary_key: Primary key column name
            assignments: Rendered `col = value` pairs; None keeps the row as is

        Returns
            Clause text starting with the dialect's conflict keyword
        """

    @abstractmethod
    def auto_increment_column(self, name: str) -> str:
        """Render the canonical auto-incrementing primary key definition.
        """

    @property
    def random_function(self) -> str:
        """SQL expression ordering rows randomly."""
        return 'random()'

    def native_type(self, tag: str) -> str:
        """Map an abstract column type tag to the backend keyword.

        Raises KeyError if the tag is not mapped.
        """
        return self.type_mappings[tag]

    @classmethod
    def get_required_options(cls) -> list[str]:
        """Return option names that must be set to connect."""
        return []

    @classmethod
    def validate_options(cls, options: 'DatabaseOptions') -> None:
        """Validate connection options for this dialect.

        Raises ValueError naming the first missing required option.
        """
        for field in cls.get_required_options():
            if not getattr(options, field):
                raise ValueError(f'{field} is required for {options.drivername}')
