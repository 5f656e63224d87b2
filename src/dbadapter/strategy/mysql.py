"""
MySQL-specific strategy implementation.

This module implements the DatabaseStrategy interface for MySQL-family
servers reached through PyMySQL. It handles:
- Backtick identifier quoting
- Native string escaping through the driver
- Abstract column type tags mapped to MySQL keywords
- Translation of C-API option names to PyMySQL connect arguments
- Recognition of the "server has gone away" error class
"""
from typing import TYPE_CHECKING, Any

import pymysql
import sqlalchemy as sa
from dbadapter.exceptions import is_transient_error
from dbadapter.strategy.base import DatabaseStrategy, register_strategy
from sqlalchemy.pool import NullPool

if TYPE_CHECKING:
    from dbadapter.options import DatabaseOptions

DEFAULT_PORT = 3306

TYPE_MAPPINGS = {
    'char': 'CHARACTER',
    'string': 'VARCHAR',
    'text': 'TEXT',
    'integer': 'INTEGER',
    'int': 'INTEGER',
    'float': 'FLOAT',
    'decimal': 'DECIMAL',
    'datetime': 'DATETIME',
    'timestamp': 'TIMESTAMP',
    'time': 'TIME',
    'date': 'DATE',
    'binary': 'BLOB',
    'boolean': 'BOOLEAN',
    'bool': 'BOOLEAN',
    }

# MySQL C-API option names -> PyMySQL connect() keywords
DRIVER_OPTION_NAMES = {
    'MYSQL_OPT_CONNECT_TIMEOUT': 'connect_timeout',
    'MYSQL_OPT_READ_TIMEOUT': 'read_timeout',
    'MYSQL_OPT_WRITE_TIMEOUT': 'write_timeout',
    'MYSQL_OPT_LOCAL_INFILE': 'local_infile',
    'MYSQL_OPT_COMPRESS': 'compress',
    'MYSQL_SET_CHARSET_NAME': 'charset',
    'MYSQL_INIT_COMMAND': 'init_command',
    'MYSQL_READ_DEFAULT_FILE': 'read_default_file',
    'MYSQL_READ_DEFAULT_GROUP': 'read_default_group',
    'MYSQL_OPT_SSL_CA': 'ssl_ca',
    'MYSQL_OPT_SSL_CERT': 'ssl_cert',
    'MYSQL_OPT_SSL_KEY': 'ssl_key',
    'MYSQL_OPT_SSL_VERIFY_SERVER_CERT': 'ssl_verify_identity',
    'MYSQL_OPT_BIND': 'bind_address',
    'MYSQL_OPT_UNIX_SOCKET': 'unix_socket',
    }

INT_DRIVER_OPTIONS = {'connect_timeout', 'read_timeout', 'write_timeout',
                      'client_flag', 'max_allowed_packet'}
BOOL_DRIVER_OPTIONS = {'local_infile', 'compress', 'ssl_verify_identity',
                       'ssl_disabled', 'autocommit'}

_DRIVER_KEYWORDS = set(DRIVER_OPTION_NAMES.values()) | {
    'autocommit', 'client_flag', 'sql_mode', 'program_name', 'ssl',
    'ssl_disabled', 'ssl_verify_cert', 'max_allowed_packet', 'defer_connect',
    'binary_prefix', 'use_unicode',
    }


def _coerce_option(keyword: str, value: Any) -> Any:
    if keyword in INT_DRIVER_OPTIONS and isinstance(value, str):
        return int(value)
    if keyword in BOOL_DRIVER_OPTIONS and isinstance(value, str):
        return value.strip().lower() in {'1', 'true', 'yes', 'on'}
    return value


@register_strategy('mysql')
class MySQLStrategy(DatabaseStrategy):
    """MySQL-specific operations.
    """

    type_mappings = TYPE_MAPPINGS

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for MySQL."""
        return 'mysql'

    @property
    def default_port(self) -> int:
        return DEFAULT_PORT

    @property
    def random_function(self) -> str:
        return 'rand()'

    def quote_identifier(self, identifier: str) -> str:
        """Backtick-quote each dot-separated segment.

        Backticks inside a segment become hyphens; this is not full escaping.
        """
        return '.'.join(f"`{part.replace('`', '-')}`" for part in identifier.split('.'))

    def escape_string(self, value: str, connection: Any = None) -> str:
        """Escape with the connection's native routine when one is available.
        """
        if connection is not None:
            return connection.escape_string(value)
        return pymysql.converters.escape_string(value)

    def build_connection_url(self, options: 'DatabaseOptions') -> sa.URL:
        """Build the SQLAlchemy connection URL for MySQL."""
        return sa.URL.create(
            drivername='mysql+pymysql',
            username=options.username,
            password=options.password,
            host=options.hostname,
            port=options.port,
            database=options.database,
        )

    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for MySQL."""
        connect_args = self.translate_driver_options(options.options)
        connect_args.setdefault('autocommit', True)
        return {
            'echo': False,
            'poolclass': NullPool,
            'connect_args': connect_args,
        }

    def translate_driver_options(self, options: dict[str, Any] | None) -> dict[str, Any]:
        """Translate backend option names to PyMySQL connect() keywords.

        Accepts C-API names (MYSQL_OPT_CONNECT_TIMEOUT) or PyMySQL keywords
        (connect_timeout). String values of numeric options are coerced.

        Raises ValueError for names that match neither.
        """
        translated = {}
        for name, value in (options or {}).items():
            if name in DRIVER_OPTION_NAMES:
                keyword = DRIVER_OPTION_NAMES[name]
            elif name in _DRIVER_KEYWORDS:
                keyword = name
            else:
                raise ValueError(f'Unknown MySQL driver option: {name}')
            translated[keyword] = _coerce_option(keyword, value)
        return translated

    def configure_connection(self, raw_conn: Any) -> None:
        """Configure connection settings for MySQL.
        """
        self.enable_autocommit(raw_conn)

    def enable_autocommit(self, raw_conn: Any) -> None:
        """Enable auto-commit mode for MySQL.
        """
        raw_conn.autocommit(True)

    def is_transient_error(self, exc: BaseException) -> bool:
        return is_transient_error(exc)

    def table_columns_sql(self, table: str) -> str:
        return f'SHOW COLUMNS FROM {self.quote_identifier(table)}'

    def on_duplicate_clause(self, primary_key: str,
                            assignments: list[str] | None = None) -> str:
        """Render MySQL's ON DUPLICATE KEY UPDATE clause.

        Without assignments the key is set to itself, which keeps the
        existing row untouched (INSERT ... ignore semantics).
        """
        if not assignments:
            quoted = self.quote_identifier(primary_key)
            assignments = [f'{quoted} = {quoted}']
        return f"ON DUPLICATE KEY UPDATE {', '.join(assignments)}"

    def auto_increment_column(self, name: str) -> str:
        return f'{self.quote_identifier(name)} INT NOT NULL AUTO_INCREMENT PRIMARY KEY'

    @classmethod
    def get_required_options(cls) -> list[str]:
        """Return required options for MySQL connections."""
        return ['hostname', 'username', 'database']

    @classmethod
    def validate_options(cls, options: 'DatabaseOptions') -> None:
        """Validate required fields and the driver option names."""
        super().validate_options(options)
        cls().translate_driver_options(options.options)
