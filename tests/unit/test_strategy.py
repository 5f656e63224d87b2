"""
Unit tests for the strategy registry and the MySQL strategy.
"""
import pymysql
import pytest
import sqlalchemy.exc as sa_exc
from dbadapter.strategy import MySQLStrategy, get_available_dialects, get_strategy
from dbadapter.strategy import get_strategy_class, is_supported_dialect
from sqlalchemy.pool import NullPool
from tests.fixtures.mocks import FakeDBAPIConnection, default_options


def test_registry():
    assert 'mysql' in get_available_dialects()
    assert is_supported_dialect('mysql')
    assert not is_supported_dialect('oracle')
    assert get_strategy_class('mysql') is MySQLStrategy


def test_strategy_instances_are_cached():
    assert get_strategy('mysql') is get_strategy('mysql')


def test_unsupported_dialect():
    with pytest.raises(ValueError, match='Unsupported dialect: oracle'):
        get_strategy('oracle')


class TestMySQLStrategy:

    strategy = MySQLStrategy()

    def test_basics(self):
        assert self.strategy.dialect_name == 'mysql'
        assert self.strategy.default_port == 3306
        assert self.strategy.random_function == 'rand()'

    def test_connection_url(self):
        url = self.strategy.build_connection_url(default_options(port=3307))
        assert url.drivername == 'mysql+pymysql'
        assert url.host == 'localhost'
        assert url.port == 3307
        assert url.username == 'test'
        assert url.database == 'test_db'

    def test_engine_kwargs(self):
        options = default_options(options={'MYSQL_OPT_CONNECT_TIMEOUT': '10',
                                           'MYSQL_SET_CHARSET_NAME': 'utf8mb4',
                                           'local_infile': 'true'})
        kwargs = self.strategy.get_engine_kwargs(options)
        assert kwargs['poolclass'] is NullPool
        assert kwargs['connect_args'] == {
            'connect_timeout': 10,
            'charset': 'utf8mb4',
            'local_infile': True,
            'autocommit': True,
        }

    def test_explicit_autocommit_is_kept(self):
        kwargs = self.strategy.get_engine_kwargs(default_options(options={'autocommit': False}))
        assert kwargs['connect_args']['autocommit'] is False

    def test_unknown_driver_option(self):
        with pytest.raises(ValueError, match='MYSQL_OPT_NOPE'):
            self.strategy.translate_driver_options({'MYSQL_OPT_NOPE': 1})

    @pytest.mark.parametrize('name', ['cursorclass', 'conv'])
    def test_cursor_and_converter_overrides_are_rejected(self, name):
        with pytest.raises(ValueError, match=name):
            self.strategy.translate_driver_options({name: 'DictCursor'})

    def test_escape_string_without_connection(self):
        assert self.strategy.escape_string("it's") == "it\\'s"

    def test_configure_connection_enables_autocommit(self):
        raw_conn = FakeDBAPIConnection()
        self.strategy.configure_connection(raw_conn)
        assert raw_conn.autocommit_mode is True

    def test_transient_errors(self):
        assert self.strategy.is_transient_error(pymysql.err.OperationalError(2006, 'gone away'))
        assert self.strategy.is_transient_error(pymysql.err.OperationalError(2013, 'lost'))
        assert not self.strategy.is_transient_error(pymysql.err.ProgrammingError(1064, 'syntax'))
        wrapped = sa_exc.OperationalError('SELECT 1', {}, pymysql.err.OperationalError(2055, 'lost'))
        assert self.strategy.is_transient_error(wrapped)

    def test_sql_helpers(self):
        assert self.strategy.table_columns_sql('users') == 'SHOW COLUMNS FROM `users`'
        assert self.strategy.auto_increment_column('id') == '`id` INT NOT NULL AUTO_INCREMENT PRIMARY KEY'
        assert self.strategy.on_duplicate_clause('id', ['`a` = 1', '`b` = 2']) == \
            'ON DUPLICATE KEY UPDATE `a` = 1, `b` = 2'

    def test_native_type(self):
        assert self.strategy.native_type('string') == 'VARCHAR'
        with pytest.raises(KeyError):
            self.strategy.native_type('uuid')


if __name__ == '__main__':
    __import__('pytest').main([__file__])
