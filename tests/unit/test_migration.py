"""
Unit tests for the schema migration DSL.
"""
import logging

import pymysql
import pytest
from dbadapter.cache import get_schema_cache
from dbadapter.connection import ConnectionManager
from dbadapter.exceptions import UnknownTypeError
from dbadapter.migration import ColumnOptions, add_column, add_column_sql, add_index
from dbadapter.migration import add_index_sql, column, column_id
from dbadapter.migration import create_migrations_table, create_migrations_table_sql
from dbadapter.migration import create_table, create_table_sql, drop_table
from dbadapter.migration import drop_table_sql, remove_column, remove_column_sql
from dbadapter.migration import remove_index, remove_index_sql
from tests.fixtures.mocks import default_options, executed, gone_away, syntax_error


class TestColumn:

    def test_plain(self):
        assert column('name', 'string') == '`name` VARCHAR'

    def test_all_modifiers_in_order(self):
        sql = column('price', 'decimal', 'COMMENT "net"', default=0, limit='10,2', not_null=True)
        assert sql == '`price` DECIMAL(10,2) DEFAULT 0 NOT NULL COMMENT "net"'

    def test_default_is_verbatim(self):
        assert column('status', 'string', default="'new'", limit=20) == "`status` VARCHAR(20) DEFAULT 'new'"

    def test_column_options(self):
        options = ColumnOptions(limit=100, not_null=True, extra='UNIQUE')
        assert column('email', 'string', options) == '`email` VARCHAR(100) NOT NULL UNIQUE'

    def test_unknown_type(self):
        with pytest.raises(UnknownTypeError):
            column('id', 'uuid')

    def test_column_id(self):
        assert column_id() == '`id` INT NOT NULL AUTO_INCREMENT PRIMARY KEY'
        assert column_id('user_id', 'COMMENT "pk"') == \
            '`user_id` INT NOT NULL AUTO_INCREMENT PRIMARY KEY COMMENT "pk"'


class TestColumnOptionsValidation:

    @pytest.mark.parametrize('limit', [0, -5, 'ten', '10,', True, 2.5])
    def test_bad_limit(self, limit):
        with pytest.raises(ValueError):
            ColumnOptions(limit=limit)

    def test_bad_flags(self):
        with pytest.raises(ValueError):
            ColumnOptions(not_null='yes')
        with pytest.raises(ValueError):
            ColumnOptions(extra=5)

    def test_good_limits(self):
        assert ColumnOptions(limit=255).limit == 255
        assert ColumnOptions(limit='8,3').limit == '8,3'


class TestRenderers:

    def test_create_table(self):
        sql = create_table_sql('users', lambda: [column_id(), column('name', 'string', limit=100)],
                               'ENGINE=InnoDB')
        assert sql == ('CREATE TABLE `users` ( `id` INT NOT NULL AUTO_INCREMENT PRIMARY KEY, '
                       '`name` VARCHAR(100) ) ENGINE=InnoDB')

    def test_indexes(self):
        assert add_index_sql('users', 'email') == 'CREATE INDEX `users__idx_email` ON `users` (`email`)'
        assert add_index_sql('users', 'email', name='by_email', unique=True) == \
            'CREATE UNIQUE INDEX `by_email` ON `users` (`email`)'
        assert remove_index_sql('users', 'by_email') == 'DROP INDEX `by_email` ON `users`'

    def test_columns(self):
        assert add_column_sql('users', 'age', 'integer', not_null=True, default=0) == \
            'ALTER TABLE `users` ADD `age` INTEGER DEFAULT 0 NOT NULL'
        assert remove_column_sql('users', 'age') == 'ALTER TABLE `users` DROP COLUMN `age`'

    def test_drop_table(self):
        assert drop_table_sql('users') == 'DROP TABLE `users`'

    def test_migrations_table(self):
        assert create_migrations_table_sql() == (
            "CREATE TABLE `schema_migrations` ( `version` varchar(30) NOT NULL DEFAULT '', "
            'PRIMARY KEY (`version`) ) ENGINE=InnoDB DEFAULT CHARSET=utf8')


class TestExecution:

    def test_operations_execute_and_return_none(self, manager):
        assert create_table('users', lambda: [column_id()], manager=manager) is None
        assert add_column('users', 'age', 'integer', manager=manager) is None
        assert add_index('users', 'age', manager=manager) is None
        assert remove_index('users', 'users__idx_age', manager=manager) is None
        assert remove_column('users', 'age', manager=manager) is None
        assert drop_table('users', manager=manager) is None
        assert executed(manager.active_connection()) == [
            'CREATE TABLE `users` ( `id` INT NOT NULL AUTO_INCREMENT PRIMARY KEY )',
            'ALTER TABLE `users` ADD `age` INTEGER',
            'CREATE INDEX `users__idx_age` ON `users` (`age`)',
            'DROP INDEX `users__idx_age` ON `users`',
            'ALTER TABLE `users` DROP COLUMN `age`',
            'DROP TABLE `users`',
        ]

    def test_not_logged_by_query_logging(self, fake_connector, caplog):
        manager = ConnectionManager(connector=fake_connector)
        manager.connect(default_options(log_queries=True))
        with caplog.at_level(logging.INFO, logger='dbadapter.executor'):
            drop_table('users', manager=manager)
        assert not [r for r in caplog.records if r.name == 'dbadapter.executor']

    def test_create_migrations_table_logs(self, manager, caplog):
        with caplog.at_level(logging.INFO, logger='dbadapter.migration'):
            create_migrations_table(manager=manager)
        assert 'Created table schema_migrations' in caplog.text

    def test_schema_changes_clear_cached_columns(self, manager):
        cache = get_schema_cache(manager.active_connection().cache_key)
        cache['users'] = 'cached'
        cache['orders'] = 'cached'
        add_column('Users', 'age', 'integer', manager=manager)
        assert 'users' not in cache
        assert 'orders' in cache

    def test_transient_errors_are_not_retried(self, fake_connector, mysql_options):
        fake_connector.queue(errors=[gone_away()])
        manager = ConnectionManager(connector=fake_connector)
        manager.connect(mysql_options)
        with pytest.raises(pymysql.err.OperationalError):
            drop_table('users', manager=manager)
        assert len(fake_connector.opened) == 1

    def test_backend_errors_propagate(self, fake_connector, mysql_options):
        error = syntax_error()
        fake_connector.queue(errors=[error])
        manager = ConnectionManager(connector=fake_connector)
        manager.connect(mysql_options)
        with pytest.raises(pymysql.err.ProgrammingError) as exc_info:
            create_migrations_table(manager=manager)
        assert exc_info.value is error


if __name__ == '__main__':
    __import__('pytest').main([__file__])
