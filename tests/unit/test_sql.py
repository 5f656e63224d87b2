"""
Unit tests for identifier and value escaping.
"""
import datetime
import decimal

import numpy as np
import pytest
from dbadapter.sql import collapse_whitespace, escape_identifier, escape_value
from dbadapter.sql import index_name, is_fully_qualified, to_fully_qualified
from tests.fixtures.mocks import FakeDBAPIConnection


class TestEscapeIdentifier:

    def test_simple_name(self):
        assert escape_identifier('users') == '`users`'

    def test_qualified_name_quotes_each_segment(self):
        assert escape_identifier('users.id') == '`users`.`id`'

    def test_backtick_becomes_hyphen(self):
        assert escape_identifier('we`ird') == '`we-ird`'
        assert escape_identifier('a`b.c`d') == '`a-b`.`c-d`'

    def test_non_string_is_converted(self):
        assert escape_identifier(42) == '`42`'


class TestEscapeValue:

    @pytest.mark.parametrize(('value', 'expected'), [
        (42, '42'),
        (-3.5, '-3.5'),
        (decimal.Decimal('10.25'), '10.25'),
        (np.int64(7), '7'),
        (np.float64(1.5), '1.5'),
    ])
    def test_numbers_pass_through(self, value, expected):
        assert escape_value(value) == expected

    def test_strings_are_quoted(self):
        assert escape_value('Alice') == "'Alice'"

    def test_quotes_are_escaped(self):
        assert escape_value("O'Brien") == "'O\\'Brien'"

    def test_backslash_is_escaped(self):
        assert escape_value('C:\\temp') == "'C:\\\\temp'"

    def test_dates_render_as_text(self):
        assert escape_value(datetime.date(2024, 1, 31)) == "'2024-01-31'"

    def test_nulls(self):
        assert escape_value(None) == 'NULL'
        assert escape_value(float('nan')) == 'NULL'

    def test_booleans(self):
        assert escape_value(True) == 'TRUE'
        assert escape_value(False) == 'FALSE'

    def test_uses_connection_escaping_when_given(self):
        cn = FakeDBAPIConnection()
        cn.escape_string = lambda value: value.upper()
        assert escape_value('abc', cn) == "'ABC'"


def test_qualification_helpers():
    assert is_fully_qualified('users.id')
    assert not is_fully_qualified('id')
    assert to_fully_qualified('id', 'users') == 'users.id'


def test_collapse_whitespace():
    assert collapse_whitespace('  SELECT *   FROM\n `t`  ') == 'SELECT * FROM `t`'


def test_index_name():
    assert index_name('users', 'email') == 'users__idx_email'


if __name__ == '__main__':
    __import__('pytest').main([__file__])
