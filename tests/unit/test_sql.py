"""
Unit tests for placeholder rewriting and identifier quoting.
"""
from tablemeta.sql import has_placeholders, make_placeholders, prepare_query
from tablemeta.sql import quote_identifier, standardize_placeholders


class TestStandardizePlaceholders:

    def test_qmark_rewritten(self):
        sql = 'SELECT `id` FROM `widget` WHERE id = ?'
        assert standardize_placeholders(sql) == 'SELECT `id` FROM `widget` WHERE id = %s'

    def test_qmark_in_literal_untouched(self):
        sql = "SELECT * FROM t WHERE name = '?' AND id = ?"
        assert standardize_placeholders(sql) == "SELECT * FROM t WHERE name = '?' AND id = %s"

    def test_percent_doubled(self):
        sql = "SELECT * FROM t WHERE name LIKE 'A%' AND id % 2 = ?"
        assert standardize_placeholders(sql) == "SELECT * FROM t WHERE name LIKE 'A%%' AND id %% 2 = %s"

    def test_existing_format_placeholder_kept(self):
        assert standardize_placeholders('UPDATE t SET a=%s') == 'UPDATE t SET a=%s'


class TestPrepareQuery:

    def test_no_args_verbatim(self):
        sql = "SELECT * FROM t WHERE name LIKE 'A%'"
        assert prepare_query(sql, ()) == (sql, None)

    def test_positional_args(self):
        sql, args = prepare_query('INSERT INTO `t` (`a`, `b`) VALUES (?, ?) ', ('x', 1))
        assert sql == 'INSERT INTO `t` (`a`, `b`) VALUES (%s, %s) '
        assert args == ('x', 1)

    def test_single_sequence_unwrapped(self):
        _, args = prepare_query('SELECT * FROM t WHERE a = ? AND b = ?', (['x', 1],))
        assert args == ('x', 1)

    def test_single_sequence_kept_for_one_placeholder(self):
        _, args = prepare_query('SELECT * FROM t WHERE a = ?', (['x', 1],))
        assert args == (['x', 1],)


def test_has_placeholders():
    assert has_placeholders('SELECT * FROM t WHERE id = ?')
    assert not has_placeholders("SELECT '?' FROM t")
    assert not has_placeholders(None)


def test_quote_identifier():
    assert quote_identifier('order_total') == '`order_total`'
    assert quote_identifier('we`ird') == '`we``ird`'


def test_make_placeholders():
    assert make_placeholders(3) == '?, ?, ?'
    assert make_placeholders(1) == '?'
    assert make_placeholders(0) == ''


if __name__ == '__main__':
    __import__('pytest').main([__file__])
