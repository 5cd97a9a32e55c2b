"""
Mock connection utilities for table binding tests.

Provides a fake connection collaborator that answers schema introspection
from canned rows and records every statement, so bindings can be built and
exercised without a MySQL server.

Usage:
    def test_binding(create_mock_connection):
        cn = create_mock_connection(columns=[('id', 'int(11)', 'NO', 'PRI', None, 'auto_increment')])
        binding = build_binding(cn, 'orders', Order)
"""
import pytest
from tablemeta.cursor import ExecResult

INDEX_LABELS = (
    'Table', 'Non_unique', 'Key_name', 'Seq_in_index', 'Column_name',
    'Collation', 'Cardinality', 'Sub_part', 'Packed', 'Null', 'Index_type',
    'Comment', 'Index_comment',
    )


class MockCursor:
    """Cursor over a fixed list of rows."""

    def __init__(self, rows=(), labels=(), error=None):
        self.rows = list(rows)
        self.description = tuple((label,) for label in labels) or None
        self.error = error
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self):
        self.closed = True

    def fetchone(self):
        if self.error is not None:
            raise self.error
        if not self.rows:
            return None
        return self.rows.pop(0)

    def fetchall(self):
        if self.error is not None:
            raise self.error
        rows, self.rows = self.rows, []
        return rows


class MockConnection:
    """Connection collaborator answering SHOW COLUMNS / SHOW INDEXES.

    ``columns`` are SHOW COLUMNS tuples, ``indexes`` are SHOW INDEXES rows as
    dicts keyed by label. SELECT statements return ``select_rows``; execute
    returns ``exec_result``. Every call is appended to ``queries`` or
    ``executes`` as (sql, args).
    """

    def __init__(self, columns=(), indexes=(), select_rows=(), exec_result=None,
                 query_error=None, fetch_error=None):
        self.columns = list(columns)
        self.indexes = list(indexes)
        self.select_rows = list(select_rows)
        self.exec_result = exec_result or ExecResult(rowcount=1, lastrowid=1)
        self.query_error = query_error
        self.fetch_error = fetch_error
        self.queries = []
        self.executes = []
        self.cursors = []

    def query(self, sql, *args):
        self.queries.append((sql, args))
        if self.query_error is not None:
            raise self.query_error
        if sql.startswith('SHOW COLUMNS'):
            cursor = MockCursor(self.columns, ('Field', 'Type', 'Null', 'Key', 'Default', 'Extra'))
        elif sql.startswith('SHOW INDEXES'):
            rows = [tuple(row.get(label) for label in INDEX_LABELS) for row in self.indexes]
            cursor = MockCursor(rows, INDEX_LABELS)
        else:
            cursor = MockCursor(self.select_rows, error=self.fetch_error)
        self.cursors.append(cursor)
        return cursor

    def execute(self, sql, *args):
        self.executes.append((sql, args))
        return self.exec_result

    @property
    def introspections(self):
        return sum(1 for sql, _ in self.queries if sql.startswith('SHOW'))


def index_row(table, column, key_name='PRIMARY', non_unique=0, seq=1):
    """SHOW INDEXES row for one column."""
    return {
        'Table': table,
        'Non_unique': non_unique,
        'Key_name': key_name,
        'Seq_in_index': seq,
        'Column_name': column,
        'Collation': 'A',
        'Cardinality': 0,
        'Sub_part': None,
        'Packed': None,
        'Null': '',
        'Index_type': 'BTREE',
        'Comment': '',
        'Index_comment': '',
        }


@pytest.fixture
def create_mock_connection():
    """
    Fixture that provides a factory function to create mock connections.

    Returns
        Factory function accepting the `MockConnection` keyword arguments
    """
    def factory(**kwargs):
        return MockConnection(**kwargs)

    return factory
