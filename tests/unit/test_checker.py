"""
Unit tests for column type / field kind compatibility checks.
"""
import datetime
import logging
from dataclasses import dataclass

import pytest
from tablemeta import uint
from tablemeta.checker import check_field_type, check_field_types
from tablemeta.record import RecordType
from tablemeta.schema import ColumnDescriptor


@dataclass
class Sample:
    id: int = 0
    flag: bool = False
    count: int = 0
    size: uint = 0
    ratio: float = 0.0
    label: str = ''
    payload: dict | None = None
    maybe: str | None = None
    stamp: datetime.datetime | None = None


def _field(name):
    rt = RecordType.of(Sample)
    return rt.fields[[f.attr for f in rt.fields].index(name)]


def _column(name, column_type, nullable='NO'):
    return ColumnDescriptor(field=name, column_type=column_type, nullable=nullable)


@pytest.mark.parametrize(('attr', 'column_type'), [
    ('flag', 'tinyint(1)'),
    ('flag', 'TINYINT(1)'),
    ('flag', 'tinyint(1) unsigned'),
    ('count', 'int(11)'),
    ('count', 'int'),
    ('count', 'bigint(20)'),
    ('count', 'smallint(6)'),
    ('size', 'int(10) unsigned'),
    ('size', 'bigint unsigned'),
    ('ratio', 'double'),
    ('ratio', 'float'),
    ('ratio', 'double unsigned'),
    ('label', 'varchar(255)'),
    ('label', 'char(2)'),
    ('label', 'text'),
    ('label', "enum('a','b')"),
    ('label', 'varbinary(16)'),
    ('label', 'blob'),
])
def test_compatible(attr, column_type):
    assert check_field_type(_column(attr, column_type), _field(attr))


@pytest.mark.parametrize(('attr', 'column_type'), [
    ('flag', 'int(11)'),
    ('count', 'int(10) unsigned'),
    ('count', 'varchar(10)'),
    ('size', 'int(11)'),
    ('ratio', 'decimal(10,2)'),
    ('label', 'datetime'),
    ('label', 'mediumtext'),
])
def test_incompatible(attr, column_type):
    assert not check_field_type(_column(attr, column_type), _field(attr))


def test_nullable_must_agree():
    assert check_field_type(_column('maybe', 'varchar(10)', 'YES'), _field('maybe'))
    assert not check_field_type(_column('maybe', 'varchar(10)', 'NO'), _field('maybe'))
    assert not check_field_type(_column('label', 'varchar(10)', 'YES'), _field('label'))


def test_struct_stored_as_text():
    assert check_field_type(_column('payload', 'text', 'YES'), _field('payload'))
    assert not check_field_type(_column('payload', 'json', 'YES'), _field('payload'))


def test_other_kind_unchecked():
    assert check_field_type(_column('stamp', 'timestamp', 'YES'), _field('stamp'))


def test_mismatch_logged(caplog):
    with caplog.at_level(logging.WARNING, logger='tablemeta.checker'):
        check_field_type(_column('count', 'varchar(10)'), _field('count'), 'sample')
    assert 'sample.count' in caplog.text


def test_check_field_types_joins_names():
    rt = RecordType.of(Sample)
    columns = [
        ColumnDescriptor(field='id', column_type='int(11)', field_index=0),
        ColumnDescriptor(field='flag', column_type='int(11)', field_index=1),
        ColumnDescriptor(field='count', column_type='int(11)', field_index=2),
        ColumnDescriptor(field='label', column_type='datetime', field_index=5),
    ]
    assert check_field_types('sample', columns, rt) == 'Warning: mismatched type in columns flag,label'


def test_check_field_types_clean():
    rt = RecordType.of(Sample)
    columns = [ColumnDescriptor(field='id', column_type='int(11)', field_index=0)]
    assert check_field_types('sample', columns, rt) == ''


if __name__ == '__main__':
    __import__('pytest').main([__file__])
