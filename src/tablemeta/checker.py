"""
Compatibility checks between MySQL column types and record field kinds.

Checks never raise. A mismatch is logged and reported as False; the binding
builder folds mismatched column names into the binding's warning string.
"""
import logging
import re
from collections.abc import Iterable

from tablemeta.record import FieldKind, RecordField, RecordType
from tablemeta.schema import ColumnDescriptor

logger = logging.getLogger(__name__)

__all__ = ['check_field_type', 'check_field_types']

MISMATCH_WARNING = 'Warning: mismatched type in columns '

SQL_BOOL_TYPE = re.compile(r'^tinyint\(1\)( unsigned)?$', re.IGNORECASE)
SQL_INT_TYPE = re.compile(r'^(tiny|small|medium|big)?int(\(\d+\))?$', re.IGNORECASE)
SQL_UINT_TYPE = re.compile(r'^(tiny|small|medium|big)?int(\(\d+\))? unsigned$', re.IGNORECASE)
SQL_FLOAT_TYPE = re.compile(r'^(float|double)(\(\d+\))?( unsigned)?$', re.IGNORECASE)
SQL_STRING_TYPE = re.compile(
    r'^((char|varchar|binary|varbinary)(\(\d+\))?|text|blob|enum.*)$', re.IGNORECASE)

_PATTERN_BY_KIND = {
    FieldKind.BOOL: SQL_BOOL_TYPE,
    FieldKind.INT: SQL_INT_TYPE,
    FieldKind.UINT: SQL_UINT_TYPE,
    FieldKind.FLOAT: SQL_FLOAT_TYPE,
    FieldKind.STRING: SQL_STRING_TYPE,
    FieldKind.STRUCT: SQL_STRING_TYPE,
}


def check_field_type(column: ColumnDescriptor, field: RecordField, table_name: str = '') -> bool:
    """Return True if ``field`` can hold values of ``column``.

    Nullability must agree first: an optional field pairs with a nullable
    column and a required field with a NOT NULL column. Then the column type
    must fit the field kind; fields of kind OTHER are not checked.
    """
    if field.nullable != column.is_nullable:
        logger.warning(f'Mismatch of nullable for column {table_name}.{column.field}: '
                       f'column Null={column.nullable}, field {field.attr}: {field.type_name}')
        return False

    pattern = _PATTERN_BY_KIND.get(field.kind)
    if pattern is not None and not pattern.match(column.column_type):
        logger.warning(f'Mismatch of type for column {table_name}.{column.field}: '
                       f'column type {column.column_type}, field {field.attr}: {field.type_name}')
        return False
    return True


def check_field_types(table_name: str, columns: Iterable[ColumnDescriptor],
                      record_type: RecordType) -> str:
    """Check every bound column and summarize the mismatches.

    Returns
        ``MISMATCH_WARNING`` followed by the comma-joined names of mismatched
        columns, or an empty string when every column is compatible
    """
    mismatched = [
        col.field for col in columns
        if not check_field_type(col, record_type.fields[col.field_index], table_name)
    ]
    if not mismatched:
        return ''
    warn = MISMATCH_WARNING + ','.join(mismatched)
    logger.warning(f'{warn} of {table_name} for {record_type.name}')
    return warn
