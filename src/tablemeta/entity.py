"""
Row traffic through a table binding.

Every function here takes a built `TableBinding` and never introspects:

- `scan_into` / `scan_row` - read one row into a caller-owned record
- `select_one`, `select_by_id`, `select_by_column` - first matching row or None
- `get_rows`, `select_many` - multi-row reads
- `insert`, `update`, `save` - writes; `save` routes on the identity value
- `delete` - deliberately unsupported

Structured fields (nested dataclasses, dicts, lists and any nesting of them)
travel as JSON text through a pydantic `TypeAdapter` for the field type.
Select cursors are closed on every exit path.
"""
import functools
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import pydantic
from tablemeta.exceptions import DecodeError, DriverError, EncodeError
from tablemeta.exceptions import InternalError, MissingIdentityError
from tablemeta.exceptions import NotImplementedOperation, QueryError, ScanError
from tablemeta.exceptions import UnknownColumnError
from tablemeta.record import FieldKind, RecordField
from tablemeta.schema import ColumnDescriptor
from tablemeta.sql import quote_identifier

if TYPE_CHECKING:
    from tablemeta.binding import TableBinding
    from tablemeta.cursor import Cursor

logger = logging.getLogger(__name__)

__all__ = [
    'scan_row',
    'scan_into',
    'get_rows',
    'select_one',
    'select_by_id',
    'select_by_column',
    'select_many',
    'encode_column_value',
    'insert',
    'update',
    'save',
    'delete',
]

WHERE_ID = 'WHERE id = ?'


@functools.cache
def _json_adapter(tp: Any) -> pydantic.TypeAdapter:
    """Typed JSON codec for a structured field type, built once per type."""
    return pydantic.TypeAdapter(tp)


def _convert(rf: RecordField, column: ColumnDescriptor, value: Any) -> Any:
    """Convert a driver value into the field's kind."""
    if value is None:
        if not rf.nullable and rf.kind is not FieldKind.OTHER:
            raise ScanError(f'cannot scan NULL in column {column.field} into {rf.attr}: {rf.type_name}')
        return None
    try:
        if rf.kind is FieldKind.BOOL:
            return bool(value)
        if rf.kind in (FieldKind.INT, FieldKind.UINT):
            return int(value)
        if rf.kind is FieldKind.FLOAT:
            return float(value)
        if rf.kind is FieldKind.STRING and rf.type is str and isinstance(value, (bytes, bytearray)):
            return value.decode('utf-8')
        if rf.kind is FieldKind.STRING and rf.type is bytes and isinstance(value, str):
            return value.encode('utf-8')
    except (TypeError, ValueError, UnicodeError) as err:
        raise ScanError(f'cannot scan column {column.field} into {rf.attr}: {err}') from err
    return value


def scan_row(binding: 'TableBinding', row: tuple, record: Any) -> Any:
    """Write one row, in binding column order, into ``record``.

    Structured columns are staged as text and decoded only after every
    plain column has been assigned.

    Raises
        ScanError: row width differs from the binding or a value cannot be converted
        DecodeError: staged JSON text cannot be decoded
        InternalError: a column has no resolved field
    """
    binding.record_type.check_instance(record)
    if len(row) != len(binding.columns):
        raise ScanError(f'row has {len(row)} values, binding {binding.name} has {len(binding.columns)} columns')

    fields = binding.record_type.fields
    staged: list[tuple[RecordField, ColumnDescriptor, Any]] = []
    for col, value in zip(binding.columns, row):
        if col.field_index is None:
            raise InternalError(f'no matching field for column {col.field}')
        rf = fields[col.field_index]
        if rf.kind is FieldKind.STRUCT:
            staged.append((rf, col, value))
        else:
            setattr(record, rf.attr, _convert(rf, col, value))

    for rf, col, text in staged:
        if text is None:
            if not rf.nullable:
                raise ScanError(f'cannot scan NULL in column {col.field} into {rf.attr}: {rf.type_name}')
            setattr(record, rf.attr, None)
            continue
        if isinstance(text, (bytes, bytearray)):
            text = text.decode('utf-8', errors='replace')
        try:
            setattr(record, rf.attr, _json_adapter(rf.type).validate_json(text))
        except (TypeError, ValueError) as err:
            raise DecodeError(f'cannot decode json in column {col.field} into {rf.attr}: {err}') from err
    return record


def scan_into(binding: 'TableBinding', cursor: 'Cursor', record: Any) -> bool:
    """Advance ``cursor`` and scan the row into ``record``.

    Returns
        False when the cursor is exhausted, True after a row was scanned
    """
    try:
        row = cursor.fetchone()
    except DriverError as err:
        logger.error(f'Failed to read row for {binding.name}: {err}')
        raise ScanError(f'failed to read row for {binding.name}: {err}') from err
    if row is None:
        return False
    scan_row(binding, row, record)
    return True


def get_rows(binding: 'TableBinding', clause: str = '', *args: Any) -> 'Cursor':
    """Run the SELECT template plus ``clause`` and return the open cursor.

    The caller closes the cursor, preferably with ``with``.
    """
    return binding.cn.query(binding.select_sql + clause, *args)


def select_one(binding: 'TableBinding', record: Any, clause: str = '', *args: Any) -> Any | None:
    """Scan the first row matched by ``clause`` into ``record``.

    Later rows are never read; pass a clause that matches at most one row.

    Returns
        ``record`` when a row was found, else None
    """
    binding.record_type.check_instance(record)
    with get_rows(binding, clause, *args) as cursor:
        if scan_into(binding, cursor, record):
            return record
    return None


def select_by_id(binding: 'TableBinding', record: Any, id: int) -> Any | None:
    return select_one(binding, record, WHERE_ID, id)


def select_by_column(binding: 'TableBinding', record: Any, name: str, value: Any) -> Any | None:
    """Select by equality on one bound column.

    Raises
        UnknownColumnError: ``name`` is not a bound column
    """
    if not binding.is_column(name):
        logger.warning(f'Invalid column name for table {binding.name}.{name}')
        raise UnknownColumnError(f'unknown column {name} for table {binding.name}')
    return select_one(binding, record, f'WHERE {quote_identifier(name)} = ?', value)


def select_many(binding: 'TableBinding', factory: Callable[[], Any],
                clause: str = '', *args: Any) -> list:
    """Scan every matched row into a fresh record from ``factory``.
    """
    records = []
    with get_rows(binding, clause, *args) as cursor:
        while True:
            record = factory()
            if not scan_into(binding, cursor, record):
                break
            records.append(record)
    logger.debug(f'Selected {len(records)} {binding.record_type_name} record(s) from {binding.name}')
    return records


def encode_column_value(binding: 'TableBinding', record: Any, column: ColumnDescriptor) -> Any:
    """Value of ``column``'s field as a statement parameter.

    Structured fields become JSON text; everything else passes through.

    Raises
        EncodeError: structured field cannot be encoded
    """
    rf = binding.record_type.fields[binding.field_by_column[column.field]]
    value = getattr(record, rf.attr)
    if rf.kind is not FieldKind.STRUCT or value is None:
        return value
    try:
        return _json_adapter(rf.type).dump_json(value).decode('utf-8')
    except (TypeError, ValueError) as err:
        raise EncodeError(f'unable to convert {rf.attr} to json: {err}') from err


def _params(binding: 'TableBinding', record: Any, columns: tuple[ColumnDescriptor, ...]) -> list:
    return [encode_column_value(binding, record, col) for col in columns]


def insert(binding: 'TableBinding', record: Any) -> int:
    """Insert ``record`` and write the generated identity back into it.

    Returns
        The generated identity value
    """
    record_type = binding.record_type
    record_type.check_instance(record)
    result = binding.cn.execute(binding.insert_sql, *_params(binding, record, binding.insert_columns))
    if result.lastrowid is None:
        raise QueryError(f'no generated id returned for insert into {binding.name}')
    record_type.set_id(record, result.lastrowid)
    logger.debug(f'Inserted {record_type.name} id={result.lastrowid} into {binding.name}')
    return result.lastrowid


def update(binding: 'TableBinding', record: Any) -> None:
    """Update the row identified by ``record``'s identity.

    An affected-row count other than one is logged, not raised.

    Raises
        MissingIdentityError: identity is zero
    """
    record_type = binding.record_type
    record_type.check_instance(record)
    id = record_type.get_id(record)
    if not id:
        raise MissingIdentityError(f'no defined id for update of {record_type.name}')
    params = _params(binding, record, binding.update_columns)
    params.append(id)
    sql = binding.update_sql + ' ' + WHERE_ID
    result = binding.cn.execute(sql, *params)
    if result.rowcount != 1:
        logger.warning(f'Update modified {result.rowcount} rows instead of one\n{sql}')


def save(binding: 'TableBinding', record: Any) -> int:
    """Insert when the identity is zero, otherwise update.

    Returns
        The record's identity value
    """
    binding.record_type.check_instance(record)
    id = binding.record_type.get_id(record)
    if not id:
        return insert(binding, record)
    update(binding, record)
    return id


def delete(binding: 'TableBinding', record: Any) -> None:
    """Not supported."""
    raise NotImplementedOperation(f'delete is not implemented for {binding.name}')
