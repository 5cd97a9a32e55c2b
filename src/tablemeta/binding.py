"""
Table bindings: compiled mappings between a MySQL table and a record type.

`build_binding` introspects the table, matches every column to a record
field, applies the per-field options, partitions the columns into INSERT and
UPDATE sets and precompiles the statement templates:

    SELECT `c1`, `c2` FROM `table`                      (caller appends WHERE)
    INSERT INTO `table` (`c2`) VALUES (?)
    UPDATE `table` SET `c2`=?                           (caller appends WHERE id = ?)

All three templates end with a space. Matching is all-or-nothing: if any
column lacks a field the build fails and nothing is returned. Type
mismatches never fail the build; they are collected in `TableBinding.warn`.

Three ways to hold a binding:
- `build_binding(cn, table, record)` - build a new one
- `TableMeta().fetch(cn, table, record)` - caller-owned handle, built once
- `get_table_binding(cn, table, record_cls)` - shared, cached per connection
"""
import dataclasses
import logging
from collections.abc import Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from tablemeta import entity
from tablemeta.cache import cacheable_binding
from tablemeta.checker import check_field_types
from tablemeta.exceptions import InternalError, SchemaMismatchError
from tablemeta.record import RecordType
from tablemeta.schema import ColumnDescriptor, fetch_columns, fetch_indexes
from tablemeta.schema import validate_table_name
from tablemeta.sql import make_placeholders, quote_identifier

if TYPE_CHECKING:
    from tablemeta.connection import ConnectionWrapper
    from tablemeta.cursor import Cursor

logger = logging.getLogger(__name__)

__all__ = ['TableBinding', 'TableMeta', 'build_binding', 'get_table_binding']


@dataclasses.dataclass(frozen=True)
class TableBinding:
    """Compiled artifact for one (table, record type) pair.

    Safe for concurrent read-only use; ``cn`` is a shared, non-owning
    reference used only to issue statements.
    """
    cn: Any = dataclasses.field(repr=False, compare=False)
    name: str
    columns: tuple[ColumnDescriptor, ...]
    insert_columns: tuple[ColumnDescriptor, ...]
    update_columns: tuple[ColumnDescriptor, ...]
    column_names: str
    select_sql: str
    insert_sql: str
    update_sql: str
    record_type: RecordType = dataclasses.field(compare=False)
    field_by_column: Mapping[str, int] = dataclasses.field(compare=False)
    warn: str = ''

    @property
    def record_type_name(self) -> str:
        return self.record_type.name

    def is_column(self, name: str) -> bool:
        """True if ``name`` is a bound schema column."""
        return name in self.field_by_column

    def to_dict(self) -> dict[str, Any]:
        """Summary of the binding suitable for JSON serialization."""
        return {
            'name': self.name,
            'columns': [col.to_dict() for col in self.columns],
            'column_names': self.column_names,
            'select_string': self.select_sql,
            'insert_string': self.insert_sql,
            'update_string': self.update_sql,
            'type_name': self.record_type_name,
            'field_by_name': dict(self.field_by_column),
            'warn': self.warn,
            }

    def scan_into(self, cursor: 'Cursor', record: Any) -> bool:
        return entity.scan_into(self, cursor, record)

    def get_rows(self, clause: str = '', *args: Any) -> 'Cursor':
        return entity.get_rows(self, clause, *args)

    def select_one(self, record: Any, clause: str = '', *args: Any) -> Any | None:
        return entity.select_one(self, record, clause, *args)

    def select_by_id(self, record: Any, id: int) -> Any | None:
        return entity.select_by_id(self, record, id)

    def select_by_column(self, record: Any, name: str, value: Any) -> Any | None:
        return entity.select_by_column(self, record, name, value)

    def select_many(self, factory: Any, clause: str = '', *args: Any) -> list:
        return entity.select_many(self, factory, clause, *args)

    def insert(self, record: Any) -> int:
        return entity.insert(self, record)

    def update(self, record: Any) -> None:
        entity.update(self, record)

    def save(self, record: Any) -> int:
        return entity.save(self, record)

    def delete(self, record: Any) -> None:
        entity.delete(self, record)


def _match_columns(table: str, columns: list[ColumnDescriptor],
                   record_type: RecordType) -> list[ColumnDescriptor]:
    """Resolve the field of every column and apply its options.

    Raises
        SchemaMismatchError: one or more columns have no field
    """
    matched = []
    unmatched = []
    for col in columns:
        rf = record_type.field_for_column(col.field)
        if rf is None:
            logger.warning(f'Failed to match column {col.field} into record type {record_type.name}')
            unmatched.append(col.field)
            continue
        matched.append(dataclasses.replace(
            col,
            field_index=rf.index,
            field_alias=rf.options.rename_to or '',
            is_identity=rf is record_type.identity,
            no_insert=rf.options.no_insert,
            no_update=rf.options.no_update,
        ))
    if unmatched:
        logger.error(f'Not all columns of table {table} match record type {record_type.name}: '
                     f'{", ".join(unmatched)}')
        raise SchemaMismatchError(
            f'columns {", ".join(unmatched)} of {table} have no field in {record_type.name}')
    return matched


def build_binding(cn: 'ConnectionWrapper', table: str, record: Any) -> TableBinding:
    """Introspect ``table`` and compile a binding for the record's type.

    Args:
        cn: Connection collaborator used for introspection and later row traffic
        table: Table name, letters and underscores only
        record: Dataclass instance or type describing the rows

    Raises
        InvalidNameError: bad table name
        InvalidArgumentError: ``record`` is not a dataclass record with an Id field
        QueryError: introspection failed
        SchemaMismatchError: a column has no field, or the table has no columns
    """
    validate_table_name(table)
    record_type = RecordType.of(record)

    cols = fetch_columns(cn, table)
    cols = fetch_indexes(cn, table, cols)
    if not cols:
        raise SchemaMismatchError(f'table {table} has no columns')

    cols = _match_columns(table, cols, record_type)
    insert_cols = tuple(col for col in cols if col.allow_insert())
    update_cols = tuple(col for col in cols if col.allow_update())

    quoted_table = quote_identifier(table)
    column_names = ', '.join(quote_identifier(col.field) for col in cols)
    insert_names = ', '.join(quote_identifier(col.field) for col in insert_cols)
    update_sets = ', '.join(f'{quote_identifier(col.field)}=?' for col in update_cols)

    binding = TableBinding(
        cn=cn,
        name=table,
        columns=tuple(cols),
        insert_columns=insert_cols,
        update_columns=update_cols,
        column_names=column_names,
        select_sql=f'SELECT {column_names} FROM {quoted_table} ',
        insert_sql=f'INSERT INTO {quoted_table} ({insert_names}) VALUES ({make_placeholders(len(insert_cols))}) ',
        update_sql=f'UPDATE {quoted_table} SET {update_sets} ',
        record_type=record_type,
        field_by_column=MappingProxyType({col.field: col.field_index for col in cols}),
        warn=check_field_types(table, cols, record_type),
    )
    logger.debug(f'Built binding for {table} -> {record_type.name} with {len(cols)} columns')
    return binding


class TableMeta:
    """Caller-owned handle holding at most one table binding.

    `fetch` is a lazy initializer: the first successful call builds the
    binding, later calls return it without touching the database. A failed
    build leaves the handle unset. Concurrent first calls on one handle are
    not synchronized; initialize once at startup or guard externally.
    """

    def __init__(self) -> None:
        self.binding: TableBinding | None = None

    def __repr__(self) -> str:
        return f'TableMeta({self.name or "<unbound>"})'

    @property
    def name(self) -> str:
        return self.binding.name if self.binding else ''

    @property
    def warn(self) -> str:
        return self.binding.warn if self.binding else ''

    def fetch(self, cn: 'ConnectionWrapper', table: str, record: Any) -> TableBinding:
        """Build the binding unless the handle already holds one."""
        if self.name:
            return self.binding
        self.binding = build_binding(cn, table, record)
        return self.binding

    def _require(self) -> TableBinding:
        if self.binding is None:
            raise InternalError('table binding not initialized, call fetch() first')
        return self.binding

    def is_column(self, name: str) -> bool:
        return self._require().is_column(name)

    def get_rows(self, clause: str = '', *args: Any) -> 'Cursor':
        return self._require().get_rows(clause, *args)

    def select_one(self, record: Any, clause: str = '', *args: Any) -> Any | None:
        return self._require().select_one(record, clause, *args)

    def select_by_id(self, record: Any, id: int) -> Any | None:
        return self._require().select_by_id(record, id)

    def select_by_column(self, record: Any, name: str, value: Any) -> Any | None:
        return self._require().select_by_column(record, name, value)

    def select_many(self, factory: Any, clause: str = '', *args: Any) -> list:
        return self._require().select_many(factory, clause, *args)

    def insert(self, record: Any) -> int:
        return self._require().insert(record)

    def update(self, record: Any) -> None:
        self._require().update(record)

    def save(self, record: Any) -> int:
        return self._require().save(record)

    def delete(self, record: Any) -> None:
        self._require().delete(record)


@cacheable_binding('table_bindings', ttl=600, maxsize=100)
def get_table_binding(cn: 'ConnectionWrapper', table: str, record_cls: type) -> TableBinding:
    """Shared binding for a connection, table and record type.

    Pass ``bypass_cache=True`` to rebuild from fresh introspection.
    """
    return build_binding(cn, table, record_cls)
