"""
MySQL schema-to-record binding.

Binds a MySQL table to a dataclass record type by introspecting the schema
and precompiling SELECT/INSERT/UPDATE statements. All entity operations can
be called either as:
- Module functions: tablemeta.select_by_id(binding, record, 7)
- TableBinding / TableMeta methods: binding.select_by_id(record, 7)

The module functions are facades over `tablemeta.entity`.
"""
__version__ = '0.1.0'

from collections.abc import Callable
from typing import Any

from tablemeta import entity
from tablemeta.binding import TableBinding, TableMeta, build_binding
from tablemeta.binding import get_table_binding
from tablemeta.cache import Cache
from tablemeta.connection import ConnectionWrapper, connect
from tablemeta.cursor import Cursor, ExecResult
from tablemeta.exceptions import ConnectionFailure, DbConnectionError, DecodeError
from tablemeta.exceptions import EncodeError, InternalError
from tablemeta.exceptions import InvalidArgumentError, InvalidNameError
from tablemeta.exceptions import MissingIdentityError, NotImplementedOperation
from tablemeta.exceptions import QueryError, ScanError
from tablemeta.exceptions import SchemaMismatchError, TableMetaError
from tablemeta.exceptions import UnknownColumnError
from tablemeta.naming import camel_to_snake, snake_to_camel
from tablemeta.options import DatabaseOptions
from tablemeta.record import FieldOptions, field, uint
from tablemeta.schema import ColumnDescriptor, IndexDescriptor


def fetch(meta: TableMeta, cn: ConnectionWrapper, table: str, record: Any) -> TableBinding:
    """Populate a caller-owned handle unless it is already bound.
    """
    return meta.fetch(cn, table, record)


def get_rows(binding: TableBinding, clause: str = '', *args: Any) -> Cursor:
    """Run the binding's SELECT plus ``clause`` and return the open cursor.
    """
    return entity.get_rows(binding, clause, *args)


def scan_into(binding: TableBinding, cursor: Cursor, record: Any) -> bool:
    """Read the next row of ``cursor`` into ``record``.
    """
    return entity.scan_into(binding, cursor, record)


def select_one(binding: TableBinding, record: Any, clause: str = '', *args: Any) -> Any | None:
    """Scan the first row matched by ``clause`` into ``record``.
    """
    return entity.select_one(binding, record, clause, *args)


def select_by_id(binding: TableBinding, record: Any, id: int) -> Any | None:
    """Select the row with the given identity.
    """
    return entity.select_by_id(binding, record, id)


def select_by_column(binding: TableBinding, record: Any, name: str, value: Any) -> Any | None:
    """Select the first row whose column ``name`` equals ``value``.
    """
    return entity.select_by_column(binding, record, name, value)


def select_many(binding: TableBinding, factory: Callable[[], Any],
                clause: str = '', *args: Any) -> list:
    """Select every matched row into records built by ``factory``.
    """
    return entity.select_many(binding, factory, clause, *args)


def insert(binding: TableBinding, record: Any) -> int:
    """Insert a record and return its generated identity.
    """
    return entity.insert(binding, record)


def update(binding: TableBinding, record: Any) -> None:
    """Update the row identified by the record's identity.
    """
    entity.update(binding, record)


def save(binding: TableBinding, record: Any) -> int:
    """Insert or update depending on the record's identity.
    """
    return entity.save(binding, record)


def delete(binding: TableBinding, record: Any) -> None:
    """Not supported; always raises `NotImplementedOperation`.
    """
    entity.delete(binding, record)


__all__ = [
    'connect',
    'ConnectionWrapper',
    'Cursor',
    'ExecResult',
    'DatabaseOptions',
    'Cache',
    'TableBinding',
    'TableMeta',
    'build_binding',
    'get_table_binding',
    'fetch',
    'get_rows',
    'scan_into',
    'select_one',
    'select_by_id',
    'select_by_column',
    'select_many',
    'insert',
    'update',
    'save',
    'delete',
    'field',
    'uint',
    'FieldOptions',
    'ColumnDescriptor',
    'IndexDescriptor',
    'snake_to_camel',
    'camel_to_snake',
    'TableMetaError',
    'ConnectionFailure',
    'DbConnectionError',
    'QueryError',
    'InvalidNameError',
    'InvalidArgumentError',
    'SchemaMismatchError',
    'UnknownColumnError',
    'MissingIdentityError',
    'EncodeError',
    'DecodeError',
    'ScanError',
    'InternalError',
    'NotImplementedOperation',
]
