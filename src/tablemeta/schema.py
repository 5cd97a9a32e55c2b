"""
Schema introspection for MySQL tables.

This module reads column and index definitions for one table and turns them
into `ColumnDescriptor` / `IndexDescriptor` values:

- `validate_table_name` guards the table identifier, which is interpolated
  into statement text because placeholders cannot parameterize identifiers
- `fetch_columns` runs ``SHOW COLUMNS`` and keeps the server's column order
- `fetch_indexes` runs ``SHOW INDEXES`` and attaches each index entry to the
  column it covers

Descriptors are frozen; later stages enrich them with `dataclasses.replace`.
"""
import dataclasses
import logging
import re
from typing import TYPE_CHECKING, Any

from tablemeta.exceptions import DriverError, InvalidNameError, QueryError
from tablemeta.sql import quote_identifier

if TYPE_CHECKING:
    from tablemeta.connection import ConnectionWrapper

logger = logging.getLogger(__name__)

__all__ = [
    'IndexDescriptor',
    'ColumnDescriptor',
    'validate_table_name',
    'fetch_columns',
    'fetch_indexes',
]

VALID_TABLE_NAME = re.compile(r'^[A-Za-z_]+$')

SHOW_COLUMNS_SQL = 'SHOW COLUMNS FROM {table}'
SHOW_INDEXES_SQL = 'SHOW INDEXES FROM {table} WHERE `Table` = ?'


@dataclasses.dataclass(frozen=True, slots=True)
class IndexDescriptor:
    """One row of ``SHOW INDEXES``: a column's position within one index."""
    table_name: str
    non_unique: bool
    key_name: str
    seq_in_index: int
    column_name: str
    collation: str | None = None
    cardinality: int = 0
    sub_part: int | None = None
    packed: str | None = None
    null: str = ''
    index_type: str = ''
    comment: str = ''
    index_comment: str = ''

    @property
    def is_unique(self) -> bool:
        return not self.non_unique

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)


@dataclasses.dataclass(frozen=True, slots=True)
class ColumnDescriptor:
    """Schema metadata for one column plus its binding to a record field.

    ``field_index`` is None until the binding builder resolves it.
    """
    field: str
    column_type: str
    nullable: str = 'NO'
    key: str = ''
    default: str | None = None
    extra: str = ''
    field_index: int | None = None
    field_alias: str = ''
    is_identity: bool = False
    no_insert: bool = False
    no_update: bool = False
    indexes: tuple[IndexDescriptor, ...] = ()

    @property
    def is_nullable(self) -> bool:
        return self.nullable == 'YES'

    @property
    def is_auto_increment(self) -> bool:
        return 'auto_increment' in self.extra.lower()

    def allow_insert(self) -> bool:
        """Identity and ``no-insert`` columns are left out of INSERT."""
        return not self.is_identity and not self.no_insert

    def allow_update(self) -> bool:
        """Identity and ``no-update`` columns are left out of UPDATE."""
        return not self.is_identity and not self.no_update

    def to_dict(self) -> dict[str, Any]:
        data = dataclasses.asdict(self)
        data['indexes'] = [ind.to_dict() for ind in self.indexes]
        return data


def validate_table_name(name: str) -> None:
    """Raise `InvalidNameError` unless ``name`` is letters and underscores only.
    """
    if not isinstance(name, str) or not VALID_TABLE_NAME.fullmatch(name):
        raise InvalidNameError(f'invalid table name {name!r}')


def _text(value: Any) -> Any:
    """Decode server byte strings; newer servers return some SHOW columns as bytes."""
    if isinstance(value, (bytes, bytearray)):
        return value.decode('utf-8')
    return value


def _optional_int(value: Any) -> int | None:
    return None if value is None else int(value)


def fetch_columns(cn: 'ConnectionWrapper', table: str) -> list[ColumnDescriptor]:
    """Get column definitions for a table in server order.

    SHOW COLUMNS returns field, type, null, key, default, extra. Zero rows is
    not an error here.

    Raises
        QueryError: the introspection query failed
    """
    sql = SHOW_COLUMNS_SQL.format(table=quote_identifier(table))
    try:
        with cn.query(sql) as cursor:
            rows = cursor.fetchall()
    except DriverError as err:
        logger.error(f'Column introspection failed for {table}: {err}')
        raise QueryError(f'cannot read columns of {table}: {err}') from err

    cols = []
    for row in rows:
        try:
            field, column_type, nullable, key, default, extra = (_text(v) for v in row[:6])
        except ValueError as err:
            raise QueryError(f'problem parsing column metadata for {table}: {err}') from err
        cols.append(ColumnDescriptor(
            field=field,
            column_type=column_type,
            nullable=nullable,
            key=key or '',
            default=default,
            extra=extra or '',
        ))
    logger.debug(f'Found {len(cols)} columns in {table}')
    return cols


def _index_from_row(row: dict[str, Any]) -> IndexDescriptor:
    return IndexDescriptor(
        table_name=row['Table'],
        non_unique=bool(int(row['Non_unique'])),
        key_name=row['Key_name'],
        seq_in_index=int(row['Seq_in_index']),
        column_name=row['Column_name'],
        collation=row.get('Collation'),
        cardinality=int(row.get('Cardinality') or 0),
        sub_part=_optional_int(row.get('Sub_part')),
        packed=row.get('Packed'),
        null=row.get('Null') or '',
        index_type=row.get('Index_type') or '',
        comment=row.get('Comment') or '',
        index_comment=row.get('Index_comment') or '',
    )


def fetch_indexes(cn: 'ConnectionWrapper', table: str,
                  columns: list[ColumnDescriptor]) -> list[ColumnDescriptor]:
    """Attach index entries to the columns they cover.

    Rows are read by column label so servers that append extra columns
    (Visible, Expression) are accepted. Entries naming a column that is not
    in ``columns`` are dropped.

    Returns
        New list of column descriptors, in the same order

    Raises
        QueryError: the introspection query failed or returned malformed rows
    """
    sql = SHOW_INDEXES_SQL.format(table=quote_identifier(table))
    try:
        with cn.query(sql, table) as cursor:
            labels = [desc[0] for desc in (cursor.description or ())]
            rows = [dict(zip(labels, (_text(v) for v in row))) for row in cursor.fetchall()]
    except DriverError as err:
        logger.error(f'Index introspection failed for {table}: {err}')
        raise QueryError(f'cannot read indexes of {table}: {err}') from err

    position = {col.field: i for i, col in enumerate(columns)}
    attached: dict[int, list[IndexDescriptor]] = {}
    for row in rows:
        try:
            ind = _index_from_row(row)
        except (KeyError, TypeError, ValueError) as err:
            logger.error(f'Problem parsing index metadata for {table}: {err}')
            raise QueryError(f'problem parsing index metadata for {table}: {err}') from err
        i = position.get(ind.column_name)
        if i is None:
            logger.debug(f'Skipping index {ind.key_name} on unknown column {ind.column_name}')
            continue
        attached.setdefault(i, []).append(ind)

    return [
        dataclasses.replace(col, indexes=col.indexes + tuple(attached[i])) if i in attached else col
        for i, col in enumerate(columns)
    ]
