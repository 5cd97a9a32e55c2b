"""
Record type descriptors.

A record type is a dataclass. `RecordType.of` reads it once and produces an
explicit table of `RecordField` entries, each naming the attribute, the
CapWords identifier that schema columns are matched against, the field kind
used for type checking and value conversion, and the per-field options.

Per-field options use the tag grammar of the ``sql`` field metadata::

    @dataclass
    class Order:
        id: uint = 0
        created: str = field(tag='no-insert,no-update', default='')
        total: float = field(rename_to='order_total', default=0.0)
        items: list = field(default_factory=list)
"""
import dataclasses
import enum
import functools
import logging
import types
import typing
from collections.abc import Mapping
from typing import Annotated, Any, NewType, Union

from tablemeta.exceptions import InvalidArgumentError
from tablemeta.naming import snake_to_camel

logger = logging.getLogger(__name__)

__all__ = [
    'uint',
    'IDENTITY_FIELD',
    'SQL_METADATA_KEY',
    'FieldKind',
    'FieldOptions',
    'RecordField',
    'RecordType',
    'field',
    'record_type_of',
]

uint = NewType('uint', int)

IDENTITY_FIELD = 'Id'
SQL_METADATA_KEY = 'sql'

NO_INSERT = 'no-insert'
NO_UPDATE = 'no-update'


class FieldKind(enum.Enum):
    """Primitive kind of a record field as seen by the binding engine."""
    BOOL = 'bool'
    INT = 'int'
    UINT = 'uint'
    FLOAT = 'float'
    STRING = 'string'
    STRUCT = 'struct'
    OTHER = 'other'


@dataclasses.dataclass(frozen=True, slots=True)
class FieldOptions:
    """Behavioral options attached to one record field."""
    rename_to: str | None = None
    no_insert: bool = False
    no_update: bool = False

    @classmethod
    def from_tag(cls, tag: str, name: str = '') -> 'FieldOptions':
        """Parse a comma-separated tag such as ``'no-insert,no-update'``.

        The first token may instead name an alternate schema column.
        Unrecognized tokens after the first are logged and ignored.
        """
        rename_to = None
        no_insert = no_update = False
        if not tag:
            return cls()
        for i, token in enumerate(tag.split(',')):
            token = token.strip()
            if token == NO_INSERT:
                no_insert = True
            elif token == NO_UPDATE:
                no_update = True
            elif i == 0:
                rename_to = token or None
            else:
                logger.warning(f'Unrecognized token {token!r} in sql tag {tag!r} for {name}')
        return cls(rename_to=rename_to, no_insert=no_insert, no_update=no_update)

    def to_tag(self) -> str:
        """Render the options back to tag form."""
        tokens = [self.rename_to] if self.rename_to else []
        if self.no_insert:
            tokens.append(NO_INSERT)
        if self.no_update:
            tokens.append(NO_UPDATE)
        return ','.join(tokens)


def field(*, tag: str = '', rename_to: str | None = None, no_insert: bool = False,
          no_update: bool = False, **kwargs: Any) -> Any:
    """`dataclasses.field` carrying binding options in its ``sql`` metadata.

    Options can be given as a tag string, as keywords, or both; keywords win.
    All other keyword arguments go to `dataclasses.field`.
    """
    parsed = FieldOptions.from_tag(tag)
    options = FieldOptions(
        rename_to=rename_to or parsed.rename_to,
        no_insert=no_insert or parsed.no_insert,
        no_update=no_update or parsed.no_update,
    )
    metadata = dict(kwargs.pop('metadata', None) or {})
    metadata[SQL_METADATA_KEY] = options
    return dataclasses.field(metadata=metadata, **kwargs)


def _options_from_metadata(metadata: Mapping, name: str) -> FieldOptions:
    value = metadata.get(SQL_METADATA_KEY)
    if value is None:
        return FieldOptions()
    if isinstance(value, FieldOptions):
        return value
    if isinstance(value, str):
        return FieldOptions.from_tag(value, name)
    raise InvalidArgumentError(f'sql metadata for {name} must be a tag string or FieldOptions')


def _is_struct_type(tp: Any) -> bool:
    if isinstance(tp, type) and dataclasses.is_dataclass(tp):
        return True
    return (typing.get_origin(tp) or tp) in (dict, list)


def resolve_kind(tp: Any) -> tuple[FieldKind, bool, Any]:
    """Classify a field annotation.

    Returns
        Tuple of (kind, nullable, underlying type with Optional removed)
    """
    nullable = False
    if typing.get_origin(tp) is Annotated:
        tp = typing.get_args(tp)[0]
    if typing.get_origin(tp) in (Union, types.UnionType):
        members = [a for a in typing.get_args(tp) if a is not type(None)]
        nullable = len(members) < len(typing.get_args(tp))
        if len(members) != 1:
            return FieldKind.OTHER, nullable, tp
        tp = members[0]
        if typing.get_origin(tp) is Annotated:
            tp = typing.get_args(tp)[0]

    if tp is bool:
        kind = FieldKind.BOOL
    elif tp is uint:
        kind = FieldKind.UINT
    elif tp is int:
        kind = FieldKind.INT
    elif tp is float:
        kind = FieldKind.FLOAT
    elif tp is str or tp is bytes:
        kind = FieldKind.STRING
    elif _is_struct_type(tp):
        kind = FieldKind.STRUCT
    else:
        kind = FieldKind.OTHER
    return kind, nullable, tp


@dataclasses.dataclass(frozen=True, slots=True)
class RecordField:
    """One field of a record type."""
    index: int
    attr: str
    identifier: str
    kind: FieldKind
    nullable: bool
    type: Any
    options: FieldOptions

    @property
    def match_name(self) -> str:
        """Identifier a schema column must convert to in order to bind here."""
        if self.options.rename_to:
            return snake_to_camel(self.options.rename_to)
        return self.identifier

    @property
    def type_name(self) -> str:
        name = getattr(self.type, '__name__', None) or str(self.type)
        return f'{name} | None' if self.nullable else name


class RecordType:
    """Field table for one dataclass record type.

    Built once per class by `RecordType.of`; the identity field (identifier
    ``Id``) must exist exactly once.
    """

    def __init__(self, cls: type) -> None:
        if not (isinstance(cls, type) and dataclasses.is_dataclass(cls)):
            raise InvalidArgumentError(f'record type must be a dataclass, got {cls!r}')
        self.cls = cls
        self.name = cls.__name__
        try:
            hints = typing.get_type_hints(cls, include_extras=True)
        except NameError as err:
            raise InvalidArgumentError(f'unresolved annotations on record type {cls.__name__}: {err}') from err

        record_fields = []
        by_identifier: dict[str, RecordField] = {}
        for i, f in enumerate(dataclasses.fields(cls)):
            kind, nullable, tp = resolve_kind(hints.get(f.name, Any))
            rf = RecordField(
                index=i,
                attr=f.name,
                identifier=snake_to_camel(f.name),
                kind=kind,
                nullable=nullable,
                type=tp,
                options=_options_from_metadata(f.metadata, f'{cls.__name__}.{f.name}'),
            )
            if rf.identifier in by_identifier:
                raise InvalidArgumentError(
                    f'fields {by_identifier[rf.identifier].attr} and {f.name} of '
                    f'{cls.__name__} both map to {rf.identifier}')
            by_identifier[rf.identifier] = rf
            record_fields.append(rf)

        if IDENTITY_FIELD not in by_identifier:
            raise InvalidArgumentError(f'record type {cls.__name__} has no {IDENTITY_FIELD} field')

        self.fields: tuple[RecordField, ...] = tuple(record_fields)
        self.identity = by_identifier[IDENTITY_FIELD]
        self._by_identifier = by_identifier

    def __repr__(self) -> str:
        return f'RecordType({self.name}, fields={[f.attr for f in self.fields]})'

    @classmethod
    def of(cls, record: Any) -> 'RecordType':
        """Return the descriptor for a dataclass type or instance."""
        record_cls = record if isinstance(record, type) else type(record)
        if not dataclasses.is_dataclass(record_cls):
            raise InvalidArgumentError(
                f'invalid record argument, require a dataclass instance or type, got {type(record).__name__}')
        return record_type_of(record_cls)

    def field_for_column(self, column_name: str) -> RecordField | None:
        """Find the field a schema column binds to, or None.

        A field with a rename override answers to the override only.
        """
        wanted = snake_to_camel(column_name)
        for rf in self.fields:
            if rf.match_name == wanted:
                return rf
        return None

    def get_id(self, record: Any) -> int:
        """Identity value of a record; ``None`` reads as zero."""
        return getattr(record, self.identity.attr) or 0

    def set_id(self, record: Any, value: int) -> None:
        setattr(record, self.identity.attr, value)

    def check_instance(self, record: Any) -> None:
        """Raise `InvalidArgumentError` unless ``record`` is an instance of this type."""
        if not isinstance(record, self.cls):
            raise InvalidArgumentError(
                f'expected a {self.name} record, got {type(record).__name__}')


@functools.cache
def record_type_of(record_cls: type) -> RecordType:
    """Memoised `RecordType` construction, one descriptor per class."""
    return RecordType(record_cls)
