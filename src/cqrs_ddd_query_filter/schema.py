"""
Schema descriptors built by introspecting SQLAlchemy mapped classes.

A :class:`SchemaDescriptor` is computed once per mapped class, on first
use, and cached for the lifetime of the process. Concurrent first use
may build the same descriptor twice; both results are equivalent and the
cache keeps whichever was stored first.

Computed columns
----------------
Server-authored SQL expressions can be exposed as filterable/sortable
fields by declaring them on the model::

    class Task(Base):
        __tablename__ = "tasks"
        __computed_columns__ = {
            "title_length": ComputedColumn(
                f"LENGTH({CURRENT_TABLE}.title)", DataType.INT64
            ),
        }

``CURRENT_TABLE`` is replaced at query time with the quoted name of the
table (or join alias) hosting the field. Expressions are validated when
declared and are never built from request input.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from sqlalchemy import inspect
from sqlalchemy import types as sqltypes
from sqlalchemy.exc import NoInspectionAvailable
from sqlalchemy.schema import Column, Table

from .datatypes import DataType, infer_data_type
from .exceptions import ComputedColumnError, SchemaIntrospectionError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from sqlalchemy.orm import Mapper, RelationshipProperty

logger = logging.getLogger(__name__)

CURRENT_TABLE = "~~~ct~~~"

_FORBIDDEN_TOKENS = (";", "--", "/*", "*/")


@dataclass(frozen=True)
class ComputedColumn:
    """A trusted SQL expression exposed as a virtual field."""

    expression: str
    data_type: DataType

    def __post_init__(self) -> None:
        if not isinstance(self.data_type, DataType):
            raise ComputedColumnError(
                f"Computed column data type must be a DataType, got {self.data_type!r}"
            )
        if not self.expression or not self.expression.strip():
            raise ComputedColumnError("Computed column expression is empty")
        for token in _FORBIDDEN_TOKENS:
            if token in self.expression:
                raise ComputedColumnError(
                    f"Computed column expression contains {token!r}: "
                    f"{self.expression!r}"
                )

    def render(self, quoted_table: str) -> str:
        return f"({self.expression.replace(CURRENT_TABLE, quoted_table)})"


class RelationKind(str, Enum):
    TO_ONE = "to_one"
    TO_MANY = "to_many"


@dataclass(frozen=True)
class FieldDescriptor:
    """A filterable/projectable field of an entity."""

    name: str
    storage_column_name: str
    data_type: DataType
    owning_entity: type[Any]
    computed: ComputedColumn | None = None
    choices: tuple[str, ...] | None = None

    @property
    def is_array(self) -> bool:
        return self.data_type.is_array

    @property
    def is_computed(self) -> bool:
        return self.computed is not None

    @property
    def computed_expression(self) -> str | None:
        return self.computed.expression if self.computed is not None else None


@dataclass(frozen=True)
class RelationDescriptor:
    """
    A relationship of an entity.

    ``local_columns`` / ``remote_columns`` are the paired storage column
    names joining the owning table to the target table.
    """

    name: str
    kind: RelationKind
    target_entity: type[Any]
    local_columns: tuple[str, ...] = ()
    remote_columns: tuple[str, ...] = ()
    uses_secondary: bool = False

    @property
    def is_to_one(self) -> bool:
        return self.kind is RelationKind.TO_ONE


@dataclass(frozen=True)
class SchemaDescriptor:
    """Read-only description of a mapped entity."""

    entity: type[Any]
    table: Table
    primary_key_columns: tuple[str, ...]
    fields_by_name: Mapping[str, FieldDescriptor] = field(default_factory=dict)
    relations_by_name: Mapping[str, RelationDescriptor] = field(default_factory=dict)

    @property
    def table_name(self) -> str:
        return self.table.name

    def get_field(self, column_name: str) -> FieldDescriptor | None:
        return self.fields_by_name.get(column_name)

    def get_relation(self, name: str) -> RelationDescriptor | None:
        return self.relations_by_name.get(name)

    @property
    def foreign_key_columns(self) -> tuple[str, ...]:
        """Local columns backing to-one relations, in declaration order."""
        seen: list[str] = []
        for relation in self.relations_by_name.values():
            if not relation.is_to_one:
                continue
            for column in relation.local_columns:
                if column in self.fields_by_name and column not in seen:
                    seen.append(column)
        return tuple(seen)


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------

_SCHEMA_CACHE: dict[type[Any], SchemaDescriptor] = {}


def get_schema(entity: type[Any]) -> SchemaDescriptor:
    """Return the cached descriptor for *entity*, building it on first use."""
    cached = _SCHEMA_CACHE.get(entity)
    if cached is not None:
        return cached
    built = build_schema(entity)
    return _SCHEMA_CACHE.setdefault(entity, built)


def register(*entities: type[Any]) -> None:
    """Introspect *entities* eagerly, surfacing model defects at startup."""
    for entity in entities:
        get_schema(entity)


def build_schema(entity: type[Any]) -> SchemaDescriptor:
    """Introspect a mapped class. Prefer :func:`get_schema`."""
    try:
        mapper: Mapper[Any] = inspect(entity)
    except NoInspectionAvailable as e:
        raise SchemaIntrospectionError(
            f"{entity!r} is not a mapped SQLAlchemy class"
        ) from e

    table = mapper.local_table
    if not isinstance(table, Table):
        raise SchemaIntrospectionError(
            f"{entity.__name__} is not mapped to a table: {table!r}"
        )

    fields: dict[str, FieldDescriptor] = {}
    for prop in mapper.column_attrs:
        column = prop.columns[0]
        if not isinstance(column, Column) or column.table is not table:
            continue
        fields[column.name] = FieldDescriptor(
            name=prop.key,
            storage_column_name=column.name,
            data_type=infer_data_type(column),
            owning_entity=entity,
            choices=_enum_choices(column),
        )

    computed = getattr(entity, "__computed_columns__", None) or {}
    for name, definition in computed.items():
        if not isinstance(definition, ComputedColumn):
            raise ComputedColumnError(
                f"{entity.__name__}.__computed_columns__[{name!r}] "
                "must be a ComputedColumn"
            )
        fields[name] = FieldDescriptor(
            name=name,
            storage_column_name=name,
            data_type=definition.data_type,
            owning_entity=entity,
            computed=definition,
        )

    relations = {
        rel.key: _describe_relation(rel) for rel in mapper.relationships
    }

    descriptor = SchemaDescriptor(
        entity=entity,
        table=table,
        primary_key_columns=tuple(c.name for c in table.primary_key.columns),
        fields_by_name=MappingProxyType(fields),
        relations_by_name=MappingProxyType(relations),
    )
    logger.debug(
        "Introspected %s: %d fields, %d relations",
        entity.__name__,
        len(fields),
        len(relations),
    )
    return descriptor


def _describe_relation(rel: RelationshipProperty[Any]) -> RelationDescriptor:
    pairs = rel.local_remote_pairs or []
    return RelationDescriptor(
        name=rel.key,
        kind=RelationKind.TO_MANY if rel.uselist else RelationKind.TO_ONE,
        target_entity=rel.mapper.class_,
        local_columns=tuple(local.name for local, _ in pairs),
        remote_columns=tuple(remote.name for _, remote in pairs),
        uses_secondary=rel.secondary is not None,
    )


def _enum_choices(column: Column[Any]) -> tuple[str, ...] | None:
    type_ = column.type
    if isinstance(type_, sqltypes.ARRAY):
        type_ = type_.item_type
    if isinstance(type_, sqltypes.Enum):
        return tuple(type_.enums)
    return None
