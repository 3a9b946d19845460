"""Dotted field path resolution against a schema and its blacklist."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .schema import SchemaDescriptor, get_schema

if TYPE_CHECKING:
    from .blacklist import Blacklist
    from .schema import FieldDescriptor


@dataclass(frozen=True)
class ResolvedField:
    """
    A field reachable from the root entity.

    Attributes:
        field: The resolved field descriptor.
        schema: Schema of the entity owning the field.
        join_path: Relation chain traversed to reach it (``""`` for root).
        host_table_name: Table name (or join alias) hosting the field.
    """

    field: FieldDescriptor
    schema: SchemaDescriptor
    join_path: str
    host_table_name: str


def table_from_join_name(table: str, join_path: str) -> str:
    """Name of the table hosting a field: last relation segment, or *table*."""
    if not join_path:
        return table
    return join_path.rsplit(".", 1)[-1]


def resolve_field(
    path: str,
    root: SchemaDescriptor,
    blacklist: Blacklist | None,
) -> ResolvedField | None:
    """
    Resolve ``[relation.]*column`` from *root*.

    Returns ``None`` for unknown fields or relations, blacklisted fields
    or relations, descent through a final blacklist, and to-many
    relations.
    """
    relation_chain, _, leaf = path.rpartition(".")
    if not leaf:
        # Trailing dot: treat the whole string as a column name.
        relation_chain, leaf = "", path

    schema = root
    if relation_chain:
        for segment in relation_chain.split("."):
            if blacklist is not None and not blacklist.allows_relation(segment):
                return None
            relation = schema.get_relation(segment)
            if relation is None or not relation.is_to_one:
                return None
            schema = get_schema(relation.target_entity)
            if blacklist is not None:
                blacklist = blacklist.child(segment)

    if blacklist is not None and not blacklist.allows_field(leaf):
        return None
    descriptor = schema.get_field(leaf)
    if descriptor is None:
        return None
    return ResolvedField(
        field=descriptor,
        schema=schema,
        join_path=relation_chain,
        host_table_name=table_from_join_name(root.table_name, relation_chain),
    )


def selectable_fields(
    schema: SchemaDescriptor,
    blacklist: Blacklist | None,
) -> list[FieldDescriptor]:
    """Every root field not hidden by *blacklist*, in declaration order."""
    return [
        f
        for name, f in schema.fields_by_name.items()
        if blacklist is None or blacklist.allows_field(name)
    ]
