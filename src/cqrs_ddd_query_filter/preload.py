"""
Relation preloading for the ``join`` parameter.

Each requested relation is loaded with one ``IN`` query per level and
attached to its parent rows under the relation name: a dict (or
``None``) for to-one relations, a list for to-many relations. Parents
of a nested path are loaded implicitly when not requested. Relations
through an association table are skipped.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from sqlalchemy import literal_column, select, tuple_

from .datatypes import sqlalchemy_type
from .resolver import selectable_fields
from .schema import get_schema
from .session import fetch_dicts

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy import ColumnElement
    from sqlalchemy.engine import Dialect
    from sqlalchemy.ext.asyncio import AsyncSession

    from .blacklist import Blacklist
    from .clauses import JoinClause
    from .schema import RelationDescriptor, SchemaDescriptor

logger = logging.getLogger(__name__)


@dataclass
class _Level:
    schema: SchemaDescriptor
    blacklist: Blacklist | None
    rows: list[dict[str, Any]]


def expand_join_paths(
    joins: Sequence[JoinClause],
) -> list[tuple[str, tuple[str, ...] | None]]:
    """
    Every relation path to load, parents first.

    Implicit parents carry no field selection.
    """
    requested = {j.relation_path: j.fields for j in joins}
    paths: dict[str, tuple[str, ...] | None] = {}
    for path in requested:
        segments = path.split(".")
        for depth in range(1, len(segments) + 1):
            prefix = ".".join(segments[:depth])
            paths.setdefault(prefix, requested.get(prefix))
    return sorted(paths.items(), key=lambda item: item[0].count("."))


def _projection(
    schema: SchemaDescriptor,
    blacklist: Blacklist | None,
    fields: Sequence[str] | None,
    relation: RelationDescriptor,
    dialect: Dialect,
) -> list[ColumnElement[Any]]:
    if fields:
        names = [
            f
            for f in fields
            if f in schema.fields_by_name
            and (blacklist is None or blacklist.allows_field(f))
        ]
    else:
        names = [f.storage_column_name for f in selectable_fields(schema, blacklist)]
    # Keys needed to attach rows and to load the next level.
    names.extend(relation.remote_columns)
    names.extend(schema.primary_key_columns)
    names.extend(schema.foreign_key_columns)

    table = schema.table
    columns: list[ColumnElement[Any]] = []
    for name in dict.fromkeys(names):
        descriptor = schema.fields_by_name[name]
        if descriptor.computed is not None:
            quoted = dialect.identifier_preparer.quote(table.name)
            columns.append(
                literal_column(
                    descriptor.computed.render(quoted),
                    type_=sqlalchemy_type(descriptor.data_type),
                ).label(name)
            )
        else:
            columns.append(table.c[name])
    return columns


def _key(row: dict[str, Any], columns: Sequence[str]) -> tuple[Any, ...] | None:
    if any(c not in row for c in columns):
        return None
    key = tuple(row[c] for c in columns)
    return None if any(v is None for v in key) else key


async def preload_relations(
    session: AsyncSession,
    schema: SchemaDescriptor,
    rows: list[dict[str, Any]],
    joins: Sequence[JoinClause],
    *,
    blacklist: Blacklist | None = None,
    dialect: Dialect | None = None,
    timeout: float | None = None,
) -> list[dict[str, Any]]:
    """
    Attach the relations named by *joins* to *rows* in place.

    Relations hidden by the blacklist, unknown relations and
    many-to-many relations are skipped.
    """
    if not rows or not joins:
        return rows
    dialect = dialect or session.get_bind().dialect
    levels: dict[str, _Level] = {"": _Level(schema, blacklist, rows)}

    for path, fields in expand_join_paths(joins):
        parent_path, _, segment = path.rpartition(".")
        parent = levels.get(parent_path)
        if parent is None:
            continue
        if parent.blacklist is not None and not parent.blacklist.allows_relation(
            segment
        ):
            logger.debug("Skipping preload of hidden relation %r", path)
            continue
        relation = parent.schema.get_relation(segment)
        if relation is None or relation.uses_secondary:
            logger.debug("Skipping preload of unsupported relation %r", path)
            continue

        target = get_schema(relation.target_entity)
        child_blacklist = (
            parent.blacklist.child(segment) if parent.blacklist is not None else None
        )
        children = await _load(
            session,
            target,
            child_blacklist,
            fields,
            relation,
            parent.rows,
            dialect,
            timeout,
        )
        levels[path] = _Level(target, child_blacklist, children)
    return rows


async def _load(
    session: AsyncSession,
    target: SchemaDescriptor,
    blacklist: Blacklist | None,
    fields: Sequence[str] | None,
    relation: RelationDescriptor,
    parents: list[dict[str, Any]],
    dialect: Dialect,
    timeout: float | None,
) -> list[dict[str, Any]]:
    keys = {
        key
        for key in (_key(row, relation.local_columns) for row in parents)
        if key is not None
    }
    children: list[dict[str, Any]] = []
    if keys:
        remote = [target.table.c[c] for c in relation.remote_columns]
        if len(remote) == 1:
            condition = remote[0].in_([k[0] for k in keys])
        else:
            condition = tuple_(*remote).in_(list(keys))
        stmt = select(
            *_projection(target, blacklist, fields, relation, dialect)
        ).where(condition)
        children = await fetch_dicts(session, stmt, timeout)

    by_key: dict[tuple[Any, ...], list[dict[str, Any]]] = defaultdict(list)
    for child in children:
        key = _key(child, relation.remote_columns)
        if key is not None:
            by_key[key].append(child)

    for row in parents:
        key = _key(row, relation.local_columns)
        matches = by_key.get(key, []) if key is not None else []
        if relation.is_to_one:
            row[relation.name] = matches[0] if matches else None
        else:
            row[relation.name] = list(matches)
    logger.debug(
        "Preloaded %d %s rows for %d parents",
        len(children),
        relation.name,
        len(parents),
    )
    return children
