"""Relation path -> memoized LEFT OUTER JOIN."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import and_

from .plan import JoinSpec
from .schema import get_schema

if TYPE_CHECKING:
    from sqlalchemy import FromClause

    from .plan import QueryPlan
    from .schema import SchemaDescriptor

logger = logging.getLogger(__name__)


def ensure_join(plan: QueryPlan, join_path: str) -> QueryPlan:
    """
    Join every relation of *join_path* not yet present on *plan*.

    Parents are joined before children and each path is joined at most
    once. The target table is aliased to the last path segment. Only
    to-one relations are joined; the resolver never hands over anything
    else, so a to-many segment here is a programming error.
    """
    if not join_path:
        return plan

    schema: SchemaDescriptor = plan.schema
    parent: FromClause = plan.root
    prefix = ""
    for segment in join_path.split("."):
        prefix = f"{prefix}.{segment}" if prefix else segment
        existing = plan.get_join(prefix)
        if existing is not None:
            schema, parent = existing.schema, existing.target
            continue

        relation = schema.get_relation(segment)
        if relation is None or not relation.is_to_one:
            raise ValueError(
                f"{prefix!r} is not a to-one relation of {schema.table_name!r}"
            )
        target_schema = get_schema(relation.target_entity)
        target = target_schema.table.alias(segment)
        onclause = and_(
            *(
                parent.c[local] == target.c[remote]
                for local, remote in zip(
                    relation.local_columns, relation.remote_columns
                )
            )
        )
        plan = plan.with_join(
            JoinSpec(
                path=prefix, target=target, onclause=onclause, schema=target_schema
            )
        )
        logger.debug("Joined %s as %s", prefix, segment)
        schema, parent = target_schema, target
    return plan
