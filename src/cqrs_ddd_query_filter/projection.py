"""SELECT list resolution."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from .datatypes import DataType
from .exceptions import MissingPrimaryKeyError
from .expressions import column_expression
from .resolver import ResolvedField, resolve_field, selectable_fields

if TYPE_CHECKING:
    from sqlalchemy import ColumnElement

    from .clauses import PaginationRequest
    from .plan import QueryPlan
    from .schema import FieldDescriptor

logger = logging.getLogger(__name__)


def projected_fields(
    plan: QueryPlan, request: PaginationRequest
) -> list[FieldDescriptor]:
    """
    Root fields to select.

    Requested fields are filtered against the blacklist. While joins are
    active (already on the plan, requested through ``join``, or added
    later by a relation sort) the primary key and the foreign keys of
    to-one relations are added so related objects can be attached to
    each row. Without a ``fields`` parameter every non-blacklisted field
    is selected.
    """
    schema = plan.schema
    blacklist = plan.settings.blacklist
    if request.requested_fields is None:
        return selectable_fields(schema, blacklist)

    names = list(request.requested_fields)
    if plan.has_joins or request.joins or _sort_joins(plan, request):
        if not schema.primary_key_columns:
            raise MissingPrimaryKeyError(schema.table_name)
        names.extend(schema.primary_key_columns)
        names.extend(schema.foreign_key_columns)

    out: list[FieldDescriptor] = []
    for name in dict.fromkeys(names):
        descriptor = schema.get_field(name)
        if descriptor is None or not blacklist.allows_field(name):
            logger.debug("Dropping unknown or hidden field %r from projection", name)
            continue
        out.append(descriptor)
    return out


def _sort_joins(plan: QueryPlan, request: PaginationRequest) -> bool:
    for clause in request.sort_clauses:
        resolved = resolve_field(
            clause.field_path, plan.schema, plan.settings.blacklist
        )
        if (
            resolved is not None
            and resolved.join_path
            and resolved.field.data_type is not DataType.UNSUPPORTED
        ):
            return True
    return False


def apply_projection(plan: QueryPlan, request: PaginationRequest) -> QueryPlan:
    """Set the plan's columns; computed fields are labelled with their name."""
    columns: list[ColumnElement[Any]] = []
    for descriptor in projected_fields(plan, request):
        resolved = ResolvedField(
            field=descriptor,
            schema=plan.schema,
            join_path="",
            host_table_name=plan.schema.table_name,
        )
        expression = column_expression(plan, resolved)
        if descriptor.is_computed:
            expression = expression.label(descriptor.name)
        columns.append(expression)
    return plan.with_columns(tuple(columns))
