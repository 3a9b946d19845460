"""Field path -> SQL expression, joining relations on the way."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, NamedTuple

from sqlalchemy import literal_column

from .datatypes import sqlalchemy_type
from .joins import ensure_join
from .resolver import ResolvedField, resolve_field

if TYPE_CHECKING:
    from sqlalchemy import ColumnElement

    from .plan import QueryPlan


class FieldExpression(NamedTuple):
    plan: QueryPlan
    resolved: ResolvedField
    expression: ColumnElement[Any]


def column_expression(plan: QueryPlan, resolved: ResolvedField) -> ColumnElement[Any]:
    """
    Expression for an already-joined field.

    Computed fields render their SQL with the placeholder replaced by the
    quoted host table name; plain fields are columns of the host table
    or join alias.
    """
    host = plan.host(resolved.join_path)
    descriptor = resolved.field
    if descriptor.computed is not None:
        sql = descriptor.computed.render(plan.quote(host.name))
        return literal_column(sql, type_=sqlalchemy_type(descriptor.data_type))
    return host.c[descriptor.storage_column_name]


def field_expression(plan: QueryPlan, path: str) -> FieldExpression | None:
    """
    Resolve *path* under the plan's blacklist, join what it traverses and
    return the expression. ``None`` when the path does not resolve.
    """
    resolved = resolve_field(path, plan.schema, plan.settings.blacklist)
    if resolved is None:
        return None
    plan = ensure_join(plan, resolved.join_path)
    return FieldExpression(plan, resolved, column_expression(plan, resolved))
