"""ORDER BY resolution."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import asc, desc

from .clauses import SortOrder
from .datatypes import DataType
from .expressions import field_expression

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy import ColumnElement

    from .clauses import SortClause
    from .plan import QueryPlan

logger = logging.getLogger(__name__)


def apply_sort(plan: QueryPlan, sort_clauses: Sequence[SortClause]) -> QueryPlan:
    """
    Resolve each sort clause and set ORDER BY.

    Computed fields sort by their expression. Unknown, blacklisted and
    unsupported-type fields are skipped.
    """
    order_by: list[ColumnElement[Any]] = []
    applied: list[SortClause] = []
    for clause in sort_clauses:
        found = field_expression(plan, clause.field_path)
        if found is None or found.resolved.field.data_type is DataType.UNSUPPORTED:
            logger.debug("Dropping sort on %r", clause.field_path)
            continue
        plan = found.plan
        direction = desc if clause.order is SortOrder.DESC else asc
        order_by.append(direction(found.expression))
        applied.append(clause)
    return plan.with_order_by(tuple(order_by), tuple(applied))
