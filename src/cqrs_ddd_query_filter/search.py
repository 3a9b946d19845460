"""Free-text search: one OR group ANDed with the filter predicate."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import or_

from .clauses import Clause
from .predicates import clause_predicate
from .resolver import selectable_fields

if TYPE_CHECKING:
    from sqlalchemy import ColumnElement

    from .clauses import SearchClause
    from .plan import QueryPlan

logger = logging.getLogger(__name__)


def search_fields(plan: QueryPlan, search: SearchClause) -> tuple[str, ...]:
    """Fields named by the clause, then by settings, then every root field."""
    if search.fields:
        return search.fields
    if plan.settings.fields_search is not None:
        return plan.settings.fields_search
    return tuple(
        f.storage_column_name
        for f in selectable_fields(plan.schema, plan.settings.blacklist)
    )


def apply_search(plan: QueryPlan, search: SearchClause | None) -> QueryPlan:
    """
    AND ``(f1 OP q) OR (f2 OP q) OR ...`` onto *plan*.

    Fields that do not resolve, or whose type the operator rejects, are
    skipped. Blank queries are ignored.
    """
    if search is None or not search.query.strip():
        return plan
    symbol = search.operator_symbol or plan.settings.search_operator
    predicates: list[ColumnElement[bool]] = []
    for path in search_fields(plan, search):
        clause = Clause(
            field_path=path,
            operator_symbol=symbol,
            args=(search.query,),
            combine_with_or=True,
        )
        plan, predicate = clause_predicate(plan, clause)
        if predicate is not None:
            predicates.append(predicate)
    if not predicates:
        logger.debug("Search %r matched no searchable field", search.query)
        return plan
    return plan.with_predicate(or_(*predicates))
