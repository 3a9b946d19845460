"""QueryBuilder: PaginationRequest -> QueryPlan."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy.engine.default import DefaultDialect

from .plan import QueryPlan
from .predicates import apply_filters
from .projection import apply_projection
from .schema import get_schema
from .search import apply_search
from .settings import DEFAULT_SETTINGS, FilterSettings
from .sort import apply_sort

if TYPE_CHECKING:
    from sqlalchemy.engine import Dialect

    from .clauses import PaginationRequest

logger = logging.getLogger(__name__)


class QueryBuilder:
    """
    Build a :class:`QueryPlan` for one entity.

    Stages run in order: filters and their joins, search, projection,
    sort. Each stage is a pure function of the previous plan, so a plan
    can be inspected or compiled without a database connection.

    Args:
        entity: Mapped SQLAlchemy class to query.
        settings: Endpoint settings; defaults to :data:`DEFAULT_SETTINGS`.
        dialect: Dialect used to quote identifiers inside computed
            columns. Pass the session's dialect when executing.
    """

    def __init__(
        self,
        entity: type[Any],
        settings: FilterSettings | None = None,
        dialect: Dialect | None = None,
    ) -> None:
        self.entity = entity
        self.settings = settings or DEFAULT_SETTINGS
        self.schema = get_schema(entity)
        self.dialect = dialect or DefaultDialect()

    def initial_plan(self) -> QueryPlan:
        return QueryPlan(
            schema=self.schema, settings=self.settings, dialect=self.dialect
        )

    def build(self, request: PaginationRequest) -> QueryPlan:
        plan = self.initial_plan()
        plan = apply_filters(plan, request)
        plan = apply_search(plan, request.search)
        plan = apply_projection(plan, request)
        plan = apply_sort(plan, request.sort_clauses)
        logger.debug(
            "Built plan for %s: %d filters applied, %d joins, %d columns",
            self.schema.table_name,
            len(plan.applied_filters),
            len(plan.joins),
            len(plan.columns),
        )
        return plan
