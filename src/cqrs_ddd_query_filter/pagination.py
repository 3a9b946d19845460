"""
Pagination coordinator and response model.

The coordinator builds a :class:`QueryPlan`, runs a COUNT over the
filtered statement, fetches the requested page and preloads relations
named by the ``join`` parameter. COUNT and page fetch are separate
round-trips and are not wrapped in a transaction, so under concurrent
writes ``total_rows`` and the page may disagree.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .builder import QueryBuilder
from .clauses import SortOrder
from .parser import QueryParamsParser
from .preload import preload_relations
from .session import execute, fetch_dicts
from .settings import DEFAULT_SETTINGS, FilterSettings

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from .clauses import PaginationRequest
    from .plan import QueryPlan

logger = logging.getLogger(__name__)


def total_pages(total_rows: int, page_size: int) -> int:
    """``ceil(total_rows / page_size)``; zero rows means zero pages."""
    if page_size < 1:
        raise ValueError(f"page_size must be >= 1, got {page_size}")
    if total_rows <= 0:
        return 0
    return (total_rows + page_size - 1) // page_size


class FilterEcho(BaseModel):
    model_config = ConfigDict(frozen=True)

    column: str
    values: list[str] = Field(default_factory=list)


class PaginationResult(BaseModel):
    """Pagination metadata returned alongside a page of rows."""

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    page: int = 1
    page_size: int = 10
    sort_column: str = "created_at"
    sort_order: SortOrder = SortOrder.DESC
    filters: list[FilterEcho] = Field(default_factory=list)
    total_rows: int = 0
    total_pages: int = 0

    @classmethod
    def from_plan(
        cls, request: PaginationRequest, plan: QueryPlan, total_rows: int
    ) -> PaginationResult:
        settings = plan.settings
        if request.sort_clauses:
            sort_column = request.sort_clauses[0].field_path
            sort_order = request.sort_clauses[0].order
        else:
            sort_column = settings.default_sort_column
            sort_order = settings.default_sort_order
        return cls(
            page=request.page,
            page_size=request.page_size,
            sort_column=sort_column,
            sort_order=sort_order,
            filters=[
                FilterEcho(column=c.field_path, values=list(c.args))
                for c in plan.applied_filters
            ],
            total_rows=total_rows,
            total_pages=total_pages(total_rows, request.page_size),
        )


@dataclass(frozen=True)
class Page:
    rows: list[dict[str, Any]]
    pagination: PaginationResult

    def to_dict(self) -> dict[str, Any]:
        return {
            "rows": self.rows,
            "pagination": self.pagination.model_dump(by_alias=True, mode="json"),
        }


class PaginationCoordinator:
    """
    Run a :class:`PaginationRequest` against one entity.

    Args:
        entity: Mapped SQLAlchemy class.
        settings: Endpoint settings.
        timeout: Optional per-statement timeout in seconds.
    """

    def __init__(
        self,
        entity: type[Any],
        settings: FilterSettings | None = None,
        *,
        timeout: float | None = None,
    ) -> None:
        self.entity = entity
        self.settings = settings or DEFAULT_SETTINGS
        self.timeout = timeout

    def build_plan(
        self, request: PaginationRequest, session: AsyncSession | None = None
    ) -> QueryPlan:
        dialect = session.get_bind().dialect if session is not None else None
        return QueryBuilder(self.entity, self.settings, dialect).build(request)

    async def count(self, session: AsyncSession, plan: QueryPlan) -> int:
        result = await execute(session, plan.count_statement(), self.timeout)
        return int(result.scalar_one())

    async def paginate(
        self, session: AsyncSession, request: PaginationRequest
    ) -> Page:
        plan = self.build_plan(request, session)
        total_rows = await self.count(session, plan)
        rows = await fetch_dicts(
            session,
            plan.page_statement(request.page, request.page_size),
            self.timeout,
        )
        await self._preload(session, plan, request, rows)
        logger.debug(
            "Paginated %s: page %d, %d/%d rows",
            plan.schema.table_name,
            request.page,
            len(rows),
            total_rows,
        )
        return Page(
            rows=rows,
            pagination=PaginationResult.from_plan(request, plan, total_rows),
        )

    async def fetch_all(
        self, session: AsyncSession, request: PaginationRequest
    ) -> list[dict[str, Any]]:
        """Run the same pipeline without COUNT or LIMIT/OFFSET."""
        plan = self.build_plan(request, session)
        rows = await fetch_dicts(session, plan.select_statement(), self.timeout)
        await self._preload(session, plan, request, rows)
        return rows

    async def _preload(
        self,
        session: AsyncSession,
        plan: QueryPlan,
        request: PaginationRequest,
        rows: list[dict[str, Any]],
    ) -> None:
        if not request.joins:
            return
        await preload_relations(
            session,
            plan.schema,
            rows,
            request.joins,
            blacklist=self.settings.blacklist,
            dialect=plan.dialect,
            timeout=self.timeout,
        )


async def paginate(
    session: AsyncSession,
    entity: type[Any],
    params: Any,
    settings: FilterSettings | None = None,
    *,
    timeout: float | None = None,
) -> Page:
    """Parse raw query *params* and paginate *entity*."""
    request = QueryParamsParser(settings).parse(params)
    coordinator = PaginationCoordinator(entity, settings, timeout=timeout)
    return await coordinator.paginate(session, request)
