"""
Immutable query plan threaded through the build stages.

Every stage takes a :class:`QueryPlan` and returns an augmented copy.
Nothing touches a database until the plan is rendered into statements
with :meth:`QueryPlan.select_statement` / :meth:`QueryPlan.count_statement`.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any

from sqlalchemy import and_, func, literal_column, select

if TYPE_CHECKING:
    from sqlalchemy import ColumnElement, FromClause, Select
    from sqlalchemy.engine import Dialect

    from .clauses import Clause, SortClause
    from .schema import SchemaDescriptor
    from .settings import FilterSettings


@dataclass(frozen=True)
class JoinSpec:
    """
    One LEFT OUTER JOIN.

    Attributes:
        path: Full relation chain from the root, e.g. ``owner.organization``.
        target: Aliased target table, named after the last path segment.
        onclause: Join condition against the parent (root table or alias).
        schema: Schema of the joined entity.
    """

    path: str
    target: FromClause
    onclause: ColumnElement[bool]
    schema: SchemaDescriptor


@dataclass(frozen=True)
class QueryPlan:
    """
    Request-scoped description of the statement being built.

    Attributes:
        schema: Root entity schema.
        settings: Endpoint settings.
        dialect: Dialect used to quote identifiers in computed columns.
        joins: Joins in emission order (parents before children).
        where: Combined filter and search predicate.
        columns: Projection; empty until the projection stage runs.
        order_by: ORDER BY expressions.
        applied_filters: Clauses that produced a predicate.
        applied_sort: Sort clauses that resolved.
    """

    schema: SchemaDescriptor
    settings: FilterSettings
    dialect: Dialect
    joins: tuple[JoinSpec, ...] = ()
    where: ColumnElement[bool] | None = None
    columns: tuple[ColumnElement[Any], ...] = ()
    order_by: tuple[ColumnElement[Any], ...] = ()
    applied_filters: tuple[Clause, ...] = ()
    applied_sort: tuple[SortClause, ...] = ()

    @property
    def root(self) -> FromClause:
        return self.schema.table

    def get_join(self, path: str) -> JoinSpec | None:
        for spec in self.joins:
            if spec.path == path:
                return spec
        return None

    def host(self, join_path: str) -> FromClause:
        """The root table, or the alias joined for *join_path*."""
        if not join_path:
            return self.root
        spec = self.get_join(join_path)
        if spec is None:
            raise KeyError(f"Relation path {join_path!r} has not been joined")
        return spec.target

    def quote(self, name: str) -> str:
        return self.dialect.identifier_preparer.quote(name)

    # -- copies ------------------------------------------------------------

    def with_join(self, spec: JoinSpec) -> QueryPlan:
        return replace(self, joins=(*self.joins, spec))

    def with_predicate(self, predicate: ColumnElement[bool] | None) -> QueryPlan:
        """AND *predicate* onto the current WHERE."""
        if predicate is None:
            return self
        where = predicate if self.where is None else and_(self.where, predicate)
        return replace(self, where=where)

    def with_applied(self, *clauses: Clause) -> QueryPlan:
        return replace(self, applied_filters=(*self.applied_filters, *clauses))

    def with_columns(self, columns: tuple[ColumnElement[Any], ...]) -> QueryPlan:
        return replace(self, columns=columns)

    def with_order_by(
        self,
        order_by: tuple[ColumnElement[Any], ...],
        applied_sort: tuple[SortClause, ...],
    ) -> QueryPlan:
        return replace(self, order_by=order_by, applied_sort=applied_sort)

    # -- rendering ---------------------------------------------------------

    @property
    def has_joins(self) -> bool:
        return bool(self.joins)

    def from_clause(self) -> FromClause:
        source = self.root
        for spec in self.joins:
            source = source.outerjoin(spec.target, spec.onclause)
        return source

    def count_statement(self) -> Select[Any]:
        """COUNT over the joined, filtered, unprojected statement."""
        stmt = select(func.count()).select_from(self.from_clause())
        if self.where is not None:
            stmt = stmt.where(self.where)
        return stmt

    def select_statement(self) -> Select[Any]:
        """The fully assembled statement, without LIMIT/OFFSET."""
        columns = self.columns or (literal_column("1"),)
        stmt = select(*columns).select_from(self.from_clause())
        if self.where is not None:
            stmt = stmt.where(self.where)
        if self.order_by:
            stmt = stmt.order_by(*self.order_by)
        return stmt

    def page_statement(self, page: int, page_size: int) -> Select[Any]:
        return (
            self.select_statement()
            .limit(page_size)
            .offset((page - 1) * page_size)
        )
