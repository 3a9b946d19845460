"""Request-level value objects produced by the parameter parser."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class SortOrder(str, Enum):
    ASC = "ASC"
    DESC = "DESC"

    @classmethod
    def parse(cls, raw: str | None, default: SortOrder) -> SortOrder:
        """Case-insensitive parse; anything unrecognised yields *default*."""
        if raw:
            try:
                return cls(raw.strip().upper())
            except ValueError:
                pass
        return default


@dataclass(frozen=True)
class Clause:
    """
    A single filter unit before it becomes SQL.

    Attributes:
        field_path: Dotted path ``[relation.]*column`` in storage naming.
        operator_symbol: Operator symbol or alias; unknown values fall back
            to the registry default.
        args: Raw string arguments.
        combine_with_or: Combine with the preceding unit using OR.
        value_group: Index of the raw parameter value the clause came
            from. Clauses sharing a group form one parenthesized OR unit.
    """

    field_path: str
    operator_symbol: str
    args: tuple[str, ...] = ()
    combine_with_or: bool = False
    value_group: int | None = None


@dataclass(frozen=True)
class SortClause:
    field_path: str
    order: SortOrder = SortOrder.DESC


@dataclass(frozen=True)
class SearchClause:
    """
    Free-text search. Unset ``fields`` / ``operator_symbol`` fall back to
    the endpoint settings.
    """

    query: str
    fields: tuple[str, ...] | None = None
    operator_symbol: str | None = None


@dataclass(frozen=True)
class JoinClause:
    """Relation to preload, with optional projected fields of the target."""

    relation_path: str
    fields: tuple[str, ...] | None = None


@dataclass(frozen=True)
class PaginationRequest:
    page: int = 1
    page_size: int = 10
    filter_clauses: tuple[Clause, ...] = ()
    or_clauses: tuple[Clause, ...] = ()
    sort_clauses: tuple[SortClause, ...] = ()
    search: SearchClause | None = None
    requested_fields: tuple[str, ...] | None = None
    joins: tuple[JoinClause, ...] = field(default_factory=tuple)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size
