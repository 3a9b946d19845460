"""Per-endpoint configuration of the filtering pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field

from .blacklist import Blacklist
from .clauses import SortOrder
from .operators import DEFAULT_REGISTRY, OperatorRegistry
from .operators.symbols import FilterSymbol


@dataclass(frozen=True)
class FilterSettings:
    """
    Options controlling how a request is turned into a query.

    Attributes:
        blacklist: Fields and relations hidden from the client.
        fields_search: Fields searched when the request names none.
            ``None`` searches every selectable root field.
        search_operator: Operator applied to every search field.
        default_operator: Operator used when a filter value omits one.
        combined_filter_operator: Operator for legacy ``combinedFilter``.
        default_page_size: Page size when the request gives none.
        max_page_size: Upper bound on the requested page size.
        default_sort_column: Sort column when the request gives none.
        default_sort_order: Sort order when the request gives none.
        flatten_mixed_groups: When the ``or`` group has more than one
            clause and the ``filter`` group is non-empty, AND every clause
            of both groups together instead of ANDing the two groups.
        disable_fields: Ignore ``fields``.
        disable_filter: Ignore ``filter`` and ``or``.
        disable_sort: Ignore ``sortColumn`` (defaults still apply).
        disable_join: Ignore ``join``.
        disable_search: Ignore ``search``.
        registry: Operator registry.
    """

    blacklist: Blacklist = field(default_factory=Blacklist)
    fields_search: tuple[str, ...] | None = None
    search_operator: str = FilterSymbol.CONTAINS
    default_operator: str = FilterSymbol.CONTAINS
    combined_filter_operator: str = FilterSymbol.CONTAINS
    default_page_size: int = 10
    max_page_size: int | None = None
    default_sort_column: str = "created_at"
    default_sort_order: SortOrder = SortOrder.DESC
    flatten_mixed_groups: bool = True
    disable_fields: bool = False
    disable_filter: bool = False
    disable_sort: bool = False
    disable_join: bool = False
    disable_search: bool = False
    registry: OperatorRegistry = field(default=DEFAULT_REGISTRY, compare=False)

    def clamp_page_size(self, size: int) -> int:
        if self.max_page_size is not None:
            return min(size, self.max_page_size)
        return size


DEFAULT_SETTINGS = FilterSettings()
