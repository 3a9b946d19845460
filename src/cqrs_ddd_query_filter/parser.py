"""Parse raw query parameters into a PaginationRequest."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic.alias_generators import to_snake

from .clauses import (
    Clause,
    JoinClause,
    PaginationRequest,
    SearchClause,
    SortClause,
    SortOrder,
)
from .settings import DEFAULT_SETTINGS, FilterSettings

logger = logging.getLogger(__name__)

FILTER_KEYS = ("filter", "filter[]")
OR_KEYS = ("or", "or[]")
COMBINED_FILTER_KEY = "combinedFilter"
SORT_COLUMN_KEYS = ("sortColumn", "sort")
SORT_ORDER_KEY = "sortOrder"
PAGE_KEYS = ("page", "pageNumber")
PAGE_SIZE_KEYS = ("perPage", "pageSize")
FIELDS_KEY = "fields"
SEARCH_KEY = "search"
JOIN_KEY = "join"


def normalize_params(params: Any) -> dict[str, list[str]]:
    """
    Flatten supported parameter sources to ``{key: [values]}``.

    Accepts multi-dicts exposing ``getlist`` (Starlette, Werkzeug,
    Django), ``urllib.parse.parse_qs`` output, and plain mappings whose
    values are strings or sequences of strings.
    """
    if params is None:
        return {}
    if hasattr(params, "getlist"):
        return {str(k): [str(v) for v in params.getlist(k)] for k in params.keys()}
    if not isinstance(params, Mapping):
        raise TypeError(f"Unsupported query parameter source: {type(params)!r}")
    out: dict[str, list[str]] = {}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
            out[str(key)] = [_text(value)]
        else:
            out[str(key)] = [_text(v) for v in value]
    return out


def _text(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode()
    return str(value)


def normalize_path(path: str) -> str:
    """Strip ``[]`` decoration and convert every segment to snake_case."""
    cleaned = path.replace("[]", "").strip()
    return ".".join(to_snake(segment) for segment in cleaned.split("."))


def _split_list(raw: str) -> list[str]:
    return [part.strip() for part in raw.split(",") if part.strip()]


def _columns(raw: str) -> list[str]:
    """Normalized, non-empty column paths of a filter value."""
    return [c for c in (normalize_path(p) for p in raw.split(",")) if c]


class QueryParamsParser:
    """Parse request query parameters into a :class:`PaginationRequest`."""

    def __init__(self, settings: FilterSettings | None = None) -> None:
        self._settings = settings or DEFAULT_SETTINGS

    def parse(self, params: Any) -> PaginationRequest:
        values = normalize_params(params)
        settings = self._settings

        filter_clauses: list[Clause] = []
        or_clauses: list[Clause] = []
        if not settings.disable_filter:
            group = 0
            for key in FILTER_KEYS:
                for raw in values.get(key, []):
                    clauses = self._parse_filter_value(raw, False, group)
                    if clauses:
                        filter_clauses.extend(clauses)
                        group += 1
            for raw in values.get(COMBINED_FILTER_KEY, []):
                logger.warning(
                    "Deprecated %r parameter used: %r", COMBINED_FILTER_KEY, raw
                )
                clauses = self._parse_combined_filter(raw, group)
                if clauses:
                    filter_clauses.extend(clauses)
                    group += 1
            for key in OR_KEYS:
                for raw in values.get(key, []):
                    clauses = self._parse_filter_value(raw, True, group)
                    if clauses:
                        or_clauses.extend(clauses)
                        group += 1

        return PaginationRequest(
            page=self._parse_page(values),
            page_size=self._parse_page_size(values),
            filter_clauses=tuple(filter_clauses),
            or_clauses=tuple(or_clauses),
            sort_clauses=self._parse_sort(values),
            search=None if settings.disable_search else self._parse_search(values),
            requested_fields=(
                None if settings.disable_fields else self._parse_fields(values)
            ),
            joins=() if settings.disable_join else self._parse_joins(values),
        )

    # -- filters -----------------------------------------------------------

    def _parse_filter_value(
        self, raw: str, base_or: bool, group: int
    ) -> list[Clause]:
        """``cols|values[|op]`` -> one clause per column."""
        parts = raw.split("|")
        if len(parts) < 2:
            logger.debug("Dropping malformed filter value %r", raw)
            return []
        columns = _columns(parts[0])
        args = tuple(parts[1].strip("[]").split(","))
        symbol = parts[2] if len(parts) == 3 and parts[2] else None
        symbol = symbol or self._settings.default_operator
        return [
            Clause(
                field_path=column,
                operator_symbol=symbol,
                args=args,
                combine_with_or=base_or or i > 0,
                value_group=group,
            )
            for i, column in enumerate(columns)
        ]

    def _parse_combined_filter(self, raw: str, group: int) -> list[Clause]:
        """Legacy ``col1,col2:value``."""
        columns_raw, sep, value = raw.partition(":")
        if not sep:
            logger.debug("Dropping malformed combined filter %r", raw)
            return []
        columns = _columns(columns_raw)
        return [
            Clause(
                field_path=column,
                operator_symbol=self._settings.combined_filter_operator,
                args=(value,),
                combine_with_or=i > 0,
                value_group=group,
            )
            for i, column in enumerate(columns)
        ]

    # -- paging / sorting --------------------------------------------------

    def _first(self, values: dict[str, list[str]], keys: Iterable[str]) -> str | None:
        for key in keys:
            for raw in values.get(key, []):
                if raw.strip():
                    return raw.strip()
        return None

    def _parse_page(self, values: dict[str, list[str]]) -> int:
        page = _positive_int(self._first(values, PAGE_KEYS))
        return page if page is not None else 1

    def _parse_page_size(self, values: dict[str, list[str]]) -> int:
        size = _positive_int(self._first(values, PAGE_SIZE_KEYS))
        if size is None:
            size = self._settings.default_page_size
        return self._settings.clamp_page_size(size)

    def _parse_sort(self, values: dict[str, list[str]]) -> tuple[SortClause, ...]:
        settings = self._settings
        order = SortOrder.parse(
            self._first(values, (SORT_ORDER_KEY,)), settings.default_sort_order
        )
        columns: list[str] = []
        if not settings.disable_sort:
            for key in SORT_COLUMN_KEYS:
                for raw in values.get(key, []):
                    columns.extend(normalize_path(c) for c in _split_list(raw))
        if not columns:
            columns = [settings.default_sort_column]
        return tuple(SortClause(field_path=c, order=order) for c in columns)

    # -- projection / search / joins ---------------------------------------

    def _parse_fields(self, values: dict[str, list[str]]) -> tuple[str, ...] | None:
        fields: list[str] = []
        for raw in values.get(FIELDS_KEY, []):
            fields.extend(normalize_path(f) for f in _split_list(raw))
        return tuple(dict.fromkeys(fields)) if fields else None

    def _parse_search(self, values: dict[str, list[str]]) -> SearchClause | None:
        query = self._first(values, (SEARCH_KEY,))
        if query is None:
            return None
        return SearchClause(query=query)

    def _parse_joins(self, values: dict[str, list[str]]) -> tuple[JoinClause, ...]:
        """``relation[.nested][|col1,col2]``."""
        joins: dict[str, JoinClause] = {}
        for raw in values.get(JOIN_KEY, []):
            relation_raw, _, fields_raw = raw.partition("|")
            relation = normalize_path(relation_raw)
            if not relation or any(not s for s in relation.split(".")):
                logger.debug("Dropping malformed join %r", raw)
                continue
            fields = tuple(normalize_path(f) for f in _split_list(fields_raw))
            joins[relation] = JoinClause(
                relation_path=relation, fields=fields or None
            )
        return tuple(joins.values())


def _positive_int(raw: str | None) -> int | None:
    if raw is None:
        return None
    try:
        value = int(raw)
    except ValueError:
        return None
    return value if value >= 1 else None


def parse_params(
    params: Any, settings: FilterSettings | None = None
) -> PaginationRequest:
    """Shortcut for ``QueryParamsParser(settings).parse(params)``."""
    return QueryParamsParser(settings).parse(params)
