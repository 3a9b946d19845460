"""
Tests for the query build stages.

Everything here compiles statements without a database connection.
"""

from __future__ import annotations

import pytest
from sqlalchemy.sql import operators
from sqlalchemy.sql.elements import BooleanClauseList, Cast, Grouping

from cqrs_ddd_query_filter import (
    Blacklist,
    Clause,
    FilterSettings,
    MissingPrimaryKeyError,
    PaginationRequest,
    QueryBuilder,
    SearchClause,
    parse_params,
)
from cqrs_ddd_query_filter.joins import ensure_join
from cqrs_ddd_query_filter.predicates import apply_filters

from sample_models import AuditEntry, Task


def _build(params, settings: FilterSettings | None = None):
    return QueryBuilder(Task, settings).build(parse_params(params, settings))


def _where(plan) -> str | None:
    return None if plan.where is None else str(plan.where.compile())


def _select(plan) -> str:
    return str(plan.select_statement().compile())


def _columns(plan) -> list[str]:
    return [c.name for c in plan.columns]


def _shape(expr):
    """Boolean tree as ``("and" | "or", [...])`` with column names at the leaves."""
    while isinstance(expr, Grouping):
        expr = expr.element
    if isinstance(expr, BooleanClauseList):
        op = "and" if expr.operator is operators.and_ else "or"
        return op, [_shape(c) for c in expr.clauses]
    left = expr.left
    while isinstance(left, (Grouping, Cast)):
        left = left.element if isinstance(left, Grouping) else left.clause
    return left.name


# ---------------------------------------------------------------------------
# Group & predicate assembly
# ---------------------------------------------------------------------------


def test_mixed_groups_are_flattened() -> None:
    plan = _build(
        {"filter": "status|A|$eq", "or": ["priority|2|$eq", "estimate|1|$eq"]}
    )
    assert _where(plan) == (
        "tasks.status = :status_1 AND tasks.priority = :priority_1 "
        "AND tasks.estimate = :estimate_1"
    )


def test_mixed_groups_without_flattening() -> None:
    settings = FilterSettings(flatten_mixed_groups=False)
    plan = _build(
        {"filter": "status|A|$eq", "or": ["priority|2|$eq", "estimate|1|$eq"]},
        settings,
    )
    assert _where(plan) == (
        "tasks.status = :status_1 AND "
        "(tasks.priority = :priority_1 OR tasks.estimate = :estimate_1)"
    )


def test_single_or_clause_is_anded_with_filter_group() -> None:
    plan = _build({"filter": "status|A|$eq", "or": "priority|2|$eq"})
    assert _where(plan) == "tasks.status = :status_1 AND tasks.priority = :priority_1"


def test_or_group_alone() -> None:
    plan = _build({"or": ["priority|2|$eq", "estimate|1|$eq"]})
    assert _where(plan) == (
        "tasks.priority = :priority_1 OR tasks.estimate = :estimate_1"
    )


def test_multi_column_value_nests_as_one_or_unit() -> None:
    plan = _build({"filter": ["status|A|$eq", "title,description|doc"]})
    assert _shape(plan.where) == ("and", ["status", ("or", ["title", "description"])])


def test_units_chain_with_and_before_or() -> None:
    request = PaginationRequest(
        filter_clauses=(
            Clause("status", "$eq", ("A",), False, 0),
            Clause("priority", "$eq", ("1",), False, 1),
            Clause("title", "$eq", ("x",), True, 2),
            Clause("estimate", "$eq", ("1",), False, 3),
        )
    )
    plan = QueryBuilder(Task).build(request)
    assert _where(plan) == (
        "tasks.status = :status_1 AND tasks.priority = :priority_1 "
        "OR tasks.title = :title_1 AND tasks.estimate = :estimate_1"
    )


def test_unit_keeps_its_flag_when_first_column_is_dropped() -> None:
    plan = _build({"filter": ["status|A|$eq", "nope,title|doc"]})
    assert _shape(plan.where) == ("and", ["status", "title"])


def test_failed_coercion_contributes_nothing() -> None:
    plan = _build({"filter": ["priority|abc|$eq", "priority|1,x|$in"]})
    assert plan.where is None
    assert plan.applied_filters == ()


def test_blacklisted_filter_is_a_noop() -> None:
    settings = FilterSettings(blacklist=Blacklist.build(fields=["description"]))
    plan = _build({"filter": "description|x|$eq"}, settings)
    assert plan.where is None


def test_applied_filters_only_lists_effective_clauses() -> None:
    plan = _build({"filter": ["status|A|$eq", "nope|1|$eq"], "or": "done|x|$eq"})
    assert [c.field_path for c in plan.applied_filters] == ["status"]


def test_stages_do_not_mutate_their_input() -> None:
    initial = QueryBuilder(Task).initial_plan()
    filtered = apply_filters(initial, parse_params({"filter": "owner.name|a|$eq"}))
    assert initial.where is None
    assert initial.joins == ()
    assert filtered.where is not None
    assert [j.path for j in filtered.joins] == ["owner"]


# ---------------------------------------------------------------------------
# Joins
# ---------------------------------------------------------------------------


def test_relation_filter_joins_target() -> None:
    plan = _build({"filter": "owner.name|alice|$eq"})
    assert [j.path for j in plan.joins] == ["owner"]
    assert "FROM tasks LEFT OUTER JOIN users AS owner ON tasks.owner_id = owner.id" in (
        _select(plan)
    )
    assert _where(plan) == "owner.name = :name_1"


def test_nested_relation_joins_parents_first() -> None:
    plan = _build({"filter": "owner.organization.name|Acme|$eq"})
    assert [j.path for j in plan.joins] == ["owner", "owner.organization"]
    assert (
        "LEFT OUTER JOIN organizations AS organization "
        "ON owner.organization_id = organization.id"
    ) in _select(plan)


def test_joins_are_memoized() -> None:
    plan = _build(
        {
            "filter": ["owner.name|a|$eq", "owner.email|b|$eq"],
            "sortColumn": "owner.name",
        }
    )
    assert [j.path for j in plan.joins] == ["owner"]
    assert _select(plan).count("JOIN users") == 1


def test_dropped_clause_does_not_join() -> None:
    plan = _build({"filter": "owner.organization_id|abc|$eq"})
    assert plan.joins == ()


def test_to_many_path_never_joins() -> None:
    plan = _build({"filter": "comments.body|x|$eq", "sortColumn": "comments.body"})
    assert plan.joins == ()
    assert plan.where is None


def test_ensure_join_rejects_to_many() -> None:
    with pytest.raises(ValueError):
        ensure_join(QueryBuilder(Task).initial_plan(), "comments")


def test_count_statement_is_unprojected() -> None:
    plan = _build({"filter": "owner.name|alice|$eq", "fields": "title"})
    sql = str(plan.count_statement().compile())
    assert sql.startswith("SELECT count(*) AS count_1 \nFROM tasks LEFT OUTER JOIN")
    assert "ORDER BY" not in sql


# ---------------------------------------------------------------------------
# Projection
# ---------------------------------------------------------------------------


def test_default_projection_selects_every_field() -> None:
    plan = _build({})
    assert _columns(plan) == [
        "id",
        "title",
        "description",
        "status",
        "priority",
        "estimate",
        "done",
        "created_at",
        "owner_id",
        "title_length",
    ]
    assert "(LENGTH(tasks.title)) AS title_length" in _select(plan)


def test_requested_fields_without_joins() -> None:
    assert _columns(_build({"fields": "id,title"})) == ["id", "title"]


def test_joins_add_primary_and_foreign_keys() -> None:
    plan = _build({"fields": "title", "filter": "owner.name|alice|$eq"})
    assert _columns(plan) == ["title", "id", "owner_id"]


def test_join_param_adds_primary_and_foreign_keys() -> None:
    plan = _build({"fields": "id,title", "join": "owner"})
    assert _columns(plan) == ["id", "title", "owner_id"]


def test_sort_join_adds_primary_and_foreign_keys() -> None:
    plan = _build({"fields": "title", "sortColumn": "owner.name"})
    assert _columns(plan) == ["title", "id", "owner_id"]
    assert [j.path for j in plan.joins] == ["owner"]


def test_blacklisted_and_unknown_fields_are_not_projected() -> None:
    settings = FilterSettings(blacklist=Blacklist.build(fields=["description"]))
    plan = _build({"fields": "title,description,nope"}, settings)
    assert _columns(plan) == ["title"]
    assert "description" not in _columns(_build({}, settings))


def test_empty_projection_selects_placeholder() -> None:
    plan = _build({"fields": "nope"})
    assert plan.columns == ()
    assert _select(plan).startswith("SELECT 1 \nFROM tasks")


def test_missing_primary_key_with_joins() -> None:
    request = parse_params({"fields": "message", "join": "user"})
    with pytest.raises(MissingPrimaryKeyError) as exc_info:
        QueryBuilder(AuditEntry).build(request)
    assert exc_info.value.table_name == "audit_entries"


def test_missing_primary_key_without_joins_is_fine() -> None:
    plan = QueryBuilder(AuditEntry).build(parse_params({"fields": "message"}))
    assert _columns(plan) == ["message"]


# ---------------------------------------------------------------------------
# Sort
# ---------------------------------------------------------------------------


def test_default_sort() -> None:
    assert _select(_build({})).endswith("ORDER BY tasks.created_at DESC")


def test_computed_sort_uses_expression() -> None:
    plan = _build({"sortColumn": "title_length", "sortOrder": "ASC"})
    assert _select(plan).endswith("ORDER BY (LENGTH(tasks.title)) ASC")


def test_sort_through_relation_joins() -> None:
    plan = _build({"sortColumn": "owner.name"})
    assert [j.path for j in plan.joins] == ["owner"]
    assert _select(plan).endswith("ORDER BY owner.name DESC")


def test_unknown_or_blacklisted_sort_is_dropped() -> None:
    settings = FilterSettings(blacklist=Blacklist.build(fields=["title"]))
    plan = _build({"sortColumn": "title,nope"}, settings)
    assert plan.order_by == ()
    assert "ORDER BY" not in _select(plan)


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------


def test_search_covers_text_and_enum_fields() -> None:
    plan = _build({"search": "doc"})
    assert _shape(plan.where) == ("or", ["title", "description", "status"])
    assert "CAST(tasks.status AS VARCHAR) LIKE" in _where(plan)


def test_search_is_anded_as_its_own_unit() -> None:
    plan = _build({"search": "doc", "or": ["status|A|$eq", "status|B|$eq"]})
    assert _shape(plan.where) == (
        "and",
        [
            ("or", ["status", "status"]),
            ("or", ["title", "description", "status"]),
        ],
    )


def test_search_fields_from_settings() -> None:
    settings = FilterSettings(fields_search=("title",))
    sql = _where(_build({"search": "doc"}, settings))
    assert "tasks.title LIKE" in sql
    assert "description" not in sql


def test_search_fields_from_clause_and_operator() -> None:
    request = PaginationRequest(
        search=SearchClause("Fix", fields=("title",), operator_symbol="$starts")
    )
    plan = QueryBuilder(Task).build(request)
    compiled = plan.where.compile()
    assert "tasks.title LIKE :title_1 || '%'" in str(compiled)


def test_search_skips_blacklisted_fields() -> None:
    settings = FilterSettings(blacklist=Blacklist.build(fields=["description"]))
    assert "description" not in _where(_build({"search": "doc"}, settings))


def test_blank_search_is_ignored() -> None:
    request = PaginationRequest(search=SearchClause("   "))
    assert QueryBuilder(Task).build(request).where is None


def test_search_is_not_echoed_as_filter() -> None:
    assert _build({"search": "doc"}).applied_filters == ()
