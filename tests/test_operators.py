"""Tests for operator strategies and the registry."""

from __future__ import annotations

from datetime import datetime

import pytest
from sqlalchemy import ARRAY, Column, Integer, MetaData, String, Table
from sqlalchemy.dialects import postgresql

from cqrs_ddd_query_filter import (
    DEFAULT_REGISTRY,
    DataType,
    FilterSymbol,
    OperatorRegistry,
    build_default_registry,
)
from cqrs_ddd_query_filter.operators.set import InOperator
from cqrs_ddd_query_filter.operators.standard import (
    EqualOperator,
    GreaterEqualOperator,
)
from cqrs_ddd_query_filter.operators.string import ContainsOperator

from sample_models import Task

tasks = Task.__table__

documents = Table(
    "documents",
    MetaData(),
    Column("id", Integer, primary_key=True),
    Column("tags", ARRAY(String)),
    Column("scores", ARRAY(Integer)),
)


def _build(symbol: str, args, column, data_type, choices=None):
    return DEFAULT_REGISTRY.resolve(symbol).build(args, column, data_type, choices)


def _sql(expr) -> str:
    return str(expr.compile())


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


def test_unknown_symbol_falls_back_to_contains() -> None:
    assert isinstance(DEFAULT_REGISTRY.resolve("$fuzzy"), ContainsOperator)
    assert isinstance(DEFAULT_REGISTRY.resolve(None), ContainsOperator)
    assert isinstance(DEFAULT_REGISTRY.resolve(""), ContainsOperator)


@pytest.mark.parametrize(
    ("alias", "expected"),
    [("=", EqualOperator), ("eq", EqualOperator), (">=", GreaterEqualOperator),
     ("in", InOperator), ("contains", ContainsOperator)],
)
def test_aliases(alias: str, expected: type) -> None:
    assert isinstance(DEFAULT_REGISTRY.resolve(alias), expected)


def test_supported_symbols() -> None:
    assert DEFAULT_REGISTRY.supported_symbols == {s.value for s in FilterSymbol}


def test_missing_default_raises() -> None:
    registry = OperatorRegistry(default_symbol="$nope")
    with pytest.raises(ValueError, match="not registered"):
        _ = registry.default


def test_unregister_removes_aliases() -> None:
    registry = build_default_registry()
    registry.unregister(FilterSymbol.EQ)
    assert not registry.has("$eq")
    assert not registry.has("=")
    assert registry.has("$ne")


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------


def test_equality() -> None:
    expr = _build("$eq", ["A"], tasks.c.status, DataType.ENUM, ("A", "B", "C"))
    assert _sql(expr) == "tasks.status = :status_1"
    expr = _build("$ne", ["3"], tasks.c.priority, DataType.INT16)
    assert _sql(expr) == "tasks.priority != :priority_1"


def test_equality_binds_typed_value() -> None:
    expr = _build("$eq", ["3"], tasks.c.priority, DataType.INT16)
    assert expr.compile().params == {"priority_1": 3}


def test_unknown_enum_label_is_noop() -> None:
    assert _build("$eq", ["Z"], tasks.c.status, DataType.ENUM, ("A", "B", "C")) is None


@pytest.mark.parametrize(
    ("symbol", "sql"),
    [
        ("$gt", "tasks.priority > :priority_1"),
        ("$gte", "tasks.priority >= :priority_1"),
        ("$lt", "tasks.priority < :priority_1"),
        ("$lte", "tasks.priority <= :priority_1"),
    ],
)
def test_ordering(symbol: str, sql: str) -> None:
    assert _sql(_build(symbol, ["2"], tasks.c.priority, DataType.INT16)) == sql


@pytest.mark.parametrize(
    ("column", "data_type", "arg"),
    [
        (tasks.c.done, DataType.BOOL, "true"),
        (tasks.c.status, DataType.ENUM, "A"),
        (documents.c.scores, DataType.INT32_ARRAY, "1"),
    ],
)
def test_ordering_rejects_non_orderable(column, data_type: DataType, arg: str) -> None:
    assert _build("$gt", [arg], column, data_type) is None


def test_between() -> None:
    expr = _build("$between", ["1", "3"], tasks.c.priority, DataType.INT16)
    assert _sql(expr) == "tasks.priority BETWEEN :priority_1 AND :priority_2"


def test_between_needs_two_arguments() -> None:
    assert _build("$between", ["1"], tasks.c.priority, DataType.INT16) is None


def test_between_rejects_text() -> None:
    assert _build("$between", ["a", "b"], tasks.c.title, DataType.TEXT) is None


def test_contains_escapes_wildcards() -> None:
    expr = _build("$cont", ["100%"], tasks.c.description, DataType.TEXT)
    compiled = expr.compile()
    assert "LIKE" in str(compiled)
    assert "ESCAPE '/'" in str(compiled)
    assert compiled.params["description_1"] == "100/%"


def test_excludes_negates() -> None:
    expr = _build("$excl", ["x"], tasks.c.title, DataType.TEXT)
    assert "NOT LIKE" in _sql(expr)


def test_starts_and_ends() -> None:
    starts = _build("$starts", ["Wr"], tasks.c.title, DataType.TEXT).compile()
    ends = _build("$ends", ["bug"], tasks.c.title, DataType.TEXT).compile()
    assert "LIKE" in str(starts)
    assert starts.params["title_1"] == "Wr"
    assert "LIKE" in str(ends)


def test_contains_rejects_non_text_scalars() -> None:
    assert _build("$cont", ["1"], tasks.c.priority, DataType.INT16) is None


def test_substring_operators_cast_enums_to_text() -> None:
    choices = ("Active", "Blocked")
    for symbol in ("$cont", "$excl", "$starts", "$ends"):
        expr = _build(symbol, ["Ac"], tasks.c.status, DataType.ENUM, choices)
        assert expr is not None
        assert "CAST(tasks.status AS VARCHAR)" in _sql(expr)


def test_enum_array_contains_still_checks_choices() -> None:
    choices = ("a", "b")
    expr = _build("$cont", ["a"], documents.c.tags, DataType.ENUM_ARRAY, choices)
    assert expr is not None
    assert (
        _build("$cont", ["x"], documents.c.tags, DataType.ENUM_ARRAY, choices)
        is None
    )


def test_array_contains_uses_postgres_containment() -> None:
    expr = _build("$cont", ["a", "b"], documents.c.tags, DataType.TEXT_ARRAY)
    sql = str(expr.compile(dialect=postgresql.dialect()))
    assert "documents.tags @> ARRAY[" in sql


def test_array_excludes() -> None:
    expr = _build("$excl", ["1"], documents.c.scores, DataType.INT32_ARRAY)
    sql = str(expr.compile(dialect=postgresql.dialect()))
    assert sql.startswith("NOT (documents.scores @> ARRAY[")


def test_array_coercion_is_atomic() -> None:
    assert _build("$cont", ["1", "x"], documents.c.scores, DataType.INT32_ARRAY) is None


def test_time_arguments_bind_per_storage_type() -> None:
    typed = _build("$gte", ["2024-01-03"], tasks.c.created_at, DataType.TIME)
    assert typed.compile().params["created_at_1"] == datetime(2024, 1, 3)
    text = _build("$eq", ["2024-01-03"], tasks.c.title, DataType.TIME)
    assert text.compile().params["title_1"] == "2024-01-03"


def test_in_and_not_in() -> None:
    expr = _build("$in", ["A", "B"], tasks.c.status, DataType.ENUM, ("A", "B", "C"))
    compiled = expr.compile()
    assert "tasks.status IN" in str(compiled)
    assert compiled.params["status_1"] == ["A", "B"]
    expr = _build("$notin", ["1", "2"], tasks.c.priority, DataType.INT16)
    assert "NOT IN" in _sql(expr)


def test_in_is_atomic() -> None:
    assert _build("$in", ["1", "x"], tasks.c.priority, DataType.INT16) is None


def test_null_checks_take_no_arguments() -> None:
    assert _sql(_build("$isnull", [], tasks.c.description, DataType.TEXT)) == (
        "tasks.description IS NULL"
    )
    assert _sql(_build("$notnull", [""], tasks.c.owner_id, DataType.INT32)) == (
        "tasks.owner_id IS NOT NULL"
    )


def test_boolean_checks_are_bool_only() -> None:
    assert "tasks.done IS" in _sql(_build("$istrue", [], tasks.c.done, DataType.BOOL))
    assert _build("$isfalse", [], tasks.c.title, DataType.TEXT) is None


def test_unsupported_type_is_noop() -> None:
    assert _build("$eq", ["x"], tasks.c.title, DataType.UNSUPPORTED) is None
    assert _build("$isnull", [], tasks.c.title, DataType.UNSUPPORTED) is None


def test_scalar_operators_reject_arrays() -> None:
    assert _build("$eq", ["a"], documents.c.tags, DataType.TEXT_ARRAY) is None
