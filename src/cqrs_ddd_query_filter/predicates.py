"""
Filter and or groups -> one WHERE predicate.

Clauses parsed from one raw value (``title,description|x``) form a unit
whose predicates are ORed and parenthesized. Units chain on the
``combine_with_or`` flag of their first clause, with AND binding tighter
than OR, so ``a AND b OR c AND d`` groups as ``(a AND b) OR (c AND d)``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from sqlalchemy import and_, or_

from .expressions import field_expression

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy import ColumnElement

    from .clauses import Clause, PaginationRequest
    from .plan import QueryPlan

logger = logging.getLogger(__name__)


@dataclass
class _Unit:
    combine_with_or: bool
    predicates: list[ColumnElement[bool]] = field(default_factory=list)

    def expression(self) -> ColumnElement[bool]:
        if len(self.predicates) == 1:
            return self.predicates[0]
        return or_(*self.predicates)


def clause_predicate(
    plan: QueryPlan, clause: Clause
) -> tuple[QueryPlan, ColumnElement[bool] | None]:
    """
    Build the predicate for one clause.

    Returns the plan unchanged and ``None`` when the clause is a no-op:
    unknown or blacklisted path, to-many traversal, unsupported type,
    missing arguments, or failed coercion. Joins needed by the clause
    are only kept when it produces a predicate.
    """
    found = field_expression(plan, clause.field_path)
    if found is None:
        logger.debug("Dropping filter on unresolvable field %r", clause.field_path)
        return plan, None
    operator = plan.settings.registry.resolve(clause.operator_symbol)
    descriptor = found.resolved.field
    predicate = operator.build(
        clause.args, found.expression, descriptor.data_type, descriptor.choices
    )
    if predicate is None:
        logger.debug(
            "Dropping filter %s %s %r on %s field",
            clause.field_path,
            operator.symbol,
            clause.args,
            descriptor.data_type.value,
        )
        return plan, None
    return found.plan, predicate


def _units(
    plan: QueryPlan, clauses: Sequence[Clause]
) -> tuple[QueryPlan, list[_Unit], list[Clause]]:
    units: list[_Unit] = []
    applied: list[Clause] = []
    previous_group: Any = object()
    for clause in clauses:
        if clause.value_group is None or clause.value_group != previous_group:
            units.append(_Unit(combine_with_or=clause.combine_with_or))
        previous_group = clause.value_group
        plan, predicate = clause_predicate(plan, clause)
        if predicate is not None:
            units[-1].predicates.append(predicate)
            applied.append(clause)
    return plan, [u for u in units if u.predicates], applied


def _chain(units: Sequence[_Unit]) -> ColumnElement[bool] | None:
    """Combine units on their flags, AND before OR."""
    runs: list[list[ColumnElement[bool]]] = []
    for unit in units:
        if not runs or unit.combine_with_or:
            runs.append([])
        runs[-1].append(unit.expression())
    terms = [run[0] if len(run) == 1 else and_(*run) for run in runs]
    if not terms:
        return None
    return terms[0] if len(terms) == 1 else or_(*terms)


def is_mixed(request: PaginationRequest) -> bool:
    """More than one ``or`` clause alongside at least one ``filter`` clause."""
    return len(request.or_clauses) > 1 and len(request.filter_clauses) > 0


def apply_filters(plan: QueryPlan, request: PaginationRequest) -> QueryPlan:
    """AND the combined filter/or predicate onto *plan*."""
    plan, filter_units, filter_applied = _units(plan, request.filter_clauses)
    plan, or_units, or_applied = _units(plan, request.or_clauses)
    plan = plan.with_applied(*filter_applied, *or_applied)

    if plan.settings.flatten_mixed_groups and is_mixed(request):
        flat = [
            p for unit in (*filter_units, *or_units) for p in unit.predicates
        ]
        logger.debug("Mixed filter/or groups flattened into %d AND terms", len(flat))
        if not flat:
            return plan
        return plan.with_predicate(flat[0] if len(flat) == 1 else and_(*flat))

    return plan.with_predicate(_chain(filter_units)).with_predicate(_chain(or_units))
