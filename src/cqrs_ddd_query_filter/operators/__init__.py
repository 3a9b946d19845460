"""
Filter operator implementations and default registry.

Usage::

    from cqrs_ddd_query_filter.operators import DEFAULT_REGISTRY

    predicate = DEFAULT_REGISTRY.resolve("$in").build(["A", "B"], column, dt)
"""

from __future__ import annotations

from .null import (
    IsFalseOperator,
    IsNotNullOperator,
    IsNullOperator,
    IsTrueOperator,
)
from .set import (
    BetweenOperator,
    InOperator,
    NotInOperator,
)
from .standard import (
    EqualOperator,
    GreaterEqualOperator,
    GreaterThanOperator,
    LessEqualOperator,
    LessThanOperator,
    NotEqualOperator,
)
from .strategy import FilterOperator, OperatorRegistry
from .string import (
    ContainsOperator,
    EndsWithOperator,
    ExcludesOperator,
    StartsWithOperator,
)
from .symbols import FilterSymbol


def build_default_registry() -> OperatorRegistry:
    """Create a registry with all built-in operators, defaulting to ``$cont``."""
    registry = OperatorRegistry(default_symbol=FilterSymbol.CONTAINS)
    registry.register_all(
        # Comparison
        EqualOperator(),
        NotEqualOperator(),
        GreaterThanOperator(),
        GreaterEqualOperator(),
        LessThanOperator(),
        LessEqualOperator(),
        # Set
        InOperator(),
        NotInOperator(),
        BetweenOperator(),
        # String / array
        ContainsOperator(),
        ExcludesOperator(),
        StartsWithOperator(),
        EndsWithOperator(),
        # Null / boolean
        IsNullOperator(),
        IsNotNullOperator(),
        IsTrueOperator(),
        IsFalseOperator(),
    )
    return registry


DEFAULT_REGISTRY: OperatorRegistry = build_default_registry()

__all__ = [
    "DEFAULT_REGISTRY",
    "FilterOperator",
    "FilterSymbol",
    "OperatorRegistry",
    "build_default_registry",
]
