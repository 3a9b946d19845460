"""Canonical filter operator symbols."""

from __future__ import annotations

from enum import Enum


class FilterSymbol(str, Enum):
    """Operator symbols accepted in the third segment of a filter value."""

    # Comparison
    EQ = "$eq"
    NE = "$ne"
    GT = "$gt"
    GTE = "$gte"
    LT = "$lt"
    LTE = "$lte"

    # Set / range
    IN = "$in"
    NOT_IN = "$notin"
    BETWEEN = "$between"

    # String / array containment
    CONTAINS = "$cont"
    EXCLUDES = "$excl"
    STARTS = "$starts"
    ENDS = "$ends"

    # Null / boolean
    IS_NULL = "$isnull"
    NOT_NULL = "$notnull"
    IS_TRUE = "$istrue"
    IS_FALSE = "$isfalse"
