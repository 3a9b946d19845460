"""Equality and ordering operators."""

from __future__ import annotations

import operator as op_module
from typing import TYPE_CHECKING, Any, cast

from .strategy import FilterOperator
from .symbols import FilterSymbol

if TYPE_CHECKING:
    from sqlalchemy.sql.elements import ColumnElement

    from ..datatypes import DataType


class EqualOperator(FilterOperator):
    aliases = ("=", "eq")

    @property
    def symbol(self) -> FilterSymbol:
        return FilterSymbol.EQ

    def apply(
        self, column: Any, values: list[Any], data_type: DataType
    ) -> ColumnElement[bool]:
        return cast("ColumnElement[bool]", op_module.eq(column, values[0]))


class NotEqualOperator(FilterOperator):
    aliases = ("!=", "<>", "ne")

    @property
    def symbol(self) -> FilterSymbol:
        return FilterSymbol.NE

    def apply(
        self, column: Any, values: list[Any], data_type: DataType
    ) -> ColumnElement[bool]:
        return cast("ColumnElement[bool]", op_module.ne(column, values[0]))


class _OrderingOperator(FilterOperator):
    """Comparisons restricted to scalar text, numbers and time."""

    def supports(self, data_type: DataType) -> bool:
        return data_type.is_orderable


class GreaterThanOperator(_OrderingOperator):
    aliases = (">", "gt")

    @property
    def symbol(self) -> FilterSymbol:
        return FilterSymbol.GT

    def apply(
        self, column: Any, values: list[Any], data_type: DataType
    ) -> ColumnElement[bool]:
        return cast("ColumnElement[bool]", op_module.gt(column, values[0]))


class GreaterEqualOperator(_OrderingOperator):
    aliases = (">=", "gte", "ge")

    @property
    def symbol(self) -> FilterSymbol:
        return FilterSymbol.GTE

    def apply(
        self, column: Any, values: list[Any], data_type: DataType
    ) -> ColumnElement[bool]:
        return cast("ColumnElement[bool]", op_module.ge(column, values[0]))


class LessThanOperator(_OrderingOperator):
    aliases = ("<", "lt")

    @property
    def symbol(self) -> FilterSymbol:
        return FilterSymbol.LT

    def apply(
        self, column: Any, values: list[Any], data_type: DataType
    ) -> ColumnElement[bool]:
        return cast("ColumnElement[bool]", op_module.lt(column, values[0]))


class LessEqualOperator(_OrderingOperator):
    aliases = ("<=", "lte", "le")

    @property
    def symbol(self) -> FilterSymbol:
        return FilterSymbol.LTE

    def apply(
        self, column: Any, values: list[Any], data_type: DataType
    ) -> ColumnElement[bool]:
        return cast("ColumnElement[bool]", op_module.le(column, values[0]))
