"""Set operators: in, not in, between."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, cast

from .strategy import FilterOperator
from .symbols import FilterSymbol

if TYPE_CHECKING:
    from sqlalchemy.sql.elements import ColumnElement

    from ..datatypes import DataType


class InOperator(FilterOperator):
    aliases = ("in",)

    @property
    def symbol(self) -> FilterSymbol:
        return FilterSymbol.IN

    def apply(
        self, column: Any, values: list[Any], data_type: DataType
    ) -> ColumnElement[bool]:
        return cast("ColumnElement[bool]", column.in_(values))


class NotInOperator(FilterOperator):
    aliases = ("not_in", "notin")

    @property
    def symbol(self) -> FilterSymbol:
        return FilterSymbol.NOT_IN

    def apply(
        self, column: Any, values: list[Any], data_type: DataType
    ) -> ColumnElement[bool]:
        return cast("ColumnElement[bool]", column.not_in(values))


class BetweenOperator(FilterOperator):
    aliases = ("between",)
    required_arguments = 2

    @property
    def symbol(self) -> FilterSymbol:
        return FilterSymbol.BETWEEN

    def supports(self, data_type: DataType) -> bool:
        return not data_type.is_array and (data_type.is_numeric or data_type.is_time)

    def apply(
        self, column: Any, values: list[Any], data_type: DataType
    ) -> ColumnElement[bool]:
        return cast("ColumnElement[bool]", column.between(values[0], values[1]))
