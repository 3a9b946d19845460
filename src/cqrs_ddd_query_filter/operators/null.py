"""Null and boolean checks. These operators take no arguments."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, cast

from ..datatypes import DataType
from .strategy import FilterOperator
from .symbols import FilterSymbol

if TYPE_CHECKING:
    from sqlalchemy.sql.elements import ColumnElement


class IsNullOperator(FilterOperator):
    aliases = ("is_null", "isnull")
    required_arguments = 0

    @property
    def symbol(self) -> FilterSymbol:
        return FilterSymbol.IS_NULL

    def supports(self, data_type: DataType) -> bool:
        return True

    def apply(
        self, column: Any, values: list[Any], data_type: DataType
    ) -> ColumnElement[bool]:
        return cast("ColumnElement[bool]", column.is_(None))


class IsNotNullOperator(FilterOperator):
    aliases = ("is_not_null", "notnull")
    required_arguments = 0

    @property
    def symbol(self) -> FilterSymbol:
        return FilterSymbol.NOT_NULL

    def supports(self, data_type: DataType) -> bool:
        return True

    def apply(
        self, column: Any, values: list[Any], data_type: DataType
    ) -> ColumnElement[bool]:
        return cast("ColumnElement[bool]", column.is_not(None))


class IsTrueOperator(FilterOperator):
    required_arguments = 0

    @property
    def symbol(self) -> FilterSymbol:
        return FilterSymbol.IS_TRUE

    def supports(self, data_type: DataType) -> bool:
        return data_type is DataType.BOOL

    def apply(
        self, column: Any, values: list[Any], data_type: DataType
    ) -> ColumnElement[bool]:
        return cast("ColumnElement[bool]", column.is_(True))


class IsFalseOperator(FilterOperator):
    required_arguments = 0

    @property
    def symbol(self) -> FilterSymbol:
        return FilterSymbol.IS_FALSE

    def supports(self, data_type: DataType) -> bool:
        return data_type is DataType.BOOL

    def apply(
        self, column: Any, values: list[Any], data_type: DataType
    ) -> ColumnElement[bool]:
        return cast("ColumnElement[bool]", column.is_(False))
