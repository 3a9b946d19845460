"""
Substring, prefix and suffix operators.

Text and enum fields are matched as strings; enum columns are cast to
text first, and a partial label is a valid argument. ``$cont`` /
``$excl`` also apply to array columns, where they test that the column
holds every given element (PostgreSQL ``@>``).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import Boolean, String, not_
from sqlalchemy.dialects import postgresql

from ..datatypes import DataType
from .strategy import FilterOperator
from .symbols import FilterSymbol

if TYPE_CHECKING:
    from sqlalchemy.sql.elements import ColumnElement


def _array_contains(column: Any, values: list[Any]) -> ColumnElement[bool]:
    return cast(
        "ColumnElement[bool]",
        column.op("@>", return_type=Boolean)(postgresql.array(values)),
    )


def _as_text(column: Any, data_type: DataType) -> Any:
    if data_type is DataType.ENUM:
        return column.cast(String)
    return column


class _SubstringOperator(FilterOperator):
    def supports(self, data_type: DataType) -> bool:
        return data_type.is_text_like and not data_type.is_array

    def checks_choices(self, data_type: DataType) -> bool:
        return False


class ContainsOperator(_SubstringOperator):
    aliases = ("contains", "cont")

    @property
    def symbol(self) -> FilterSymbol:
        return FilterSymbol.CONTAINS

    def supports(self, data_type: DataType) -> bool:
        return data_type.is_text_like or data_type.is_array

    def checks_choices(self, data_type: DataType) -> bool:
        # Array containment compares whole elements.
        return data_type.is_array

    def apply(
        self, column: Any, values: list[Any], data_type: DataType
    ) -> ColumnElement[bool]:
        if data_type.is_array:
            return _array_contains(column, values)
        return cast(
            "ColumnElement[bool]",
            _as_text(column, data_type).contains(values[0], autoescape=True),
        )


class ExcludesOperator(_SubstringOperator):
    aliases = ("excludes", "excl")

    @property
    def symbol(self) -> FilterSymbol:
        return FilterSymbol.EXCLUDES

    def supports(self, data_type: DataType) -> bool:
        return data_type.is_text_like or data_type.is_array

    def checks_choices(self, data_type: DataType) -> bool:
        return data_type.is_array

    def apply(
        self, column: Any, values: list[Any], data_type: DataType
    ) -> ColumnElement[bool]:
        if data_type.is_array:
            return not_(_array_contains(column, values))
        return not_(_as_text(column, data_type).contains(values[0], autoescape=True))


class StartsWithOperator(_SubstringOperator):
    aliases = ("startswith", "starts")

    @property
    def symbol(self) -> FilterSymbol:
        return FilterSymbol.STARTS

    def apply(
        self, column: Any, values: list[Any], data_type: DataType
    ) -> ColumnElement[bool]:
        return cast(
            "ColumnElement[bool]",
            _as_text(column, data_type).startswith(values[0], autoescape=True),
        )


class EndsWithOperator(_SubstringOperator):
    aliases = ("endswith", "ends")

    @property
    def symbol(self) -> FilterSymbol:
        return FilterSymbol.ENDS

    def apply(
        self, column: Any, values: list[Any], data_type: DataType
    ) -> ColumnElement[bool]:
        return cast(
            "ColumnElement[bool]",
            _as_text(column, data_type).endswith(values[0], autoescape=True),
        )
