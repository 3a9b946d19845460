"""
Filter operator compilation strategy.

Provides the ``FilterOperator`` base class and a registry keyed by
operator symbol. An operator owns three decisions: which data types it
accepts, how many arguments it needs, and the SQLAlchemy predicate it
emits once the arguments have been coerced.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from ..datatypes import DataType, adapt_time, coerce_all

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from sqlalchemy import ColumnElement


class FilterOperator(ABC):
    """
    Strategy interface for compiling one filter operator into a
    SQLAlchemy ``ColumnElement[bool]``.
    """

    #: Alternate spellings accepted for :attr:`symbol`.
    aliases: tuple[str, ...] = ()

    #: Minimum number of arguments; extra arguments are coerced but unused
    #: by single-value operators.
    required_arguments: int = 1

    @property
    @abstractmethod
    def symbol(self) -> str:
        """The canonical symbol this strategy handles, e.g. ``$eq``."""
        ...

    def supports(self, data_type: DataType) -> bool:
        """Type gate; defaults to every supported scalar type."""
        return not data_type.is_array

    def checks_choices(self, data_type: DataType) -> bool:
        """Whether enum arguments must be complete, known labels."""
        return True

    @abstractmethod
    def apply(
        self,
        column: Any,
        values: list[Any],
        data_type: DataType,
    ) -> ColumnElement[bool]:
        """
        Build the predicate.

        Args:
            column: Column or computed expression to test.
            values: Coerced arguments (empty for zero-argument operators).
            data_type: The field's data type.
        """
        ...

    def build(
        self,
        args: Sequence[str],
        column: Any,
        data_type: DataType,
        choices: Iterable[str] | None = None,
    ) -> ColumnElement[bool] | None:
        """
        Coerce *args* and build the predicate.

        Returns ``None`` when the type is rejected, arguments are missing,
        or any argument fails coercion.
        """
        if data_type is DataType.UNSUPPORTED or not self.supports(data_type):
            return None
        if len(args) < self.required_arguments:
            return None
        if self.required_arguments == 0:
            return self.apply(column, [], data_type)
        if not self.checks_choices(data_type):
            choices = None
        values, ok = coerce_all(args, data_type, choices)
        if not ok:
            return None
        if data_type.is_time:
            column_type = getattr(column, "type", None)
            values = [adapt_time(v, column_type) for v in values]
        return self.apply(column, values, data_type)


class OperatorRegistry:
    """
    Registry of ``FilterOperator`` instances keyed by symbol and aliases.

    Unknown symbols resolve to the default operator.
    """

    def __init__(self, default_symbol: str = "$cont") -> None:
        self._operators: dict[str, FilterOperator] = {}
        self._default_symbol = default_symbol

    def register(self, operator: FilterOperator) -> None:
        self._operators[operator.symbol] = operator
        for alias in operator.aliases:
            self._operators[alias] = operator

    def register_all(self, *operators: FilterOperator) -> None:
        for op in operators:
            self.register(op)

    def unregister(self, symbol: str) -> None:
        operator = self._operators.get(symbol)
        if operator is None:
            return
        for key in [k for k, v in self._operators.items() if v is operator]:
            del self._operators[key]

    def get(self, symbol: str) -> FilterOperator | None:
        return self._operators.get(symbol)

    def has(self, symbol: str) -> bool:
        return symbol in self._operators

    @property
    def default(self) -> FilterOperator:
        operator = self._operators.get(self._default_symbol)
        if operator is None:
            raise ValueError(
                f"Default operator {self._default_symbol!r} is not registered"
            )
        return operator

    @property
    def supported_symbols(self) -> set[str]:
        return {op.symbol for op in self._operators.values()}

    def resolve(self, symbol: str | None) -> FilterOperator:
        """Look up *symbol*, falling back to the default operator."""
        if symbol:
            operator = self._operators.get(symbol)
            if operator is not None:
                return operator
        return self.default
