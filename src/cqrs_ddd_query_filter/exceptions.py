"""Query filter exceptions.

Client-side problems (unknown fields, bad values, unknown operators) are
never raised: the engine drops the offending clause instead. Everything
here signals a server-side model or configuration defect.
"""

from __future__ import annotations


class QueryFilterError(Exception):
    """Root exception for the query filter engine."""


class ConfigurationError(QueryFilterError):
    """Raised when the engine is wired to a model it cannot work with."""


class SchemaIntrospectionError(ConfigurationError):
    """Raised when a target entity is not an introspectable mapped class."""


class MissingPrimaryKeyError(ConfigurationError):
    """Raised when projection needs a primary key the entity does not have."""

    def __init__(self, table_name: str) -> None:
        self.table_name = table_name
        super().__init__(
            f"Could not find a primary key on {table_name!r}; "
            "one is required to project fields while joins are active"
        )


class ComputedColumnError(ConfigurationError):
    """Raised when a computed column expression fails validation."""


__all__: list[str] = [
    "ComputedColumnError",
    "ConfigurationError",
    "MissingPrimaryKeyError",
    "QueryFilterError",
    "SchemaIntrospectionError",
]
