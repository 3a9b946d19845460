"""
Schema-aware query filtering and pagination for SQLAlchemy models.

Turns untrusted, string-encoded query parameters into parameterized
``Select`` statements (filters, search, joins, projection, sorting) and
pagination metadata::

    from cqrs_ddd_query_filter import FilterSettings, paginate

    page = await paginate(session, Task, request.query_params, settings)
    return page.to_dict()
"""

from __future__ import annotations

from .blacklist import Blacklist
from .builder import QueryBuilder
from .clauses import (
    Clause,
    JoinClause,
    PaginationRequest,
    SearchClause,
    SortClause,
    SortOrder,
)
from .datatypes import DataType, coerce, coerce_all
from .exceptions import (
    ComputedColumnError,
    ConfigurationError,
    MissingPrimaryKeyError,
    QueryFilterError,
    SchemaIntrospectionError,
)
from .operators import (
    DEFAULT_REGISTRY,
    FilterOperator,
    FilterSymbol,
    OperatorRegistry,
    build_default_registry,
)
from .pagination import (
    FilterEcho,
    Page,
    PaginationCoordinator,
    PaginationResult,
    paginate,
    total_pages,
)
from .parser import QueryParamsParser, parse_params
from .plan import JoinSpec, QueryPlan
from .resolver import ResolvedField, resolve_field
from .schema import (
    CURRENT_TABLE,
    ComputedColumn,
    FieldDescriptor,
    RelationDescriptor,
    RelationKind,
    SchemaDescriptor,
    get_schema,
    register,
)
from .settings import DEFAULT_SETTINGS, FilterSettings

__all__ = [
    "CURRENT_TABLE",
    "Blacklist",
    "Clause",
    "ComputedColumn",
    "ComputedColumnError",
    "ConfigurationError",
    "DataType",
    "DEFAULT_REGISTRY",
    "DEFAULT_SETTINGS",
    "FieldDescriptor",
    "FilterEcho",
    "FilterOperator",
    "FilterSettings",
    "FilterSymbol",
    "JoinClause",
    "JoinSpec",
    "MissingPrimaryKeyError",
    "OperatorRegistry",
    "Page",
    "PaginationCoordinator",
    "PaginationRequest",
    "PaginationResult",
    "QueryBuilder",
    "QueryFilterError",
    "QueryParamsParser",
    "QueryPlan",
    "RelationDescriptor",
    "RelationKind",
    "ResolvedField",
    "SchemaDescriptor",
    "SchemaIntrospectionError",
    "SearchClause",
    "SortClause",
    "SortOrder",
    "build_default_registry",
    "coerce",
    "coerce_all",
    "get_schema",
    "paginate",
    "parse_params",
    "register",
    "resolve_field",
    "total_pages",
]
