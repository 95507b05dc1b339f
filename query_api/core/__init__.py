"""Core interfaces and models for the query API."""

from query_api.core.interfaces import (
    IQueryHandle,
    IUserStore,
)
from query_api.core.models import (
    QueryFeaturesConfig,
    QuerySpec,
    QueryResult,
    parse_projection_spec,
    parse_sort_spec,
)

__all__ = [
    "IQueryHandle",
    "IUserStore",
    "QueryFeaturesConfig",
    "QuerySpec",
    "QueryResult",
    "parse_projection_spec",
    "parse_sort_spec",
]
