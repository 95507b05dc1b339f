"""
Shared data models for the query API.
"""

from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


def parse_sort_spec(spec: Optional[str]) -> List[Tuple[str, int]]:
    """
    Convert a space-separated sort string to pymongo sort keys.

    ``"price -createdAt"`` becomes ``[("price", 1), ("createdAt", -1)]``.
    """
    keys: List[Tuple[str, int]] = []
    for token in (spec or "").split():
        if token.startswith("-"):
            name, direction = token[1:], -1
        else:
            name, direction = token.lstrip("+"), 1
        if name:
            keys.append((name, direction))
    return keys


def parse_projection_spec(spec: Optional[str]) -> Optional[Dict[str, int]]:
    """
    Convert a space-separated field selection to a pymongo projection.

    ``"name price"`` becomes ``{"name": 1, "price": 1}`` and ``"-__v"``
    becomes ``{"__v": 0}``. An empty selection returns None (all fields).
    """
    projection: Dict[str, int] = {}
    for token in (spec or "").split():
        if token.startswith("-"):
            name, flag = token[1:], 0
        else:
            name, flag = token.lstrip("+"), 1
        if name:
            projection[name] = flag
    return projection or None


class QueryFeaturesConfig(BaseModel):
    """Deployment defaults used by the query translator."""

    model_config = ConfigDict(frozen=True)

    reserved_keys: Tuple[str, ...] = ("page", "sort", "limit", "fields")
    default_page: int = 1
    default_limit: int = 100
    # Trailing _id keeps ordering deterministic across pages when createdAt ties
    default_sort: str = "-createdAt _id"
    excluded_field: str = "__v"


class QuerySpec(BaseModel):
    """
    Immutable description of a collection query.

    Built by the query translator and handed to the persistence layer as
    plain data. ``sort`` and ``projection`` keep the space-separated form
    (``"price -createdAt"``); use ``sort_keys()`` and ``projection_doc()``
    for the pymongo shapes.
    """

    model_config = ConfigDict(frozen=True)

    filter: Dict[str, Any] = Field(default_factory=dict)
    sort: Optional[str] = None
    projection: Optional[str] = None
    skip: int = 0
    limit: Optional[int] = None

    def sort_keys(self) -> List[Tuple[str, int]]:
        return parse_sort_spec(self.sort)

    def projection_doc(self) -> Optional[Dict[str, int]]:
        return parse_projection_spec(self.projection)

    def apply_to(self, handle: Any) -> Any:
        """
        Replay this query onto a handle.

        Args:
            handle: Object implementing the IQueryHandle protocol

        Returns:
            The configured handle
        """
        handle = handle.apply_filter(dict(self.filter))
        if self.sort:
            handle = handle.apply_sort(self.sort)
        if self.projection:
            handle = handle.apply_projection(self.projection)
        if self.limit is not None:
            handle = handle.apply_window(self.skip, self.limit)
        return handle


class QueryResult(BaseModel):
    """Envelope returned by list endpoints."""

    status: str = "success"
    requested_at: Optional[str] = Field(default=None, alias="requestedAt")
    results: int = 0
    data: Dict[str, List[Dict[str, Any]]] = Field(default_factory=dict)

    model_config = ConfigDict(populate_by_name=True)
