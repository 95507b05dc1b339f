"""
Abstract interfaces for persistence adapters.

These protocols define the contract between the query translator, the
routers and whatever data store sits behind them.
"""

from typing import Any, Dict, List, Optional, Protocol

from query_api.core.models import QuerySpec


class IQueryHandle(Protocol):
    """
    Mutable, not-yet-executed collection query.

    The query translator only ever calls these four methods. Each one
    configures a disjoint aspect of the query and returns the handle so
    calls can be chained.
    """

    def apply_filter(self, predicate: Dict[str, Any]) -> "IQueryHandle":
        """
        Restrict the query to documents matching a predicate.

        Args:
            predicate: Store-level filter document (e.g. ``{"price": {"$gte": "100"}}``)

        Returns:
            The same handle
        """
        ...

    def apply_sort(self, spec: str) -> "IQueryHandle":
        """
        Order results by a space-separated field list (``-`` prefix = descending).
        """
        ...

    def apply_projection(self, spec: str) -> "IQueryHandle":
        """
        Include (``name price``) or exclude (``-__v``) fields from results.
        """
        ...

    def apply_window(self, skip: int, limit: int) -> "IQueryHandle":
        """
        Skip the first ``skip`` documents and return at most ``limit``.
        """
        ...


class IUserStore(Protocol):
    """
    Read access to the users collection.

    Routers depend on this protocol so the store can be swapped out
    (MongoDB in production, an in-memory fake in tests).
    """

    def find(self, spec: QuerySpec) -> List[Dict[str, Any]]:
        """
        Execute a QuerySpec.

        Args:
            spec: Filter, sort, projection and window to apply

        Returns:
            List of documents with JSON-serializable identifiers
        """
        ...

    def get(self, user_id: str) -> Optional[Dict[str, Any]]:
        """
        Fetch a single document by identifier.

        Returns:
            The document, or None when no document has that identifier
        """
        ...
