"""
MongoDB query handle.

Accumulates filter, sort, projection and window settings and turns them
into a single pymongo ``find()`` cursor when executed.
"""

from typing import Any, Dict, List, Optional, Tuple

from pymongo.collection import Collection
from pymongo.cursor import Cursor

from query_api.core.models import parse_projection_spec, parse_sort_spec


def stringify_ids(documents: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Convert ObjectId ``_id`` values to strings for JSON serialization."""
    for doc in documents:
        if "_id" in doc:
            doc["_id"] = str(doc["_id"])
    return documents


class MongoQueryHandle:
    """
    Builder-style query over a pymongo collection.

    Implements the IQueryHandle interface for MongoDB. Nothing touches the
    database until ``cursor()`` or ``execute()`` is called.
    """

    def __init__(self, collection: Collection):
        """
        Initialize an unfiltered query.

        Args:
            collection: Collection to query
        """
        self.collection = collection
        self.filter: Dict[str, Any] = {}
        self.sort: List[Tuple[str, int]] = []
        self.projection: Optional[Dict[str, int]] = None
        self.skip = 0
        self.limit = 0

    def apply_filter(self, predicate: Dict[str, Any]) -> "MongoQueryHandle":
        # A second filter narrows the first one instead of replacing it
        if self.filter and predicate:
            self.filter = {"$and": [self.filter, predicate]}
        elif predicate:
            self.filter = dict(predicate)
        return self

    def apply_sort(self, spec: str) -> "MongoQueryHandle":
        self.sort = parse_sort_spec(spec)
        return self

    def apply_projection(self, spec: str) -> "MongoQueryHandle":
        self.projection = parse_projection_spec(spec)
        return self

    def apply_window(self, skip: int, limit: int) -> "MongoQueryHandle":
        self.skip = skip
        self.limit = limit
        return self

    def cursor(self) -> Cursor:
        """Build the pymongo cursor for the accumulated settings."""
        cursor = self.collection.find(self.filter, self.projection)
        if self.sort:
            cursor = cursor.sort(self.sort)
        if self.skip:
            cursor = cursor.skip(self.skip)
        if self.limit:
            cursor = cursor.limit(self.limit)
        return cursor

    def execute(self) -> List[Dict[str, Any]]:
        """
        Run the query.

        Returns:
            Matching documents with ``_id`` converted to strings
        """
        return stringify_ids(list(self.cursor()))
