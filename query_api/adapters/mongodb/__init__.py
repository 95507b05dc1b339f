"""MongoDB adapter for the query API."""

from query_api.adapters.mongodb.query_handle import MongoQueryHandle
from query_api.adapters.mongodb.user_store import MongoUserStore

__all__ = ["MongoQueryHandle", "MongoUserStore"]
