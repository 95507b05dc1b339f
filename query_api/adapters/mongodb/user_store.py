"""
MongoDB users store.

Executes QuerySpec values built by the query translator against the
users collection.
"""

import logging
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.database import Database

from query_api.adapters.mongodb.query_handle import MongoQueryHandle, stringify_ids
from query_api.core.models import QuerySpec
from query_api.errors import AppError

logger = logging.getLogger(__name__)


class MongoUserStore:
    """
    Reads users from MongoDB.

    Implements the IUserStore interface.
    """

    def __init__(
        self,
        mongo_uri: str,
        database_name: str,
        collection_name: str,
        excluded_field: str = "__v",
    ):
        """
        Initialize the store.

        Args:
            mongo_uri: MongoDB connection URI
            database_name: Name of the database
            collection_name: Name of the users collection
            excluded_field: Field hidden from single-document reads
        """
        self.mongo_uri = mongo_uri
        self.database_name = database_name
        self.collection_name = collection_name
        self.excluded_field = excluded_field

        # MongoClient connects lazily, so constructing the store does no I/O
        self.client: MongoClient = MongoClient(mongo_uri)
        self.db: Database = self.client[database_name]
        self.collection: Collection = self.db[collection_name]

    def find(self, spec: QuerySpec) -> List[Dict[str, Any]]:
        handle = spec.apply_to(MongoQueryHandle(self.collection))
        logger.debug(
            "find %s filter=%s sort=%s projection=%s skip=%s limit=%s",
            self.collection_name,
            handle.filter,
            handle.sort,
            handle.projection,
            handle.skip,
            handle.limit,
        )
        return handle.execute()

    def get(self, user_id: str) -> Optional[Dict[str, Any]]:
        try:
            object_id = ObjectId(user_id)
        except (InvalidId, TypeError):
            raise AppError(f"Invalid _id: {user_id}.", 400) from None

        document = self.collection.find_one({"_id": object_id}, {self.excluded_field: 0})
        if document is None:
            return None
        return stringify_ids([document])[0]

    def close(self) -> None:
        self.client.close()
