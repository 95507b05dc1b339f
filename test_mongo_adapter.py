"""
Tests for the MongoDB adapter, using in-memory stand-ins for pymongo
collections and cursors.
"""

import pytest
from bson import ObjectId

from query_api.adapters.mongodb import MongoQueryHandle, MongoUserStore
from query_api.core.models import QuerySpec
from query_api.errors import AppError
from query_api.query.features import APIFeatures


class FakeCursor:
    def __init__(self, documents):
        self.documents = documents
        self.calls = []

    def sort(self, keys):
        self.calls.append(("sort", keys))
        return self

    def skip(self, count):
        self.calls.append(("skip", count))
        return self

    def limit(self, count):
        self.calls.append(("limit", count))
        return self

    def __iter__(self):
        return iter(self.documents)


class FakeCollection:
    def __init__(self, documents=None):
        self.documents = documents or []
        self.find_args = None
        self.cursor = None

    def find(self, filter=None, projection=None):
        self.find_args = (filter, projection)
        self.cursor = FakeCursor([dict(doc) for doc in self.documents])
        return self.cursor

    def find_one(self, filter=None, projection=None):
        self.find_args = (filter, projection)
        for doc in self.documents:
            if doc["_id"] == filter["_id"]:
                return dict(doc)
        return None


def test_handle_builds_single_find_call():
    collection = FakeCollection()
    handle = MongoQueryHandle(collection)

    APIFeatures(
        handle,
        {"price": {"gte": "100"}, "sort": "price,-createdAt", "fields": "name,price", "page": "3", "limit": "10"},
    ).filter().sort().limit_fields().paginate()
    handle.cursor()

    assert collection.find_args == ({"price": {"$gte": "100"}}, {"name": 1, "price": 1})
    assert collection.cursor.calls == [
        ("sort", [("price", 1), ("createdAt", -1)]),
        ("skip", 20),
        ("limit", 10),
    ]


def test_first_page_skips_nothing():
    collection = FakeCollection()

    QuerySpec(skip=0, limit=100).apply_to(MongoQueryHandle(collection)).cursor()

    assert collection.cursor.calls == [("limit", 100)]


def test_repeated_filters_are_combined():
    handle = MongoQueryHandle(FakeCollection())

    handle.apply_filter({"role": "admin"}).apply_filter({"active": "true"})

    assert handle.filter == {"$and": [{"role": "admin"}, {"active": "true"}]}


def test_empty_filter_is_ignored():
    handle = MongoQueryHandle(FakeCollection())

    handle.apply_filter({}).apply_filter({"role": "admin"}).apply_filter({})

    assert handle.filter == {"role": "admin"}


def test_execute_stringifies_object_ids():
    oid = ObjectId()
    handle = MongoQueryHandle(FakeCollection([{"_id": oid, "name": "Ada"}]))

    assert handle.execute() == [{"_id": str(oid), "name": "Ada"}]


@pytest.fixture
def store():
    user_store = MongoUserStore("mongodb://localhost:27017", "test", "users")
    yield user_store
    user_store.close()


def test_store_find_executes_spec(store):
    oid = ObjectId()
    store.collection = FakeCollection([{"_id": oid, "name": "Ada"}])

    users = store.find(QuerySpec(filter={"name": "Ada"}, sort="-createdAt _id", skip=0, limit=5))

    assert users == [{"_id": str(oid), "name": "Ada"}]
    assert store.collection.find_args == ({"name": "Ada"}, None)


def test_store_get_by_id(store):
    oid = ObjectId()
    store.collection = FakeCollection([{"_id": oid, "name": "Ada"}])

    assert store.get(str(oid)) == {"_id": str(oid), "name": "Ada"}
    assert store.collection.find_args[1] == {"__v": 0}
    assert store.get(str(ObjectId())) is None


def test_store_get_rejects_malformed_id(store):
    with pytest.raises(AppError) as excinfo:
        store.get("not-an-id")

    assert excinfo.value.status_code == 400
    assert excinfo.value.status == "fail"
