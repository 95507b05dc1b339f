"""
Tests for the query translator.

Covers filter operator rewriting, reserved keys, sort and projection
defaults, pagination fallbacks and the handle protocol.
"""

import pytest
from pydantic import ValidationError

from query_api.core.models import QueryFeaturesConfig, QuerySpec
from query_api.query.features import APIFeatures

RESERVED = ("page", "sort", "limit", "fields")


class RecordingHandle:
    """Query handle that records every call it receives."""

    def __init__(self):
        self.calls = []

    def apply_filter(self, predicate):
        self.calls.append(("filter", predicate))
        return self

    def apply_sort(self, spec):
        self.calls.append(("sort", spec))
        return self

    def apply_projection(self, spec):
        self.calls.append(("projection", spec))
        return self

    def apply_window(self, skip, limit):
        self.calls.append(("window", skip, limit))
        return self


def build(params, handle=None, config=None):
    return APIFeatures(handle, params, config).filter().sort().limit_fields().paginate()


@pytest.mark.parametrize(
    "params",
    [
        {},
        {"page": "3"},
        {"sort": "price", "fields": "name", "limit": "5", "page": "1"},
        {"role": "admin", "page": "2", "sort": "-name"},
        {"price": {"gte": "10"}, "limit": "x", "fields": "a,b"},
    ],
)
def test_reserved_keys_never_reach_the_filter(params):
    """page, sort, limit and fields are control keys, not predicates."""
    spec = build(params).spec

    assert not set(RESERVED) & set(spec.filter)


def test_operator_words_are_prefixed():
    params = {
        "price": {"gte": "100", "lt": "500"},
        "rating": {"gt": "4"},
        "duration": {"lte": "10"},
    }

    spec = APIFeatures(None, params).filter().spec

    assert spec.filter == {
        "price": {"$gte": "100", "$lt": "500"},
        "rating": {"$gt": "4"},
        "duration": {"$lte": "10"},
    }


def test_operator_rewrite_respects_word_boundaries():
    """Longer words that merely contain an operator are left alone."""
    params = {"color": "light", "model": "gtx", "difficulty": "multiple"}

    spec = APIFeatures(None, params).filter().spec

    assert spec.filter == params


def test_value_equal_to_operator_word_is_rewritten_too():
    """Keys and values are not distinguished; a bare ``gt`` value changes."""
    spec = APIFeatures(None, {"status": "gt"}).filter().spec

    assert spec.filter == {"status": "$gt"}


def test_operator_rewrite_sees_non_ascii_neighbours():
    """Punctuation outside ASCII still marks a word boundary."""
    spec = APIFeatures(None, {"tag": "«lt»"}).filter().spec

    assert spec.filter == {"tag": "«$lt»"}


def test_escaped_markup_exposes_operator_word():
    """An escaped ``<`` reads as the word ``lt`` and is rewritten with it."""
    spec = APIFeatures(None, {"name": "&lt;b>x"}).filter().spec

    assert spec.filter == {"name": "&$lt;b>x"}


def test_empty_filter_matches_everything():
    spec = APIFeatures(None, {"page": "2", "sort": "name"}).filter().spec

    assert spec.filter == {}


def test_filter_does_not_mutate_input():
    params = {"price": {"gte": "5"}, "page": "2"}

    APIFeatures(None, params).filter()

    assert params == {"price": {"gte": "5"}, "page": "2"}


def test_sort_turns_commas_into_spaces():
    spec = APIFeatures(None, {"sort": "price,-createdAt"}).sort().spec

    assert spec.sort == "price -createdAt"
    assert spec.sort_keys() == [("price", 1), ("createdAt", -1)]


def test_default_sort_is_newest_first_with_id_tie_break():
    spec = APIFeatures(None, {}).sort().spec

    assert spec.sort_keys() == [("createdAt", -1), ("_id", 1)]


def test_sort_accepts_repeated_values():
    spec = APIFeatures(None, {"sort": ["price", "-name"]}).sort().spec

    assert spec.sort == "price -name"


def test_fields_become_inclusion_projection():
    spec = APIFeatures(None, {"fields": "name,price"}).limit_fields().spec

    assert spec.projection == "name price"
    assert spec.projection_doc() == {"name": 1, "price": 1}


def test_default_projection_hides_version_field():
    spec = APIFeatures(None, {}).limit_fields().spec

    assert spec.projection == "-__v"
    assert spec.projection_doc() == {"__v": 0}


@pytest.mark.parametrize(
    "params, skip, limit",
    [
        ({"page": "2", "limit": "10"}, 10, 10),
        ({}, 0, 100),
        ({"page": "abc"}, 0, 100),
        ({"page": "3", "limit": "abc"}, 200, 100),
        ({"page": "0", "limit": "0"}, 0, 100),
        ({"page": "-2", "limit": "20"}, 0, 20),
        ({"page": "1000", "limit": "50"}, 49950, 50),
        ({"page": "100000000000000000", "limit": "1000"}, 0, 1000),
        ({"limit": "99999999999999999999"}, 0, 100),
        ({"page": "1_000", "limit": "10"}, 0, 10),
        ({"page": "2", "limit": "١٢"}, 100, 100),
        ({"page": "2.5"}, 0, 100),
    ],
)
def test_paginate_window(params, skip, limit):
    spec = APIFeatures(None, params).paginate().spec

    assert (spec.skip, spec.limit) == (skip, limit)


def test_config_overrides_defaults():
    config = QueryFeaturesConfig(default_limit=25, default_sort="name", excluded_field="_internal")

    spec = build({}, config=config).spec

    assert spec.sort == "name"
    assert spec.projection == "-_internal"
    assert spec.limit == 25


def test_full_scenario_against_handle():
    params = {
        "price": {"gte": "100"},
        "sort": "price",
        "page": "2",
        "limit": "5",
        "fields": "name,price",
    }
    handle = RecordingHandle()

    features = build(params, handle=handle)

    assert features.query is handle
    assert handle.calls == [
        ("filter", {"price": {"$gte": "100"}}),
        ("sort", "price"),
        ("projection", "name price"),
        ("window", 5, 5),
    ]
    assert features.spec == QuerySpec(
        filter={"price": {"$gte": "100"}},
        sort="price",
        projection="name price",
        skip=5,
        limit=5,
    )


def test_spec_replays_onto_a_handle():
    spec = build({"role": "admin", "page": "3", "limit": "4"}).spec
    handle = RecordingHandle()

    spec.apply_to(handle)

    assert handle.calls == [
        ("filter", {"role": "admin"}),
        ("sort", "-createdAt _id"),
        ("projection", "-__v"),
        ("window", 8, 4),
    ]


def test_spec_is_immutable():
    spec = build({}).spec

    with pytest.raises(ValidationError):
        spec.skip = 10
