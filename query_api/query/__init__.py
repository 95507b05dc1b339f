"""Query string parsing and query translation components."""

from query_api.query.features import APIFeatures
from query_api.query.query_string import parse_query_string

__all__ = ["APIFeatures", "parse_query_string"]
