"""
Query translator.

Turns the parameters of a list request into filter, sort, projection and
pagination settings for a collection query.
"""

import json
import re
from typing import Any, Mapping, Optional

from query_api.core.interfaces import IQueryHandle
from query_api.core.models import QueryFeaturesConfig, QuerySpec

# Whole words only: "light" or "gtx" are left alone
OPERATOR_PATTERN = re.compile(r"\b(gte|gt|lte|lt)\b")

DIGITS_PATTERN = re.compile(r"[0-9]+")

# Largest value MongoDB can encode for skip and limit
MAX_INT64 = 2**63 - 1


def _as_csv(value: Any) -> str:
    """Flatten a parameter that may have arrived as a list."""
    if isinstance(value, (list, tuple)):
        return ",".join(str(item) for item in value)
    return str(value)


def _positive_int(value: Any, default: int) -> int:
    """
    Cast a page/limit parameter, falling back to ``default`` instead of raising.

    Only plain ASCII digit strings count as numbers; zero, negative values
    and anything past the 64-bit range MongoDB accepts use the default.
    """
    if isinstance(value, str) and DIGITS_PATTERN.fullmatch(value.strip()):
        number = int(value)
    elif isinstance(value, int) and not isinstance(value, bool):
        number = value
    else:
        return default
    return number if 0 < number <= MAX_INT64 else default


class APIFeatures:
    """
    Builds a collection query from request query parameters.

    Each step records its result on an immutable ``QuerySpec`` (``self.spec``).
    When a query handle is supplied, the step is also applied to the handle
    so callers using a builder-style driver can execute ``self.query``.

    Steps touch disjoint parts of the query (predicate, ordering,
    projection, window). Running the same step twice is not supported.

    Example:
        features = APIFeatures(None, {"price": {"gte": "100"}, "page": "2"})
        spec = features.filter().sort().limit_fields().paginate().spec
    """

    def __init__(
        self,
        query: Optional[IQueryHandle],
        query_params: Mapping[str, Any],
        config: Optional[QueryFeaturesConfig] = None,
    ):
        """
        Initialize the translator.

        Args:
            query: Unexecuted query handle, or None to only build a QuerySpec
            query_params: Parsed query string; never modified
            config: Defaults for sorting, projection and page size
        """
        self.query = query
        self.query_params = query_params
        self.config = config or QueryFeaturesConfig()
        self.spec = QuerySpec()

    def filter(self) -> "APIFeatures":
        """Apply every non-reserved parameter as a filter predicate."""
        query_obj = dict(self.query_params)
        for key in self.config.reserved_keys:
            query_obj.pop(key, None)

        query_str = json.dumps(query_obj, ensure_ascii=False)
        query_str = OPERATOR_PATTERN.sub(lambda match: f"${match.group(1)}", query_str)
        predicate = json.loads(query_str)

        self.spec = self.spec.model_copy(update={"filter": predicate})
        if self.query is not None:
            self.query = self.query.apply_filter(predicate)
        return self

    def sort(self) -> "APIFeatures":
        """Apply ``sort=a,-b`` or the configured default ordering."""
        raw = self.query_params.get("sort")
        if raw:
            sort_by = _as_csv(raw).replace(",", " ")
        else:
            sort_by = self.config.default_sort

        self.spec = self.spec.model_copy(update={"sort": sort_by})
        if self.query is not None:
            self.query = self.query.apply_sort(sort_by)
        return self

    def limit_fields(self) -> "APIFeatures":
        """Apply ``fields=a,b`` or hide the internal version field."""
        raw = self.query_params.get("fields")
        if raw:
            fields = _as_csv(raw).replace(",", " ")
        else:
            fields = f"-{self.config.excluded_field}"

        self.spec = self.spec.model_copy(update={"projection": fields})
        if self.query is not None:
            self.query = self.query.apply_projection(fields)
        return self

    def paginate(self) -> "APIFeatures":
        """
        Apply ``page``/``limit`` as a skip/limit window.

        Missing, non-numeric or out-of-range values fall back to the configured
        defaults, as does a page whose offset would overflow a 64-bit skip.
        A page past the end of the collection is not checked and simply
        yields no documents.
        """
        page = _positive_int(self.query_params.get("page"), self.config.default_page)
        limit = _positive_int(self.query_params.get("limit"), self.config.default_limit)
        skip = (page - 1) * limit
        if skip > MAX_INT64:
            skip = (self.config.default_page - 1) * limit

        self.spec = self.spec.model_copy(update={"skip": skip, "limit": limit})
        if self.query is not None:
            self.query = self.query.apply_window(skip, limit)
        return self
