"""Security and request-handling middleware."""

from query_api.middleware.rate_limit import RateLimitMiddleware
from query_api.middleware.request import install_access_log, install_request_time
from query_api.middleware.sanitize import (
    SanitizeMiddleware,
    clean_query,
    clean_xss,
    guard_pollution,
    sanitize_mongo,
)
from query_api.middleware.security import BodyLimitMiddleware, SecurityHeadersMiddleware

__all__ = [
    "BodyLimitMiddleware",
    "RateLimitMiddleware",
    "SanitizeMiddleware",
    "SecurityHeadersMiddleware",
    "clean_query",
    "clean_xss",
    "guard_pollution",
    "install_access_log",
    "install_request_time",
    "sanitize_mongo",
]
