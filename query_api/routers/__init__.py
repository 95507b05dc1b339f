"""API routers."""

from query_api.routers import users

__all__ = ["users"]
