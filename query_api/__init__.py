"""
Query API - MongoDB-backed REST API with URL query features.

Main entry point for creating the FastAPI application.
"""

from query_api.app import create_app
from query_api.query.features import APIFeatures

__all__ = ["APIFeatures", "create_app"]
