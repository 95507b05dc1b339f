"""
Configuration for the query API.

Values come from environment variables (a ``.env`` file is loaded first
when present) layered over the defaults declared on ``Settings``.

Environment variables
=====================

- APP_ENV: ``development`` (default) or ``production``
- LOG_LEVEL: logging level name, default ``INFO``
- MONGO_URI / MONGO_DATABASE / MONGO_COLLECTION: users collection location
- CORS_ORIGINS: comma-separated allowed origins, ``*`` for any
- RATE_LIMIT: requests per client under ``/api``, e.g. ``1000/hour``
- BODY_LIMIT: maximum request body size, e.g. ``10kb``
- HPP_WHITELIST: comma-separated query keys allowed to repeat
- DEFAULT_PAGE_SIZE / DEFAULT_SORT / EXCLUDED_FIELD: list query defaults
- API_HOST / API_PORT: bind address for ``python api.py``
"""

import os
import re
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from query_api.core.models import QueryFeaturesConfig

_SIZE_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(b|kb|mb|gb)?\s*$", re.IGNORECASE)
_SIZE_UNITS = {"b": 1, "kb": 1024, "mb": 1024 ** 2, "gb": 1024 ** 3}


def parse_size(value: str) -> Optional[int]:
    """
    Convert a human size (``10kb``, ``1mb``, ``512``) to bytes.

    Returns None when the value cannot be parsed.
    """
    match = _SIZE_PATTERN.match(value or "")
    if not match:
        return None
    number, unit = match.groups()
    return int(float(number) * _SIZE_UNITS[(unit or "b").lower()])


def _split_csv(raw: Optional[str]) -> List[str]:
    return [part.strip() for part in (raw or "").split(",") if part.strip()]


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


class Settings(BaseModel):
    """Runtime settings for the HTTP layer and the query translator."""

    app_env: str = "development"
    log_level: str = "INFO"

    mongo_uri: str = "mongodb://localhost:27017"
    mongo_database: str = "app"
    mongo_collection: str = "users"

    api_prefix: str = "/api"
    cors_origins: List[str] = Field(default_factory=lambda: ["http://127.0.0.1:5500"])
    rate_limit: str = "1000/hour"
    rate_limit_message: str = "Too many requests from this IP, please try again in an hour!"
    body_limit: int = 10 * 1024
    hpp_whitelist: List[str] = Field(default_factory=list)

    default_page_size: int = 100
    default_sort: str = "-createdAt _id"
    excluded_field: str = "__v"

    api_host: str = "0.0.0.0"
    api_port: int = 8000

    @property
    def is_development(self) -> bool:
        return self.app_env.lower() == "development"

    @property
    def features_config(self) -> QueryFeaturesConfig:
        """Query translator defaults for this deployment."""
        return QueryFeaturesConfig(
            default_limit=self.default_page_size,
            default_sort=self.default_sort,
            excluded_field=self.excluded_field,
        )

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Build settings from environment variables.

        Invalid numeric or size values fall back to the defaults.
        """
        load_dotenv()
        defaults = cls()

        cors_origins = _split_csv(os.getenv("CORS_ORIGINS")) or defaults.cors_origins
        body_limit = parse_size(os.getenv("BODY_LIMIT", "")) or defaults.body_limit

        return cls(
            app_env=os.getenv("APP_ENV", defaults.app_env),
            log_level=os.getenv("LOG_LEVEL", defaults.log_level),
            mongo_uri=os.getenv("MONGO_URI", defaults.mongo_uri),
            mongo_database=os.getenv("MONGO_DATABASE", defaults.mongo_database),
            mongo_collection=os.getenv("MONGO_COLLECTION", defaults.mongo_collection),
            api_prefix=os.getenv("API_PREFIX", defaults.api_prefix),
            cors_origins=cors_origins,
            rate_limit=os.getenv("RATE_LIMIT", defaults.rate_limit),
            body_limit=body_limit,
            hpp_whitelist=_split_csv(os.getenv("HPP_WHITELIST")),
            default_page_size=_int_env("DEFAULT_PAGE_SIZE", defaults.default_page_size),
            default_sort=os.getenv("DEFAULT_SORT", defaults.default_sort),
            excluded_field=os.getenv("EXCLUDED_FIELD", defaults.excluded_field),
            api_host=os.getenv("API_HOST", defaults.api_host),
            api_port=_int_env("API_PORT", defaults.api_port),
        )


@lru_cache
def get_settings() -> Settings:
    """Process-wide settings, read from the environment once."""
    return Settings.from_env()
