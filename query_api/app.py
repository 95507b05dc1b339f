"""
FastAPI application factory.

Wires the security middleware chain, mounts the users router under
``/api/v1/users`` and routes every failure through the global error
handler.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from query_api.adapters.mongodb import MongoUserStore
from query_api.config import Settings, get_settings
from query_api.core.interfaces import IUserStore
from query_api.errors import register_error_handlers
from query_api.logging_config import configure_logging
from query_api.middleware import (
    BodyLimitMiddleware,
    RateLimitMiddleware,
    SanitizeMiddleware,
    SecurityHeadersMiddleware,
    install_access_log,
    install_request_time,
)
from query_api.routers import users

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    user_store: Optional[IUserStore] = None,
) -> FastAPI:
    """
    Create and configure the application.

    Args:
        settings: Settings to use; read from the environment when omitted
        user_store: Users store; a MongoUserStore is opened at startup when omitted

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned_store = None
        if getattr(app.state, "user_store", None) is None:
            owned_store = MongoUserStore(
                mongo_uri=settings.mongo_uri,
                database_name=settings.mongo_database,
                collection_name=settings.mongo_collection,
                excluded_field=settings.excluded_field,
            )
            app.state.user_store = owned_store
        logger.info(
            "Starting query API (env=%s, database=%s)",
            settings.app_env,
            settings.mongo_database,
        )
        yield
        if owned_store is not None:
            owned_store.close()
        logger.info("Query API stopped")

    app = FastAPI(
        title="Query API",
        description="MongoDB-backed REST API with filtering, sorting, field selection and pagination",
        version="1.0.0",
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.user_store = user_store

    # Registered innermost first: each add wraps everything added before it
    install_request_time(app)
    app.add_middleware(SanitizeMiddleware, whitelist=settings.hpp_whitelist)
    app.add_middleware(BodyLimitMiddleware, max_bytes=settings.body_limit, settings=settings)
    app.add_middleware(RateLimitMiddleware, settings=settings)
    if settings.is_development:
        install_access_log(app)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app, settings)

    @app.get("/health", tags=["system"])
    def health() -> dict:
        return {"status": "ok", "env": settings.app_env}

    app.include_router(users.router, prefix=f"{settings.api_prefix}/v1/users")

    return app
