"""
Per-request bookkeeping: request timestamp and development access log.
"""

import logging
import time
from datetime import datetime, timezone

from fastapi import FastAPI, Request

logger = logging.getLogger("query_api.access")


def install_request_time(app: FastAPI) -> None:
    """Stamp each request with an ISO-8601 UTC ``request.state.request_time``."""

    @app.middleware("http")
    async def attach_request_time(request: Request, call_next):
        request.state.request_time = datetime.now(timezone.utc).isoformat()
        return await call_next(request)


def install_access_log(app: FastAPI) -> None:
    """Log method, path, status, duration and size of every request."""

    @app.middleware("http")
    async def log_request(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "%s %s %d %.3f ms - %s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            response.headers.get("content-length", "-"),
        )
        return response
