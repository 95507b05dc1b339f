"""
Operational errors and the global error handler.

Every failure that reaches a client is rendered by ``render_error`` so the
response body has the same shape whether it comes from a route, from an
exception handler or from a middleware that short-circuits the request.
"""

import logging
import traceback
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pymongo.errors import DuplicateKeyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from query_api.config import Settings

logger = logging.getLogger(__name__)

GENERIC_MESSAGE = "Something went very wrong!"

# Raised by the router itself when no route matches the path or method
ROUTING_MISSES = {404: "Not Found", 405: "Method Not Allowed"}


class AppError(Exception):
    """
    Expected failure with a client-facing message and HTTP status code.

    ``status`` is ``"fail"`` for 4xx codes and ``"error"`` otherwise.
    """

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.status = "fail" if str(status_code).startswith("4") else "error"
        self.is_operational = True


def not_found(path: str) -> AppError:
    return AppError(f"Can't find {path} on this server!", 404)


def to_app_error(exc: Exception) -> Exception:
    """Map known driver and framework errors to operational errors."""
    if isinstance(exc, AppError):
        return exc
    if isinstance(exc, DuplicateKeyError):
        details = exc.details or {}
        value = details.get("keyValue") or {}
        return AppError(f"Duplicate field value: {value}. Please use another value!", 400)
    if isinstance(exc, RequestValidationError):
        messages = [
            f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}"
            for error in exc.errors()
        ]
        return AppError(f"Invalid input data. {'. '.join(messages)}", 400)
    if isinstance(exc, StarletteHTTPException):
        return AppError(str(exc.detail), exc.status_code)
    return exc


def error_payload(exc: Exception, settings: Settings) -> Dict[str, Any]:
    """
    Build the response body for an exception.

    Args:
        exc: The exception, already passed through ``to_app_error``
        settings: Active settings (development mode exposes details)

    Returns:
        JSON-serializable response body
    """
    status_code = getattr(exc, "status_code", 500)
    status = getattr(exc, "status", "error")
    is_operational = getattr(exc, "is_operational", False)

    if settings.is_development:
        return {
            "status": status,
            "error": {
                "name": type(exc).__name__,
                "statusCode": status_code,
                "status": status,
                "isOperational": is_operational,
            },
            "message": str(exc),
            "stack": "".join(
                traceback.format_exception(type(exc), exc, exc.__traceback__)
            ),
        }

    if is_operational:
        return {"status": status, "message": exc.message}

    return {"status": "error", "message": GENERIC_MESSAGE}


def render_error(exc: Exception, settings: Settings) -> JSONResponse:
    """Render any exception as a JSON error response."""
    exc = to_app_error(exc)
    if not getattr(exc, "is_operational", False):
        logger.error("Unhandled error: %s", exc, exc_info=exc)
    status_code = getattr(exc, "status_code", 500)
    return JSONResponse(status_code=status_code, content=error_payload(exc, settings))


def register_error_handlers(app: FastAPI, settings: Settings) -> None:
    """Route every exception type the app can raise through ``render_error``."""

    async def handle_error(request: Request, exc: Exception) -> JSONResponse:
        return render_error(exc, settings)

    async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if ROUTING_MISSES.get(exc.status_code) == exc.detail:
            exc = not_found(request.url.path)
        return render_error(exc, settings)

    app.add_exception_handler(AppError, handle_error)
    app.add_exception_handler(DuplicateKeyError, handle_error)
    app.add_exception_handler(RequestValidationError, handle_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_error)
    app.add_exception_handler(Exception, handle_error)
