"""
Security header hardening and request body size limits.
"""

import logging
from typing import Dict, Iterable, Optional

from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from query_api.config import Settings
from query_api.errors import AppError, render_error
from query_api.middleware.sanitize import read_body, replay_body

logger = logging.getLogger(__name__)

DEFAULT_SECURITY_HEADERS: Dict[str, str] = {
    "Content-Security-Policy": (
        "default-src 'self';base-uri 'self';font-src 'self' https: data:;"
        "form-action 'self';frame-ancestors 'self';img-src 'self' data:;"
        "object-src 'none';script-src 'self';script-src-attr 'none';"
        "style-src 'self' https: 'unsafe-inline';upgrade-insecure-requests"
    ),
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "Origin-Agent-Cluster": "?1",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    "X-Content-Type-Options": "nosniff",
    "X-DNS-Prefetch-Control": "off",
    "X-Download-Options": "noopen",
    "X-Frame-Options": "SAMEORIGIN",
    "X-Permitted-Cross-Domain-Policies": "none",
    "X-XSS-Protection": "0",
}

# The interactive docs load their assets from a CDN
CSP_EXEMPT_PATHS = ("/docs", "/redoc")


class SecurityHeadersMiddleware:
    """Add hardening headers to every HTTP response."""

    def __init__(
        self,
        app: ASGIApp,
        headers: Optional[Dict[str, str]] = None,
        csp_exempt_paths: Iterable[str] = CSP_EXEMPT_PATHS,
    ):
        self.app = app
        self.headers = dict(DEFAULT_SECURITY_HEADERS if headers is None else headers)
        self.csp_exempt_paths = tuple(csp_exempt_paths)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        skip_csp = scope.get("path", "").startswith(self.csp_exempt_paths)

        async def send_with_headers(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                for name, value in self.headers.items():
                    if skip_csp and name == "Content-Security-Policy":
                        continue
                    headers[name] = value
                if "x-powered-by" in headers:
                    del headers["x-powered-by"]
            await send(message)

        await self.app(scope, receive, send_with_headers)


class BodyLimitMiddleware:
    """
    Reject request bodies larger than ``max_bytes`` with 413.

    Checks the declared Content-Length first, then counts bytes as they are
    received, so chunked uploads are cut off once they pass the limit.
    """

    def __init__(self, app: ASGIApp, max_bytes: int, settings: Settings):
        self.app = app
        self.max_bytes = max_bytes
        self.settings = settings

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        declared = dict(scope.get("headers", [])).get(b"content-length")
        if declared is not None and declared.isdigit() and int(declared) > self.max_bytes:
            await self._reject(scope, receive, send)
            return

        if declared is None and not _has_chunked_body(scope):
            await self.app(scope, receive, send)
            return

        body = await read_body(receive, self.max_bytes)
        if body is None:
            await self._reject(scope, receive, send)
            return

        await self.app(scope, replay_body(body, receive), send)

    async def _reject(self, scope: Scope, receive: Receive, send: Send) -> None:
        logger.warning(
            "Rejected %s %s: body over %d bytes",
            scope.get("method"),
            scope.get("path"),
            self.max_bytes,
        )
        error = AppError("Request body too large", 413)
        response = render_error(error, self.settings)
        await response(scope, receive, send)


def _has_chunked_body(scope: Scope) -> bool:
    for name, value in scope.get("headers", []):
        if name == b"transfer-encoding" and b"chunked" in value.lower():
            return True
    return False
