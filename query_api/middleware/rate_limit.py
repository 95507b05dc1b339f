"""
Per-client rate limiting for the API routes.

One counter per remote address is shared by every request under the API
prefix, whether or not a route matches it. Paths outside the prefix
(``/health``, the docs) are never counted.
"""

import logging

from limits import parse
from limits.storage import MemoryStorage
from limits.strategies import FixedWindowRateLimiter
from slowapi.util import get_remote_address
from starlette.requests import Request
from starlette.types import ASGIApp, Receive, Scope, Send

from query_api.config import Settings
from query_api.errors import AppError, render_error

logger = logging.getLogger(__name__)


class RateLimitMiddleware:
    """
    Reject requests over ``settings.rate_limit`` with 429.

    Counters live in process memory, so each worker enforces its own window.
    """

    def __init__(self, app: ASGIApp, settings: Settings):
        self.app = app
        self.settings = settings
        self.prefix = settings.api_prefix.rstrip("/")
        self.item = parse(settings.rate_limit)
        self.strategy = FixedWindowRateLimiter(MemoryStorage())

    def _applies_to(self, path: str) -> bool:
        if not self.prefix:
            return True
        return path == self.prefix or path.startswith(self.prefix + "/")

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or not self._applies_to(scope.get("path", "")):
            await self.app(scope, receive, send)
            return

        client = get_remote_address(Request(scope))
        if not self.strategy.hit(self.item, client):
            logger.warning("Rate limit %s exceeded by %s", self.settings.rate_limit, client)
            error = AppError(self.settings.rate_limit_message, 429)
            response = render_error(error, self.settings)
            await response(scope, receive, send)
            return

        await self.app(scope, receive, send)
