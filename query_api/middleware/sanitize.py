"""
Input sanitization for query parameters and JSON bodies.

- ``sanitize_mongo`` drops keys that could smuggle query operators
  (``$where``, ``$gt``) or dotted paths into a MongoDB predicate.
- ``clean_xss`` HTML-escapes ``<`` in every string value.
- ``guard_pollution`` collapses repeated query keys to their last value.
- ``SanitizeMiddleware`` applies all three to each request and stores the
  cleaned query mapping on ``request.state.query``.
"""

import json
from typing import Any, Dict, Iterable, Optional, Tuple
from urllib.parse import parse_qsl

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from query_api.query.query_string import parse_query_string


def sanitize_mongo(value: Any) -> Any:
    """Recursively remove keys starting with ``$`` or containing ``.``."""
    if isinstance(value, dict):
        return {
            key: sanitize_mongo(item)
            for key, item in value.items()
            if not (key.startswith("$") or "." in key)
        }
    if isinstance(value, list):
        return [sanitize_mongo(item) for item in value]
    return value


def clean_xss(value: Any) -> Any:
    """Recursively escape ``<`` in strings so they cannot open HTML tags."""
    if isinstance(value, str):
        return value.replace("<", "&lt;")
    if isinstance(value, dict):
        return {key: clean_xss(item) for key, item in value.items()}
    if isinstance(value, list):
        return [clean_xss(item) for item in value]
    return value


def guard_pollution(
    params: Dict[str, Any], whitelist: Iterable[str] = ()
) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """
    Keep only the last value of repeated top-level query keys.

    Args:
        params: Parsed query mapping
        whitelist: Keys allowed to keep every value

    Returns:
        ``(cleaned, polluted)`` where ``polluted`` holds the original lists
        of the keys that were collapsed
    """
    allowed = set(whitelist)
    cleaned: Dict[str, Any] = {}
    polluted: Dict[str, Any] = {}
    for key, value in params.items():
        if isinstance(value, list) and key not in allowed:
            polluted[key] = value
            cleaned[key] = value[-1] if value else ""
        else:
            cleaned[key] = value
    return cleaned, polluted


def clean_query(
    pairs: Iterable[Tuple[str, str]], whitelist: Iterable[str] = ()
) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """Parse, sanitize and de-pollute a query string in one pass."""
    parsed = parse_query_string(pairs)
    return guard_pollution(clean_xss(sanitize_mongo(parsed)), whitelist)


def _is_json(scope: Scope) -> bool:
    for name, value in scope.get("headers", []):
        if name == b"content-type":
            return b"json" in value.lower()
    return False


class SanitizeMiddleware:
    """
    Clean the query string and JSON body of every HTTP request.

    The cleaned query mapping is stored on ``request.state.query`` and the
    collapsed repeated keys on ``request.state.query_polluted``. A JSON body
    is rewritten in place; a body that is not valid JSON is passed through
    for the route to reject.
    """

    def __init__(self, app: ASGIApp, whitelist: Optional[Iterable[str]] = None):
        self.app = app
        self.whitelist = list(whitelist or [])

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        raw_query = scope.get("query_string", b"").decode("latin-1")
        pairs = parse_qsl(raw_query, keep_blank_values=True)
        query, polluted = clean_query(pairs, self.whitelist)

        state = scope.setdefault("state", {})
        state["query"] = query
        state["query_polluted"] = polluted

        if not _is_json(scope):
            await self.app(scope, receive, send)
            return

        body = await read_body(receive)
        try:
            payload = json.loads(body) if body else None
        except ValueError:
            payload = None
        if payload is not None:
            body = json.dumps(clean_xss(sanitize_mongo(payload))).encode("utf-8")

        await self.app(scope, replay_body(body, receive), send)


async def read_body(receive: Receive, max_bytes: Optional[int] = None) -> Optional[bytes]:
    """
    Drain the request body.

    With ``max_bytes`` set, stops reading and returns None as soon as more
    than ``max_bytes`` have arrived.
    """
    chunks = []
    received = 0
    more_body = True
    while more_body:
        message = await receive()
        if message["type"] != "http.request":
            break
        chunk = message.get("body", b"")
        received += len(chunk)
        if max_bytes is not None and received > max_bytes:
            return None
        chunks.append(chunk)
        more_body = message.get("more_body", False)
    return b"".join(chunks)


def replay_body(body: bytes, receive: Receive) -> Receive:
    """Serve an already-read body, then defer to the original channel."""
    sent = False

    async def replay() -> Message:
        nonlocal sent
        if not sent:
            sent = True
            return {"type": "http.request", "body": body, "more_body": False}
        return await receive()

    return replay
