"""ASGI middleware that gives every request its own query cache."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, MutableMapping
from typing import Any

from query_cache.scope import query_cache_scope

Scope = MutableMapping[str, Any]
Receive = Callable[[], Awaitable[MutableMapping[str, Any]]]
Send = Callable[[MutableMapping[str, Any]], Awaitable[None]]
ASGIApp = Callable[[Scope, Receive, Send], Awaitable[None]]


class QueryCacheMiddleware:
    """Wrap HTTP and websocket connections in :func:`query_cache_scope`.

    The cache is cleared when the application returns or raises. Lifespan
    events pass straight through.

    Example:
        ```python
        app = QueryCacheMiddleware(app)
        ```
    """

    def __init__(self, app: ASGIApp, enabled: bool | None = None) -> None:
        self.app = app
        self.enabled = enabled

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        with query_cache_scope(self.enabled):
            await self.app(scope, receive, send)
