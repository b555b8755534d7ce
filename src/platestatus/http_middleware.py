# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""CORS allow-list and access-log middleware for the HTTP front door.

Standalone leaf module with zero dependency on server.py.

Design choices:

- **Pure ASGI**: no BaseHTTPMiddleware (avoids body buffering).
- **Exact-origin allow-list**: ``Access-Control-Allow-Origin`` echoes the
  request origin only when it is listed; ``Vary: Origin`` is always sent.
- **Preflight short-circuit**: ``OPTIONS`` answers 204 without reaching
  the app.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable

logger = logging.getLogger(__name__)

_ALLOW_METHODS = b"GET,OPTIONS"
_ALLOW_HEADERS = b"Content-Type, Authorization"


def _request_origin(scope: dict) -> bytes:
    for name, value in scope.get("headers", []):
        if name.lower() == b"origin":
            return value
    return b""


class CorsMiddleware:
    """Pure ASGI CORS middleware for a fixed set of allowed origins."""

    def __init__(self, app, *, allowed_origins: Iterable[str]) -> None:
        self.app = app
        self.allowed_origins = frozenset(o.encode("latin-1") for o in allowed_origins)

    def _cors_headers(self, scope: dict) -> list[tuple[bytes, bytes]]:
        origin = _request_origin(scope)
        headers = [
            (b"vary", b"Origin"),
            (b"access-control-allow-methods", _ALLOW_METHODS),
            (b"access-control-allow-headers", _ALLOW_HEADERS),
        ]
        if origin and origin in self.allowed_origins:
            headers.insert(0, (b"access-control-allow-origin", origin))
        return headers

    async def __call__(self, scope, receive, send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        cors_headers = self._cors_headers(scope)

        if scope.get("method") == "OPTIONS":
            await send({"type": "http.response.start", "status": 204, "headers": cors_headers})
            await send({"type": "http.response.body", "body": b""})
            return

        async def _send_with_cors(message) -> None:
            if message["type"] == "http.response.start":
                headers = list(message.get("headers", []))
                existing = frozenset(h[0].lower() for h in headers)
                headers.extend(h for h in cors_headers if h[0] not in existing)
                message = {**message, "headers": headers}
            await send(message)

        await self.app(scope, receive, _send_with_cors)


class AccessLogMiddleware:
    """One log line per HTTP request: method, path, status, duration."""

    def __init__(self, app, *, logger_name: str = "platestatus.access") -> None:
        self.app = app
        self._logger = logging.getLogger(logger_name)

    async def __call__(self, scope, receive, send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start = time.monotonic()
        status = 500

        async def _send_tracking_status(message) -> None:
            nonlocal status
            if message["type"] == "http.response.start":
                status = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, _send_tracking_status)
        finally:
            self._logger.info(
                "%s %s %d - %.1f ms",
                scope.get("method", "-"),
                scope.get("path", "-"),
                status,
                (time.monotonic() - start) * 1000,
            )
