# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""CORS (Cross-Origin Resource Sharing) middleware.

Every response gets ``Access-Control-Allow-Origin: *`` and ``Vary: Origin``.
Every OPTIONS request is treated as a preflight and answered here with
``204 No Content``; it never reaches the static handler. The preflight
announces::

    Access-Control-Allow-Methods: GET,POST,PUT,DELETE,OPTIONS,PATCH
    Access-Control-Allow-Headers: Origin,Content-Type,Accept,Access-Control-Allow-Origin,Authorization

The headers are also stored in the scope under CORS_HEADERS_KEY, so that
error responses written by outer middleware (recovery) carry them too.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from . import BaseMiddleware

if TYPE_CHECKING:
    from ..types import Headers, Message, Receive, Scope, Send

CORS_HEADERS_KEY = "static_files_server.cors_headers"

ALLOW_METHODS = ["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"]
ALLOW_HEADERS = [
    "Origin",
    "Content-Type",
    "Accept",
    "Access-Control-Allow-Origin",
    "Authorization",
]

RESPONSE_HEADERS: Headers = [
    (b"vary", b"Origin"),
    (b"access-control-allow-origin", b"*"),
]
PREFLIGHT_HEADERS: Headers = [
    (b"vary", b"Access-Control-Request-Method"),
    (b"vary", b"Access-Control-Request-Headers"),
    (b"access-control-allow-methods", ",".join(ALLOW_METHODS).encode()),
    (b"access-control-allow-headers", ",".join(ALLOW_HEADERS).encode()),
]


class CORSMiddleware(BaseMiddleware):
    """Adds permissive CORS headers and answers preflight requests."""

    middleware_name = "cors"
    middleware_order = 300

    __slots__ = ()

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        scope[CORS_HEADERS_KEY] = RESPONSE_HEADERS

        if scope.get("method") == "OPTIONS":
            await self._handle_preflight(send)
            return

        async def send_with_cors(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = list(message.get("headers", []))
                headers.extend(RESPONSE_HEADERS)
                message = {**message, "headers": headers}
            await send(message)

        await self.app(scope, receive, send_with_cors)

    async def _handle_preflight(self, send: Send) -> None:
        await send(
            {
                "type": "http.response.start",
                "status": 204,
                "headers": [*RESPONSE_HEADERS, *PREFLIGHT_HEADERS],
            }
        )
        await send({"type": "http.response.body", "body": b""})
