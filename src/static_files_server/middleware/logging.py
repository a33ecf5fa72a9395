# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Request logging middleware - one access record per request.

Captures the request body (by wrapping receive) and the response body (by
wrapping send). When the downstream app is done, successful or not, a single
INFO record is emitted::

    {"level":"INFO","message":"Intercept request",
     "method":"GET","uri":"/cms/a.txt?v=1","ip":"127.0.0.1:53122", ...}

At DEBUG level a second record reports status and captured body sizes.

Exceptions are not handled here; they propagate to the recovery middleware
after the record has been written.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from . import BaseMiddleware

if TYPE_CHECKING:
    from ..types import ASGIApp, Message, Receive, Scope, Send


def request_uri(scope: Scope) -> str:
    """Request target as sent by the client: raw path plus query string."""
    raw_path = scope.get("raw_path")
    if raw_path:
        path = raw_path.decode("latin-1")
    else:
        path = scope.get("path", "/")
    query = scope.get("query_string", b"")
    if query:
        return f"{path}?{query.decode('latin-1')}"
    return path


def remote_address(scope: Scope) -> str:
    """Client address as host:port, empty when unknown."""
    client = scope.get("client")
    if not client:
        return ""
    host, port = client[0], client[1]
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


class RequestLoggingMiddleware(BaseMiddleware):
    """Access logging with request and response body capture.

    Attributes:
        logger: Logger receiving the access records.
    """

    middleware_name = "logging"
    middleware_order = 200

    __slots__ = ("logger",)

    def __init__(
        self,
        app: ASGIApp,
        logger: logging.Logger | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(app, **kwargs)
        self.logger = logger or logging.getLogger("static_files_server.access")

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_body = bytearray()
        response_body = bytearray()
        status_code = 0

        async def receive_with_capture() -> Message:
            message = await receive()
            if message["type"] == "http.request":
                request_body.extend(message.get("body", b""))
            return message

        async def send_with_capture(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message.get("status", 0)
            elif message["type"] == "http.response.body":
                response_body.extend(message.get("body", b""))
            await send(message)

        try:
            await self.app(scope, receive_with_capture, send_with_capture)
        finally:
            self.logger.info(
                "Intercept request",
                extra={
                    "fields": {
                        "method": scope.get("method", ""),
                        "uri": request_uri(scope),
                        "ip": remote_address(scope),
                    }
                },
            )
            self.logger.debug(
                "Request bodies captured",
                extra={
                    "fields": {
                        "status": status_code,
                        "request_bytes": len(request_body),
                        "response_bytes": len(response_body),
                    }
                },
            )
