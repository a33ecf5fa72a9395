# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Recovery middleware - outermost layer of the pipeline.

Catches anything raised while a request is processed and turns it into an
error response, so a faulty request never takes the server down.

Exception handling:
    - HTTPException: Returns its status code with the detail as body
    - Exception: Returns 500 Internal Server Error and logs the traceback

The exception is not re-raised. If the response was already started when
the error happened, the status can no longer change: the error is logged and
the body is closed so the client is not left waiting.

Headers computed by the CORS middleware for the request are added to the
error response, so cross-origin clients can read it.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from . import BaseMiddleware
from .cors import CORS_HEADERS_KEY
from ..exceptions import HTTPException
from ..utils import send_text

if TYPE_CHECKING:
    from ..types import ASGIApp, Headers, Message, Receive, Scope, Send


class RecoveryMiddleware(BaseMiddleware):
    """Turns exceptions raised downstream into HTTP error responses.

    Attributes:
        logger: Logger receiving the recovered errors.
    """

    middleware_name = "recovery"
    middleware_order = 100

    __slots__ = ("logger",)

    def __init__(
        self,
        app: ASGIApp,
        logger: logging.Logger | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(app, **kwargs)
        self.logger = logger or logging.getLogger("static_files_server.recovery")

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False
        response_complete = False

        async def tracking_send(message: Message) -> None:
            nonlocal response_started, response_complete
            if message["type"] == "http.response.start":
                response_started = True
            elif message["type"] == "http.response.body" and not message.get("more_body", False):
                response_complete = True
            await send(message)

        try:
            await self.app(scope, receive, tracking_send)
        except HTTPException as e:
            if response_started:
                self.logger.warning(
                    "HTTP error after response start",
                    extra={"fields": {"status": e.status_code, "uri": scope.get("path", "")}},
                )
                if not response_complete:
                    await send({"type": "http.response.body", "body": b""})
                return
            await send_text(send, e.status_code, e.detail, _cors_headers(scope))
        except Exception as e:
            self.logger.error(
                "Recovered from unhandled error",
                exc_info=e,
                extra={"fields": {"method": scope.get("method", ""), "uri": scope.get("path", "")}},
            )
            if response_started:
                if not response_complete:
                    await send({"type": "http.response.body", "body": b""})
                return
            await send_text(send, 500, "Internal Server Error", _cors_headers(scope))


def _cors_headers(scope: Scope) -> Headers:
    return list(scope.get(CORS_HEADERS_KEY, ()))
