# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Response helper shared by the handler, FileServer and the middleware."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .types import Headers, Send

__all__ = ["send_text"]


async def send_text(
    send: Send,
    status: int,
    text: str,
    headers: Headers | None = None,
    include_body: bool = True,
) -> None:
    """Send a complete text/plain response."""
    body = text.encode("utf-8")
    response_headers: Headers = [
        (b"content-type", b"text/plain; charset=utf-8"),
        (b"content-length", str(len(body)).encode()),
    ]
    if headers:
        response_headers.extend(headers)
    await send({"type": "http.response.start", "status": status, "headers": response_headers})
    await send({"type": "http.response.body", "body": body if include_body else b""})
