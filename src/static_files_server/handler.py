# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Static handler - mounts a directory under a URL prefix.

``GET /cms/docs/a.txt`` is served from ``<directory>/docs/a.txt``. Only GET
and HEAD are routed; other methods on the prefix get 405. Paths outside the
prefix get 404. Path safety is left to FileServer.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from .file_server import FileServer
from .utils import send_text

if TYPE_CHECKING:
    from .types import Receive, Scope, Send

__all__ = ["StaticHandler", "DEFAULT_PREFIX"]

DEFAULT_PREFIX = "/cms/"
ALLOWED_METHODS = ("GET", "HEAD")


class StaticHandler:
    """ASGI app serving files from directory under prefix.

    Args:
        directory: Root directory of the served files.
        prefix: URL prefix stripped before the file lookup. A trailing
            slash is added if missing.
        file_server: Serving capability. Default: FileServer(directory).
    """

    __slots__ = ("prefix", "file_server")

    def __init__(
        self,
        directory: str | Path,
        prefix: str = DEFAULT_PREFIX,
        file_server: FileServer | None = None,
    ) -> None:
        self.prefix = prefix if prefix.endswith("/") else f"{prefix}/"
        self.file_server = file_server or FileServer(directory)

    @property
    def directory(self) -> Path:
        return self.file_server.directory

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            return

        path = scope.get("path", "/")
        if not path.startswith(self.prefix):
            await send_text(send, 404, "Not Found")
            return

        if scope.get("method", "GET") not in ALLOWED_METHODS:
            await send_text(
                send, 405, "Method Not Allowed", headers=[(b"allow", ", ".join(ALLOWED_METHODS).encode())]
            )
            return

        await self.file_server.serve(scope, send, path[len(self.prefix):])

    def __repr__(self) -> str:
        return f"StaticHandler(prefix={self.prefix!r}, directory={self.directory!r})"
