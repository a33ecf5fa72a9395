# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""
File serving capability: "serve the file at this path under a root".

FileServer resolves a relative path under its root directory and writes the
file to an ASGI send callable. It owns path safety: anything that resolves
outside the root (``..`` segments, absolute paths, symlinks pointing out) is
answered with 404, exactly like a missing file. So is a name the file
system refuses to look up (too long, a file used as a directory).

Behaviour:
- Files: Content-Type from the extension (text types get charset=utf-8),
  falling back to a sniff of the content; Content-Length; Last-Modified.
  If-Modified-Since is honoured with 304.
- Directories: index.html inside the directory if present, otherwise a
  minimal HTML listing. A directory requested without a trailing slash is
  redirected to the slash form so relative links resolve. A file requested
  with a trailing slash is redirected to the form without it.
- HEAD: same headers as GET, empty body. The file is not read, except for
  the first bytes when the type has to be sniffed.
- Read errors: permission problems raise HTTPForbidden, a file vanishing
  between lookup and read raises HTTPNotFound.

File system access runs through smartasync, off the event loop.
"""

from __future__ import annotations

import html
import mimetypes
import stat
from email.utils import formatdate, parsedate_to_datetime
from pathlib import Path
from urllib.parse import quote

from smartasync import smartasync

from .exceptions import HTTPForbidden, HTTPNotFound
from .types import Headers, Scope, Send
from .utils import send_text

__all__ = ["FileServer"]

# Ensure common types are registered
mimetypes.add_type("application/javascript", ".js")
mimetypes.add_type("text/css", ".css")
mimetypes.add_type("image/svg+xml", ".svg")
mimetypes.add_type("application/json", ".json")
mimetypes.add_type("text/html", ".html")
mimetypes.add_type("text/html", ".htm")

SNIFF_LEN = 512


@smartasync
def _read_file(path: Path) -> bytes:
    return path.read_bytes()


@smartasync
def _read_head(path: Path, size: int) -> bytes:
    with path.open("rb") as f:
        return f.read(size)


def _is_dir(path: Path) -> bool | None:
    """True for a directory, False for anything else, None if it cannot be stat'ed."""
    try:
        return stat.S_ISDIR(path.stat().st_mode)
    except OSError:
        return None


@smartasync
def _list_directory(path: Path) -> list[tuple[str, bool]]:
    return sorted((entry.name, entry.is_dir()) for entry in path.iterdir())


class FileServer:
    """
    Serves files below a root directory.

    Args:
        directory: Root directory. Resolved once at construction.
        index: File served for directory requests when present.
        listing: Render a directory listing when there is no index file.

    Example:
        server = FileServer("./cms")
        await server.serve(scope, send, "docs/readme.txt")
    """

    __slots__ = ("directory", "index", "listing")

    def __init__(
        self,
        directory: str | Path,
        index: str = "index.html",
        listing: bool = True,
    ) -> None:
        self.directory = Path(directory).resolve()
        self.index = index
        self.listing = listing

    async def serve(self, scope: Scope, send: Send, relative_path: str) -> None:
        """Serve relative_path (URL form, "/" separated) from the root."""
        include_body = scope.get("method", "GET") != "HEAD"
        url_path = scope.get("path", "/")
        target = self.resolve(relative_path)
        is_dir = _is_dir(target) if target is not None else None
        if target is None or is_dir is None:
            await send_text(send, 404, "404 page not found", include_body=include_body)
            return

        if not is_dir and url_path.endswith("/"):
            await self._redirect(scope, send, "../" + quote(target.name))
            return

        if is_dir:
            if not url_path.endswith("/"):
                await self._redirect(scope, send, quote(url_path.rsplit("/", 1)[-1]) + "/")
                return
            index_file = target / self.index
            if index_file.is_file():
                target = index_file
            elif self.listing:
                await self._send_listing(send, target, include_body)
                return
            else:
                await send_text(send, 404, "404 page not found", include_body=include_body)
                return

        await self._send_file(scope, send, target, include_body)

    def resolve(self, relative_path: str) -> Path | None:
        """Absolute path for relative_path, or None if it leaves the root."""
        clean_path = relative_path.lstrip("/")
        try:
            file_path = (self.directory / clean_path).resolve()
            file_path.relative_to(self.directory)
        except (ValueError, OSError):
            return None
        return file_path

    async def _send_file(
        self,
        scope: Scope,
        send: Send,
        file_path: Path,
        include_body: bool,
    ) -> None:
        try:
            info = file_path.stat()
        except PermissionError as e:
            raise HTTPForbidden("403 Forbidden") from e
        except FileNotFoundError as e:
            raise HTTPNotFound("404 page not found") from e

        last_modified = formatdate(info.st_mtime, usegmt=True)
        if self._not_modified(scope, int(info.st_mtime)):
            await send({
                "type": "http.response.start",
                "status": 304,
                "headers": [(b"last-modified", last_modified.encode())],
            })
            await send({"type": "http.response.body", "body": b""})
            return

        # HEAD reads at most the sniff window, GET reads the file once
        content_type = self._guess_content_type(file_path)
        try:
            if include_body:
                content = await _read_file(file_path)
                content_length = len(content)
                if content_type is None:
                    content_type = self._sniff(content[:SNIFF_LEN])
            else:
                content = b""
                content_length = info.st_size
                if content_type is None:
                    content_type = self._sniff(await _read_head(file_path, SNIFF_LEN))
        except PermissionError as e:
            raise HTTPForbidden("403 Forbidden") from e
        except FileNotFoundError as e:
            raise HTTPNotFound("404 page not found") from e

        headers: Headers = [
            (b"content-type", content_type.encode()),
            (b"content-length", str(content_length).encode()),
            (b"last-modified", last_modified.encode()),
        ]
        await send({"type": "http.response.start", "status": 200, "headers": headers})
        await send({"type": "http.response.body", "body": content})

    async def _send_listing(self, send: Send, directory: Path, include_body: bool) -> None:
        try:
            entries = await _list_directory(directory)
        except PermissionError as e:
            raise HTTPForbidden("403 Forbidden") from e

        lines = ["<pre>"]
        for name, is_dir in entries:
            display = f"{name}/" if is_dir else name
            lines.append(f'<a href="{quote(display)}">{html.escape(display)}</a>')
        lines.append("</pre>\n")
        body = "\n".join(lines).encode("utf-8")

        await send({
            "type": "http.response.start",
            "status": 200,
            "headers": [
                (b"content-type", b"text/html; charset=utf-8"),
                (b"content-length", str(len(body)).encode()),
            ],
        })
        await send({"type": "http.response.body", "body": body if include_body else b""})

    async def _redirect(self, scope: Scope, send: Send, location: str) -> None:
        """301 to a location relative to the request path, query preserved."""
        query = scope.get("query_string", b"")
        if query:
            location += "?" + query.decode("latin-1")
        await send({
            "type": "http.response.start",
            "status": 301,
            "headers": [(b"location", location.encode("latin-1")), (b"content-length", b"0")],
        })
        await send({"type": "http.response.body", "body": b""})

    def _not_modified(self, scope: Scope, mtime: int) -> bool:
        if mtime <= 0:
            return False
        for name, value in scope.get("headers", []):
            if name == b"if-modified-since":
                try:
                    since = parsedate_to_datetime(value.decode("latin-1"))
                except (TypeError, ValueError):
                    return False
                return mtime <= int(since.timestamp())
        return False

    def _guess_content_type(self, file_path: Path) -> str | None:
        """Content-Type from the extension, None when it has to be sniffed."""
        content_type, _ = mimetypes.guess_type(file_path.name)
        if content_type is None:
            return None
        if content_type.startswith("text/") or content_type == "application/javascript":
            content_type = f"{content_type}; charset=utf-8"
        return content_type

    @staticmethod
    def _sniff(head: bytes) -> str:
        if b"\x00" in head:
            return "application/octet-stream"
        try:
            head.decode("utf-8")
        except UnicodeDecodeError as e:
            # a multi-byte sequence cut at the sniff boundary is still text
            if e.start < len(head) - 3:
                return "application/octet-stream"
        return "text/plain; charset=utf-8"

    def __repr__(self) -> str:
        return f"FileServer(directory={self.directory!r}, index={self.index!r})"
