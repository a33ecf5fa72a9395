# Copyright 2025 Softwell S.r.l.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     https://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Shared fixtures: a served directory and ASGI drivers."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

import pytest

from static_files_server import log as log_module


@pytest.fixture(autouse=True)
def reset_json_handler():
    """Remove the JSON handler a test may have installed on the root logger."""
    root = logging.getLogger()
    level = root.level
    yield
    if log_module._handler is not None:
        root.removeHandler(log_module._handler)
        log_module._handler = None
    root.setLevel(level)


@pytest.fixture
def cms_dir(tmp_path: Path) -> Path:
    """Served root with a few files, plus a secret file next to it."""
    root = tmp_path / "cms"
    root.mkdir()
    (root / "hello.txt").write_text("hello world")
    (root / "style.css").write_text("body { color: red; }")
    (root / "data.bin").write_bytes(b"\x00\x01\x02\x03")
    (root / "docs").mkdir()
    (root / "docs" / "index.html").write_text("<html>docs</html>")
    (root / "images").mkdir()
    (root / "images" / "logo.png").write_bytes(b"\x89PNG\r\n")
    (tmp_path / "secret.txt").write_text("top secret")
    return root


def http_scope(
    path: str,
    method: str = "GET",
    headers: list[tuple[bytes, bytes]] | None = None,
    query_string: bytes = b"",
) -> dict[str, Any]:
    return {
        "type": "http",
        "method": method,
        "path": path,
        "raw_path": path.encode(),
        "query_string": query_string,
        "headers": headers or [],
        "client": ("127.0.0.1", 50000),
    }


class Response:
    """Messages sent by an ASGI app, with shortcuts."""

    def __init__(self, messages: list[dict[str, Any]]) -> None:
        self.messages = messages

    @property
    def status(self) -> int:
        return self.messages[0]["status"]

    @property
    def headers(self) -> dict[str, str]:
        return {
            k.decode("latin-1"): v.decode("latin-1")
            for k, v in self.messages[0].get("headers", [])
        }

    def header_values(self, name: str) -> list[str]:
        return [
            v.decode("latin-1")
            for k, v in self.messages[0].get("headers", [])
            if k.decode("latin-1") == name
        ]

    @property
    def body(self) -> bytes:
        return b"".join(m.get("body", b"") for m in self.messages[1:])


AsgiDriver = Callable[..., Awaitable[Response]]


@pytest.fixture
def call_app() -> AsgiDriver:
    """Run an ASGI app on a scope and collect what it sends."""

    async def driver(app: Any, scope: dict[str, Any], body: bytes = b"") -> Response:
        messages: list[dict[str, Any]] = []
        pending = [{"type": "http.request", "body": body, "more_body": False}]

        async def receive() -> dict[str, Any]:
            if pending:
                return pending.pop(0)
            await asyncio.sleep(3600)
            return {"type": "http.disconnect"}

        async def send(message: dict[str, Any]) -> None:
            messages.append(dict(message))

        await app(scope, receive, send)
        return Response(messages)

    return driver


@pytest.fixture
def scope_factory() -> Callable[..., dict[str, Any]]:
    return http_scope
