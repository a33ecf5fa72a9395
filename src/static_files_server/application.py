# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Application factory: the static handler wrapped in the middleware pipeline.

Request flow::

    uvicorn -> RecoveryMiddleware -> RequestLoggingMiddleware
            -> CORSMiddleware -> StaticHandler -> FileServer
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from .handler import DEFAULT_PREFIX, StaticHandler
from .middleware import middleware_chain

if TYPE_CHECKING:
    from .server_config import ServerConfig
    from .types import ASGIApp

__all__ = ["create_app"]


def create_app(
    settings: ServerConfig,
    logger: logging.Logger | None = None,
    prefix: str = DEFAULT_PREFIX,
) -> ASGIApp:
    """Build the ASGI application for settings.

    A missing or empty folders.cms is not fatal: it is reported and the
    handler serves whatever directory the value resolves to.
    """
    logger = logger or logging.getLogger("static_files_server")

    directory = Path(settings.cms_folder)
    if not settings.cms_folder or not directory.is_dir():
        logger.warning(
            "Static folder is not a directory",
            extra={"fields": {"folder": settings.cms_folder, "resolved": str(directory.resolve())}},
        )

    handler = StaticHandler(directory, prefix=prefix)
    logger.debug(
        "Static handler mounted",
        extra={"fields": {"prefix": handler.prefix, "directory": str(handler.directory)}},
    )
    return middleware_chain(
        handler,
        {
            "recovery": {"logger": logger},
            "logging": {"logger": logger},
        },
    )
