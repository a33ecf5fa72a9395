# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Structured JSON logging on stderr.

One JSON object per line::

    {"level":"INFO","time":"2025-01-02T10:11:12.123456789Z",
     "caller":"middleware/logging.py:91","message":"Intercept request",
     "method":"GET","uri":"/cms/index.html","ip":"127.0.0.1:53122"}

Structured fields travel in ``extra={"fields": {...}}``. The handler is
installed on the root logger so uvicorn's loggers end up in the same stream.
"""

from __future__ import annotations

import json
import logging
import sys
import time
from pathlib import Path
from typing import Any, TextIO

__all__ = [
    "DPANIC",
    "PANIC",
    "FATAL",
    "LEVELS",
    "DEFAULT_LEVEL",
    "JsonFormatter",
    "format_time",
    "parse_level",
    "configure_logging",
]

DPANIC = 41
PANIC = 45
FATAL = logging.CRITICAL

logging.addLevelName(DPANIC, "DPANIC")
logging.addLevelName(PANIC, "PANIC")

LEVELS: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
    "dpanic": DPANIC,
    "panic": PANIC,
    "fatal": FATAL,
}
DEFAULT_LEVEL = logging.INFO

_LEVEL_NAMES = {
    logging.DEBUG: "DEBUG",
    logging.INFO: "INFO",
    logging.WARNING: "WARN",
    logging.ERROR: "ERROR",
    DPANIC: "DPANIC",
    PANIC: "PANIC",
    FATAL: "FATAL",
}

_RESERVED = ("level", "time", "caller", "message")

_handler: logging.Handler | None = None


def parse_level(name: str | None) -> int:
    """Map a configured level name to a logging level. Unknown names give INFO."""
    if not name:
        return DEFAULT_LEVEL
    return LEVELS.get(name.strip().lower(), DEFAULT_LEVEL)


def format_time(created_ns: int) -> str:
    """RFC3339 UTC timestamp with nanoseconds, trailing zeros trimmed."""
    seconds, nanos = divmod(created_ns, 1_000_000_000)
    stamp = time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime(seconds))
    fraction = f"{nanos:09d}".rstrip("0")
    if fraction:
        return f"{stamp}.{fraction}Z"
    return f"{stamp}Z"


class JsonFormatter(logging.Formatter):
    """Render a LogRecord as a single JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        created_ns = getattr(record, "created_ns", None) or int(record.created * 1e9)
        data: dict[str, Any] = {
            "level": _LEVEL_NAMES.get(record.levelno, record.levelname),
            "time": format_time(created_ns),
            "caller": self.caller(record),
            "message": record.getMessage(),
        }
        fields = getattr(record, "fields", None)
        if isinstance(fields, dict):
            for key, value in fields.items():
                if key not in _RESERVED:
                    data[key] = value
        if record.exc_info and record.exc_info[1] is not None:
            data["error"] = str(record.exc_info[1]) or type(record.exc_info[1]).__name__
            if record.levelno >= logging.ERROR:
                data["stacktrace"] = self.formatException(record.exc_info)
        return json.dumps(data, ensure_ascii=False, default=str)

    @staticmethod
    def caller(record: logging.LogRecord) -> str:
        """Short caller location: parent directory, file name and line."""
        path = Path(record.pathname)
        return f"{path.parent.name}/{path.name}:{record.lineno}"


def configure_logging(
    level: str | int | None = None,
    stream: TextIO | None = None,
) -> logging.Logger:
    """Install the JSON handler on the root logger and set the level.

    Replaces the handler installed by a previous call, so it can be called
    once to bootstrap and again once the configured level is known.

    Args:
        level: Level name (debug, info, warn, ...) or logging level number.
        stream: Output stream. Default: sys.stderr.

    Returns:
        The static_files_server logger.
    """
    numeric = level if isinstance(level, int) else parse_level(level)

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(JsonFormatter())

    global _handler
    root = logging.getLogger()
    if _handler is not None:
        root.removeHandler(_handler)
    root.addHandler(handler)
    _handler = handler
    root.setLevel(numeric)

    # uvicorn sets its own levels and propagation when it configures logging
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uv_logger = logging.getLogger(name)
        uv_logger.handlers.clear()
        uv_logger.propagate = True
        uv_logger.setLevel(logging.NOTSET)

    return logging.getLogger("static_files_server")
