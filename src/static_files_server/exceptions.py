# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""
Exception classes for static-files-server.

Two families:

1. ConfigError - startup problems with the configuration file. These are
   fatal: the entry point logs them and exits with a non-zero status.
2. HTTPException - per-request errors raised by handlers. The recovery
   middleware turns them into a response with the given status code.

Example:
    >>> raise HTTPNotFound()
    >>> raise HTTPForbidden("403 Forbidden")
"""

from __future__ import annotations

__all__ = [
    "ConfigError",
    "ConfigNotFoundError",
    "HTTPException",
    "HTTPNotFound",
    "HTTPForbidden",
]


class ConfigError(Exception):
    """Configuration error."""


class ConfigNotFoundError(ConfigError):
    """No configuration file found in any of the search locations."""

    def __init__(self, name: str, search_paths: list[str]) -> None:
        self.name = name
        self.search_paths = search_paths
        locations = ", ".join(search_paths)
        super().__init__(f"Config file {name!r} not found in [{locations}]")


class HTTPException(Exception):
    """HTTP error to be converted into a response.

    Args:
        status_code: HTTP status code (4xx or 5xx).
        detail: Body of the error response. Default: "".
    """

    def __init__(self, status_code: int, detail: str = "") -> None:
        self.status_code = status_code
        self.detail = detail
        super().__init__(detail)

    def __str__(self) -> str:
        return self.detail

    def __repr__(self) -> str:
        return f"{type(self).__name__}(status_code={self.status_code!r}, detail={self.detail!r})"


class HTTPNotFound(HTTPException):
    """404 Not Found."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(404, detail=detail)


class HTTPForbidden(HTTPException):
    """403 Forbidden."""

    def __init__(self, detail: str = "Forbidden") -> None:
        super().__init__(403, detail=detail)
