# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Runtime parameters resolved from the configuration.

Keys read::

    app.host       listen host ("" binds every interface)
    app.port       listen port
    folders.cms    directory served under /cms/
    logger.level   debug|info|warn|error|dpanic|panic|fatal

Absent keys fall back to the zero value of their kind, the same as the
configuration itself: a config without app.port listens on port 0.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from .config import ConfigProvider, ValueKind

__all__ = ["ServerConfig", "GRACE_PERIOD"]

GRACE_PERIOD = timedelta(seconds=10)


@dataclass(frozen=True)
class ServerConfig:
    """Immutable server parameters."""

    host: str = ""
    port: int = 0
    cms_folder: str = ""
    log_level: str = ""
    grace_period: timedelta = GRACE_PERIOD

    @classmethod
    def from_provider(cls, provider: ConfigProvider) -> ServerConfig:
        return cls(
            host=provider.get("app.host", ValueKind.STRING),
            port=provider.get("app.port", ValueKind.INT),
            cms_folder=provider.get("folders.cms", ValueKind.STRING),
            log_level=provider.get("logger.level", ValueKind.STRING),
        )

    @property
    def listen_address(self) -> str:
        return f"{self.host}:{self.port}"
