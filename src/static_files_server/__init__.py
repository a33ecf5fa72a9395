# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""static-files-server - serve a directory over HTTP with uvicorn.

Main components:
    load_config: Finds and loads the YAML configuration (env overrides)
    ServerConfig: Runtime parameters resolved from the configuration
    create_app: Static handler wrapped in the middleware pipeline
    ServerLifecycle: Binds, serves, shuts down gracefully on interrupt

Middleware (outermost first):
    RecoveryMiddleware: Exceptions become 4xx/5xx responses
    RequestLoggingMiddleware: One access record per request
    CORSMiddleware: Permissive CORS headers, preflight answers

Usage:
    from static_files_server import ServerConfig, ServerLifecycle, load_config

    settings = ServerConfig.from_provider(load_config())
    ServerLifecycle(settings).run()
"""

__version__ = "0.1.0"

from .application import create_app
from .config import Configuration, ConfigProvider, ValueKind, load_config
from .exceptions import (
    ConfigError,
    ConfigNotFoundError,
    HTTPException,
    HTTPForbidden,
    HTTPNotFound,
)
from .file_server import FileServer
from .handler import StaticHandler
from .log import configure_logging
from .middleware import (
    BaseMiddleware,
    CORSMiddleware,
    RecoveryMiddleware,
    RequestLoggingMiddleware,
    middleware_chain,
)
from .server import ServerLifecycle, ServerState
from .server_config import GRACE_PERIOD, ServerConfig

__all__ = [
    "__version__",
    "create_app",
    "Configuration",
    "ConfigProvider",
    "ValueKind",
    "load_config",
    "ConfigError",
    "ConfigNotFoundError",
    "HTTPException",
    "HTTPForbidden",
    "HTTPNotFound",
    "FileServer",
    "StaticHandler",
    "configure_logging",
    "BaseMiddleware",
    "CORSMiddleware",
    "RecoveryMiddleware",
    "RequestLoggingMiddleware",
    "middleware_chain",
    "ServerLifecycle",
    "ServerState",
    "GRACE_PERIOD",
    "ServerConfig",
]
