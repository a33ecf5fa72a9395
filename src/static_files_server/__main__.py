# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""
static-files-server entry point.

Usage:
    static-files-server
    python -m static_files_server

No command line options: everything comes from static-files-server.yaml
(searched in ., ./params, /opt/params) and the environment variables
APP_HOST, APP_PORT, FOLDERS_CMS, LOGGER_LEVEL.
"""

from __future__ import annotations

import sys

from .config import load_config
from .exceptions import ConfigError
from .log import configure_logging
from .server import ServerLifecycle
from .server_config import ServerConfig


def main() -> int:
    """Load configuration, serve until interrupted. Returns the exit code."""
    logger = configure_logging()

    try:
        config = load_config()
    except ConfigError as e:
        logger.critical("Config error", exc_info=e)
        return 1

    settings = ServerConfig.from_provider(config)
    logger = configure_logging(settings.log_level)
    logger.debug(
        "Configuration resolved",
        extra={
            "fields": {
                "config_file": str(config.config_file_used),
                "address": settings.listen_address,
                "folder": settings.cms_folder,
            }
        },
    )

    return ServerLifecycle(settings, logger=logger).run()


if __name__ == "__main__":
    sys.exit(main())
