# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""
Configuration loading for static-files-server.

The configuration is a YAML document found by name in an ordered list of
directories (first match wins) and read once with genro-toolbox SmartOptions.
Environment variables override file values; the variable name is the dotted
key upper-cased with dots replaced by underscores::

    app.port      -> APP_PORT
    folders.cms   -> FOLDERS_CMS

Example file (static-files-server.yaml)::

    app:
      host: 0.0.0.0
      port: 8080
    folders:
      cms: ./cms
    logger:
      level: info

Lookups go through a single typed accessor::

    config = load_config()
    port = config.get("app.port", ValueKind.INT)

Missing keys and values that cannot be converted yield the zero value of the
requested kind. Only a missing configuration file is an error.
"""

from __future__ import annotations

import enum
import json
import logging
import os
import re
from collections.abc import Mapping
from datetime import datetime, timedelta, timezone
from pathlib import Path
from types import MappingProxyType
from typing import Any, Protocol

from genro_toolbox import SmartOptions  # type: ignore[import-untyped]

from .exceptions import ConfigError, ConfigNotFoundError

__all__ = [
    "CONFIG_NAME",
    "CONFIG_EXTENSIONS",
    "DEFAULT_SEARCH_PATHS",
    "ZERO_TIME",
    "ValueKind",
    "ConfigProvider",
    "Configuration",
    "env_key",
    "find_config_file",
    "load_config",
]

logger = logging.getLogger("static_files_server.config")

CONFIG_NAME = "static-files-server"
CONFIG_EXTENSIONS = (".yaml", ".yml")
DEFAULT_SEARCH_PATHS: tuple[str, ...] = (
    ".",
    "./params",
    "/opt/params",
    str(Path(__file__).resolve().parent.parent / "params"),
)

ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)

_TRUE = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE = {"0", "f", "F", "FALSE", "false", "False"}

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")

_SIZE_UNITS = {"": 1, "b": 1, "k": 1 << 10, "m": 1 << 20, "g": 1 << 30}
_SIZE = re.compile(r"^\s*(\d+)\s*([kmg]?)b?\s*$", re.IGNORECASE)


class ValueKind(enum.Enum):
    """Value kinds the configuration can be read as."""

    STRING = "string"
    INT = "int"
    BOOL = "bool"
    FLOAT = "float"
    DURATION = "duration"
    SIZE = "size"
    STRING_SLICE = "string_slice"
    STRING_MAP = "string_map"
    TIME = "time"


class ConfigProvider(Protocol):
    """What the rest of the server needs from a configuration."""

    def get(self, key: str, kind: ValueKind = ValueKind.STRING) -> Any: ...


def env_key(key: str) -> str:
    """Environment variable name overriding a dotted config key."""
    return key.replace(".", "_").upper()


class Configuration:
    """Immutable snapshot of file values and environment overrides.

    Args:
        values: Nested mapping read from the configuration file.
        environ: Environment to take overrides from. Copied at construction,
            later changes to the source mapping are not seen.
        config_file_used: Path of the file the values came from, if any.
    """

    __slots__ = ("_values", "_environ", "config_file_used")

    def __init__(
        self,
        values: Mapping[str, Any] | None = None,
        environ: Mapping[str, str] | None = None,
        config_file_used: Path | None = None,
    ) -> None:
        self._values = _freeze(_lower_keys(values or {}))
        self._environ = MappingProxyType(dict(environ or {}))
        self.config_file_used = config_file_used

    def __setattr__(self, name: str, value: Any) -> None:
        if hasattr(self, "config_file_used"):
            raise AttributeError("Configuration is immutable")
        object.__setattr__(self, name, value)

    def get(self, key: str, kind: ValueKind = ValueKind.STRING) -> Any:
        """Return the value for key converted to kind, or the kind's zero value."""
        raw = self._raw(key)
        if raw is None:
            return _ZERO[kind]()
        try:
            return _CONVERTERS[kind](raw)
        except (TypeError, ValueError, OverflowError):
            logger.debug("Cannot read %r as %s", key, kind.value)
            return _ZERO[kind]()

    def is_set(self, key: str) -> bool:
        """True if key has a value in the environment or in the file."""
        return self._raw(key) is not None

    def in_config(self, key: str) -> bool:
        """True if key is present in the configuration file itself."""
        return self._lookup(key) is not None

    def _raw(self, key: str) -> Any:
        env_value = self._environ.get(env_key(key))
        if env_value:
            return env_value
        return self._lookup(key)

    def _lookup(self, key: str) -> Any:
        node: Any = self._values
        for part in key.lower().split("."):
            if not isinstance(node, Mapping) or part not in node:
                return None
            node = node[part]
        return node

    def __repr__(self) -> str:
        return f"Configuration(config_file_used={self.config_file_used!r})"


def find_config_file(
    search_paths: tuple[str, ...] | list[str] = DEFAULT_SEARCH_PATHS,
    name: str = CONFIG_NAME,
) -> Path | None:
    """Return the first {name}{ext} found in search_paths, or None."""
    for directory in search_paths:
        for ext in CONFIG_EXTENSIONS:
            candidate = Path(directory) / f"{name}{ext}"
            if candidate.is_file():
                return candidate.resolve()
    return None


def load_config(
    search_paths: tuple[str, ...] | list[str] = DEFAULT_SEARCH_PATHS,
    name: str = CONFIG_NAME,
    environ: Mapping[str, str] | None = None,
) -> Configuration:
    """Find and load the configuration file.

    Args:
        search_paths: Directories searched in order.
        name: File name without extension.
        environ: Environment for overrides. Default: os.environ.

    Raises:
        ConfigNotFoundError: No file in any search location.
        ConfigError: The file exists but cannot be read.
    """
    path = find_config_file(search_paths, name)
    if path is None:
        raise ConfigNotFoundError(name, list(search_paths))

    try:
        opts = SmartOptions(str(path))
    except Exception as e:
        raise ConfigError(f"Failed to read config file {path}: {e}") from e

    values = _to_plain(opts)
    if not isinstance(values, Mapping):
        raise ConfigError(f"Config file {path} must contain a mapping")

    logger.info("Using config file: %s", path)
    return Configuration(values, os.environ if environ is None else environ, path)


def _to_plain(value: Any) -> Any:
    """Recursively turn SmartOptions nodes into plain dicts and lists."""
    if hasattr(value, "as_dict"):
        value = value.as_dict()
    if isinstance(value, Mapping):
        return {str(k): _to_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_plain(v) for v in value]
    return value


def _lower_keys(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {str(k).lower(): _lower_keys(v) for k, v in value.items()}
    return value


def _freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    if isinstance(value, list):
        return tuple(_freeze(v) for v in value)
    return value


# Converters


def _to_string(raw: Any) -> str:
    if isinstance(raw, bool):
        return "true" if raw else "false"
    if isinstance(raw, (Mapping, tuple, list)):
        raise TypeError("not a scalar")
    return str(raw)


def _to_int(raw: Any) -> int:
    if isinstance(raw, bool):
        return int(raw)
    if isinstance(raw, float):
        return int(raw)
    if isinstance(raw, str):
        return int(raw.strip())
    if isinstance(raw, int):
        return raw
    raise TypeError(f"cannot convert {type(raw).__name__} to int")


def _to_bool(raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, (int, float)):
        return raw != 0
    if isinstance(raw, str):
        text = raw.strip()
        if text in _TRUE:
            return True
        if text in _FALSE:
            return False
    raise ValueError(f"invalid bool {raw!r}")


def _to_float(raw: Any) -> float:
    if isinstance(raw, (Mapping, tuple, list)):
        raise TypeError("not a scalar")
    return float(raw)


def _to_duration(raw: Any) -> timedelta:
    if isinstance(raw, timedelta):
        return raw
    if isinstance(raw, bool):
        raise TypeError("bool is not a duration")
    if isinstance(raw, (int, float)):
        return timedelta(seconds=raw)
    if not isinstance(raw, str):
        raise TypeError(f"cannot convert {type(raw).__name__} to duration")

    text = raw.strip()
    try:
        return timedelta(seconds=float(text))
    except ValueError:
        pass

    sign = 1.0
    if text[:1] in "+-":
        sign = -1.0 if text[0] == "-" else 1.0
        text = text[1:]
    if not text:
        raise ValueError("empty duration")

    seconds = 0.0
    pos = 0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            raise ValueError(f"invalid duration {raw!r}")
        seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos != len(text):
        raise ValueError(f"invalid duration {raw!r}")
    return timedelta(seconds=sign * seconds)


def _to_size(raw: Any) -> int:
    if isinstance(raw, bool):
        raise TypeError("bool is not a size")
    if isinstance(raw, int):
        return max(raw, 0)
    match = _SIZE.match(str(raw))
    if match is None:
        raise ValueError(f"invalid size {raw!r}")
    return int(match.group(1)) * _SIZE_UNITS[match.group(2).lower()]


def _to_string_slice(raw: Any) -> list[str]:
    if isinstance(raw, str):
        return raw.split()
    if isinstance(raw, (list, tuple)):
        return [_to_string(item) for item in raw]
    raise TypeError(f"cannot convert {type(raw).__name__} to string slice")


def _to_string_map(raw: Any) -> dict[str, Any]:
    if isinstance(raw, str):
        raw = json.loads(raw)
    if isinstance(raw, Mapping):
        return {str(k): _thaw(v) for k, v in raw.items()}
    raise TypeError(f"cannot convert {type(raw).__name__} to string map")


def _to_time(raw: Any) -> datetime:
    if isinstance(raw, datetime):
        value = raw
    elif isinstance(raw, bool):
        raise TypeError("bool is not a time")
    elif isinstance(raw, (int, float)):
        return datetime.fromtimestamp(raw, tz=timezone.utc)
    elif isinstance(raw, str):
        value = datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))
    else:
        raise TypeError(f"cannot convert {type(raw).__name__} to time")
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def _thaw(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {k: _thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [_thaw(v) for v in value]
    return value


_CONVERTERS = {
    ValueKind.STRING: _to_string,
    ValueKind.INT: _to_int,
    ValueKind.BOOL: _to_bool,
    ValueKind.FLOAT: _to_float,
    ValueKind.DURATION: _to_duration,
    ValueKind.SIZE: _to_size,
    ValueKind.STRING_SLICE: _to_string_slice,
    ValueKind.STRING_MAP: _to_string_map,
    ValueKind.TIME: _to_time,
}

_ZERO = {
    ValueKind.STRING: str,
    ValueKind.INT: int,
    ValueKind.BOOL: bool,
    ValueKind.FLOAT: float,
    ValueKind.DURATION: timedelta,
    ValueKind.SIZE: int,
    ValueKind.STRING_SLICE: list,
    ValueKind.STRING_MAP: dict,
    ValueKind.TIME: lambda: ZERO_TIME,
}


if __name__ == "__main__":
    try:
        config = load_config()
    except ConfigError as e:
        print(f"Error: {e}")
        raise SystemExit(1)
    for key in ("app.host", "app.port", "folders.cms", "logger.level"):
        print(f"{key} = {config.get(key)!r}")
