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

"""Tests for configuration loading and typed lookups."""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from static_files_server.config import (
    ZERO_TIME,
    Configuration,
    ValueKind,
    env_key,
    find_config_file,
    load_config,
)
from static_files_server.exceptions import ConfigError, ConfigNotFoundError

VALUES = {
    "app": {"host": "127.0.0.1", "port": 8080, "debug": True},
    "folders": {"cms": "./cms"},
    "logger": {"level": "info"},
    "limits": {
        "timeout": "1m30s",
        "ratio": 0.75,
        "upload": "10mb",
        "origins": ["a.example", "b.example"],
        "labels": {"team": "web", "tier": 2},
        "since": "2024-05-01T10:00:00Z",
    },
}

CONFIG_YAML = """\
app:
  host: 0.0.0.0
  port: 9090
folders:
  cms: /srv/cms
logger:
  level: debug
"""


class TestEnvKey:
    """Tests for env_key."""

    def test_dots_become_underscores(self) -> None:
        """Test that dots become underscores and letters are upper-cased."""
        assert env_key("app.port") == "APP_PORT"
        assert env_key("folders.cms") == "FOLDERS_CMS"
        assert env_key("logger.level") == "LOGGER_LEVEL"


class TestConfigurationLookup:
    """Typed lookups over file values."""

    def test_string_and_int(self) -> None:
        """Test string and int values."""
        config = Configuration(VALUES)
        assert config.get("app.host") == "127.0.0.1"
        assert config.get("app.port", ValueKind.INT) == 8080
        assert config.get("app.port", ValueKind.STRING) == "8080"

    def test_keys_are_case_insensitive(self) -> None:
        """Test that keys match regardless of case."""
        config = Configuration({"App": {"Host": "example.org"}})
        assert config.get("app.host") == "example.org"
        assert config.get("APP.HOST") == "example.org"

    def test_bool_and_float(self) -> None:
        config = Configuration(VALUES)
        assert config.get("app.debug", ValueKind.BOOL) is True
        assert config.get("limits.ratio", ValueKind.FLOAT) == 0.75

    def test_duration(self) -> None:
        """Test duration values."""
        config = Configuration(VALUES)
        assert config.get("limits.timeout", ValueKind.DURATION) == timedelta(seconds=90)

    def test_size_in_bytes(self) -> None:
        config = Configuration(VALUES)
        assert config.get("limits.upload", ValueKind.SIZE) == 10 * 1024 * 1024

    def test_string_slice_and_map(self) -> None:
        """Test string lists and string maps."""
        config = Configuration(VALUES)
        assert config.get("limits.origins", ValueKind.STRING_SLICE) == ["a.example", "b.example"]
        assert config.get("limits.labels", ValueKind.STRING_MAP) == {"team": "web", "tier": 2}

    def test_time(self) -> None:
        """Test time values."""
        config = Configuration(VALUES)
        assert config.get("limits.since", ValueKind.TIME) == datetime(
            2024, 5, 1, 10, 0, tzinfo=timezone.utc
        )

    def test_section_as_map(self) -> None:
        config = Configuration(VALUES)
        assert config.get("folders", ValueKind.STRING_MAP) == {"cms": "./cms"}


class TestZeroValues:
    """Missing or unconvertible values never raise."""

    @pytest.mark.parametrize(
        "kind, zero",
        [
            (ValueKind.STRING, ""),
            (ValueKind.INT, 0),
            (ValueKind.BOOL, False),
            (ValueKind.FLOAT, 0.0),
            (ValueKind.DURATION, timedelta(0)),
            (ValueKind.SIZE, 0),
            (ValueKind.STRING_SLICE, []),
            (ValueKind.STRING_MAP, {}),
            (ValueKind.TIME, ZERO_TIME),
        ],
    )
    def test_missing_key(self, kind: ValueKind, zero: object) -> None:
        """Test the zero value of each kind for a missing key."""
        assert Configuration({}).get("app.port", kind) == zero

    def test_unconvertible_value(self) -> None:
        """Test that a value that cannot be converted is the zero value."""
        config = Configuration({"app": {"port": "eighty"}})
        assert config.get("app.port", ValueKind.INT) == 0

    def test_missing_port_is_zero(self) -> None:
        """Test that a missing port is 0."""
        config = Configuration({"app": {"host": "localhost"}})
        assert config.get("app.port", ValueKind.INT) == 0

    def test_section_is_not_a_string(self) -> None:
        assert Configuration(VALUES).get("app") == ""


class TestEnvironmentOverrides:
    """Tests for environment variable overrides."""

    def test_env_wins_over_file(self) -> None:
        """Test that the environment wins over the file."""
        config = Configuration(VALUES, environ={"APP_PORT": "9000", "LOGGER_LEVEL": "debug"})
        assert config.get("app.port", ValueKind.INT) == 9000
        assert config.get("logger.level") == "debug"

    def test_env_provides_missing_key(self) -> None:
        """Test that an env value supplies a key missing from the file."""
        config = Configuration({}, environ={"FOLDERS_CMS": "/srv/cms"})
        assert config.get("folders.cms") == "/srv/cms"
        assert config.is_set("folders.cms")
        assert not config.in_config("folders.cms")

    def test_empty_env_value_is_ignored(self) -> None:
        """Test that an empty env value does not override the file."""
        config = Configuration(VALUES, environ={"APP_HOST": ""})
        assert config.get("app.host") == "127.0.0.1"

    def test_environment_is_snapshotted(self) -> None:
        """Test that later changes to the environment are not seen."""
        environ = {"APP_HOST": "first"}
        config = Configuration(VALUES, environ=environ)
        environ["APP_HOST"] = "second"
        assert config.get("app.host") == "first"

    def test_env_strings_are_converted(self) -> None:
        """Test that env strings are converted to the requested kind."""
        config = Configuration(
            {},
            environ={
                "APP_DEBUG": "t",
                "LIMITS_TIMEOUT": "250ms",
                "LIMITS_UPLOAD": "2k",
                "LIMITS_ORIGINS": "a b  c",
                "LIMITS_LABELS": '{"team": "web"}',
            },
        )
        assert config.get("app.debug", ValueKind.BOOL) is True
        assert config.get("limits.timeout", ValueKind.DURATION) == timedelta(milliseconds=250)
        assert config.get("limits.upload", ValueKind.SIZE) == 2048
        assert config.get("limits.origins", ValueKind.STRING_SLICE) == ["a", "b", "c"]
        assert config.get("limits.labels", ValueKind.STRING_MAP) == {"team": "web"}


class TestConversions:
    """Tests for value conversions."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("10s", timedelta(seconds=10)),
            ("1h30m", timedelta(hours=1, minutes=30)),
            ("1.5h", timedelta(hours=1, minutes=30)),
            ("-2m", timedelta(minutes=-2)),
            ("15", timedelta(seconds=15)),
            (3, timedelta(seconds=3)),
            ("10 parsecs", timedelta(0)),
        ],
    )
    def test_duration(self, raw: object, expected: timedelta) -> None:
        """Test bare numbers as seconds and Go-style duration strings."""
        config = Configuration({"value": raw})
        assert config.get("value", ValueKind.DURATION) == expected

    @pytest.mark.parametrize(
        "raw, expected",
        [("512", 512), ("1kb", 1024), ("3MB", 3 << 20), ("1g", 1 << 30), ("-5", 0), ("lots", 0)],
    )
    def test_size(self, raw: str, expected: int) -> None:
        assert Configuration({"value": raw}).get("value", ValueKind.SIZE) == expected

    @pytest.mark.parametrize(
        "raw, expected",
        [("1", True), ("TRUE", True), ("f", False), ("False", False), ("yes", False)],
    )
    def test_bool(self, raw: str, expected: bool) -> None:
        assert Configuration({"value": raw}).get("value", ValueKind.BOOL) is expected

    def test_time_from_unix_seconds(self) -> None:
        """Test that a number converts to a UTC time."""
        config = Configuration({"value": 0})
        assert config.get("value", ValueKind.TIME) == datetime(1970, 1, 1, tzinfo=timezone.utc)


class TestImmutability:
    """Tests for configuration immutability."""

    def test_cannot_assign(self) -> None:
        """Test that attributes cannot be assigned."""
        config = Configuration(VALUES)
        with pytest.raises(AttributeError):
            config.config_file_used = Path("/tmp/other.yaml")

    def test_source_mapping_changes_are_not_seen(self) -> None:
        """Test that the configuration is a snapshot of its source."""
        values = {"app": {"host": "before"}}
        config = Configuration(values)
        values["app"]["host"] = "after"
        assert config.get("app.host") == "before"

    def test_returned_map_is_a_copy(self) -> None:
        """Test that mutating a returned map does not change the configuration."""
        config = Configuration(VALUES)
        labels = config.get("limits.labels", ValueKind.STRING_MAP)
        labels["team"] = "ops"
        assert config.get("limits.labels", ValueKind.STRING_MAP)["team"] == "web"


class TestFindConfigFile:
    """Tests for find_config_file."""

    def test_first_match_wins(self, tmp_path: Path) -> None:
        """Test that the first directory holding the file wins."""
        first = tmp_path / "first"
        second = tmp_path / "second"
        first.mkdir()
        second.mkdir()
        (second / "static-files-server.yaml").write_text(CONFIG_YAML)
        (first / "static-files-server.yml").write_text(CONFIG_YAML)

        found = find_config_file([str(first), str(second)])
        assert found == (first / "static-files-server.yml").resolve()

    def test_skips_missing_directories(self, tmp_path: Path) -> None:
        """Test that missing search directories are skipped."""
        (tmp_path / "static-files-server.yaml").write_text(CONFIG_YAML)
        found = find_config_file([str(tmp_path / "nope"), str(tmp_path)])
        assert found == (tmp_path / "static-files-server.yaml").resolve()

    def test_none_when_absent(self, tmp_path: Path) -> None:
        assert find_config_file([str(tmp_path)]) is None


class TestLoadConfig:
    """Tests for load_config."""

    def test_missing_file_is_an_error(self, tmp_path: Path) -> None:
        """Test that a missing file raises ConfigNotFoundError with the search paths."""
        with pytest.raises(ConfigNotFoundError) as exc_info:
            load_config([str(tmp_path)], environ={})
        assert isinstance(exc_info.value, ConfigError)
        assert str(tmp_path) in str(exc_info.value)

    def test_loads_yaml_with_env_override(self, tmp_path: Path) -> None:
        """Test loading a real YAML file with an environment override."""
        path = tmp_path / "static-files-server.yaml"
        path.write_text(CONFIG_YAML)

        config = load_config([str(tmp_path)], environ={"APP_PORT": "7000"})

        assert config.config_file_used == path.resolve()
        assert config.get("app.host") == "0.0.0.0"
        assert config.get("app.port", ValueKind.INT) == 7000
        assert config.get("folders.cms") == "/srv/cms"
        assert config.get("logger.level") == "debug"
        assert config.in_config("app.port")
