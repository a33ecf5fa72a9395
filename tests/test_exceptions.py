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

"""Tests for exception classes."""

import pytest

from static_files_server.exceptions import (
    ConfigError,
    ConfigNotFoundError,
    HTTPException,
    HTTPForbidden,
    HTTPNotFound,
)


class TestHTTPException:
    """Tests for HTTPException class."""

    def test_basic_creation(self) -> None:
        """Test creating exception with status code and detail."""
        exc = HTTPException(404, detail="Not found")
        assert exc.status_code == 404
        assert exc.detail == "Not found"

    def test_default_detail(self) -> None:
        """Test that detail defaults to empty string."""
        assert HTTPException(500).detail == ""

    def test_str_returns_detail(self) -> None:
        """Test that str() returns the detail message."""
        assert str(HTTPException(400, detail="Bad request")) == "Bad request"
        assert str(HTTPException(500)) == ""

    def test_repr(self) -> None:
        """Test __repr__ format."""
        repr_str = repr(HTTPException(404, detail="Not found"))
        assert "HTTPException" in repr_str
        assert "404" in repr_str
        assert "Not found" in repr_str

    def test_shortcuts(self) -> None:
        """Test the 404 and 403 subclasses."""
        assert HTTPNotFound().status_code == 404
        assert HTTPNotFound().detail == "Not Found"
        assert HTTPForbidden("403 Forbidden").status_code == 403
        assert repr(HTTPForbidden()).startswith("HTTPForbidden(")

    def test_raise_and_catch(self) -> None:
        """Test raising a subclass and catching the base class."""
        with pytest.raises(HTTPException) as exc_info:
            raise HTTPNotFound("gone")
        assert exc_info.value.status_code == 404


class TestConfigError:
    """Tests for configuration errors."""

    def test_not_found_message(self) -> None:
        """Test that the message lists every searched location."""
        exc = ConfigNotFoundError("static-files-server", [".", "./params"])
        assert isinstance(exc, ConfigError)
        assert exc.name == "static-files-server"
        assert exc.search_paths == [".", "./params"]
        assert str(exc) == "Config file 'static-files-server' not found in [., ./params]"
