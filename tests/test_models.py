"""
Tests for targets, results and the error taxonomy.
"""

import pytest

from lxdx.errors import (
    CONNECT_ERROR,
    MKDIR_ERROR,
    WRITE_ERROR,
    ConnectError,
    FileError,
    reraise_as,
)
from lxdx.models import Result, Target


class TestTarget:
    def test_safe_name(self):
        """Test the target's display name."""
        assert Target(name="web", host="web-1").safe_name == "web"

    def test_from_uri(self):
        """Test parsing a URI without a remote."""
        target = Target.from_uri("lxd://web-1")

        assert target.name == "lxd://web-1"
        assert target.host == "web-1"
        assert "service-url" not in target.options

    def test_from_uri_with_remote(self):
        """Test parsing a URI with a remote."""
        target = Target.from_uri("lxd://lab/web-1", {"tmpdir": "/var/tmp"})

        assert target.host == "web-1"
        assert target.options == {"tmpdir": "/var/tmp", "service-url": "lab"}

    def test_from_uri_does_not_mutate_options(self):
        """Test that URI parsing copies the options."""
        options = {"tmpdir": "/var/tmp"}
        Target.from_uri("lxd://lab/web-1", options)
        assert options == {"tmpdir": "/var/tmp"}

    def test_from_uri_wrong_scheme(self):
        """Test that other URI schemes are rejected."""
        with pytest.raises(ValueError, match="lxd://"):
            Target.from_uri("ssh://web-1")


class TestResult:
    def test_command_success(self):
        """Test the dictionary form of a successful result."""
        result = Result("web", "command", "uptime", stdout="up\n", exit_code=0)

        assert result.ok
        assert result.to_dict() == {
            "target": "web",
            "action": "command",
            "object": "uptime",
            "status": "success",
            "value": {"stdout": "up\n", "stderr": "", "exit_code": 0},
        }

    def test_non_zero_is_failure(self):
        """Test that a non-zero exit is a failure."""
        assert not Result("web", "command", "false", exit_code=1).ok

    def test_error_result(self):
        """Test the dictionary form of an error result."""
        error = FileError("disk full", WRITE_ERROR).to_dict()
        result = Result("web", "upload", "/src", error=error)

        assert not result.ok
        data = result.to_dict()
        assert data["status"] == "failure"
        assert data["value"] == {"_error": error}


class TestErrors:
    def test_to_dict(self):
        """Test the dictionary form of an error."""
        error = ConnectError("Failed to connect to web: boom", details={"host": "web-1"})

        assert error.to_dict() == {
            "kind": "lxdx/connect-error",
            "msg": "Failed to connect to web: boom",
            "details": {"host": "web-1", "issue_code": CONNECT_ERROR},
        }
        assert error.suggestions

    def test_reraise_as_wraps_other_errors(self):
        """Test that foreign errors are wrapped with the issue code."""
        with pytest.raises(FileError) as exc_info:
            with reraise_as(FileError, MKDIR_ERROR, "Could not create directories"):
                raise OSError("lxc vanished")

        error = exc_info.value
        assert error.issue_code == MKDIR_ERROR
        assert str(error) == "Could not create directories: lxc vanished"
        assert isinstance(error.__cause__, OSError)

    def test_reraise_as_passes_through_own_kind(self):
        """Test that errors of the target kind pass through."""
        original = FileError("chmod failed", "CHMOD_ERROR")

        with pytest.raises(FileError) as exc_info:
            with reraise_as(FileError, WRITE_ERROR):
                raise original
        assert exc_info.value is original

    def test_reraise_as_without_prefix(self):
        """Test wrapping without a message prefix."""
        with pytest.raises(ConnectError, match="^boom$"):
            with reraise_as(ConnectError, CONNECT_ERROR):
                raise RuntimeError("boom")
