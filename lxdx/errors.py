"""
Error taxonomy for the lxdx transport.

Connect-phase failures are reported as ConnectError, post-connect file and
directory failures as FileError. Both carry a stable issue code so callers
can tell failures apart without parsing messages.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

# Issue codes
CONNECT_ERROR = "CONNECT_ERROR"
WRITE_ERROR = "WRITE_ERROR"
MKDIR_ERROR = "MKDIR_ERROR"
TEMPDIR_ERROR = "TEMPDIR_ERROR"
CHMOD_ERROR = "CHMOD_ERROR"


class ValidationError(Exception):
    """Raised when a target descriptor cannot be used to build a connection."""

    pass


class TransportError(Exception):
    """Base exception for errors surfaced to transport callers."""

    kind = "lxdx/transport-error"

    def __init__(
        self, message: str, issue_code: str, details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.issue_code = issue_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Serialisable form used in action results and --json output."""
        details = dict(self.details)
        details["issue_code"] = self.issue_code
        return {"kind": self.kind, "msg": self.message, "details": details}


class ConnectError(TransportError):
    """Raised when a target's remote or container cannot be found."""

    kind = "lxdx/connect-error"

    def __init__(
        self,
        message: str,
        issue_code: str = CONNECT_ERROR,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, issue_code, details)
        self.suggestions = self._get_suggestions()

    def _get_suggestions(self) -> List[str]:
        """Troubleshooting hints printed by the command line."""
        return [
            "Check the remote is configured: lxc remote list",
            "Check the container exists: lxc list",
            "Verify the target's host matches the container name exactly",
        ]


class FileError(TransportError):
    """Raised when a file or directory operation inside the container fails."""

    kind = "lxdx/file-error"


class LxcError(Exception):
    """Base exception for failures of the lxc command itself."""

    pass


class LxcCommandError(LxcError):
    """Raised when lxc exits non-zero where structured output was expected."""

    def __init__(self, argv: List[str], returncode: Optional[int], stderr: str):
        self.argv = argv
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(
            f"'{' '.join(argv)}' failed with exit code {returncode}: {stderr.strip()}"
        )


class OutputParseError(LxcError, ValueError):
    """Raised when lxc output does not have the expected structure."""

    pass


@contextmanager
def reraise_as(error_cls, issue_code: str, prefix: Optional[str] = None):
    """
    Reclassify any failure raised inside the block as ``error_cls``.

    Errors that already are ``error_cls`` pass through untouched, so nested
    operations keep their own issue code.

    Args:
        error_cls: TransportError subclass to raise
        issue_code: Issue code given to reclassified errors
        prefix: Optional text prepended to the original message
    """
    try:
        yield
    except error_cls:
        raise
    except Exception as e:  # pylint: disable=broad-exception-caught
        message = f"{prefix}: {e}" if prefix else str(e)
        logger.debug(f"Reclassifying {type(e).__name__} as {error_cls.__name__}")
        raise error_cls(message, issue_code) from e
