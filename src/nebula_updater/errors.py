"""Error types raised by the update pipeline.

Every failure that can abort an update cycle carries an ``ErrorKind`` so the
manager (and tests) can tell a broken trust anchor from a flaky download
without matching on message text.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(Enum):
    """Stage of the pipeline that failed."""

    BOOTSTRAP = "bootstrap"
    RESOLVE = "resolve"
    PARSE = "parse"
    FETCH = "fetch"
    VERIFY = "verify"


class UpdateError(Exception):
    """Base class for update pipeline failures."""

    kind: ErrorKind

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class BootstrapError(UpdateError):
    """Raised when the trust anchor cannot be established."""

    kind = ErrorKind.BOOTSTRAP


class ResolveError(UpdateError):
    """Raised when the verified manifest cannot be resolved."""

    kind = ErrorKind.RESOLVE


class ParseError(UpdateError):
    """Raised for malformed manifests and unparseable version strings."""

    kind = ErrorKind.PARSE


class FetchError(UpdateError):
    """Raised when the artifact cannot be downloaded."""

    kind = ErrorKind.FETCH

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class VerifyError(UpdateError):
    """Raised when a downloaded artifact cannot be read for verification."""

    kind = ErrorKind.VERIFY
