"""Error taxonomy.

Every failure the engine can observe maps to one ``ErrorCode``. None of them
reach the host: the gate and the cache catch them at their boundary and
decide between a silent no-op and a wall-clock fallback.
"""

from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    NOT_FOUND = "NOT_FOUND"
    ENVIRONMENT_UNAVAILABLE = "ENVIRONMENT_UNAVAILABLE"
    MALFORMED_OUTPUT = "MALFORMED_OUTPUT"
    WRITE_FAILURE = "WRITE_FAILURE"
    INVALID_FORMAT = "INVALID_FORMAT"


class PageStampError(Exception):
    """Base class carrying a machine-readable code."""

    code: ErrorCode = ErrorCode.NOT_FOUND
    recoverable: bool = False

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_log(self) -> dict[str, object]:
        return {"code": str(self.code), "message": self.message, "recoverable": self.recoverable}


class NotFound(PageStampError):
    """A page, block or backing file is absent. Treated as a benign no-op."""

    code = ErrorCode.NOT_FOUND


class EnvironmentUnavailable(PageStampError):
    """The history tool could not be invoked."""

    code = ErrorCode.ENVIRONMENT_UNAVAILABLE
    recoverable = True


class MalformedOutput(PageStampError):
    """The history tool answered with something other than a second count."""

    code = ErrorCode.MALFORMED_OUTPUT
    recoverable = True


class WriteFailure(PageStampError):
    """The store rejected a mutation. Never retried."""

    code = ErrorCode.WRITE_FAILURE


class InvalidDateFormat(PageStampError):
    """The user's date pattern contains a token that cannot be rendered."""

    code = ErrorCode.INVALID_FORMAT
