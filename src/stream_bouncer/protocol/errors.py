"""Error model for the bridge protocol.

Every failure inside command handling is normalized into an APIError,
which carries a machine-readable code and a human-readable message.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Error codes emitted on the wire."""

    INVALID_PAYLOAD = "INVALID_PAYLOAD"
    INVALID_COMMAND = "INVALID_COMMAND"
    INVALID_EVENT = "INVALID_EVENT"
    INVALID_GUILD = "INVALID_GUILD"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


UNKNOWN_ERROR_MESSAGE = "Unknown Error"


class APIError(Exception):
    """A handled error with a code and message.

    Handlers may raise this with one of the ErrorCode members or with
    their own string code; either is propagated unchanged.
    """

    def __init__(self, code: ErrorCode | str, message: str) -> None:
        super().__init__(message)
        self.code = code.value if isinstance(code, ErrorCode) else code
        self.message = message

    @classmethod
    def from_exception(cls, exc: BaseException) -> APIError:
        """Normalize any exception into an APIError."""
        if isinstance(exc, APIError):
            return exc
        return cls(ErrorCode.UNKNOWN_ERROR, str(exc) or UNKNOWN_ERROR_MESSAGE)

    def to_data(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message}

    def __repr__(self) -> str:
        return f"APIError(code={self.code!r}, message={self.message!r})"


class ConfigurationError(Exception):
    """The bridge was wired with an inconsistent handler registry."""
