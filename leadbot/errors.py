"""Error taxonomy for the dialogue engine."""

from enum import Enum
from typing import Optional


class ErrorCode(str, Enum):
    """Caller-visible error codes carried on a failed turn."""

    EMPTY_MESSAGE = "EMPTY_MESSAGE"
    MESSAGE_TOO_LONG = "MESSAGE_TOO_LONG"
    INVALID_JSON = "INVALID_JSON"
    AUTH_ERROR = "AUTH_ERROR"
    RATE_LIMIT = "RATE_LIMIT"
    SERVICE_ERROR = "SERVICE_ERROR"
    TIMEOUT_ERROR = "TIMEOUT_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class FailureCause(str, Enum):
    """Why a classification attempt had to fall back."""

    GENERATION_SERVICE_ERROR = "GENERATION_SERVICE_ERROR"
    MALFORMED_OUTPUT = "MALFORMED_OUTPUT"
    INVALID_CATEGORY = "INVALID_CATEGORY"


class ValidationError(ValueError):
    """User input rejected before it reaches the transcript."""

    def __init__(self, message: str, code: ErrorCode = ErrorCode.EMPTY_MESSAGE):
        super().__init__(message)
        self.code = code


class GenerationServiceError(Exception):
    """The text-generation service failed.

    ``kind`` is one of ``auth``, ``rate_limit``, ``server``, ``timeout`` or
    ``unknown``; ``status`` is the HTTP status the service reported, if any.
    """

    _CODES = {
        "auth": ErrorCode.AUTH_ERROR,
        "rate_limit": ErrorCode.RATE_LIMIT,
        "server": ErrorCode.SERVICE_ERROR,
        "timeout": ErrorCode.TIMEOUT_ERROR,
    }

    _USER_MESSAGES = {
        "auth": "The assistant is not available right now. Please try again later.",
        "rate_limit": "We're getting a lot of messages right now. Please try again in a moment.",
        "server": "The assistant had trouble responding. Please try again.",
        "timeout": "The request timed out, please try again.",
    }

    def __init__(self, message: str, kind: str = "unknown", status: Optional[int] = None):
        super().__init__(message)
        self.kind = kind if kind in self._CODES else "unknown"
        self.status = status

    @property
    def code(self) -> ErrorCode:
        return self._CODES.get(self.kind, ErrorCode.UNKNOWN_ERROR)

    @property
    def user_message(self) -> str:
        return self._USER_MESSAGES.get(self.kind, "Failed to process chat message. Please try again.")


class ClassificationFailure(Exception):
    """Internal: a classification attempt failed and must fall back."""

    def __init__(self, cause: FailureCause, detail: str = ""):
        super().__init__(f"{cause.value}: {detail}" if detail else cause.value)
        self.cause = cause
        self.detail = detail


class PersistenceFailure(Exception):
    """A lead row could not be written to the sink."""
