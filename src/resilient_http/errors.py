"""Error taxonomy for request execution.

Every error carries an ErrorCode for programmatic handling and a
``recoverable`` flag. Errors that occur after a response was received keep
it on ``.response`` so callers retain status and headers.

Callers can always tell apart:
    - never attempted: MissingDeadlineError, MissingDependencyError
    - exhausted retries: ExecutorError
    - interrupted while waiting: ContextCancelledError (RetryAbortedError
      when an executor error was already recorded)
    - succeeded but failed to decode: DecodeError
"""

from __future__ import annotations

from enum import StrEnum
from functools import lru_cache
from typing import TYPE_CHECKING, Self

if TYPE_CHECKING:
    import httpx


class ErrorCode(StrEnum):
    """Standard error codes for request execution failures."""
    MISSING_DEADLINE = "MISSING_DEADLINE"
    MISSING_DEPENDENCY = "MISSING_DEPENDENCY"
    EXECUTOR_FAILED = "EXECUTOR_FAILED"
    TIMEOUT = "TIMEOUT"
    NETWORK_ERROR = "NETWORK_ERROR"
    CANCELLED = "CANCELLED"
    DEADLINE_EXCEEDED = "DEADLINE_EXCEEDED"
    DECODE_FAILED = "DECODE_FAILED"
    NIL_SOURCE = "NIL_SOURCE"
    INVALID_TARGET = "INVALID_TARGET"
    UNKNOWN_DECODER = "UNKNOWN_DECODER"
    HTTP_STATUS = "HTTP_STATUS"
    UNKNOWN = "UNKNOWN"


# Checked in order, first hit wins
_PATTERN_CODES: dict[str, ErrorCode] = {
    "timeout": ErrorCode.TIMEOUT,
    "timedout": ErrorCode.TIMEOUT,
    "connect": ErrorCode.NETWORK_ERROR,
    "network": ErrorCode.NETWORK_ERROR,
    "protocol": ErrorCode.NETWORK_ERROR,
    "transport": ErrorCode.NETWORK_ERROR,
}
_PATTERN_KEYS = tuple(_PATTERN_CODES.keys())


@lru_cache(maxsize=256)
def _classify_cached(exc_key: str) -> ErrorCode:
    haystack = exc_key.lower()
    for pattern in _PATTERN_KEYS:
        if pattern in haystack:
            return _PATTERN_CODES[pattern]
    return ErrorCode.EXECUTOR_FAILED


def classify_exception(exc: BaseException) -> ErrorCode:
    """Map an executor exception to an error code via its type name and message."""
    if isinstance(exc, ResilientHttpError):
        return exc.code
    return _classify_cached(f"{type(exc).__name__} {exc}")


class ResilientHttpError(Exception):
    """Base class for all errors raised by this package."""

    code: ErrorCode = ErrorCode.UNKNOWN
    recoverable: bool = False

    def __init__(self, message: str, *, response: httpx.Response | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.response = response


class MissingDeadlineError(ResilientHttpError):
    """The request context has no deadline; raised before any attempt."""

    code = ErrorCode.MISSING_DEADLINE

    def __init__(self, message: str = "HTTP request is missing context deadline") -> None:
        super().__init__(message)


class MissingDependencyError(ResilientHttpError):
    """A required collaborator (executor, backoff) is not configured."""

    code = ErrorCode.MISSING_DEPENDENCY

    def __init__(self, missing: list[str]) -> None:
        self.missing = tuple(missing)
        super().__init__(
            f"required client fields are not set: {', '.join(self.missing)}; "
            "consider using the Client constructor"
        )


class ExecutorError(ResilientHttpError):
    """The final attempt failed and the retry budget is spent.

    The executor's exception is chained as ``__cause__`` and kept on
    ``.cause``; ``.attempts`` is the number of executor calls made.
    """

    code = ErrorCode.EXECUTOR_FAILED
    recoverable = True

    def __init__(
        self,
        cause: BaseException,
        *,
        attempts: int,
        response: httpx.Response | None = None,
    ) -> None:
        self.cause = cause
        self.attempts = attempts
        self.cause_code = classify_exception(cause)
        super().__init__(f"request failed after {attempts} attempt(s): {cause}", response=response)


class ContextCancelledError(ResilientHttpError):
    """The context was cancelled while waiting for the next attempt."""

    code = ErrorCode.CANCELLED

    def __init__(self, message: str = "context canceled", *, response: httpx.Response | None = None) -> None:
        super().__init__(message, response=response)


class DeadlineExceededError(ContextCancelledError):
    """The context deadline passed while waiting for the next attempt."""

    code = ErrorCode.DEADLINE_EXCEEDED

    def __init__(self, message: str = "context deadline exceeded", *, response: httpx.Response | None = None) -> None:
        super().__init__(message, response=response)


class RetryAbortedError(ExecutorError, ContextCancelledError):
    """The context ended during a backoff wait after an attempt had already failed.

    Reports the recorded executor error as its cause; the context error that
    interrupted the wait is kept on ``.context_error``.
    """

    code = ErrorCode.EXECUTOR_FAILED

    def __init__(
        self,
        cause: BaseException,
        context_error: ContextCancelledError,
        *,
        attempts: int,
        response: httpx.Response | None = None,
    ) -> None:
        ExecutorError.__init__(self, cause, attempts=attempts, response=response)
        self.context_error = context_error

    @classmethod
    def from_executor_error(cls, error: ExecutorError, context_error: ContextCancelledError) -> Self:
        return cls(error.cause, context_error, attempts=error.attempts, response=error.response)


class DecodeError(ResilientHttpError):
    """The body decoder failed; the underlying error is chained as ``__cause__``."""

    code = ErrorCode.DECODE_FAILED

    def __init__(self, cause: BaseException, *, response: httpx.Response | None = None) -> None:
        self.cause = cause
        super().__init__(f"error decoding response: {cause}", response=response)


class NilSourceError(ResilientHttpError):
    """Decode was attempted against an absent body."""

    code = ErrorCode.NIL_SOURCE

    def __init__(self, message: str = "can't decode from nil source") -> None:
        super().__init__(message)


class InvalidTargetError(ResilientHttpError, TypeError):
    """The decode target is absent, immutable or of the wrong shape."""

    code = ErrorCode.INVALID_TARGET


class UnknownDecoderTypeError(ResilientHttpError, ValueError):
    code = ErrorCode.UNKNOWN_DECODER

    def __init__(self, decoder_type: object) -> None:
        super().__init__(f"unknown decoder type: {decoder_type!r}")


class StatusError(ResilientHttpError):
    """An error status returned by the server.

    Not raised by the client itself: an error response that the gate skipped
    is returned unread, and callers may convert it with ``from_response``.
    """

    code = ErrorCode.HTTP_STATUS

    def __init__(self, status_code: int, reason: str, message: str, *, response: httpx.Response | None = None) -> None:
        self.status_code = status_code
        self.reason = reason
        super().__init__(f"HTTP error {status_code} {reason}: {message}", response=response)
        self.message = message

    @property
    def recoverable(self) -> bool:  # type: ignore[override]
        return self.status_code >= 500 or self.status_code == 429

    @classmethod
    def from_response(cls, response: httpx.Response, message: str = "") -> Self:
        return cls(response.status_code, response.reason_phrase, message, response=response)
