"""
app/failure_codes.py

Failure taxonomy for the intelligence batch orchestrator.

Every unit failure is reduced to one of four types before it is written
to the snapshot's ``failure_reason`` column.
"""

from __future__ import annotations

import re

from sqlalchemy.exc import SQLAlchemyError


class FailureType:
    TIMEOUT = "timeout"
    RATE_LIMIT = "rate_limit"
    QUERY_ERROR = "query_error"
    PROCESSING_ERROR = "processing_error"

    ALL: tuple[str, ...] = (TIMEOUT, RATE_LIMIT, QUERY_ERROR, PROCESSING_ERROR)


MAX_REASON_MESSAGE_LENGTH = 200

_HTTP_429 = re.compile(r"\b429\b")


class UnitTimeoutError(TimeoutError):
    """Raised when one unit exceeds its processing budget."""

    def __init__(self, label: str, timeout_seconds: float) -> None:
        self.label = label
        self.timeout_seconds = timeout_seconds
        super().__init__(f"Processing timeout after {timeout_seconds:g}s for {label}")


class RateLimitError(RuntimeError):
    """Raised by collaborators that were throttled upstream."""


class QueryError(RuntimeError):
    """Raised when a storage read or write fails."""


def classify_failure(exc: BaseException) -> str:
    """
    Map *exc* onto a :class:`FailureType`.

    Typed exceptions win; otherwise the message is inspected, so wrapped
    driver errors still land in the right bucket.
    """

    if isinstance(exc, (UnitTimeoutError, TimeoutError)):
        return FailureType.TIMEOUT
    if isinstance(exc, RateLimitError):
        return FailureType.RATE_LIMIT
    if isinstance(exc, (QueryError, SQLAlchemyError)):
        return FailureType.QUERY_ERROR

    message = str(exc).lower()
    if "timeout" in message or "timed out" in message:
        return FailureType.TIMEOUT
    if "rate limit" in message or _HTTP_429.search(message):
        return FailureType.RATE_LIMIT
    if "query" in message or "database" in message:
        return FailureType.QUERY_ERROR
    return FailureType.PROCESSING_ERROR


def failure_reason(exc: BaseException, failure_type: str | None = None) -> str:
    """``"{type}: {message}"`` with the message truncated to 200 characters."""

    kind = failure_type or classify_failure(exc)
    message = str(exc) or type(exc).__name__
    return f"{kind}: {message[:MAX_REASON_MESSAGE_LENGTH]}"
