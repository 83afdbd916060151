"""
Repository-layer exceptions for the intelligence tables.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError

from app.failure_codes import QueryError


class RepositoryError(QueryError):
    """Base exception for repository failures; classified as ``query_error``."""

    def __init__(self, operation: str, message: str) -> None:
        self.operation = operation
        super().__init__(f"Database query failed during {operation}: {message}")


class RepositoryReadError(RepositoryError):
    """Raised when a read query fails."""


class RepositoryWriteError(RepositoryError):
    """Raised when an insert, upsert or delete fails."""


@contextmanager
def translate_errors(operation: str, error_type: type[RepositoryError] = RepositoryError) -> Iterator[None]:
    """Re-raise ``SQLAlchemyError`` raised inside the block as *error_type*."""
    try:
        yield
    except SQLAlchemyError as exc:
        raise error_type(operation, str(exc).splitlines()[0] if str(exc) else type(exc).__name__) from exc
