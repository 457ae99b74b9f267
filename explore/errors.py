"""Error taxonomy shared by the decision core and the HTTP boundary.

Every failure that leaves the service layer is a :class:`ServiceError` whose
``kind`` tells the transport how to report it. Store and infrastructure
exceptions are converted with :func:`map_exception` so callers never have to
inspect SQLAlchemy or asyncio exception types themselves.
"""

from __future__ import annotations

import asyncio
from enum import Enum

from sqlalchemy.exc import NoResultFound
from sqlalchemy.exc import TimeoutError as SQLAlchemyTimeoutError

__all__ = [
    "CanceledError",
    "DeadlineExceededError",
    "ErrorKind",
    "InternalError",
    "InvalidCursorError",
    "NotFoundError",
    "ServiceError",
    "ValidationError",
    "map_exception",
]


class ErrorKind(str, Enum):
    """Discriminant carried by every :class:`ServiceError`."""

    VALIDATION_ERROR = "validation_error"
    NOT_FOUND = "not_found"
    INVALID_CURSOR = "invalid_cursor"
    TIMEOUT = "timeout"
    CANCELED = "canceled"
    INTERNAL = "internal"


class ServiceError(Exception):
    """Base class for errors surfaced to callers of the decision service."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str, *, detail: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r}, message={self.message!r})"


class ValidationError(ServiceError):
    """Malformed caller input: bad identifier, self-decision, bad page size."""

    kind = ErrorKind.VALIDATION_ERROR


class NotFoundError(ServiceError):
    kind = ErrorKind.NOT_FOUND


class InvalidCursorError(ServiceError):
    """The pagination token could not be decoded."""

    kind = ErrorKind.INVALID_CURSOR


class DeadlineExceededError(ServiceError):
    kind = ErrorKind.TIMEOUT


class CanceledError(ServiceError):
    kind = ErrorKind.CANCELED


class InternalError(ServiceError):
    """Any other store or cache failure. Callers treat it as opaque."""

    kind = ErrorKind.INTERNAL


def map_exception(exc: BaseException) -> ServiceError:
    """Translate ``exc`` into the service taxonomy.

    ``ServiceError`` instances pass through untouched. Deadline expiry from
    ``asyncio.timeout`` and SQLAlchemy pool checkout timeouts both become
    :class:`DeadlineExceededError`. Everything unrecognised is reported as
    :class:`InternalError` with the original message kept as ``detail`` for
    debuggability.
    """

    if isinstance(exc, ServiceError):
        return exc
    if isinstance(exc, (TimeoutError, SQLAlchemyTimeoutError)):
        return DeadlineExceededError("request timed out")
    if isinstance(exc, asyncio.CancelledError):
        return CanceledError("request was canceled")
    if isinstance(exc, NoResultFound):
        return NotFoundError("record not found")
    return InternalError("internal error", detail=str(exc) or type(exc).__name__)
