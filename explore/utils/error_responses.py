"""Builders for the JSON error payloads returned by the API.

Each builder stamps the current request id and a timezone-aware timestamp so
every error body has the same shape regardless of which handler produced it.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime

from explore.errors import ErrorKind, ServiceError
from explore.schemas.error import (
    ErrorResponse,
    ValidationErrorDetail,
    ValidationErrorResponse,
)
from explore.utils.request_context import get_request_id

__all__ = [
    "STATUS_BY_KIND",
    "build_error_response",
    "build_service_error_response",
    "build_validation_error_response",
    "status_for_kind",
]

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION_ERROR: 400,
    ErrorKind.INVALID_CURSOR: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CANCELED: 499,
    ErrorKind.INTERNAL: 500,
    ErrorKind.TIMEOUT: 504,
}


def _current_timestamp() -> datetime:
    return datetime.now(UTC)


def status_for_kind(kind: ErrorKind) -> int:
    return STATUS_BY_KIND.get(kind, 500)


def build_validation_error_response(
    *,
    errors: Sequence[ValidationErrorDetail],
    message: str,
    detail: str,
    status_code: int,
    path: str,
    request_id: str | None = None,
) -> ValidationErrorResponse:
    return ValidationErrorResponse(
        error_type=ErrorKind.VALIDATION_ERROR,
        message=message,
        detail=detail,
        status_code=status_code,
        timestamp=_current_timestamp(),
        request_id=request_id or get_request_id(),
        path=path,
        errors=list(errors),
    )


def build_error_response(
    *,
    error_type: ErrorKind,
    message: str,
    detail: str | None,
    status_code: int,
    path: str,
    request_id: str | None = None,
) -> ErrorResponse:
    return ErrorResponse(
        error_type=error_type,
        message=message,
        detail=detail,
        status_code=status_code,
        timestamp=_current_timestamp(),
        request_id=request_id or get_request_id(),
        path=path,
    )


def build_service_error_response(exc: ServiceError, *, path: str) -> ErrorResponse:
    """Render ``exc`` with the HTTP status matching its kind.

    Internal errors never echo their detail back to the client; it is logged
    by the handler instead.
    """

    detail = None if exc.kind is ErrorKind.INTERNAL else exc.detail
    return build_error_response(
        error_type=exc.kind,
        message=exc.message,
        detail=detail,
        status_code=status_for_kind(exc.kind),
        path=path,
    )
