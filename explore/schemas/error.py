"""Error response schemas for consistent error handling."""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field

from explore.errors import ErrorKind


class ErrorResponse(BaseModel):
    """Standardized error response model."""

    error_type: ErrorKind = Field(..., description="Category of error")
    message: str = Field(..., description="Human-readable error message")
    detail: str | None = Field(None, description="Additional error details or context")
    status_code: int = Field(..., description="HTTP status code")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(UTC), description="When error occurred"
    )
    request_id: str | None = Field(None, description="Unique request identifier for tracking")
    path: str | None = Field(None, description="Request path that caused the error")

    class Config:
        """Pydantic config."""

        json_schema_extra = {
            "example": {
                "error_type": "invalid_cursor",
                "message": "invalid pagination token",
                "detail": None,
                "status_code": 400,
                "timestamp": "2026-10-18T10:30:00Z",
                "request_id": "3f2b8c1e-8a51-4a6e-9d0f-5b7c2f4d9e10",
                "path": "/explore/liked-you/42",
            }
        }


class ValidationErrorDetail(BaseModel):
    """Details for validation errors."""

    field: str = Field(..., description="Field that failed validation")
    message: str = Field(..., description="Validation error message")
    value: Any = Field(None, description="Value that failed validation")


class ValidationErrorResponse(ErrorResponse):
    """Extended error response for request validation errors."""

    error_type: ErrorKind = Field(default=ErrorKind.VALIDATION_ERROR)
    errors: list[ValidationErrorDetail] = Field(
        default_factory=list, description="List of validation errors"
    )
