"""Pydantic schemas for API requests and responses."""

from explore.schemas.decisions import (  # noqa: F401
    CountLikedYouResponse,
    Liker,
    ListLikedYouResponse,
    PutDecisionRequest,
    PutDecisionResponse,
)
from explore.schemas.error import (  # noqa: F401
    ErrorResponse,
    ValidationErrorDetail,
    ValidationErrorResponse,
)
