"""Pydantic schemas for the explore API surface."""

from __future__ import annotations

from pydantic import BaseModel, Field

from explore.db.models import Decision
from explore.pagination import to_unix_millis


class PutDecisionRequest(BaseModel):
    """Record (or overwrite) one user's decision about another."""

    actor_user_id: str = Field(
        ...,
        description="Decimal unsigned 64-bit identifier of the deciding user.",
    )
    recipient_user_id: str = Field(
        ...,
        description="Decimal unsigned 64-bit identifier of the user being decided on.",
    )
    liked_recipient: bool = Field(..., description="True for a like, false for a pass.")

    class Config:
        """Pydantic config."""

        json_schema_extra = {
            "example": {
                "actor_user_id": "1",
                "recipient_user_id": "2",
                "liked_recipient": True,
            }
        }


class PutDecisionResponse(BaseModel):
    mutual_likes: bool = Field(
        ...,
        description="True when the recipient has also liked the actor.",
    )


class Liker(BaseModel):
    actor_id: str = Field(..., description="Decimal identifier of the liking user.")
    unix_timestamp: int = Field(
        ...,
        description="When the like was last recorded, in milliseconds since the epoch.",
    )

    @classmethod
    def from_decision(cls, decision: Decision) -> Liker:
        return cls(
            actor_id=str(decision.actor_id),
            unix_timestamp=to_unix_millis(decision.updated_at),
        )


class ListLikedYouResponse(BaseModel):
    likers: list[Liker] = Field(default_factory=list)
    next_pagination_token: str | None = Field(
        None,
        description="Pass back as pagination_token to fetch the next page; absent on the last page.",
    )

    class Config:
        """Pydantic config."""

        json_schema_extra = {
            "example": {
                "likers": [{"actor_id": "3", "unix_timestamp": 1700000000123}],
                "next_pagination_token": "eyJhY3Rvcl9pZCI6MywidXBkYXRlZF91bml4IjoxNzAwMDAwMDAwMTIzfQ==",
            }
        }


class CountLikedYouResponse(BaseModel):
    count: int = Field(..., ge=0, description="Number of users who liked the recipient.")


__all__ = [
    "CountLikedYouResponse",
    "Liker",
    "ListLikedYouResponse",
    "PutDecisionRequest",
    "PutDecisionResponse",
]
