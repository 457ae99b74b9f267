"""FastAPI router for recording decisions and reading who liked a user.

Service failures are not caught here; ``ServiceError`` propagates to the
application-level handler in :mod:`explore.main`, which maps its ``kind`` to
an HTTP status.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Header, Query

from explore.schemas.decisions import (
    CountLikedYouResponse,
    Liker,
    ListLikedYouResponse,
    PutDecisionRequest,
    PutDecisionResponse,
)
from explore.services.decision_service import DecisionService, get_decision_service
from explore.services.liker_queries import LikerPage

router = APIRouter()


def request_timeout(
    x_request_timeout_ms: int | None = Header(
        default=None,
        gt=0,
        description="Optional deadline for this request in milliseconds.",
    ),
) -> float | None:
    if x_request_timeout_ms is None:
        return None
    return x_request_timeout_ms / 1000


def _to_response(page: LikerPage) -> ListLikedYouResponse:
    return ListLikedYouResponse(
        likers=[Liker.from_decision(decision) for decision in page.decisions],
        next_pagination_token=page.next_token,
    )


@router.put("/decisions", response_model=PutDecisionResponse)
async def put_decision(
    payload: PutDecisionRequest,
    timeout: float | None = Depends(request_timeout),
    service: DecisionService = Depends(get_decision_service),
) -> PutDecisionResponse:
    """Record a like or pass and report whether the like is now mutual."""

    mutual = await service.put_decision(
        payload.actor_user_id,
        payload.recipient_user_id,
        payload.liked_recipient,
        timeout=timeout,
    )
    return PutDecisionResponse(mutual_likes=mutual)


@router.get("/liked-you/{recipient_user_id}", response_model=ListLikedYouResponse)
async def list_liked_you(
    recipient_user_id: str,
    pagination_token: str | None = Query(
        default=None, description="Token returned by the previous page."
    ),
    page_size: int | None = Query(default=None, description="Maximum likers per page."),
    timeout: float | None = Depends(request_timeout),
    service: DecisionService = Depends(get_decision_service),
) -> ListLikedYouResponse:
    """List users who liked the recipient, newest first, excluding passed users."""

    page = await service.list_likers(
        recipient_user_id,
        pagination_token=pagination_token,
        page_size=page_size,
        timeout=timeout,
    )
    return _to_response(page)


@router.get("/liked-you/{recipient_user_id}/new", response_model=ListLikedYouResponse)
async def list_new_liked_you(
    recipient_user_id: str,
    pagination_token: str | None = Query(default=None),
    page_size: int | None = Query(default=None),
    timeout: float | None = Depends(request_timeout),
    service: DecisionService = Depends(get_decision_service),
) -> ListLikedYouResponse:
    """List likers the recipient has not liked back or passed."""

    page = await service.list_new_likers(
        recipient_user_id,
        pagination_token=pagination_token,
        page_size=page_size,
        timeout=timeout,
    )
    return _to_response(page)


@router.get("/liked-you/{recipient_user_id}/count", response_model=CountLikedYouResponse)
async def count_liked_you(
    recipient_user_id: str,
    timeout: float | None = Depends(request_timeout),
    service: DecisionService = Depends(get_decision_service),
) -> CountLikedYouResponse:
    count = await service.count_likers(recipient_user_id, timeout=timeout)
    return CountLikedYouResponse(count=count)
