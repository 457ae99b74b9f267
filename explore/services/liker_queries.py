"""Cursor-paginated liker listings built on :class:`DecisionRepository`."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from explore.db.models import Decision
from explore.db.repositories.decision_repository import DecisionRepository
from explore.errors import ValidationError
from explore.pagination import Cursor, decode_cursor, encode_cursor

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LikerPage:
    """One page of liker rows and the token for the next page, if any."""

    decisions: list[Decision] = field(default_factory=list)
    next_token: str | None = None

    @property
    def has_more(self) -> bool:
        return self.next_token is not None


class LikerQueryEngine:
    """Answer "who liked me" and "who liked me that I have not answered".

    Both listings drop actors the recipient has passed. The new-likers listing
    also drops actors the recipient already liked back. Pages are read with
    ``limit + 1`` rows so the presence of a following page is known without a
    second query.
    """

    def __init__(self, repository: DecisionRepository) -> None:
        self._repository = repository

    async def list_likers(
        self, recipient_id: int, *, token: str | None, limit: int
    ) -> LikerPage:
        return await self._page(recipient_id, token=token, limit=limit, exclude_mutual=False)

    async def list_new_likers(
        self, recipient_id: int, *, token: str | None, limit: int
    ) -> LikerPage:
        return await self._page(recipient_id, token=token, limit=limit, exclude_mutual=True)

    async def _page(
        self,
        recipient_id: int,
        *,
        token: str | None,
        limit: int,
        exclude_mutual: bool,
    ) -> LikerPage:
        if limit <= 0:
            raise ValidationError("page size must be positive")

        cursor = decode_cursor(token)
        rows = await self._repository.fetch_likers(
            recipient_id,
            after=cursor,
            limit=limit + 1,
            exclude_mutual=exclude_mutual,
        )

        next_token: str | None = None
        if len(rows) > limit:
            rows = rows[:limit]
            last = rows[-1]
            next_token = encode_cursor(Cursor.after(last.actor_id, last.updated_at))

        logger.debug(
            "Fetched %d likers for %s (exclude_mutual=%s, more=%s)",
            len(rows),
            recipient_id,
            exclude_mutual,
            next_token is not None,
        )
        return LikerPage(decisions=rows, next_token=next_token)


__all__ = ["LikerPage", "LikerQueryEngine"]
