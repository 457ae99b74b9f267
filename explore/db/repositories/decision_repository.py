"""Decision store: the only code that reads or writes the ``decisions`` table."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from sqlalchemy import and_, exists, false, func, or_, select, true, update
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased
from sqlalchemy.sql import ColumnElement

from explore.db.models import Decision
from explore.pagination import Cursor, utcnow_ms

logger = logging.getLogger(__name__)

_INSERTS = {
    "postgresql": postgresql_insert,
    "sqlite": sqlite_insert,
}


class DecisionRepository:
    """Persistence operations over the decision ledger.

    Writes start with the dialect's ``INSERT ... ON CONFLICT DO NOTHING`` so two
    requests deciding on the same pair at once collapse into a single row with
    the last committed value. Only the overwrite path takes a row lock; reads
    never lock.
    """

    def __init__(
        self,
        session: AsyncSession,
        *,
        clock: Callable[[], datetime] = utcnow_ms,
    ) -> None:
        self._session = session
        self._clock = clock

    def _dialect_insert(self):
        dialect = self._session.get_bind().dialect.name
        try:
            return _INSERTS[dialect]
        except KeyError:
            raise RuntimeError(f"Unsupported database dialect for upserts: {dialect}") from None

    async def upsert(self, actor_id: int, recipient_id: int, liked: bool) -> bool | None:
        """Record ``actor_id``'s decision about ``recipient_id``.

        Returns the previously stored ``liked`` value, or ``None`` when this is
        the first decision for the pair. ``created_at`` is only written on
        insert; ``updated_at`` is bumped on every call, including repeats of
        the same value. The write is committed before returning.

        The insert uses ``ON CONFLICT DO NOTHING``, which waits for a
        concurrent insert of the same pair to settle. Exactly one writer sees
        its row returned; every other writer locks the now-existing row, reads
        the value it replaces and updates it.
        """

        now = self._clock()
        insert = self._dialect_insert()
        insert_stmt = (
            insert(Decision)
            .values(
                actor_id=actor_id,
                recipient_id=recipient_id,
                liked=liked,
                created_at=now,
                updated_at=now,
            )
            .on_conflict_do_nothing(index_elements=["actor_id", "recipient_id"])
            .returning(Decision.actor_id)
        )
        pair = (
            Decision.actor_id == actor_id,
            Decision.recipient_id == recipient_id,
        )
        previous_stmt = select(Decision.liked).where(*pair).with_for_update()
        update_stmt = (
            update(Decision)
            .where(*pair)
            .values(liked=liked, updated_at=now)
            .execution_options(synchronize_session=False)
        )

        previous: bool | None = None
        try:
            inserted = (await self._session.execute(insert_stmt)).first()
            if inserted is None:
                previous = (await self._session.execute(previous_stmt)).scalar_one()
                await self._session.execute(update_stmt)
            await self._session.commit()
        except Exception:
            await self._session.rollback()
            raise

        logger.debug(
            "Stored decision %s -> %s liked=%s (previous=%s)",
            actor_id,
            recipient_id,
            liked,
            previous,
        )
        return previous

    async def get_liked(self, actor_id: int, recipient_id: int) -> bool | None:
        """Return the stored ``liked`` flag for the pair, ``None`` if undecided."""

        stmt = select(Decision.liked).where(
            Decision.actor_id == actor_id,
            Decision.recipient_id == recipient_id,
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def has_liked(self, actor_id: int, recipient_id: int) -> bool:
        stmt = select(
            exists().where(
                Decision.actor_id == actor_id,
                Decision.recipient_id == recipient_id,
                Decision.liked == true(),
            )
        )
        result = await self._session.execute(stmt)
        return bool(result.scalar())

    async def count_likers(self, recipient_id: int) -> int:
        """Count actors who like ``recipient_id`` and were not passed by it."""

        stmt = (
            select(func.count())
            .select_from(Decision)
            .where(*self._liker_filters(recipient_id, exclude_mutual=False))
        )
        result = await self._session.execute(stmt)
        return int(result.scalar_one())

    async def fetch_likers(
        self,
        recipient_id: int,
        *,
        after: Cursor,
        limit: int,
        exclude_mutual: bool = False,
    ) -> list[Decision]:
        """Return up to ``limit`` liker rows after ``after`` in page order.

        Rows are ordered by ``updated_at`` then ``actor_id``, both descending.
        With ``exclude_mutual`` any actor the recipient has decided on at all is
        left out, which removes both mutual likes and passed actors.
        """

        stmt = select(Decision).where(
            *self._liker_filters(recipient_id, exclude_mutual=exclude_mutual)
        )
        if after.has_position:
            position = after.updated_at
            stmt = stmt.where(
                or_(
                    Decision.updated_at < position,
                    and_(
                        Decision.updated_at == position,
                        Decision.actor_id < after.actor_id,
                    ),
                )
            )
        stmt = (
            stmt.order_by(Decision.updated_at.desc(), Decision.actor_id.desc())
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    def _liker_filters(recipient_id: int, *, exclude_mutual: bool) -> list[ColumnElement[bool]]:
        reverse = aliased(Decision, name="reverse_decision")
        reverse_conditions = [
            reverse.actor_id == recipient_id,
            reverse.recipient_id == Decision.actor_id,
        ]
        if not exclude_mutual:
            reverse_conditions.append(reverse.liked == false())

        return [
            Decision.recipient_id == recipient_id,
            Decision.liked == true(),
            ~exists().where(*reverse_conditions),
        ]


__all__ = ["DecisionRepository"]
