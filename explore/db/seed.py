"""Fixture data for local development and manual testing.

Both helpers wipe the ``decisions`` table first. Decisions are written through
:class:`DecisionRepository` so seeded rows obey the same overwrite rules as
live traffic.
"""

from __future__ import annotations

import logging
import random

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from explore.db.models import Decision
from explore.db.repositories.decision_repository import DecisionRepository

logger = logging.getLogger(__name__)

DEMO_USER_COUNT = 20
DEMO_DECISIONS_PER_ACTOR = 12
DEMO_LIKE_PROBABILITY = 0.7

# (actor, recipient, liked): 1 and 2 like each other, 3 likes 1, 1 passes 3.
MINIMAL_DECISIONS: tuple[tuple[int, int, bool], ...] = (
    (1, 2, True),
    (2, 1, True),
    (3, 1, True),
    (1, 3, False),
)


async def clear_decisions(session: AsyncSession) -> None:
    await session.execute(delete(Decision))
    await session.commit()


def _cohort(user_id: int) -> int:
    return 0 if user_id <= DEMO_USER_COUNT // 2 else 1


async def seed_demo_data(session: AsyncSession, *, rng: random.Random | None = None) -> int:
    """Populate a randomised ledger over users ``1..20``.

    Users are split into two cohorts of ten and only decide on members of the
    other cohort. Roughly 70% of decisions are likes and every third pair is
    forced into a mutual like. Returns the number of upserts performed.
    """

    rng = rng or random.Random()
    repository = DecisionRepository(session)
    await clear_decisions(session)
    logger.info("Cleared existing decisions")

    written = 0
    pair_index = 0
    for actor_id in range(1, DEMO_USER_COUNT + 1):
        for _ in range(DEMO_DECISIONS_PER_ACTOR):
            recipient_id = rng.randint(1, DEMO_USER_COUNT)
            if recipient_id == actor_id or _cohort(recipient_id) == _cohort(actor_id):
                continue

            liked = rng.random() < DEMO_LIKE_PROBABILITY
            if pair_index % 3 == 0:
                liked = True
                await repository.upsert(recipient_id, actor_id, True)
                written += 1

            await repository.upsert(actor_id, recipient_id, liked)
            written += 1
            pair_index += 1

    logger.info("Seeded %d decisions across %d users", written, DEMO_USER_COUNT)
    return written


async def seed_minimal_data(session: AsyncSession) -> int:
    """Write the three-user fixture from :data:`MINIMAL_DECISIONS`."""

    repository = DecisionRepository(session)
    await clear_decisions(session)
    for actor_id, recipient_id, liked in MINIMAL_DECISIONS:
        await repository.upsert(actor_id, recipient_id, liked)
    logger.info("Seeded minimal fixture (%d decisions)", len(MINIMAL_DECISIONS))
    return len(MINIMAL_DECISIONS)


__all__ = [
    "DEMO_USER_COUNT",
    "MINIMAL_DECISIONS",
    "clear_decisions",
    "seed_demo_data",
    "seed_minimal_data",
]
