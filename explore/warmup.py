"""Startup warmup for the database pool, Redis and the liker count query.

Every step logs its outcome and swallows failures: a cold dependency should
slow the first request down, not stop the service from starting.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from explore.db.connection import begin_engine_transaction

logger = logging.getLogger(__name__)


async def warmup_database(resolve_engine: Callable[[], AsyncEngine] | None = None) -> None:
    """Open a pooled connection and issue ``SELECT 1``."""
    try:
        if resolve_engine is None:
            from explore.db.connection import get_engine as resolve_engine

        start = time.perf_counter()
        engine = resolve_engine()
        async with begin_engine_transaction(engine) as conn:
            await conn.execute(text("SELECT 1"))

        elapsed = (time.perf_counter() - start) * 1000
        logger.info("Database connection warmed up (%.0fms)", elapsed)
    except Exception as exc:
        logger.warning("Database warmup failed: %s", exc)


async def warmup_redis() -> None:
    from explore.cache import get_redis

    try:
        start = time.perf_counter()
        redis = await get_redis()
        if redis is None:
            logger.info("Redis warmup skipped (connection unavailable)")
            return

        await redis.ping()
        elapsed = (time.perf_counter() - start) * 1000
        logger.info("Redis connection warmed up (%.0fms)", elapsed)
    except Exception as exc:
        logger.warning("Redis warmup failed: %s", exc)


async def warmup_repository_queries(
    resolve_session_factory: Callable[[], async_sessionmaker[AsyncSession]] | None = None,
) -> None:
    """Run one liker count so statement compilation is done before traffic."""
    from explore.db.repositories.decision_repository import DecisionRepository

    try:
        if resolve_session_factory is None:
            from explore.db.connection import get_session_factory as resolve_session_factory

        start = time.perf_counter()
        async with resolve_session_factory()() as session:
            await DecisionRepository(session).count_likers(0)

        elapsed = (time.perf_counter() - start) * 1000
        logger.info("Repository queries warmed up (%.0fms)", elapsed)
    except Exception as exc:
        logger.warning("Repository warmup failed: %s", exc)


async def warmup_all(
    resolve_engine: Callable[[], AsyncEngine] | None = None,
    resolve_session_factory: Callable[[], async_sessionmaker[AsyncSession]] | None = None,
) -> None:
    logger.info("Starting warmup")
    start = time.perf_counter()

    await warmup_database(resolve_engine=resolve_engine)
    await warmup_redis()
    await warmup_repository_queries(resolve_session_factory=resolve_session_factory)

    elapsed = (time.perf_counter() - start) * 1000
    logger.info("Warmup complete (%.0fms)", elapsed)
