"""Slow query logging for the decision store.

The liker listings and counts are expected to be served straight from the
``(recipient_id, liked, updated_at, actor_id)`` index. A query that crosses the
configured threshold usually means the planner stopped using it, so every slow
statement is logged together with its parameters.
"""

import logging
import time
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)

_START_TIMES_KEY = "explore_query_start_times"


def setup_query_monitoring(
    engine: AsyncEngine,
    slow_query_threshold: float = 0.1,
    log_pool_stats: bool = False,
) -> None:
    """Attach cursor execution listeners that log slow statements.

    Args:
        engine: Async engine whose ``sync_engine`` receives the listeners
        slow_query_threshold: Log queries slower than this many seconds
        log_pool_stats: Also log every pool checkout at DEBUG level
    """
    if not hasattr(engine, "sync_engine"):
        logger.warning("Engine does not have sync_engine attribute, skipping query monitoring")
        return

    sync_engine = engine.sync_engine

    @event.listens_for(sync_engine, "before_cursor_execute")
    def _before_cursor_execute(
        conn: Any,
        cursor: Any,
        statement: str,
        parameters: Any,
        context: Any,
        executemany: bool,
    ) -> None:
        conn.info.setdefault(_START_TIMES_KEY, []).append(time.perf_counter())

    @event.listens_for(sync_engine, "after_cursor_execute")
    def _after_cursor_execute(
        conn: Any,
        cursor: Any,
        statement: str,
        parameters: Any,
        context: Any,
        executemany: bool,
    ) -> None:
        started = conn.info[_START_TIMES_KEY].pop()
        elapsed = time.perf_counter() - started
        if elapsed <= slow_query_threshold:
            return

        truncated = statement if len(statement) <= 500 else f"{statement[:500]}..."
        logger.warning(
            "Slow query detected (%.3fs): %s",
            elapsed,
            truncated,
            extra={
                "duration_seconds": elapsed,
                "query": statement,
                "parameters": parameters,
                "threshold_seconds": slow_query_threshold,
            },
        )

    if log_pool_stats:

        @event.listens_for(sync_engine.pool, "checkout")
        def _on_checkout(dbapi_conn: Any, connection_record: Any, connection_proxy: Any) -> None:
            logger.debug("Connection checked out (pool status: %s)", sync_engine.pool.status())

    logger.info(
        "Query monitoring enabled (slow query threshold: %ss, pool stats logging: %s)",
        slow_query_threshold,
        log_pool_stats,
    )
