"""Cache-aside like counters stored under ``likes:count:{recipient}``."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import TypeVar

from redis.exceptions import RedisError

from explore.cache import CacheClient, like_count_key
from explore.db.repositories.decision_repository import DecisionRepository

T = TypeVar("T")

DEFAULT_COMMAND_TIMEOUT_SECONDS = 1.0


class LikeCounter:
    """Advisory per-recipient like counts backed by Redis.

    The authoritative number is always :meth:`DecisionRepository.count_likers`;
    Redis only remembers it for ``ttl_seconds`` after the last touch. Redis
    failures never surface: reads fall back to the database and writes are
    logged and dropped.

    Every Redis command runs under its own timeout of at most
    ``command_timeout_seconds``. When the caller passes a ``deadline`` (event
    loop time) the command gets at most half of what remains, so a slow cache
    still leaves time for the store fallback and never consumes the caller's
    deadline.
    """

    def __init__(
        self,
        client: CacheClient,
        store: DecisionRepository,
        *,
        ttl_seconds: int,
        command_timeout_seconds: float = DEFAULT_COMMAND_TIMEOUT_SECONDS,
        logger: logging.Logger | None = None,
    ) -> None:
        self._client = client
        self._store = store
        self._ttl = ttl_seconds
        self._command_timeout = command_timeout_seconds
        self._logger = logger or logging.getLogger(__name__)

    def _command_budget(self, deadline: float | None) -> float:
        if deadline is None:
            return self._command_timeout
        remaining = deadline - asyncio.get_running_loop().time()
        return min(self._command_timeout, max(remaining, 0.0) / 2)

    async def _command(self, call: Awaitable[T], deadline: float | None) -> T:
        async with asyncio.timeout(self._command_budget(deadline)):
            return await call

    async def _count_from_store(self, recipient_id: int, deadline: float | None) -> int:
        if deadline is None:
            return await self._store.count_likers(recipient_id)
        async with asyncio.timeout_at(deadline):
            return await self._store.count_likers(recipient_id)

    async def _read_cached(self, key: str, deadline: float | None) -> int | None:
        try:
            raw = await self._command(self._client.get(key), deadline)
        except (RedisError, TimeoutError) as exc:
            self._logger.warning("Like count read failed for %s: %r", key, exc)
            return None
        if raw is None:
            return None

        try:
            value = int(raw)
        except ValueError:
            self._logger.warning("Discarding unparsable like count %r at %s", raw, key)
            return None
        if value < 0:
            return None

        try:
            await self._command(self._client.expire(key, self._ttl), deadline)
        except (RedisError, TimeoutError) as exc:
            self._logger.warning("Like count TTL refresh failed for %s: %r", key, exc)
        return value

    async def get_or_compute(self, recipient_id: int, *, deadline: float | None = None) -> int:
        """Return the cached count or recompute and store it on a miss."""

        key = like_count_key(recipient_id)
        cached = await self._read_cached(key, deadline)
        if cached is not None:
            self._logger.debug("Like count cache hit for %s: %d", recipient_id, cached)
            return cached

        count = await self._count_from_store(recipient_id, deadline)
        try:
            await self._command(self._client.set(key, count, self._ttl), deadline)
        except (RedisError, TimeoutError) as exc:
            self._logger.warning("Like count write failed for %s: %r", key, exc)
        self._logger.debug("Like count cache miss for %s, computed %d", recipient_id, count)
        return count

    async def adjust(self, recipient_id: int, delta: int, *, deadline: float | None = None) -> None:
        """Atomically move the cached count by ``delta`` and refresh its TTL.

        When the increment creates the key (the result equals ``delta``) there
        was no cached count to adjust, so the key is dropped and the next read
        recomputes it.
        """

        key = like_count_key(recipient_id)
        try:
            value = await self._command(self._client.incr_by(key, delta), deadline)
            if value is None:
                return
            if value == delta:
                await self._command(self._client.delete(key), deadline)
                return
            await self._command(self._client.expire(key, self._ttl), deadline)
        except (RedisError, TimeoutError) as exc:
            self._logger.warning("Like count adjust %+d failed for %s: %r", delta, key, exc)

    async def invalidate(self, recipient_id: int, *, deadline: float | None = None) -> None:
        key = like_count_key(recipient_id)
        try:
            await self._command(self._client.delete(key), deadline)
        except (RedisError, TimeoutError) as exc:
            self._logger.warning("Like count invalidation failed for %s: %r", key, exc)


__all__ = ["DEFAULT_COMMAND_TIMEOUT_SECONDS", "LikeCounter"]
