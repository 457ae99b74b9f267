"""Redis access for the like counters.

The module owns a single lazily created ``redis.asyncio`` client. When the
server cannot be reached the client is left unset and further connection
attempts are suppressed until ``REDIS_RETRY_BACKOFF_SECONDS`` have elapsed, so
a Redis outage costs one failed connect per cool-down window rather than one
per request.
"""

from __future__ import annotations

import asyncio
import logging
import time
from functools import lru_cache

from redis.asyncio import Redis as RedisClient
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from explore.settings import get_settings

logger = logging.getLogger(__name__)

_LIKE_COUNT_PREFIX = "likes:count"

_redis_client: RedisClient | None = None
_client_lock = asyncio.Lock()
# Monotonic deadline before which no reconnect is attempted.
_redis_disabled: float | None = None


def like_count_key(user_id: int) -> str:
    return f"{_LIKE_COUNT_PREFIX}:{user_id}"


@lru_cache(maxsize=1)
def _load_redis_components() -> tuple[type[RedisClient], type[BaseException]]:
    """Return the Redis asyncio client class and connection error type."""

    return RedisClient, RedisConnectionError


def _is_redis_connection_error(exc: BaseException) -> bool:
    """Return ``True`` when ``exc`` means the server could not be reached."""

    return isinstance(exc, (RedisConnectionError, RedisTimeoutError, OSError))


async def get_redis() -> RedisClient | None:
    """Get the shared Redis client, returning ``None`` while Redis is unavailable."""
    global _redis_client, _redis_disabled
    redis_class, _ = _load_redis_components()

    if _redis_disabled is not None and time.monotonic() < _redis_disabled:
        logger.debug("Redis connection disabled after previous failure; skipping attempt.")
        return None

    async with _client_lock:
        if _redis_client is not None:
            return _redis_client

        if _redis_disabled is not None and time.monotonic() < _redis_disabled:
            return None

        settings = get_settings()
        try:
            client = redis_class.from_url(
                settings.redis_url,
                decode_responses=True,
                encoding="utf-8",
                socket_timeout=settings.redis_socket_timeout_seconds,
                socket_connect_timeout=settings.redis_socket_timeout_seconds,
            )
            await client.ping()
        except Exception as exc:
            if not _is_redis_connection_error(exc):
                raise
            backoff = settings.redis_retry_backoff_seconds
            _redis_client = None
            _redis_disabled = time.monotonic() + backoff
            logger.warning(
                "Redis connection failed: %s. Like counts will be served from the "
                "database. Retrying after %.0fs.",
                exc,
                backoff,
            )
            return None

        _redis_client = client
        _redis_disabled = None
        logger.info("Redis connection established successfully")
        return _redis_client


class CacheClient:
    """Thin wrapper over the Redis commands the like counters need.

    Every method is a no-op (or returns ``None``) when no client is available.
    Redis errors propagate so the caller decides whether to fall back or
    ignore them.
    """

    def __init__(self, redis: RedisClient | None) -> None:
        self._redis = redis

    @property
    def available(self) -> bool:
        return self._redis is not None

    async def get(self, key: str) -> str | None:
        if self._redis is None:
            return None
        return await self._redis.get(key)

    async def set(self, key: str, value: int | str, ttl: int) -> None:
        if self._redis is None:
            return
        await self._redis.set(key, value, ex=ttl)

    async def incr_by(self, key: str, delta: int) -> int | None:
        """Atomically add ``delta`` to ``key`` and return the new value."""
        if self._redis is None:
            return None
        if delta >= 0:
            return int(await self._redis.incrby(key, delta))
        return int(await self._redis.decrby(key, -delta))

    async def expire(self, key: str, ttl: int) -> None:
        if self._redis is None:
            return
        await self._redis.expire(key, ttl)

    async def delete(self, *keys: str) -> None:
        if self._redis is None or not keys:
            return
        await self._redis.delete(*keys)


async def get_cache_client() -> CacheClient:
    redis = await get_redis()
    return CacheClient(redis)


async def close_redis() -> None:
    """Close the global Redis connection and clear any pending backoff."""
    global _redis_client, _redis_disabled
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None
    _redis_disabled = None


__all__ = [
    "CacheClient",
    "close_redis",
    "get_cache_client",
    "get_redis",
    "like_count_key",
]
