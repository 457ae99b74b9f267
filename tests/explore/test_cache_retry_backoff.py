"""Tests verifying Redis backoff retry behaviour in the cache layer."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import ClassVar

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from explore import cache
from explore.settings import AppSettings


@dataclass
class _StubRedis:
    should_fail: bool
    closed: bool = False

    async def ping(self) -> None:
        if self.should_fail:
            raise RedisConnectionError("Redis unavailable for test")

    async def aclose(self) -> None:
        self.closed = True


class _StubRedisFactory:
    """Factory that mimics :meth:`redis.Redis.from_url` with queued outcomes."""

    failures: ClassVar[list[bool]] = []
    created_clients: ClassVar[list[_StubRedis]] = []
    received_kwargs: ClassVar[list[dict[str, object]]] = []
    on_instantiate: ClassVar[Callable[[], None] | None] = None

    @classmethod
    def from_url(cls, *_: object, **kwargs: object) -> _StubRedis:
        if cls.on_instantiate is not None:
            cls.on_instantiate()
        cls.received_kwargs.append(kwargs)
        client = _StubRedis(should_fail=cls.failures.pop(0))
        cls.created_clients.append(client)
        return client


@pytest.fixture(autouse=True)
def _stub_redis(monkeypatch: pytest.MonkeyPatch) -> None:
    _StubRedisFactory.created_clients = []
    _StubRedisFactory.received_kwargs = []
    _StubRedisFactory.on_instantiate = None
    monkeypatch.setattr(
        cache,
        "_load_redis_components",
        lambda: (_StubRedisFactory, RedisConnectionError),
    )
    monkeypatch.setattr(
        cache,
        "get_settings",
        lambda: AppSettings(redis_retry_backoff_seconds=30, redis_socket_timeout_seconds=0.5),
    )


@pytest.mark.asyncio
async def test_get_redis_retries_after_cooldown(
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
) -> None:
    """Redis connection attempts resume after the configured cool-down expires."""

    await cache.close_redis()
    _StubRedisFactory.failures = [True, False]

    attempts: dict[str, int] = {"count": 0}

    def _increment_attempts() -> None:
        attempts["count"] += 1

    _StubRedisFactory.on_instantiate = _increment_attempts

    current_time: dict[str, float] = {"value": 0.0}
    monkeypatch.setattr(cache.time, "monotonic", lambda: current_time["value"])
    caplog.set_level(logging.DEBUG)

    assert await cache.get_redis() is None
    assert attempts["count"] == 1
    assert cache._redis_disabled is not None
    assert "Retrying after" in " ".join(caplog.messages)

    current_time["value"] = 5.0
    assert await cache.get_redis() is None
    assert attempts["count"] == 1

    current_time["value"] = 45.0
    client = await cache.get_redis()
    assert client is _StubRedisFactory.created_clients[-1]
    assert attempts["count"] == 2
    assert cache._redis_disabled is None
    assert _StubRedisFactory.received_kwargs[-1]["socket_timeout"] == 0.5

    # The connected client is reused without reconnecting.
    assert await cache.get_redis() is client
    assert attempts["count"] == 2

    await cache.close_redis()
    assert client.closed is True


@pytest.mark.asyncio
async def test_close_redis_clears_backoff(monkeypatch: pytest.MonkeyPatch) -> None:
    await cache.close_redis()
    _StubRedisFactory.failures = [True]
    monkeypatch.setattr(cache.time, "monotonic", lambda: 0.0)

    await cache.get_redis()
    assert cache._redis_disabled is not None

    await cache.close_redis()
    assert cache._redis_disabled is None


@pytest.mark.asyncio
async def test_get_cache_client_wraps_missing_redis(monkeypatch: pytest.MonkeyPatch) -> None:
    await cache.close_redis()
    _StubRedisFactory.failures = [True]
    monkeypatch.setattr(cache.time, "monotonic", lambda: 0.0)

    client = await cache.get_cache_client()

    assert client.available is False
    await cache.close_redis()
