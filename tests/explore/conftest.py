"""Shared fixtures: an in-memory SQLite ledger and an async Redis double."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from explore.db.models import Base


@pytest_asyncio.fixture
async def session() -> AsyncIterator[AsyncSession]:
    """Provide an in-memory SQLite session for integration-style tests."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async_session = async_sessionmaker(engine, expire_on_commit=False)
    async with async_session() as db_session:
        yield db_session
        if db_session.in_transaction():
            await db_session.rollback()
    await engine.dispose()


class InMemoryRedis:
    """Lightweight async Redis double covering the commands the counters use."""

    def __init__(self) -> None:
        self._store: dict[str, str] = {}
        self._ttl: dict[str, int | None] = {}
        self.calls: list[tuple[str, str]] = []

    async def ping(self) -> bool:
        return True

    async def get(self, key: str) -> str | None:
        self.calls.append(("get", key))
        return self._store.get(key)

    async def set(self, key: str, value: object, ex: int | None = None) -> None:
        self.calls.append(("set", key))
        self._store[key] = str(value)
        self._ttl[key] = ex

    async def incrby(self, key: str, amount: int) -> int:
        self.calls.append(("incrby", key))
        value = int(self._store.get(key, "0")) + amount
        self._store[key] = str(value)
        self._ttl.setdefault(key, None)
        return value

    async def decrby(self, key: str, amount: int) -> int:
        self.calls.append(("decrby", key))
        return await self.incrby(key, -amount)

    async def expire(self, key: str, seconds: int) -> bool:
        self.calls.append(("expire", key))
        if key not in self._store:
            return False
        self._ttl[key] = seconds
        return True

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            self.calls.append(("delete", key))
            if self._store.pop(key, None) is not None:
                removed += 1
            self._ttl.pop(key, None)
        return removed

    async def aclose(self) -> None:
        self._store.clear()
        self._ttl.clear()


class BrokenRedis:
    """Redis double whose every command fails as if the server went away."""

    async def _fail(self, *_args: object, **_kwargs: object) -> None:
        raise RedisConnectionError("Redis unavailable for test")

    ping = get = set = incrby = decrby = expire = delete = _fail


class SlowRedis(InMemoryRedis):
    """Redis double that stalls on reads and increments, like an overloaded server."""

    def __init__(self, delay: float = 0.5) -> None:
        super().__init__()
        self.delay = delay

    async def get(self, key: str) -> str | None:
        await asyncio.sleep(self.delay)
        return await super().get(key)

    async def incrby(self, key: str, amount: int) -> int:
        await asyncio.sleep(self.delay)
        return await super().incrby(key, amount)


@pytest.fixture
def fake_redis() -> InMemoryRedis:
    return InMemoryRedis()


@pytest.fixture
def slow_redis() -> SlowRedis:
    return SlowRedis()


@pytest.fixture
def broken_redis() -> BrokenRedis:
    return BrokenRedis()


class SteppingClock:
    """Deterministic clock advancing by ``step`` on every call."""

    def __init__(self, start: datetime, step: timedelta) -> None:
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + self.step
        return value


@pytest.fixture
def clock() -> SteppingClock:
    return SteppingClock(datetime(2026, 1, 1, 12, 0, tzinfo=UTC), timedelta(milliseconds=1))


@pytest.fixture
def frozen_clock() -> Callable[[], datetime]:
    """Clock returning the same instant every time, for timestamp ties."""
    instant = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)
    return lambda: instant
