"""Tests for the ``seed_decisions`` command line entry point."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from explore.scripts import seed_decisions


def test_parser_defaults() -> None:
    args = seed_decisions.build_parser().parse_args([])

    assert args.minimal is False
    assert args.seed is None


@pytest.mark.asyncio
async def test_main_forwards_flags(monkeypatch: pytest.MonkeyPatch) -> None:
    run = AsyncMock(return_value=4)
    monkeypatch.setattr(seed_decisions, "run", run)

    exit_code = await seed_decisions.main(["--minimal", "--seed", "11"])

    assert exit_code == 0
    run.assert_awaited_once_with(minimal=True, seed=11)


@pytest.mark.asyncio
async def test_clear_like_counts_deletes_seeded_keys(
    monkeypatch: pytest.MonkeyPatch, fake_redis
) -> None:
    from explore.cache import CacheClient

    await fake_redis.set("likes:count:1", "3", ex=60)
    await fake_redis.set("likes:count:20", "1", ex=60)
    await fake_redis.set("likes:count:21", "9", ex=60)
    monkeypatch.setattr(
        seed_decisions, "get_cache_client", AsyncMock(return_value=CacheClient(fake_redis))
    )

    await seed_decisions._clear_like_counts()

    assert set(fake_redis._store) == {"likes:count:21"}
