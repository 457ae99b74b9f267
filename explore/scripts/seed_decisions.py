#!/usr/bin/env python
"""Reset the decisions table to demo or fixture data.

Usage:
    python -m explore.scripts.seed_decisions
    python -m explore.scripts.seed_decisions --minimal
    python -m explore.scripts.seed_decisions --seed 42
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import random
import sys
from collections.abc import Sequence

from redis.exceptions import RedisError

from explore.cache import close_redis, get_cache_client, like_count_key
from explore.db.connection import (
    create_schema,
    dispose_engine,
    get_database_type,
    get_engine,
    get_session_factory,
)
from explore.db.seed import DEMO_USER_COUNT, seed_demo_data, seed_minimal_data

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Seed like/pass decisions for local development")
    parser.add_argument(
        "--minimal",
        action="store_true",
        help="Write the three-user fixture instead of the randomised demo ledger",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for the demo ledger (default: nondeterministic)",
    )
    return parser


async def _clear_like_counts() -> None:
    """Drop cached counters for every seeded user so reads recompute."""
    cache = await get_cache_client()
    if not cache.available:
        return
    keys = [like_count_key(user_id) for user_id in range(1, DEMO_USER_COUNT + 1)]
    try:
        await cache.delete(*keys)
    except RedisError as exc:
        logger.warning("Could not clear cached like counts: %s", exc)


async def run(minimal: bool = False, seed: int | None = None) -> int:
    db_type = get_database_type()
    print(f"Database type detected: {db_type.upper()}")

    if db_type == "sqlite":
        await create_schema(get_engine())
    else:
        print("Reminder: run Alembic migrations (alembic upgrade head) before seeding.")

    try:
        async with get_session_factory()() as session:
            if minimal:
                written = await seed_minimal_data(session)
            else:
                written = await seed_demo_data(session, rng=random.Random(seed))
        await _clear_like_counts()
    finally:
        await close_redis()
        await dispose_engine()

    print(f"Seeded {written} decisions")
    return written


async def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry point."""
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    args = build_parser().parse_args(argv)
    await run(minimal=args.minimal, seed=args.seed)
    return 0


def cli() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
