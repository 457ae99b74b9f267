from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from explore.db.models import Base
from explore.settings import AppSettings, get_settings

logger = logging.getLogger(__name__)


def get_database_url(settings: AppSettings | None = None) -> str:
    """Return the async database URL resolved from configuration."""

    return (settings or get_settings()).resolved_database_url


def get_database_type(settings: AppSettings | None = None) -> str:
    """Return ``postgresql`` or ``sqlite`` for the configured database."""

    return (settings or get_settings()).database_type


def _ensure_sqlite_directory(url: str) -> None:
    database = make_url(url).database
    if database and database != ":memory:":
        Path(database).parent.mkdir(parents=True, exist_ok=True)


def create_engine(settings: AppSettings | None = None) -> AsyncEngine:
    """Create the async SQLAlchemy engine.

    PostgreSQL gets a warm connection pool sized for one connection per
    in-flight request. SQLite is only used for local development and tests, so
    it keeps SQLAlchemy's default pool.
    """

    settings = settings or get_settings()
    url = settings.resolved_database_url

    if settings.database_type == "postgresql":
        engine = create_async_engine(
            url,
            future=True,
            echo=False,
            pool_size=10,  # Maintain 10 warm connections
            max_overflow=20,  # Allow up to 30 total connections
            pool_pre_ping=True,  # Validate connections before use
            pool_recycle=1800,  # Recycle connections every 30 min
            pool_timeout=30,  # Timeout for getting connection from pool
        )
    else:
        _ensure_sqlite_directory(url)
        engine = create_async_engine(url, future=True, echo=False)

    try:
        from explore.monitoring import setup_query_monitoring

        setup_query_monitoring(
            engine,
            slow_query_threshold=settings.slow_query_threshold,
            log_pool_stats=False,
        )
    except Exception as exc:  # pragma: no cover - monitoring is optional at runtime
        logger.warning(f"Failed to enable query monitoring: {exc}")

    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


async def create_schema(engine: AsyncEngine) -> None:
    """Create missing tables directly from the ORM metadata.

    Only used for SQLite; PostgreSQL schemas are managed by Alembic.
    """

    async with begin_engine_transaction(engine) as connection:
        await connection.run_sync(Base.metadata.create_all)


@asynccontextmanager
async def begin_engine_transaction(engine: AsyncEngine) -> AsyncIterator[Any]:
    """Yield a connection from ``engine.begin()`` with mock-friendly support."""

    begin_result = engine.begin()
    if asyncio.iscoroutine(begin_result):
        begin_context = await begin_result
    else:
        begin_context = begin_result

    async with begin_context as connection:
        yield connection


# Global engine/session instances for FastAPI dependency injection
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    """Get or create the global engine instance."""
    global _engine
    if _engine is None:
        _engine = create_engine()
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Lazily create a session factory bound to the shared engine."""
    global _session_factory
    if _session_factory is None:
        _session_factory = create_session_factory(get_engine())
    return _session_factory


async def dispose_engine() -> None:
    """Close pooled connections and forget the global engine."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None


async def get_db() -> AsyncIterator[AsyncSession]:
    """
    Dependency to provide database session.

    Yields async session and ensures proper cleanup even on errors.
    """
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def get_async_session_context() -> AsyncIterator[AsyncSession]:
    """
    Async context manager for scripts/CLI tasks that need manual session control.
    """
    async with get_session_factory()() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
