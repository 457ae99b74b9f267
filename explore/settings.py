"""Centralized configuration management for the Explore service."""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import Literal

from dotenv import load_dotenv
from pydantic import Field, PrivateAttr
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables defined in a local .env file before the first
# settings instance is built so CLI tools and the API observe the same values.
load_dotenv()

# -- Application-wide constants -------------------------------------------------

DEFAULT_SQLITE_DATABASE_URL = "sqlite+aiosqlite:///./data/explore.db"
POSTGRES_ASYNC_PREFIX = "postgresql+psycopg://"
POSTGRES_SYNC_PREFIXES = ("postgres://", "postgresql://")
DEFAULT_REDIS_URL = "redis://localhost:6379/0"
DEFAULT_REDIS_RETRY_BACKOFF_SECONDS = 30.0
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LIKE_COUNT_TTL_SECONDS = 3600
DEFAULT_LIKERS_PAGE_SIZE = 5
DEFAULT_MAX_PAGE_SIZE = 100
DEFAULT_REQUEST_TIMEOUT_SECONDS = 5.0

CountAdjustPolicy = Literal["transition", "always"]


class AppSettings(BaseSettings):
    """Typed configuration surface built on top of ``pydantic-settings``.

    Values are read from the process environment (and ``.env``). Helpers such as
    :attr:`resolved_database_url` keep URL normalisation in one place so the
    engine factory, the Alembic environment and the seed CLI agree on it.
    """

    _explicit_redis_url: bool = PrivateAttr(default=False)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    def __init__(self, **values: object) -> None:  # noqa: D401 - short override explanation
        """Capture explicit overrides prior to delegating to ``BaseSettings``."""

        normalized_keys = {str(key).lower() for key in values}
        super().__init__(**values)
        self._explicit_redis_url = "redis_url" in normalized_keys
        redis_env = os.getenv("REDIS_URL")
        if redis_env is not None and redis_env.strip():
            self._explicit_redis_url = True

    database_url: str | None = Field(
        default=None,
        alias="DATABASE_URL",
        description=(
            "Full SQLAlchemy-compatible database URL. Postgres URLs supplied in"
            " sync format (postgres:// or postgresql://) are coerced into the"
            " async psycopg driver string at runtime."
        ),
    )
    use_sqlite: bool = Field(
        default=False,
        alias="USE_SQLITE",
        description="Force SQLite usage regardless of DATABASE_URL.",
    )
    redis_url: str = Field(
        default=DEFAULT_REDIS_URL,
        alias="REDIS_URL",
        description="Redis connection string backing the like counters.",
    )
    redis_retry_backoff_seconds: float = Field(
        default=DEFAULT_REDIS_RETRY_BACKOFF_SECONDS,
        alias="REDIS_RETRY_BACKOFF_SECONDS",
        description="Cooldown duration applied after Redis connection failures.",
    )
    redis_socket_timeout_seconds: float = Field(
        default=1.0,
        alias="REDIS_SOCKET_TIMEOUT_SECONDS",
        gt=0,
        description=(
            "Socket timeout applied to every Redis command; also the upper bound"
            " a like counter command may take out of a request deadline."
        ),
    )
    cors_allow_origins_raw: str | None = Field(
        default=None,
        alias="CORS_ALLOW_ORIGINS",
        description="Comma-separated list of additional CORS origins.",
    )
    log_level: str = Field(
        default=DEFAULT_LOG_LEVEL,
        alias="LOG_LEVEL",
        description="Root logging level (e.g. INFO, DEBUG, WARNING).",
    )
    slow_query_threshold: float = Field(
        default=0.1,
        alias="SLOW_QUERY_THRESHOLD",
        description="Seconds after which a query is logged as slow.",
    )
    like_count_ttl_seconds: int = Field(
        default=DEFAULT_LIKE_COUNT_TTL_SECONDS,
        alias="LIKE_COUNT_TTL_SECONDS",
        gt=0,
        description="Time-to-live applied to cached like counters on every touch.",
    )
    likers_page_size: int = Field(
        default=DEFAULT_LIKERS_PAGE_SIZE,
        alias="LIKERS_PAGE_SIZE",
        gt=0,
        description="Page size used when the caller does not supply one.",
    )
    max_page_size: int = Field(
        default=DEFAULT_MAX_PAGE_SIZE,
        alias="MAX_PAGE_SIZE",
        gt=0,
        description="Largest page size a caller may request.",
    )
    request_timeout_seconds: float = Field(
        default=DEFAULT_REQUEST_TIMEOUT_SECONDS,
        alias="REQUEST_TIMEOUT_SECONDS",
        gt=0,
        description="Deadline applied to each service operation when none is supplied.",
    )
    count_adjust_policy: CountAdjustPolicy = Field(
        default="transition",
        alias="COUNT_ADJUST_POLICY",
        description=(
            "'transition' moves cached counters only when a stored decision"
            " actually changes; 'always' increments on every like and"
            " decrements on every pass."
        ),
    )

    @property
    def resolved_database_url(self) -> str:
        """Return the async-compatible database URL after applying fallbacks."""

        if self.use_sqlite or not self.database_url:
            return DEFAULT_SQLITE_DATABASE_URL

        url = self.database_url.strip()

        for prefix in POSTGRES_SYNC_PREFIXES:
            if url.startswith(prefix):
                return url.replace(prefix, POSTGRES_ASYNC_PREFIX, 1)

        if url.startswith(POSTGRES_ASYNC_PREFIX) or url.startswith("sqlite+aiosqlite://"):
            return url

        raise RuntimeError(
            f"Expected a PostgreSQL connection string or SQLite fallback, received: {url}"
        )

    @property
    def database_type(self) -> str:
        """Return ``sqlite`` when using SQLite otherwise ``postgresql``."""

        if self.resolved_database_url.startswith("sqlite"):
            return "sqlite"
        return "postgresql"

    @property
    def cors_allow_origins(self) -> list[str]:
        """Return normalised CORS origins supplied via environment variables."""

        if not self.cors_allow_origins_raw:
            return []

        origins = [
            origin.strip().rstrip("/")
            for origin in self.cors_allow_origins_raw.split(",")
            if origin.strip()
        ]
        return [origin for origin in origins if origin]

    @property
    def log_level_numeric(self) -> int:
        """Translate ``log_level`` into the numeric constant expected by logging."""

        candidate = logging.getLevelName(self.log_level.upper())
        if isinstance(candidate, int):
            return candidate
        return logging.INFO

    def optional_config_warnings(self) -> list[str]:
        """Return human-readable warnings for unset optional configuration."""

        warnings: list[str] = []

        if not self._explicit_redis_url and self.redis_url == DEFAULT_REDIS_URL:
            warnings.append(
                "REDIS_URL is not set - like counts fall back to the database "
                "whenever the local Redis is unreachable"
            )

        if self.database_type == "sqlite":
            warnings.append(
                "DATABASE_URL is not set - using the SQLite development database"
            )

        return warnings


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """Return a cached instance of :class:`AppSettings`."""

    return AppSettings()


__all__ = [
    "AppSettings",
    "CountAdjustPolicy",
    "DEFAULT_LIKERS_PAGE_SIZE",
    "DEFAULT_LIKE_COUNT_TTL_SECONDS",
    "DEFAULT_LOG_LEVEL",
    "DEFAULT_MAX_PAGE_SIZE",
    "DEFAULT_REDIS_RETRY_BACKOFF_SECONDS",
    "DEFAULT_REDIS_URL",
    "DEFAULT_REQUEST_TIMEOUT_SECONDS",
    "DEFAULT_SQLITE_DATABASE_URL",
    "POSTGRES_ASYNC_PREFIX",
    "POSTGRES_SYNC_PREFIXES",
    "get_settings",
]
