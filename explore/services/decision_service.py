"""Business logic behind the explore endpoints.

:class:`DecisionService` validates identifiers, records decisions, keeps the
like counters in step and delegates listings to :class:`LikerQueryEngine`.
Every public operation runs under a deadline and only ever raises
:class:`~explore.errors.ServiceError` subclasses, so the transport layer can
translate failures by ``kind`` alone.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable
from functools import partial
from typing import TypeVar

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from explore.cache import CacheClient, get_cache_client
from explore.db.connection import get_db
from explore.db.repositories.decision_repository import DecisionRepository
from explore.errors import ErrorKind, ServiceError, ValidationError, map_exception
from explore.pagination import MAX_UINT64
from explore.services.like_counter import LikeCounter
from explore.services.liker_queries import LikerPage, LikerQueryEngine
from explore.settings import (
    DEFAULT_LIKERS_PAGE_SIZE,
    DEFAULT_MAX_PAGE_SIZE,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    CountAdjustPolicy,
    get_settings,
)

T = TypeVar("T")

_DECIMAL_ID = re.compile(r"[0-9]+")


def parse_user_id(value: int | str, field: str) -> int:
    """Parse an unsigned 64-bit identifier supplied as an int or decimal string."""

    message = f"{field} must be a valid uint64"
    if isinstance(value, bool):
        raise ValidationError(message)
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, str) and _DECIMAL_ID.fullmatch(value):
        parsed = int(value)
    else:
        raise ValidationError(message)

    if not 0 <= parsed <= MAX_UINT64:
        raise ValidationError(message)
    return parsed


def _transition_delta(previous: bool | None, liked: bool) -> int:
    if liked and previous is not True:
        return 1
    if not liked and previous is True:
        return -1
    return 0


class DecisionService:
    """Coordinates the decision store, the liker queries and the like counters."""

    def __init__(
        self,
        *,
        repository: DecisionRepository,
        queries: LikerQueryEngine,
        counter: LikeCounter,
        default_page_size: int = DEFAULT_LIKERS_PAGE_SIZE,
        max_page_size: int = DEFAULT_MAX_PAGE_SIZE,
        request_timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
        adjust_policy: CountAdjustPolicy = "transition",
        logger: logging.Logger | None = None,
    ) -> None:
        self._repository = repository
        self._queries = queries
        self._counter = counter
        self._default_page_size = default_page_size
        self._max_page_size = max_page_size
        self._timeout = request_timeout_seconds
        self._adjust_policy = adjust_policy
        self._logger = logger or logging.getLogger(__name__)

    async def _run(
        self,
        operation: str,
        work: Callable[[float], Awaitable[T]],
        timeout: float | None,
    ) -> T:
        seconds = timeout if timeout is not None else self._timeout
        deadline = asyncio.get_running_loop().time() + seconds
        try:
            return await work(deadline)
        except ServiceError:
            raise
        except Exception as exc:
            error = map_exception(exc)
            if error.kind is ErrorKind.INTERNAL:
                self._logger.error("%s failed: %s", operation, error.detail)
            else:
                self._logger.warning("%s failed: %s", operation, error.message)
            raise error from exc

    @staticmethod
    async def _within(deadline: float, call: Awaitable[T]) -> T:
        # Store calls share the request deadline; cache calls bound themselves.
        async with asyncio.timeout_at(deadline):
            return await call

    def _resolve_page_size(self, page_size: int | None) -> int:
        if page_size is None:
            return self._default_page_size
        if isinstance(page_size, bool) or page_size <= 0:
            raise ValidationError("page_size must be positive")
        if page_size > self._max_page_size:
            raise ValidationError(f"page_size must not exceed {self._max_page_size}")
        return page_size

    async def put_decision(
        self,
        actor_user_id: int | str,
        recipient_user_id: int | str,
        liked: bool,
        *,
        timeout: float | None = None,
    ) -> bool:
        """Record the decision and return whether it completes a mutual like.

        Once the decision is committed, cache trouble only costs counter
        accuracy; the write is still acknowledged.
        """

        self._logger.debug(
            "put_decision called actor=%s recipient=%s liked=%s",
            actor_user_id,
            recipient_user_id,
            liked,
        )
        return await self._run(
            "put_decision",
            partial(self._put_decision, actor_user_id, recipient_user_id, liked),
            timeout,
        )

    async def _put_decision(
        self,
        actor_user_id: int | str,
        recipient_user_id: int | str,
        liked: bool,
        deadline: float,
    ) -> bool:
        actor_id = parse_user_id(actor_user_id, "actor_user_id")
        recipient_id = parse_user_id(recipient_user_id, "recipient_user_id")
        if actor_id == recipient_id:
            raise ValidationError("cannot decide on yourself")

        previous = await self._within(
            deadline, self._repository.upsert(actor_id, recipient_id, liked)
        )

        if self._adjust_policy == "always":
            await self._counter.adjust(recipient_id, 1 if liked else -1, deadline=deadline)
            mutual = False
            if liked:
                mutual = await self._within(
                    deadline, self._repository.has_liked(recipient_id, actor_id)
                )
        else:
            mutual = await self._apply_transition(
                actor_id, recipient_id, liked, previous, deadline
            )

        self._logger.debug(
            "put_decision stored actor=%s recipient=%s previous=%s mutual=%s",
            actor_id,
            recipient_id,
            previous,
            mutual,
        )
        return mutual

    async def _apply_transition(
        self,
        actor_id: int,
        recipient_id: int,
        liked: bool,
        previous: bool | None,
        deadline: float,
    ) -> bool:
        delta = _transition_delta(previous, liked)
        reverse: bool | None = None
        if liked or delta:
            reverse = await self._within(
                deadline, self._repository.get_liked(recipient_id, actor_id)
            )

        # A like from someone the recipient passed is never counted.
        if delta and reverse is not False:
            await self._counter.adjust(recipient_id, delta, deadline=deadline)

        # The actor's own count excludes everyone the actor passed.
        if (previous is False) != (not liked):
            await self._counter.invalidate(actor_id, deadline=deadline)

        return liked and reverse is True

    async def list_likers(
        self,
        recipient_user_id: int | str,
        *,
        pagination_token: str | None = None,
        page_size: int | None = None,
        timeout: float | None = None,
    ) -> LikerPage:
        self._logger.debug(
            "list_likers called recipient=%s token=%s", recipient_user_id, pagination_token
        )
        page = await self._run(
            "list_likers",
            partial(self._list, recipient_user_id, pagination_token, page_size, new_only=False),
            timeout,
        )
        self._logger.debug(
            "list_likers result count=%d next=%s", len(page.decisions), page.next_token
        )
        return page

    async def list_new_likers(
        self,
        recipient_user_id: int | str,
        *,
        pagination_token: str | None = None,
        page_size: int | None = None,
        timeout: float | None = None,
    ) -> LikerPage:
        """Likers the recipient has neither liked back nor passed."""

        self._logger.debug(
            "list_new_likers called recipient=%s token=%s", recipient_user_id, pagination_token
        )
        return await self._run(
            "list_new_likers",
            partial(self._list, recipient_user_id, pagination_token, page_size, new_only=True),
            timeout,
        )

    async def _list(
        self,
        recipient_user_id: int | str,
        pagination_token: str | None,
        page_size: int | None,
        deadline: float,
        *,
        new_only: bool,
    ) -> LikerPage:
        recipient_id = parse_user_id(recipient_user_id, "recipient_user_id")
        limit = self._resolve_page_size(page_size)
        if new_only:
            query = self._queries.list_new_likers(
                recipient_id, token=pagination_token, limit=limit
            )
        else:
            query = self._queries.list_likers(recipient_id, token=pagination_token, limit=limit)
        return await self._within(deadline, query)

    async def count_likers(
        self, recipient_user_id: int | str, *, timeout: float | None = None
    ) -> int:
        """Count likers, recomputing from the store whenever Redis cannot answer."""

        self._logger.debug("count_likers called recipient=%s", recipient_user_id)
        return await self._run("count_likers", partial(self._count, recipient_user_id), timeout)

    async def _count(self, recipient_user_id: int | str, deadline: float) -> int:
        recipient_id = parse_user_id(recipient_user_id, "recipient_user_id")
        return await self._counter.get_or_compute(recipient_id, deadline=deadline)


async def get_decision_service(
    session: AsyncSession = Depends(get_db),
    cache_client: CacheClient = Depends(get_cache_client),
) -> DecisionService:
    """FastAPI dependency that wires the service together."""

    settings = get_settings()
    repository = DecisionRepository(session)
    counter = LikeCounter(
        cache_client,
        repository,
        ttl_seconds=settings.like_count_ttl_seconds,
        command_timeout_seconds=settings.redis_socket_timeout_seconds,
    )
    return DecisionService(
        repository=repository,
        queries=LikerQueryEngine(repository),
        counter=counter,
        default_page_size=settings.likers_page_size,
        max_page_size=settings.max_page_size,
        request_timeout_seconds=settings.request_timeout_seconds,
        adjust_policy=settings.count_adjust_policy,
    )


__all__ = ["DecisionService", "get_decision_service", "parse_user_id"]
