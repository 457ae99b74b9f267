"""Route-level tests driving the FastAPI app over an in-memory ledger."""

from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from explore.cache import CacheClient
from explore.db.repositories.decision_repository import DecisionRepository
from explore.errors import DeadlineExceededError
from explore.main import app
from explore.services.decision_service import DecisionService, get_decision_service
from explore.services.like_counter import LikeCounter
from explore.services.liker_queries import LikerQueryEngine


@pytest_asyncio.fixture
async def api_client(session: AsyncSession, fake_redis, clock) -> AsyncIterator[AsyncClient]:
    """Create an ``AsyncClient`` whose service is backed by the test session."""
    repository = DecisionRepository(session, clock=clock)
    service = DecisionService(
        repository=repository,
        queries=LikerQueryEngine(repository),
        counter=LikeCounter(CacheClient(fake_redis), repository, ttl_seconds=3600),
        default_page_size=5,
        max_page_size=100,
    )

    app.dependency_overrides.clear()
    app.dependency_overrides[get_decision_service] = lambda: service

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client

    app.dependency_overrides.clear()


async def _decide(client: AsyncClient, actor: str, recipient: str, liked: bool):
    return await client.put(
        "/explore/decisions",
        json={
            "actor_user_id": actor,
            "recipient_user_id": recipient,
            "liked_recipient": liked,
        },
    )


@pytest.mark.asyncio
async def test_put_decision_reports_mutual_like(api_client: AsyncClient) -> None:
    first = await _decide(api_client, "1", "2", True)
    second = await _decide(api_client, "2", "1", True)

    assert first.status_code == 200
    assert first.json() == {"mutual_likes": False}
    assert second.json() == {"mutual_likes": True}
    assert second.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_liked_you_lists_and_counts(api_client: AsyncClient) -> None:
    await _decide(api_client, "2", "1", True)
    await _decide(api_client, "3", "1", True)
    await _decide(api_client, "1", "3", False)

    listing = await api_client.get("/explore/liked-you/1")
    count = await api_client.get("/explore/liked-you/1/count")

    assert listing.status_code == 200
    payload = listing.json()
    assert [liker["actor_id"] for liker in payload["likers"]] == ["2"]
    assert isinstance(payload["likers"][0]["unix_timestamp"], int)
    assert payload["next_pagination_token"] is None
    assert count.json() == {"count": 1}


@pytest.mark.asyncio
async def test_liked_you_paginates_with_token(api_client: AsyncClient) -> None:
    await _decide(api_client, "2", "1", True)
    await _decide(api_client, "3", "1", True)

    first = (await api_client.get("/explore/liked-you/1", params={"page_size": 1})).json()
    second = (
        await api_client.get(
            "/explore/liked-you/1",
            params={"page_size": 1, "pagination_token": first["next_pagination_token"]},
        )
    ).json()

    assert [liker["actor_id"] for liker in first["likers"]] == ["3"]
    assert [liker["actor_id"] for liker in second["likers"]] == ["2"]
    assert second["next_pagination_token"] is None


@pytest.mark.asyncio
async def test_new_liked_you_excludes_mutual(api_client: AsyncClient) -> None:
    await _decide(api_client, "2", "1", True)
    await _decide(api_client, "1", "2", True)
    await _decide(api_client, "4", "1", True)

    response = await api_client.get("/explore/liked-you/1/new")

    assert [liker["actor_id"] for liker in response.json()["likers"]] == ["4"]


@pytest.mark.asyncio
async def test_self_decision_is_bad_request(api_client: AsyncClient) -> None:
    response = await _decide(api_client, "7", "7", True)

    assert response.status_code == 400
    body = response.json()
    assert body["error_type"] == "validation_error"
    assert body["message"] == "cannot decide on yourself"
    assert body["request_id"] == response.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_invalid_identifier_is_bad_request(api_client: AsyncClient) -> None:
    response = await api_client.get("/explore/liked-you/not-a-number/count")

    assert response.status_code == 400
    assert "recipient_user_id" in response.json()["message"]


@pytest.mark.asyncio
async def test_invalid_token_is_bad_request(api_client: AsyncClient) -> None:
    response = await api_client.get(
        "/explore/liked-you/1", params={"pagination_token": "@@not-a-token@@"}
    )

    assert response.status_code == 400
    assert response.json()["error_type"] == "invalid_cursor"


@pytest.mark.asyncio
async def test_missing_body_field_is_unprocessable(api_client: AsyncClient) -> None:
    response = await api_client.put(
        "/explore/decisions", json={"actor_user_id": "1", "recipient_user_id": "2"}
    )

    assert response.status_code == 422
    body = response.json()
    assert body["error_type"] == "validation_error"
    assert any(error["field"].endswith("liked_recipient") for error in body["errors"])


@pytest.mark.asyncio
async def test_timeout_header_is_forwarded_and_expiry_maps_to_504() -> None:
    class _SlowService:
        received: dict[str, object] = {}

        async def count_likers(self, recipient_user_id, *, timeout=None):
            self.received["timeout"] = timeout
            raise DeadlineExceededError("request timed out")

    slow = _SlowService()
    app.dependency_overrides.clear()
    app.dependency_overrides[get_decision_service] = lambda: slow
    try:
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://testserver") as client:
            response = await client.get(
                "/explore/liked-you/1/count", headers={"X-Request-Timeout-Ms": "250"}
            )
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 504
    assert response.json()["error_type"] == "timeout"
    assert slow.received["timeout"] == 0.25


@pytest.mark.asyncio
async def test_healthcheck(api_client: AsyncClient) -> None:
    response = await api_client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
