"""Tests for the API layer — GET /api/v1/entries and error mapping.

The entries fetcher dependency is overridden with a memory-store PageFetcher,
so no database is needed. ASGITransport does not run the lifespan.
"""

from __future__ import annotations

import uuid
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from helpers import TEAM_A, make_records, make_store
from httpx import ASGITransport, AsyncClient

from pagewise.api import create_app, deps
from pagewise.core.config import Settings
from pagewise.errors import StoreUnavailable
from pagewise.pagination.fetcher import PageFetcher

URL = "/api/v1/entries"


@pytest.fixture
def app(fetcher):
    application = create_app(Settings())
    application.dependency_overrides[deps.get_entry_fetcher] = lambda: fetcher
    return application


@pytest_asyncio.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


def _ranks(body):
    return [r["rank"] for r in body["records"]]


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------


class TestListEntries:
    @pytest.mark.asyncio
    async def test_first_page(self, client):
        resp = await client.get(URL, params={"order": "rank", "team_id": TEAM_A, "limit": 5})
        assert resp.status_code == 200
        body = resp.json()
        assert _ranks(body) == [0, 1, 2, 3, 4]
        assert body["pagination"] == {"state": "CONTINUE", "last": "4"}

    @pytest.mark.asyncio
    async def test_follow_up_page(self, client):
        params = {"order": "rank", "team_id": TEAM_A, "limit": 5, "after": "4"}
        resp = await client.get(URL, params=params)
        assert _ranks(resp.json()) == [5, 6, 7, 8, 9]

    @pytest.mark.asyncio
    async def test_before_bound(self, client):
        params = {"order": "rank", "team_id": TEAM_A, "limit": 3, "before": "10"}
        body = (await client.get(URL, params=params)).json()
        assert _ranks(body) == [7, 8, 9]
        assert body["pagination"]["last"] == "7"

    @pytest.mark.asyncio
    async def test_descending(self, client):
        params = {"order": "rank", "order_desc": "true", "team_id": TEAM_A, "limit": 2}
        assert _ranks((await client.get(URL, params=params)).json()) == [49, 48]

    @pytest.mark.asyncio
    async def test_zero_limit_uses_server_default(self, client):
        resp = await client.get(URL, params={"order": "rank", "team_id": TEAM_A})
        assert len(resp.json()["records"]) == 10

    @pytest.mark.asyncio
    async def test_empty_result_omits_last(self, client):
        resp = await client.get(URL, params={"order": "rank", "team_id": "nobody"})
        assert resp.json() == {"records": [], "pagination": {"state": "END"}}

    @pytest.mark.asyncio
    async def test_timestamps_serialized_as_iso(self, client):
        resp = await client.get(URL, params={"order": "created_at", "limit": 1})
        record = resp.json()["records"][0]
        assert record["created_at"].startswith("2026-01-01T09:00:00")

    @pytest.mark.asyncio
    async def test_health(self, client):
        resp = await client.get("/health")
        assert resp.json() == {"status": "ok"}


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class TestListErrors:
    @pytest.mark.asyncio
    async def test_invalid_bound(self, client):
        resp = await client.get(URL, params={"order": "created_at", "after": "yesterday"})
        assert resp.status_code == 422
        assert resp.json()["code"] == "invalid_bound"

    @pytest.mark.asyncio
    async def test_unsupported_order(self, client):
        resp = await client.get(URL, params={"order": "color"})
        assert resp.status_code == 422
        assert resp.json()["code"] == "invalid_query"

    @pytest.mark.asyncio
    async def test_unsupported_filter(self, client):
        resp = await client.get(URL, params={"order": "rank", "owner_id": "x"})
        assert resp.status_code == 422
        assert "owner_id" in resp.json()["detail"]

    @pytest.mark.asyncio
    async def test_before_and_after(self, client):
        resp = await client.get(URL, params={"order": "rank", "before": "1", "after": "2"})
        assert resp.status_code == 422
        assert "mutually exclusive" in resp.json()["detail"]

    @pytest.mark.asyncio
    async def test_limit_above_maximum(self, client):
        resp = await client.get(URL, params={"order": "rank", "limit": 101})
        assert resp.status_code == 422
        assert resp.json()["code"] == "invalid_query"

    @pytest.mark.parametrize("params", [{"order": "rank", "limit": -1}, {"limit": 5}])
    @pytest.mark.asyncio
    async def test_request_validation(self, client, params):
        resp = await client.get(URL, params=params)
        assert resp.status_code == 422
        assert resp.json()["code"] == "invalid_query"

    @pytest.mark.asyncio
    async def test_snapshot_not_supported_by_store(self, client):
        params = {"order": "rank", "snapshot_time": "2026-01-01T00:00:00+00:00"}
        resp = await client.get(URL, params=params)
        assert resp.status_code == 422
        assert "snapshot_time" in resp.json()["detail"]

    @pytest.mark.asyncio
    async def test_store_unavailable(self, app, client):
        store = make_store(make_records(3))
        store.scan = AsyncMock(side_effect=StoreUnavailable("connection refused"))
        app.dependency_overrides[deps.get_entry_fetcher] = lambda: PageFetcher(store)
        resp = await client.get(URL, params={"order": "rank"})
        assert resp.status_code == 503
        assert resp.json() == {
            "detail": "connection refused",
            "code": "store_unavailable",
        }


# ---------------------------------------------------------------------------
# Middleware / wiring
# ---------------------------------------------------------------------------


class TestRequestId:
    @pytest.mark.asyncio
    async def test_echoes_valid_request_id(self, client):
        rid = str(uuid.uuid4())
        resp = await client.get("/health", headers={"X-Request-ID": rid})
        assert resp.headers["X-Request-ID"] == rid

    @pytest.mark.asyncio
    async def test_replaces_invalid_request_id(self, client):
        resp = await client.get("/health", headers={"X-Request-ID": "not-a-uuid"})
        assert uuid.UUID(resp.headers["X-Request-ID"])
        assert resp.headers["X-Request-ID"] != "not-a-uuid"

    @pytest.mark.asyncio
    async def test_present_on_error_responses(self, client):
        resp = await client.get(URL, params={"order": "color"})
        assert "X-Request-ID" in resp.headers


class TestDeps:
    def test_fetcher_must_be_initialised(self):
        deps.set_fetcher(None)
        with pytest.raises(RuntimeError):
            deps.get_entry_fetcher()

    def test_set_fetcher(self, fetcher):
        deps.set_fetcher(fetcher)
        try:
            assert deps.get_entry_fetcher() is fetcher
        finally:
            deps.set_fetcher(None)

    def test_build_entry_fetcher_with_retention(self):
        fetcher = deps.build_entry_fetcher(AsyncMock(), Settings(retention_days=30, max_limit=50))
        assert fetcher.max_limit == 50
        assert fetcher.policy is not None
        assert set(fetcher.store.sort_fields) == {"created_at", "name"}

    def test_build_entry_fetcher_without_retention(self):
        fetcher = deps.build_entry_fetcher(AsyncMock(), Settings())
        assert fetcher.policy is None
