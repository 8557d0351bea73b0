"""
POST /collect: HTTP status mapping and request metadata extraction
"""

import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import func, select

from livecount.core.database.models import Event
from livecount.core.database.session import get_transaction_context
from livecount.core.exceptions import DatabaseQueryError, StoreUnavailableError
from livecount.domains.ingestion.api.collect_api import get_ingestion_service
from livecount.domains.ingestion.services import IngestionResult, IngestionService
from livecount.main import app

from conftest import SHOP

EVENT = {
    "event": "purchase",
    "event_id": "ord_1",
    "session_id": "sess_1",
    "shop_domain": SHOP,
}


@pytest.fixture
def mock_service():
    service = MagicMock()
    service.validate = IngestionService().validate
    service.ingest = AsyncMock(
        return_value=IngestionResult(shop_id="shop-1", event_ts_ms=1, deduplicated=False)
    )
    return service


@pytest.fixture
def client(mock_service):
    app.dependency_overrides[get_ingestion_service] = lambda: mock_service
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestCollectEndpoint:
    """Error-to-HTTP mapping"""

    def test_accepted_event(self, client, mock_service):
        response = client.post("/collect", json=EVENT)

        assert response.status_code == 200
        assert response.json() == {"ok": True, "deduplicated": False}
        mock_service.ingest.assert_awaited_once()

    def test_deduplicated_event_still_ok(self, client, mock_service):
        mock_service.ingest.return_value = IngestionResult(
            shop_id="shop-1", event_ts_ms=1, deduplicated=True
        )

        response = client.post("/collect", json=EVENT)

        assert response.status_code == 200
        assert response.json()["deduplicated"] is True

    def test_beacon_text_plain_body_accepted(self, client, mock_service):
        response = client.post(
            "/collect",
            content=json.dumps(EVENT),
            headers={"Content-Type": "text/plain;charset=UTF-8"},
        )

        assert response.status_code == 200
        mock_service.ingest.assert_awaited_once()

    def test_malformed_shop_domain_rejected_without_write(self, client, mock_service):
        response = client.post("/collect", json={**EVENT, "shop_domain": "drop table;"})

        assert response.status_code == 400
        body = response.json()
        assert body["ok"] is False
        assert body["error"] == "bad_request"
        assert body["details"][0]["loc"] == "shop_domain"
        mock_service.ingest.assert_not_awaited()

    def test_invalid_json_rejected(self, client, mock_service):
        response = client.post(
            "/collect", content=b"not-json", headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 400
        mock_service.ingest.assert_not_awaited()

    def test_store_unavailable_degrades_to_success(self, client, mock_service):
        mock_service.ingest.side_effect = StoreUnavailableError(
            "DATABASE_URL is not configured", store="database"
        )

        response = client.post("/collect", json=EVENT)

        assert response.status_code == 200
        assert response.json() == {"ok": True, "note": "database_unavailable"}

    def test_unexpected_storage_error_is_500(self, client, mock_service):
        mock_service.ingest.side_effect = DatabaseQueryError(
            "Event ingestion failed during event_write", operation="event_write"
        )

        response = client.post("/collect", json=EVENT)

        assert response.status_code == 500
        assert response.json() == {"ok": False, "error": "internal_error"}


class TestRequestMetadata:
    """Client IP and user agent passed to the service"""

    def _context(self, mock_service):
        _, context = mock_service.ingest.await_args.args
        return context

    def test_first_forwarded_for_hop_wins(self, client, mock_service):
        client.post(
            "/collect",
            json=EVENT,
            headers={
                "X-Forwarded-For": "203.0.113.7, 10.0.0.1",
                "X-Real-IP": "10.0.0.2",
                "User-Agent": "UA-Test",
            },
        )

        context = self._context(mock_service)
        assert context.ip == "203.0.113.7"
        assert context.user_agent == "UA-Test"

    def test_real_ip_used_without_forwarded_for(self, client, mock_service):
        client.post("/collect", json=EVENT, headers={"X-Real-IP": "198.51.100.4"})

        assert self._context(mock_service).ip == "198.51.100.4"

    def test_peer_address_fallback(self, client, mock_service):
        client.post("/collect", json=EVENT)

        assert self._context(mock_service).ip == "testclient"


class TestCollectIntegration:
    """End to end through the ASGI app into SQLite"""

    @pytest.mark.asyncio
    async def test_retried_delivery_stored_once(self, ingestion_service, session_factory):
        app.dependency_overrides[get_ingestion_service] = lambda: ingestion_service
        try:
            transport = httpx.ASGITransport(app=app)
            async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
                first = await http.post("/collect", json=EVENT)
                second = await http.post("/collect", json=EVENT)
        finally:
            app.dependency_overrides.clear()

        assert first.json() == {"ok": True, "deduplicated": False}
        assert second.json() == {"ok": True, "deduplicated": True}

        async with get_transaction_context(session_factory) as session:
            stored = (
                await session.execute(select(func.count()).select_from(Event))
            ).scalar_one()
        assert stored == 1
