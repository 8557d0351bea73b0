"""
Presence HTTP endpoints: heartbeat intake and conditional polling
"""

import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from fastapi.testclient import TestClient

from livecount.core.exceptions import StoreUnavailableError
from livecount.domains.presence.api.presence_api import (
    etag_matches,
    get_presence_reader,
    get_presence_store,
)
from livecount.domains.presence.models import PresenceSnapshot
from livecount.domains.presence.services import PresenceReader
from livecount.main import app

from conftest import SHOP


@pytest.fixture
def mock_store():
    store = MagicMock()
    store.beat = AsyncMock(return_value=None)
    return store


@pytest.fixture
def mock_reader():
    reader = MagicMock()
    reader.snapshot = AsyncMock(
        return_value=PresenceSnapshot(current=4, display=4, ts=1_000)
    )
    return reader


@pytest.fixture
def client(mock_store, mock_reader):
    app.dependency_overrides[get_presence_store] = lambda: mock_store
    app.dependency_overrides[get_presence_reader] = lambda: mock_reader
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestHeartbeatEndpoint:
    """POST /presence/beat"""

    def test_beat_records_normalized_shop(self, client, mock_store):
        response = client.post(
            "/presence/beat",
            json={"shop": "https://S.myshopify.com/", "session_id": "abc"},
        )

        assert response.status_code == 200
        assert response.json() == {"ok": True}
        shop, session_id, ts = mock_store.beat.await_args.args
        assert shop == SHOP
        assert session_id == "abc"
        assert isinstance(ts, int)

    def test_beat_accepts_text_plain_beacon(self, client, mock_store):
        response = client.post(
            "/presence/beat",
            content=json.dumps({"shop": SHOP, "session_id": "abc"}),
            headers={"Content-Type": "text/plain;charset=UTF-8"},
        )

        assert response.status_code == 200
        mock_store.beat.assert_awaited_once()

    def test_skewed_beat_timestamp_replaced(self, client, mock_store):
        response = client.post(
            "/presence/beat",
            json={"shop": SHOP, "session_id": "abc", "ts": 1_000},
        )

        assert response.status_code == 200
        _, _, ts = mock_store.beat.await_args.args
        assert ts > 1_000_000

    @pytest.mark.parametrize(
        "body",
        [
            {"shop": "not a domain", "session_id": "abc"},
            {"shop": SHOP},
            {"shop": SHOP, "session_id": ""},
            {"shop": SHOP, "session_id": "has spaces"},
            {"shop": SHOP, "session_id": "abc", "ts": -5},
        ],
    )
    def test_invalid_beat_rejected(self, client, mock_store, body):
        response = client.post("/presence/beat", json=body)

        assert response.status_code == 400
        assert response.json()["ok"] is False
        assert response.json()["error"] == "bad_request"
        mock_store.beat.assert_not_awaited()

    def test_malformed_json_rejected(self, client):
        response = client.post(
            "/presence/beat",
            content=b"{not json",
            headers={"Content-Type": "text/plain"},
        )

        assert response.status_code == 400

    def test_store_unavailable_degrades(self, client, mock_store):
        mock_store.beat.side_effect = StoreUnavailableError(
            "Presence store is disabled", store="presence"
        )

        response = client.post("/presence/beat", json={"shop": SHOP, "session_id": "abc"})

        assert response.status_code == 200
        assert response.json() == {"ok": True, "note": "presence_unavailable"}


class TestPollingEndpoint:
    """GET /presence"""

    def test_poll_returns_count_with_etag(self, client):
        response = client.get("/presence", params={"shop": SHOP})

        assert response.status_code == 200
        assert response.json() == {"current": 4, "display": 4, "ts": 1_000}
        assert response.headers["etag"].startswith('W/"')
        assert response.headers["cache-control"] == "no-store"

    def test_matching_etag_returns_not_modified(self, client, mock_reader):
        etag = client.get("/presence", params={"shop": SHOP}).headers["etag"]

        # Only ts moved; the fingerprint must not change
        mock_reader.snapshot.return_value = PresenceSnapshot(
            current=4, display=4, ts=2_000
        )
        response = client.get(
            "/presence", params={"shop": SHOP}, headers={"If-None-Match": etag}
        )

        assert response.status_code == 304
        assert response.headers["etag"] == etag

    def test_changed_count_returns_fresh_body(self, client, mock_reader):
        etag = client.get("/presence", params={"shop": SHOP}).headers["etag"]
        mock_reader.snapshot.return_value = PresenceSnapshot(
            current=5, display=5, ts=2_000
        )

        response = client.get(
            "/presence", params={"shop": SHOP}, headers={"If-None-Match": etag}
        )

        assert response.status_code == 200
        assert response.json()["current"] == 5

    def test_invalid_shop_rejected(self, client, mock_reader):
        response = client.get("/presence", params={"shop": "bad domain!"})

        assert response.status_code == 400
        mock_reader.snapshot.assert_not_awaited()

    def test_degraded_poll_carries_note(self, client, mock_reader):
        mock_reader.snapshot.return_value = PresenceSnapshot(
            current=0, display=0, ts=1_000, note="presence_unavailable"
        )

        response = client.get("/presence", params={"shop": SHOP})

        assert response.status_code == 200
        assert response.json()["note"] == "presence_unavailable"


class TestEtagMatching:
    def test_weak_and_strong_forms_match(self):
        assert etag_matches('W/"abc"', 'W/"abc"')
        assert etag_matches('"abc"', 'W/"abc"')
        assert etag_matches('"zzz", W/"abc"', 'W/"abc"')
        assert etag_matches("*", 'W/"abc"')

    def test_missing_or_different_does_not_match(self):
        assert not etag_matches(None, 'W/"abc"')
        assert not etag_matches('W/"def"', 'W/"abc"')


class TestPresenceRoundTrip:
    """Beat and poll through the ASGI app against a shared fakeredis store"""

    @pytest.mark.asyncio
    async def test_beat_then_poll(self, presence_store):
        reader = PresenceReader(presence_store, window_seconds=30)
        app.dependency_overrides[get_presence_store] = lambda: presence_store
        app.dependency_overrides[get_presence_reader] = lambda: reader

        try:
            transport = httpx.ASGITransport(app=app)
            async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
                for session_id in ("a", "b", "a"):
                    response = await http.post(
                        "/presence/beat", json={"shop": SHOP, "session_id": session_id}
                    )
                    assert response.status_code == 200

                response = await http.get("/presence", params={"shop": SHOP})
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 200
        assert response.json()["current"] == 2
