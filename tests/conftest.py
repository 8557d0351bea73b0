"""
Shared fixtures: SQLite-backed durable store, fakeredis presence store,
controllable clocks and a recording HTTP transport for the agent.
"""

from datetime import datetime, timezone
from typing import List, Optional

import httpx
import pytest
import pytest_asyncio
from fakeredis import FakeAsyncRedis

from livecount.core.database import build_session_factory, create_all_tables
from livecount.core.database.engine import create_engine
from livecount.domains.ingestion.services import IngestionService
from livecount.domains.presence.services import PresenceStore

BASE_EPOCH_SECONDS = 1_760_000_000.0
SHOP = "s.myshopify.com"


class FakeClock:
    """Manually advanced wall clock; call for epoch seconds, ``ms()`` for millis"""

    def __init__(self, start: float = BASE_EPOCH_SECONDS):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def ms(self) -> int:
        return int(round(self.now * 1000))

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request and answers with a fixed status"""

    def __init__(self, status_code: int = 200, error: Optional[Exception] = None):
        self.requests: List[httpx.Request] = []
        self.status_code = status_code
        self.error = error
        super().__init__(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status_code, json={"ok": self.status_code < 400})

    def paths(self) -> List[str]:
        return [request.url.path for request in self.requests]


def as_utc_naive(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; compare everything as naive UTC"""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def ms_to_naive(epoch_ms: int) -> datetime:
    return datetime.fromtimestamp(epoch_ms / 1000.0, tz=timezone.utc).replace(tzinfo=None)


@pytest.fixture
def clock():
    return FakeClock()


@pytest_asyncio.fixture
async def redis_client():
    client = FakeAsyncRedis(decode_responses=True)
    yield client
    await client.flushall()
    await client.aclose()


@pytest_asyncio.fixture
async def presence_store(redis_client):
    async def provider():
        return redis_client

    return PresenceStore(
        redis_provider=provider,
        key_prefix="presence",
        key_ttl_seconds=300,
        window_seconds=30,
        enabled=True,
    )


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'livecount.db'}")
    assert await create_all_tables(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine):
    return build_session_factory(db_engine)


@pytest_asyncio.fixture
async def ingestion_service(session_factory, clock):
    return IngestionService(session_factory=session_factory, clock=clock.ms)
