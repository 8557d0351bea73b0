"""
Event Dispatch

Two delivery modes for agent traffic:

- best-effort: a short-lived POST whose failures are logged and dropped
- unload: hand the payload to a beacon that outlives the caller, falling back
  to a best-effort POST with a shorter timeout when the beacon refuses it

Nothing is retried; analytics loss is accepted, blocking the page is not.
"""

import asyncio
import json
from typing import Any, Dict, Optional, Protocol, Set

import httpx

from livecount.core.config.settings import settings
from livecount.core.logging.logger import get_logger

logger = get_logger(__name__)

BEACON_CONTENT_TYPE = "text/plain;charset=UTF-8"


class Beacon(Protocol):
    def send(self, url: str, body: bytes) -> bool:
        """Queue ``body`` for delivery; False if it could not be queued"""
        ...


class BackgroundBeacon:
    """
    Fire-and-forget delivery detached from the caller.

    ``send`` only queues the request on the running loop and returns
    immediately. ``drain`` waits for queued requests and is called on agent
    shutdown so they survive the agent's own teardown.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        max_pending: int = 32,
    ):
        self._client = client
        self.max_pending = max_pending
        self._pending: Set[asyncio.Task] = set()

    def send(self, url: str, body: bytes) -> bool:
        if len(self._pending) >= self.max_pending:
            return False
        try:
            task = asyncio.get_running_loop().create_task(self._deliver(url, body))
        except RuntimeError:
            return False
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return True

    async def _deliver(self, url: str, body: bytes) -> None:
        try:
            await self._client.post(
                url, content=body, headers={"Content-Type": BEACON_CONTENT_TYPE}
            )
        except httpx.HTTPError as e:
            logger.debug("Beacon delivery failed", url=url, error=str(e))

    async def drain(self) -> None:
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


class EventDispatcher:
    """Delivers heartbeats and events to the ingestion server"""

    def __init__(
        self,
        api_host: Optional[str] = None,
        request_timeout: Optional[float] = None,
        unload_timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
        beacon: Optional[Beacon] = None,
    ):
        self.api_host = (api_host or settings.agent.AGENT_API_HOST).rstrip("/")
        self.request_timeout = httpx.Timeout(
            request_timeout or settings.agent.AGENT_REQUEST_TIMEOUT_SECONDS
        )
        self.unload_timeout = httpx.Timeout(
            unload_timeout or settings.agent.AGENT_UNLOAD_TIMEOUT_SECONDS
        )
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=self.request_timeout)
        self.beacon = beacon if beacon is not None else BackgroundBeacon(self._client)

    def url_for(self, path: str) -> str:
        return f"{self.api_host}{path}"

    async def send(self, path: str, body: Dict[str, Any]) -> bool:
        """Best-effort POST; errors are swallowed, never retried"""
        return await self._post(path, body, self.request_timeout)

    async def send_on_unload(self, path: str, body: Dict[str, Any]) -> bool:
        """Delivery for exit events that must survive document teardown"""
        url = self.url_for(path)
        data = json.dumps(body, separators=(",", ":")).encode()

        try:
            if self.beacon is not None and self.beacon.send(url, data):
                return True
        except Exception as e:
            logger.debug("Beacon unavailable", url=url, error=str(e))

        return await self._post(path, body, self.unload_timeout)

    async def _post(self, path: str, body: Dict[str, Any], timeout: httpx.Timeout) -> bool:
        url = self.url_for(path)
        try:
            response = await self._client.post(url, json=body, timeout=timeout)
        except httpx.HTTPError as e:
            logger.debug(
                "Dispatch failed, dropping",
                url=url,
                event=body.get("event"),
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

        if response.status_code >= 400:
            logger.debug(
                "Dispatch rejected, dropping",
                url=url,
                event=body.get("event"),
                status_code=response.status_code,
            )
            return False
        return True

    async def aclose(self) -> None:
        if isinstance(self.beacon, BackgroundBeacon):
            await self.beacon.drain()
        if self._owns_client:
            await self._client.aclose()
