"""
Visitor Agent

Client-side producer of heartbeats and tracking events for one tab. Each
heartbeat tick runs one leader-election step; only the elected, active tab
sends a beat, and an idle leader gives the lease up. Events are posted from
background tasks so tracking never waits on the network; exit events go
through the unload-safe channel.
"""

import asyncio
import time
import uuid
from typing import Any, Callable, Dict, Optional, Set

from livecount.core.config.settings import settings
from livecount.core.logging.logger import get_logger
from livecount.domains.agent.models import AgentState, Leadership
from livecount.shared.constants.agent import COLLECT_PATH, HEARTBEAT_PATH
from livecount.shared.constants.events import (
    ADD_TO_CART,
    CHECKOUT_STARTED,
    EXIT_EVENTS,
    PAGE_HIDE,
    PAGE_VIEW,
    PURCHASE,
    UNLOAD,
)
from .activity import ActivityMonitor
from .dispatch import EventDispatcher
from .identity import IdentityManager
from .leader import LeaderElector
from .storage import KeyValueStorage, MemoryStorage

logger = get_logger(__name__)


def generate_event_id(event: str) -> str:
    return f"{event}_{uuid.uuid4().hex}"


class VisitorAgent:
    """
    One tab's tracking agent.

    ``durable_storage`` is shared by all tabs of the site (lease, visitor id);
    ``session_storage`` belongs to this tab.
    """

    def __init__(
        self,
        shop_domain: str,
        durable_storage: Optional[KeyValueStorage] = None,
        session_storage: Optional[KeyValueStorage] = None,
        dispatcher: Optional[EventDispatcher] = None,
        clock: Callable[[], float] = time.time,
        heartbeat_interval: Optional[float] = None,
        lease_stale_seconds: Optional[float] = None,
        inactivity_seconds: Optional[float] = None,
        rotation_seconds: Optional[float] = None,
        tab_id: Optional[str] = None,
    ):
        self.shop_domain = shop_domain
        self.durable_storage = durable_storage or MemoryStorage()
        self.session_storage = session_storage or MemoryStorage()
        self.dispatcher = dispatcher or EventDispatcher()
        self.heartbeat_interval = (
            heartbeat_interval or settings.agent.AGENT_HEARTBEAT_INTERVAL_SECONDS
        )
        self._clock = clock

        self.state = AgentState(tab_id=tab_id or uuid.uuid4().hex)
        self.elector = LeaderElector(self.durable_storage, lease_stale_seconds, clock)
        self.activity = ActivityMonitor(inactivity_seconds, clock)
        self.identity = IdentityManager(
            self.durable_storage, self.session_storage, rotation_seconds, clock
        )

        self._pending: Set[asyncio.Task] = set()
        self._heartbeat_task: Optional[asyncio.Task] = None
        self._started = False

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    @property
    def is_running(self) -> bool:
        return self._heartbeat_task is not None and not self._heartbeat_task.done()

    async def start(
        self, page: Optional[Dict[str, Any]] = None, run_loop: bool = True
    ) -> None:
        """
        Load identity, run the first election and track the landing page.

        With ``run_loop`` False the caller drives ``tick()`` itself.
        """
        if self._started:
            return
        self._started = True

        self.identity.load(self.state)
        self.state.last_activity = self._clock()
        self.state.active = True

        await self.tick()
        if page is not None:
            await self.track_page_view(page)

        if run_loop:
            self._heartbeat_task = asyncio.create_task(self._heartbeat_loop())

        logger.info(
            "Visitor agent started",
            shop=self.shop_domain,
            tab_id=self.state.tab_id,
            session_id=self.state.session_id,
            leadership=self.state.leadership.value,
        )

    async def _heartbeat_loop(self) -> None:
        while True:
            await asyncio.sleep(self.heartbeat_interval)
            try:
                await self.tick()
            except Exception as e:
                logger.warning(
                    "Heartbeat tick failed", tab_id=self.state.tab_id, error=str(e)
                )

    async def tick(self) -> bool:
        """
        One heartbeat period: an idle tab resigns any lease it holds so an
        active tab of the same browser can take over; an active tab runs an
        election step and beats if it is the leader.

        Returns:
            bool: True if a heartbeat was sent
        """
        if not self.activity.check(self.state):
            self.elector.resign(self.state)
            return False

        leadership = self.elector.tick(self.state)
        if leadership != Leadership.LEADER:
            return False
        return await self.send_heartbeat()

    async def send_heartbeat(self) -> bool:
        if self.state.session is None:
            return False
        return await self.dispatcher.send(
            HEARTBEAT_PATH,
            {
                "shop": self.shop_domain,
                "session_id": self.state.session_id,
                "ts": self._now_ms(),
            },
        )

    def record_activity(self, signal: str) -> bool:
        """Feed a user-interaction signal (pointer, key, scroll, touch, media)"""
        return self.activity.record(self.state, signal)

    def build_event(
        self,
        event: str,
        payload: Optional[Any] = None,
        page: Optional[Dict[str, Any]] = None,
        duration_ms: Optional[int] = None,
        event_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        record = self.identity.touch(self.state)

        body: Dict[str, Any] = {
            "event": event,
            "ts": self._now_ms(),
            "session_id": record.session_id,
            "visitor_id": self.state.visitor_id,
            "shop_domain": self.shop_domain,
            "event_id": event_id or generate_event_id(event),
        }
        if page:
            body["page"] = {k: v for k, v in page.items() if k in ("path", "title", "ref")}
        if duration_ms is not None:
            body["duration_ms"] = duration_ms
        if payload is not None:
            body["payload"] = payload
        return body

    async def track(self, event: str, payload: Optional[Any] = None, **kwargs) -> Dict[str, Any]:
        """
        Track one event. Regular events are posted in the background, exit
        events are handed to the unload channel before returning. Never raises
        for delivery failures.

        Returns:
            dict: The event body as sent
        """
        body = self.build_event(event, payload, **kwargs)

        if event in EXIT_EVENTS:
            await self.dispatcher.send_on_unload(COLLECT_PATH, body)
            return body

        task = asyncio.create_task(self.dispatcher.send(COLLECT_PATH, body))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return body

    async def flush(self) -> int:
        """
        Wait for in-flight event posts. Failures are dropped, never retried.

        Returns:
            int: Number of in-flight posts that were delivered
        """
        if not self._pending:
            return 0

        results = await asyncio.gather(*list(self._pending), return_exceptions=True)
        return sum(1 for delivered in results if delivered is True)

    async def track_page_view(
        self, page: Dict[str, Any], duration_ms: Optional[int] = None
    ) -> Dict[str, Any]:
        return await self.track(PAGE_VIEW, page=page, duration_ms=duration_ms)

    async def track_add_to_cart(
        self, product_id: str, variant_id: Optional[str] = None, quantity: int = 1
    ) -> Dict[str, Any]:
        return await self.track(
            ADD_TO_CART,
            {
                "product_id": product_id,
                "variant_id": variant_id or product_id,
                "quantity": quantity,
            },
        )

    async def track_checkout_started(self) -> Dict[str, Any]:
        return await self.track(CHECKOUT_STARTED)

    async def track_purchase(
        self, order_id: str, total: float, currency: str
    ) -> Dict[str, Any]:
        # One row per order no matter how often the confirmation page fires
        return await self.track(
            PURCHASE,
            {"order_id": order_id, "total": total, "currency": currency},
            event_id=f"{PURCHASE}_{order_id}",
        )

    async def page_hide(self, page: Optional[Dict[str, Any]] = None) -> None:
        """Tab hidden: hand leadership over and report the exit"""
        self.elector.resign(self.state)
        await self.track(PAGE_HIDE, page=page)

    async def close(self, send_unload: bool = True) -> None:
        """Stop heartbeats, send the unload event and release resources"""
        if self._heartbeat_task is not None:
            self._heartbeat_task.cancel()
            try:
                await self._heartbeat_task
            except asyncio.CancelledError:
                pass
            self._heartbeat_task = None

        self.elector.resign(self.state)
        if send_unload and self._started:
            await self.track(UNLOAD)

        await self.flush()
        await self.dispatcher.aclose()
        self._started = False
