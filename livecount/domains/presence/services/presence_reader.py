"""
Presence Reader

Polling and push access to the Presence Store. Both paths compute from the
same ``PresenceStore`` instance so a deployment never runs divergent counts.
"""

import asyncio
from typing import Callable, Dict, Optional, Set

from livecount.core.config.settings import settings
from livecount.core.exceptions import StoreUnavailableError
from livecount.core.logging.logger import get_logger
from livecount.domains.presence.models import PresenceSnapshot
from livecount.shared.constants.presence import DISPLAY_STRATEGY_RAW
from livecount.shared.helpers import now_ms
from .presence_store import PresenceStore, presence_store

logger = get_logger(__name__)


class PresenceReader:
    """Evict-then-count reads shaped for dashboards"""

    def __init__(
        self,
        store: Optional[PresenceStore] = None,
        window_seconds: Optional[float] = None,
        clock: Callable[[], int] = now_ms,
    ):
        self.store = store or presence_store
        self.window_seconds = window_seconds or self.store.window_seconds
        self._clock = clock

    async def snapshot(self, shop: str) -> PresenceSnapshot:
        """
        Current active-visitor count for a shop.

        An unavailable store yields a zero count carrying a degraded note
        rather than an error; dashboards keep polling either way.
        """
        at_ms = self._clock()
        try:
            current = await self.store.count(shop, self.window_seconds, at_ms=at_ms)
        except StoreUnavailableError as e:
            logger.warning("Presence read degraded", shop=shop, reason=e.message)
            return PresenceSnapshot(current=0, display=0, ts=at_ms, note=e.note)

        return PresenceSnapshot(
            current=current,
            display=current,
            ts=at_ms,
            strategy=DISPLAY_STRATEGY_RAW,
        )


class PresenceSubscription:
    """
    One streaming consumer of a shop's presence ticks.

    Holds only the newest snapshot; a slow consumer skips stale ticks
    instead of queueing them.
    """

    def __init__(self, broadcaster: "PresenceBroadcaster", shop: str):
        self.shop = shop
        self._broadcaster = broadcaster
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=1)
        self.closed = False

    def offer(self, snapshot: PresenceSnapshot) -> None:
        if self._queue.full():
            try:
                self._queue.get_nowait()
            except asyncio.QueueEmpty:
                pass
        self._queue.put_nowait(snapshot)

    async def get(self) -> PresenceSnapshot:
        return await self._queue.get()

    async def __aenter__(self) -> "PresenceSubscription":
        await self._broadcaster._register(self)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._broadcaster._unregister(self)

    def __aiter__(self):
        return self

    async def __anext__(self) -> PresenceSnapshot:
        if self.closed:
            raise StopAsyncIteration
        return await self.get()


class PresenceBroadcaster:
    """
    Fixed-tick push of presence counts to streaming subscribers.

    One ticker task runs per shop while it has subscribers; each tick does a
    single evict-then-count and fans the result out, independent of how many
    clients are connected. New subscribers get an immediate first snapshot.
    """

    def __init__(
        self,
        reader: Optional[PresenceReader] = None,
        interval_seconds: Optional[float] = None,
    ):
        self.reader = reader or PresenceReader()
        self.interval_seconds = (
            interval_seconds or settings.presence.PRESENCE_STREAM_INTERVAL_SECONDS
        )
        self._subscribers: Dict[str, Set[PresenceSubscription]] = {}
        self._tickers: Dict[str, asyncio.Task] = {}

    def subscribe(self, shop: str) -> PresenceSubscription:
        """Use as ``async with broadcaster.subscribe(shop) as subscription``"""
        return PresenceSubscription(self, shop)

    def subscriber_count(self, shop: str) -> int:
        return len(self._subscribers.get(shop, ()))

    async def _register(self, subscription: PresenceSubscription) -> None:
        shop = subscription.shop

        # A failed first read must not leave the subscription registered
        subscription.offer(await self.reader.snapshot(shop))
        self._subscribers.setdefault(shop, set()).add(subscription)

        ticker = self._tickers.get(shop)
        if ticker is None or ticker.done():
            self._tickers[shop] = asyncio.create_task(self._run_ticker(shop))
            logger.debug("Presence ticker started", shop=shop)

    def _unregister(self, subscription: PresenceSubscription) -> None:
        shop = subscription.shop
        subscribers = self._subscribers.get(shop)
        if subscribers is None:
            return

        subscribers.discard(subscription)
        if not subscribers:
            del self._subscribers[shop]
            ticker = self._tickers.pop(shop, None)
            if ticker is not None:
                ticker.cancel()
            logger.debug("Presence ticker stopped", shop=shop)

    async def _run_ticker(self, shop: str) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)

            subscribers = self._subscribers.get(shop)
            if not subscribers:
                return

            try:
                snapshot = await self.reader.snapshot(shop)
            except Exception as e:
                logger.error(
                    "Presence tick failed",
                    shop=shop,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                continue

            for subscription in list(subscribers):
                subscription.offer(snapshot)

    async def close(self) -> None:
        """Cancel every ticker and drop all subscribers"""
        tickers = list(self._tickers.values())
        self._tickers.clear()
        self._subscribers.clear()

        for ticker in tickers:
            ticker.cancel()
        if tickers:
            await asyncio.gather(*tickers, return_exceptions=True)


# Global instances
presence_reader = PresenceReader()
presence_broadcaster = PresenceBroadcaster(presence_reader)
