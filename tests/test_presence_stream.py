"""
Presence push: broadcaster ticks and the SSE frame generator
"""

import asyncio
import json

import pytest

from livecount.domains.presence.api.presence_api import (
    STREAM_OPENER,
    presence_event_stream,
)
from livecount.domains.presence.models import PresenceSnapshot
from livecount.domains.presence.services import PresenceBroadcaster, PresenceReader

from conftest import SHOP


class CountingReader:
    """Reader stub returning an increasing count on every snapshot"""

    def __init__(self, fail_on=()):
        self.calls = 0
        self.fail_on = set(fail_on)

    async def snapshot(self, shop):
        self.calls += 1
        if self.calls in self.fail_on:
            raise RuntimeError("redis hiccup")
        return PresenceSnapshot(current=self.calls, display=self.calls, ts=self.calls)


class TestPresenceBroadcaster:
    """Fixed-tick fan-out"""

    @pytest.mark.asyncio
    async def test_first_snapshot_is_immediate(self):
        broadcaster = PresenceBroadcaster(CountingReader(), interval_seconds=3600)

        async with broadcaster.subscribe(SHOP) as subscription:
            snapshot = await asyncio.wait_for(subscription.get(), timeout=1)

        assert snapshot.current == 1
        await broadcaster.close()

    @pytest.mark.asyncio
    async def test_ticks_push_fresh_counts(self):
        reader = CountingReader()
        broadcaster = PresenceBroadcaster(reader, interval_seconds=0.01)

        async with broadcaster.subscribe(SHOP) as subscription:
            first = await asyncio.wait_for(subscription.get(), timeout=1)
            second = await asyncio.wait_for(subscription.get(), timeout=1)

        assert second.current > first.current
        await broadcaster.close()

    @pytest.mark.asyncio
    async def test_one_read_per_tick_regardless_of_subscribers(self):
        reader = CountingReader()
        broadcaster = PresenceBroadcaster(reader, interval_seconds=3600)

        async with broadcaster.subscribe(SHOP) as first:
            async with broadcaster.subscribe(SHOP) as second:
                assert broadcaster.subscriber_count(SHOP) == 2
                # One ticker per shop
                assert len(broadcaster._tickers) == 1
                await first.get()
                await second.get()

        await broadcaster.close()

    @pytest.mark.asyncio
    async def test_slow_subscriber_keeps_only_latest(self):
        broadcaster = PresenceBroadcaster(CountingReader(), interval_seconds=3600)
        subscription = broadcaster.subscribe(SHOP)

        for n in (5, 6, 7):
            subscription.offer(PresenceSnapshot(current=n, display=n, ts=n))

        latest = await asyncio.wait_for(subscription.get(), timeout=1)
        assert latest.current == 7

    @pytest.mark.asyncio
    async def test_ticker_stops_with_last_subscriber(self):
        broadcaster = PresenceBroadcaster(CountingReader(), interval_seconds=3600)

        async with broadcaster.subscribe(SHOP):
            ticker = broadcaster._tickers[SHOP]

        await asyncio.gather(ticker, return_exceptions=True)
        assert broadcaster.subscriber_count(SHOP) == 0
        assert SHOP not in broadcaster._tickers
        assert ticker.cancelled()

    @pytest.mark.asyncio
    async def test_tick_errors_do_not_stop_the_stream(self):
        # Call 1 is the immediate snapshot, call 2 (first tick) fails
        reader = CountingReader(fail_on={2})
        broadcaster = PresenceBroadcaster(reader, interval_seconds=0.01)

        async with broadcaster.subscribe(SHOP) as subscription:
            await asyncio.wait_for(subscription.get(), timeout=1)
            recovered = await asyncio.wait_for(subscription.get(), timeout=1)

        assert recovered.current >= 3
        await broadcaster.close()

    @pytest.mark.asyncio
    async def test_failed_first_read_leaves_nothing_registered(self):
        reader = CountingReader(fail_on={1})
        broadcaster = PresenceBroadcaster(reader, interval_seconds=3600)

        with pytest.raises(RuntimeError):
            async with broadcaster.subscribe(SHOP):
                pass

        assert broadcaster.subscriber_count(SHOP) == 0
        assert SHOP not in broadcaster._tickers

        async with broadcaster.subscribe(SHOP) as subscription:
            snapshot = await asyncio.wait_for(subscription.get(), timeout=1)
            ticker = broadcaster._tickers[SHOP]

        await asyncio.gather(ticker, return_exceptions=True)
        assert snapshot.current == 2
        assert broadcaster.subscriber_count(SHOP) == 0
        assert broadcaster._tickers == {}

    @pytest.mark.asyncio
    async def test_close_cancels_tickers(self):
        broadcaster = PresenceBroadcaster(CountingReader(), interval_seconds=3600)
        subscription = broadcaster.subscribe(SHOP)
        await subscription.__aenter__()
        ticker = broadcaster._tickers[SHOP]

        await broadcaster.close()

        assert ticker.done()
        assert broadcaster.subscriber_count(SHOP) == 0

    @pytest.mark.asyncio
    async def test_push_and_poll_share_the_store(self, presence_store, clock):
        await presence_store.beat(SHOP, "abc", clock.ms())
        reader = PresenceReader(presence_store, window_seconds=30, clock=clock.ms)
        broadcaster = PresenceBroadcaster(reader, interval_seconds=3600)

        polled = await reader.snapshot(SHOP)
        async with broadcaster.subscribe(SHOP) as subscription:
            pushed = await asyncio.wait_for(subscription.get(), timeout=1)

        assert pushed.current == polled.current == 1
        await broadcaster.close()


class TestPresenceEventStream:
    """SSE framing"""

    @pytest.mark.asyncio
    async def test_opener_then_immediate_data_frame(self):
        broadcaster = PresenceBroadcaster(CountingReader(), interval_seconds=3600)
        stream = presence_event_stream(broadcaster, SHOP)

        opener = await asyncio.wait_for(stream.__anext__(), timeout=1)
        frame = await asyncio.wait_for(stream.__anext__(), timeout=1)
        await stream.aclose()

        assert opener == STREAM_OPENER
        assert opener.startswith(":")
        assert frame.startswith("data: ")
        assert frame.endswith("\n\n")
        assert json.loads(frame[len("data: "):]) == {
            "current": 1,
            "display": 1,
            "strategy": "raw",
        }
        assert broadcaster.subscriber_count(SHOP) == 0
        await broadcaster.close()

    @pytest.mark.asyncio
    async def test_stream_ends_when_client_disconnects(self):
        broadcaster = PresenceBroadcaster(CountingReader(), interval_seconds=3600)

        async def disconnected():
            return True

        frames = [
            frame
            async for frame in presence_event_stream(broadcaster, SHOP, disconnected)
        ]

        assert frames == [STREAM_OPENER]
        assert broadcaster.subscriber_count(SHOP) == 0
        await broadcaster.close()
