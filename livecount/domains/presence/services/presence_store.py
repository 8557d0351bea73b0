"""
Presence Store

Per-shop Redis sorted set of ``session_id -> last heartbeat (epoch seconds)``.
Writes are single-key upserts and reads evict-then-count, both executed as
one MULTI/EXEC pipeline so no application-level locking is needed and every
server instance sharing the Redis keyspace observes the same count.
"""

import asyncio
from typing import Awaitable, Callable, Optional

from redis.asyncio import Redis
from redis.exceptions import ConnectionError as RedisConnectionFailure
from redis.exceptions import RedisError as RedisLibraryError
from redis.exceptions import TimeoutError as RedisTimeoutFailure

from livecount.core.config.settings import settings
from livecount.core.exceptions import (
    RedisConnectionError,
    RedisError,
    RedisTimeoutError,
    StoreUnavailableError,
)
from livecount.core.logging.logger import get_logger
from livecount.core.redis import get_redis_client
from livecount.shared.helpers import now_ms

logger = get_logger(__name__)

RedisProvider = Callable[[], Awaitable[Redis]]

_UNAVAILABLE_ERRORS = (
    RedisConnectionFailure,
    RedisTimeoutFailure,
    RedisConnectionError,
    RedisTimeoutError,
    asyncio.TimeoutError,
    OSError,
)


class PresenceStore:
    """Sliding-window active-session counter backed by Redis sorted sets"""

    def __init__(
        self,
        redis_provider: Optional[RedisProvider] = None,
        key_prefix: Optional[str] = None,
        key_ttl_seconds: Optional[int] = None,
        window_seconds: Optional[int] = None,
        enabled: Optional[bool] = None,
    ):
        self._redis_provider = redis_provider or get_redis_client
        self.key_prefix = key_prefix or settings.presence.PRESENCE_KEY_PREFIX
        self.key_ttl_seconds = key_ttl_seconds or settings.presence.PRESENCE_KEY_TTL_SECONDS
        self.window_seconds = window_seconds or settings.presence.PRESENCE_WINDOW_SECONDS
        self.enabled = settings.presence.PRESENCE_ENABLED if enabled is None else enabled

    def key_for(self, shop: str) -> str:
        return f"{self.key_prefix}:{shop}"

    async def _redis(self) -> Redis:
        if not self.enabled:
            raise StoreUnavailableError("Presence store is disabled", store="presence")
        try:
            return await self._redis_provider()
        except _UNAVAILABLE_ERRORS as e:
            raise StoreUnavailableError(
                "Presence store is unreachable", store="presence", cause=e
            )

    async def beat(self, shop: str, session_id: str, timestamp_ms: int) -> None:
        """
        Upsert a session's heartbeat and refresh the shop key's backstop TTL.

        Repeated beats for the same session only move its score; they never
        add a second member.

        Args:
            shop: Normalized shop domain
            session_id: Client session identifier
            timestamp_ms: Heartbeat time in epoch milliseconds

        Raises:
            StoreUnavailableError: Redis disabled or unreachable
            RedisError: Any other Redis failure
        """
        redis = await self._redis()
        key = self.key_for(shop)

        try:
            async with redis.pipeline(transaction=True) as pipe:
                pipe.zadd(key, {session_id: timestamp_ms / 1000.0})
                pipe.expire(key, self.key_ttl_seconds)
                await pipe.execute()
        except _UNAVAILABLE_ERRORS as e:
            raise StoreUnavailableError(
                "Presence store is unreachable", store="presence", cause=e
            )
        except RedisLibraryError as e:
            raise RedisError(f"Presence beat failed for {shop}", cause=e)

    async def count(
        self,
        shop: str,
        window_seconds: Optional[float] = None,
        at_ms: Optional[int] = None,
    ) -> int:
        """
        Evict entries at or older than ``now - window`` then count the rest.

        A session that beat at T is counted for queries in [T, T + window)
        and dropped from the first query at or after T + window.

        Args:
            shop: Normalized shop domain
            window_seconds: Active horizon, defaults to the configured window
            at_ms: Query time in epoch milliseconds, defaults to now

        Returns:
            int: Number of sessions active within the window
        """
        window = window_seconds if window_seconds is not None else self.window_seconds
        # Integer ms arithmetic so the cutoff lands exactly on T at T + window
        cutoff_ms = (at_ms if at_ms is not None else now_ms()) - int(round(window * 1000))
        cutoff = cutoff_ms / 1000.0

        redis = await self._redis()
        key = self.key_for(shop)

        try:
            async with redis.pipeline(transaction=True) as pipe:
                pipe.zremrangebyscore(key, "-inf", cutoff)
                pipe.zcard(key)
                evicted, remaining = await pipe.execute()
        except _UNAVAILABLE_ERRORS as e:
            raise StoreUnavailableError(
                "Presence store is unreachable", store="presence", cause=e
            )
        except RedisLibraryError as e:
            raise RedisError(f"Presence count failed for {shop}", cause=e)

        if evicted:
            logger.debug("Evicted stale presence entries", shop=shop, evicted=evicted)

        return int(remaining)


# Global instance shared by heartbeat writes, polling and push
presence_store = PresenceStore()
