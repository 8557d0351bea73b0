"""
Redis client for LiveCount
"""

import asyncio
from typing import Optional

from redis.asyncio import Redis

from livecount.core.config.settings import settings
from livecount.core.exceptions import RedisConnectionError, RedisTimeoutError
from livecount.core.logging import get_logger
from .models import RedisConnectionConfig

logger = get_logger(__name__)


class RedisClient:
    """Lazily connected shared Redis client"""

    def __init__(self, config: Optional[RedisConnectionConfig] = None):
        self.config = config or RedisConnectionConfig(
            host=settings.redis.REDIS_HOST,
            port=settings.redis.REDIS_PORT,
            password=settings.redis.REDIS_PASSWORD or None,
            db=settings.redis.REDIS_DB,
            tls=settings.redis.REDIS_TLS,
            url=settings.redis.REDIS_URL or None,
        )
        self._client: Optional[Redis] = None
        self._lock = asyncio.Lock()

    def _build(self) -> Redis:
        common = {
            "decode_responses": self.config.decode_responses,
            "socket_connect_timeout": self.config.socket_connect_timeout,
            "socket_timeout": self.config.socket_timeout,
            "socket_keepalive": self.config.socket_keepalive,
            "retry_on_timeout": self.config.retry_on_timeout,
            "health_check_interval": self.config.health_check_interval,
        }

        # rediss:// URLs carry TLS themselves
        if self.config.url:
            return Redis.from_url(self.config.url, **common)

        redis_config = {
            "host": self.config.host,
            "port": self.config.port,
            "password": self.config.password,
            "db": self.config.db,
            **common,
        }

        # Add TLS if enabled and not localhost
        if self.config.tls and self.config.host != "localhost":
            redis_config["ssl"] = True
            redis_config["ssl_cert_reqs"] = None

        return Redis(**redis_config)

    async def connect(self) -> None:
        """Establish Redis connection"""
        async with self._lock:
            if self._client is not None:
                return

            client = self._build()
            try:
                await asyncio.wait_for(client.ping(), timeout=5.0)
            except asyncio.TimeoutError as e:
                await client.aclose()
                logger.error("Redis connection timeout", **self.config.to_dict())
                raise RedisTimeoutError(
                    message="Redis connection timeout after 5 seconds",
                    operation="connect",
                    timeout=5.0,
                    cause=e,
                )
            except Exception as e:
                await client.aclose()
                logger.error(
                    "Failed to connect to Redis",
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise RedisConnectionError(
                    message=f"Failed to connect to Redis: {e}",
                    connection_details=self.config.to_dict(),
                    cause=e,
                )

            self._client = client
            logger.info("Redis connection established")

    async def disconnect(self) -> None:
        """Close Redis connection"""
        async with self._lock:
            if self._client is None:
                return

            try:
                await self._client.aclose()
                logger.info("Redis connection closed")
            except Exception as e:
                logger.warning("Error closing Redis connection", error=str(e))
            finally:
                self._client = None

    async def get_client(self) -> Redis:
        """Get Redis client, creating connection if needed"""
        if self._client is None:
            await self.connect()
        return self._client


# Global Redis client instance
_redis_client: Optional[RedisClient] = None


def get_redis_client_instance() -> RedisClient:
    """Get the global Redis client instance"""
    global _redis_client

    if _redis_client is None:
        _redis_client = RedisClient()

    return _redis_client


async def get_redis_client() -> Redis:
    """Get the connected shared Redis client"""
    return await get_redis_client_instance().get_client()


async def close_redis_client() -> None:
    """Close the shared Redis connection"""
    global _redis_client

    if _redis_client:
        await _redis_client.disconnect()
        _redis_client = None
