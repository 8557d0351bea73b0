"""
Redis module for LiveCount
"""

from .client import (
    RedisClient,
    get_redis_client,
    get_redis_client_instance,
    close_redis_client,
)
from .health import check_redis_health
from .models import RedisConnectionConfig, RedisHealthStatus

__all__ = [
    "RedisClient",
    "get_redis_client",
    "get_redis_client_instance",
    "close_redis_client",
    "check_redis_health",
    "RedisConnectionConfig",
    "RedisHealthStatus",
]
