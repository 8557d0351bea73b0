"""
Redis health monitoring utilities
"""

import time
from datetime import datetime

from livecount.core.logging import get_logger
from .client import get_redis_client_instance
from .models import RedisHealthStatus

logger = get_logger(__name__)


async def check_redis_health() -> RedisHealthStatus:
    """Check Redis connection health with detailed status"""
    start_time = time.time()

    try:
        redis_client = get_redis_client_instance()
        client = await redis_client.get_client()
        await client.ping()

        return RedisHealthStatus(
            is_healthy=True,
            connection_info=redis_client.config.to_dict(),
            last_check=datetime.now().isoformat(),
            response_time_ms=(time.time() - start_time) * 1000,
        )

    except Exception as e:
        response_time = (time.time() - start_time) * 1000
        logger.error(
            "Redis health check failed", error=str(e), response_time_ms=response_time
        )

        return RedisHealthStatus(
            is_healthy=False,
            last_check=datetime.now().isoformat(),
            error_message=str(e),
            response_time_ms=response_time,
        )
