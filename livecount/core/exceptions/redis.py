"""
Redis-related exceptions
"""

from .base import LiveCountException
from typing import Optional, Dict, Any


class RedisError(LiveCountException):
    """Base exception for Redis errors"""

    def __init__(self, message: str, error_code: str = "REDIS_ERROR", **kwargs):
        super().__init__(message=message, error_code=error_code, **kwargs)


class RedisConnectionError(RedisError):
    """Raised when Redis connection fails"""

    def __init__(
        self,
        message: str,
        connection_details: Optional[Dict[str, Any]] = None,
        **kwargs
    ):
        super().__init__(
            message=message,
            error_code="REDIS_CONNECTION_ERROR",
            details={"connection_details": connection_details},
            **kwargs
        )


class RedisTimeoutError(RedisError):
    """Raised when Redis operations timeout"""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        timeout: Optional[float] = None,
        **kwargs
    ):
        super().__init__(
            message=message,
            error_code="REDIS_TIMEOUT_ERROR",
            details={"operation": operation, "timeout": timeout},
            **kwargs
        )
