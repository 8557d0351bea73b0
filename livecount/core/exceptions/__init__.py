"""
Custom exceptions for LiveCount
"""

from .base import LiveCountException, StoreUnavailableError
from .config import ConfigurationError
from .database import DatabaseError, DatabaseQueryError
from .redis import RedisError, RedisConnectionError, RedisTimeoutError

__all__ = [
    "LiveCountException",
    "StoreUnavailableError",
    "ConfigurationError",
    "DatabaseError",
    "DatabaseQueryError",
    "RedisError",
    "RedisConnectionError",
    "RedisTimeoutError",
]
