"""
Redis-specific constants
"""

DEFAULT_REDIS_PORT = 6379
DEFAULT_REDIS_DB = 0
DEFAULT_REDIS_TLS = False

# Presence sorted sets live under "<prefix>:<shop>"
PRESENCE_KEY_PREFIX = "presence"

__all__ = [
    "DEFAULT_REDIS_PORT",
    "DEFAULT_REDIS_DB",
    "DEFAULT_REDIS_TLS",
    "PRESENCE_KEY_PREFIX",
]
