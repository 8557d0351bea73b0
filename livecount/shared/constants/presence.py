"""
Presence and visitor-agent timing constants
"""

# Server side
DEFAULT_PRESENCE_WINDOW_SECONDS = 60
DEFAULT_PRESENCE_KEY_TTL_SECONDS = 300
DEFAULT_STREAM_INTERVAL_SECONDS = 2.0
DISPLAY_STRATEGY_RAW = "raw"

# Client side
DEFAULT_HEARTBEAT_INTERVAL_SECONDS = 10.0
DEFAULT_LEASE_STALE_SECONDS = 30.0
DEFAULT_INACTIVITY_SECONDS = 240.0
DEFAULT_SESSION_ROTATION_SECONDS = 1800.0
DEFAULT_REQUEST_TIMEOUT_SECONDS = 3.0
DEFAULT_UNLOAD_TIMEOUT_SECONDS = 1.0

__all__ = [
    "DEFAULT_PRESENCE_WINDOW_SECONDS",
    "DEFAULT_PRESENCE_KEY_TTL_SECONDS",
    "DEFAULT_STREAM_INTERVAL_SECONDS",
    "DISPLAY_STRATEGY_RAW",
    "DEFAULT_HEARTBEAT_INTERVAL_SECONDS",
    "DEFAULT_LEASE_STALE_SECONDS",
    "DEFAULT_INACTIVITY_SECONDS",
    "DEFAULT_SESSION_ROTATION_SECONDS",
    "DEFAULT_REQUEST_TIMEOUT_SECONDS",
    "DEFAULT_UNLOAD_TIMEOUT_SECONDS",
]
