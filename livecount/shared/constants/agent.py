"""
Visitor agent storage keys, endpoints and activity signals
"""

# Shared by all same-origin tabs (durable)
LEASE_STORAGE_KEY = "livecount:leader"
VISITOR_STORAGE_KEY = "livecount:visitor_id"
SESSION_BACKUP_STORAGE_KEY = "livecount:session_last_seen"

# Tab / browser-session scoped
SESSION_STORAGE_KEY = "livecount:session"

HEARTBEAT_PATH = "/presence/beat"
COLLECT_PATH = "/collect"

# User-interaction signals that count as activity
POINTER_SIGNALS = frozenset({"pointerdown", "pointermove", "mousemove", "mousedown", "click"})
KEY_SIGNALS = frozenset({"keydown", "keyup"})
SCROLL_SIGNALS = frozenset({"scroll", "wheel"})
TOUCH_SIGNALS = frozenset({"touchstart", "touchmove"})
MEDIA_SIGNALS = frozenset({"play", "playing", "timeupdate"})

ACTIVITY_SIGNALS = (
    POINTER_SIGNALS | KEY_SIGNALS | SCROLL_SIGNALS | TOUCH_SIGNALS | MEDIA_SIGNALS
)

__all__ = [
    "LEASE_STORAGE_KEY",
    "VISITOR_STORAGE_KEY",
    "SESSION_BACKUP_STORAGE_KEY",
    "SESSION_STORAGE_KEY",
    "HEARTBEAT_PATH",
    "COLLECT_PATH",
    "POINTER_SIGNALS",
    "KEY_SIGNALS",
    "SCROLL_SIGNALS",
    "TOUCH_SIGNALS",
    "MEDIA_SIGNALS",
    "ACTIVITY_SIGNALS",
]
