"""
Presence services
"""

from .presence_store import PresenceStore, presence_store
from .presence_reader import (
    PresenceReader,
    PresenceBroadcaster,
    PresenceSubscription,
    presence_reader,
    presence_broadcaster,
)

__all__ = [
    "PresenceStore",
    "presence_store",
    "PresenceReader",
    "PresenceBroadcaster",
    "PresenceSubscription",
    "presence_reader",
    "presence_broadcaster",
]
