"""
Visitor agent services
"""

from .storage import KeyValueStorage, MemoryStorage
from .leader import LeaderElector
from .activity import ActivityMonitor
from .identity import IdentityManager, generate_session_id, generate_visitor_id
from .dispatch import BackgroundBeacon, Beacon, EventDispatcher
from .visitor_agent import VisitorAgent, generate_event_id

__all__ = [
    "KeyValueStorage",
    "MemoryStorage",
    "LeaderElector",
    "ActivityMonitor",
    "IdentityManager",
    "generate_session_id",
    "generate_visitor_id",
    "BackgroundBeacon",
    "Beacon",
    "EventDispatcher",
    "VisitorAgent",
    "generate_event_id",
]
