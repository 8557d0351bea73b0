"""
Visitor agent: leader-elected heartbeats and dual-mode event delivery for one browser tab
"""

from .services import VisitorAgent, EventDispatcher, MemoryStorage

__all__ = ["VisitorAgent", "EventDispatcher", "MemoryStorage"]
