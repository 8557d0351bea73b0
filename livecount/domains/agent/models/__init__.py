"""
Visitor agent models
"""

from .state import AgentState, LeaseRecord, Leadership, SessionRecord

__all__ = ["AgentState", "LeaseRecord", "Leadership", "SessionRecord"]
