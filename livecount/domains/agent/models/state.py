"""
Visitor agent state

All mutable agent state lives in one ``AgentState`` value that every
handler receives by reference; there are no module-level flags.
"""

import json
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Optional


class Leadership(str, Enum):
    """Heartbeat-sender election status of one tab"""

    UNELECTED = "unelected"
    LEADER = "leader"
    FOLLOWER = "follower"


@dataclass
class SessionRecord:
    """Client-side session identity, times in epoch seconds"""

    session_id: str
    started_at: float
    last_seen: float

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, raw: Optional[str]) -> Optional["SessionRecord"]:
        if not raw:
            return None
        try:
            data = json.loads(raw)
            return cls(
                session_id=str(data["session_id"]),
                started_at=float(data["started_at"]),
                last_seen=float(data["last_seen"]),
            )
        except (ValueError, KeyError, TypeError):
            return None


@dataclass
class LeaseRecord:
    """Advisory heartbeat lease shared by same-origin tabs"""

    holder: str
    renewed_at: float

    def is_stale(self, now: float, stale_seconds: float) -> bool:
        return now - self.renewed_at >= stale_seconds

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, raw: Optional[str]) -> Optional["LeaseRecord"]:
        if not raw:
            return None
        try:
            data = json.loads(raw)
            return cls(holder=str(data["holder"]), renewed_at=float(data["renewed_at"]))
        except (ValueError, KeyError, TypeError):
            return None


@dataclass
class AgentState:
    """Everything one tab's agent knows about itself"""

    tab_id: str
    visitor_id: Optional[str] = None
    session: Optional[SessionRecord] = None
    leadership: Leadership = Leadership.UNELECTED
    last_activity: float = 0.0
    active: bool = True

    @property
    def session_id(self) -> Optional[str]:
        return self.session.session_id if self.session else None

    @property
    def is_leader(self) -> bool:
        return self.leadership == Leadership.LEADER
