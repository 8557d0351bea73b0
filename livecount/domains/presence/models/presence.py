"""
Presence message and response models
"""

import hashlib
import json
from typing import Optional

from pydantic import BaseModel, Field, validator

from livecount.shared.constants.presence import DISPLAY_STRATEGY_RAW
from livecount.shared.helpers import normalize_domain, is_valid_shop_domain

ID_PATTERN = r"^[A-Za-z0-9_.:\-]+$"


def validate_shop_value(value: str) -> str:
    """Normalize a shop domain and enforce the strict domain-token pattern"""
    if not isinstance(value, str):
        raise ValueError("shop domain must be a string")
    normalized = normalize_domain(value)
    if not is_valid_shop_domain(normalized):
        raise ValueError("shop domain is not a valid domain name")
    return normalized


class HeartbeatMessage(BaseModel):
    """Liveness beat from the leader tab of one browser"""

    shop: str = Field(..., max_length=253)
    session_id: str = Field(..., min_length=1, max_length=128, pattern=ID_PATTERN)
    ts: Optional[float] = Field(default=None, ge=0)

    @validator("shop")
    def validate_shop(cls, v):
        return validate_shop_value(v)


class PresenceSnapshot(BaseModel):
    """Evict-then-count result for one shop"""

    current: int
    display: int
    ts: int
    strategy: str = DISPLAY_STRATEGY_RAW
    note: Optional[str] = None

    def fingerprint(self) -> str:
        """Weak ETag over the count only; ``ts`` changes on every read"""
        digest = hashlib.sha1(
            json.dumps(
                {"current": self.current, "display": self.display},
                separators=(",", ":"),
                sort_keys=True,
            ).encode()
        ).hexdigest()
        return f'W/"{digest}"'

    def to_poll_response(self) -> dict:
        body = {"current": self.current, "display": self.display, "ts": self.ts}
        if self.note:
            body["note"] = self.note
        return body

    def to_stream_message(self) -> dict:
        return {
            "current": self.current,
            "display": self.display,
            "strategy": self.strategy,
        }
