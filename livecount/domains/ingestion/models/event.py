"""
Tracking event schema

Required fields are enumerated, optional ones explicitly nullable. Unknown
keys are ignored so newer agents can add fields without breaking ingestion.
"""

import json
from typing import Any, Optional

from pydantic import BaseModel, Field, validator

from livecount.core.config.settings import settings
from livecount.domains.presence.models import validate_shop_value

ID_PATTERN = r"^[A-Za-z0-9_.:\-]+$"
EVENT_NAME_PATTERN = r"^[a-z][a-z0-9_]*$"

MAX_DURATION_MS = 24 * 60 * 60 * 1000


class PageContext(BaseModel):
    """Where on the storefront the event happened"""

    path: Optional[str] = Field(default=None, max_length=2048)
    title: Optional[str] = Field(default=None, max_length=512)
    ref: Optional[str] = Field(default=None, max_length=2048)


class TrackingEvent(BaseModel):
    """One event as posted by the visitor agent"""

    event: str = Field(..., min_length=1, max_length=64, pattern=EVENT_NAME_PATTERN)
    ts: Optional[float] = Field(default=None, ge=0)
    session_id: str = Field(..., min_length=1, max_length=128, pattern=ID_PATTERN)
    visitor_id: Optional[str] = Field(default=None, max_length=128, pattern=ID_PATTERN)
    shop_domain: str = Field(..., max_length=253)
    page: Optional[PageContext] = None
    duration_ms: Optional[int] = Field(default=None, ge=0, le=MAX_DURATION_MS)
    payload: Optional[Any] = None
    event_id: Optional[str] = Field(default=None, max_length=128, pattern=ID_PATTERN)

    @validator("visitor_id", "event_id", pre=True)
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @validator("shop_domain")
    def validate_shop_domain(cls, v):
        return validate_shop_value(v)

    @validator("payload")
    def validate_payload_size(cls, v):
        if v is None:
            return v
        size = len(json.dumps(v, separators=(",", ":"), default=str))
        if size > settings.ingestion.MAX_PAYLOAD_BYTES:
            raise ValueError(
                f"payload exceeds {settings.ingestion.MAX_PAYLOAD_BYTES} bytes"
            )
        return v

    @property
    def page_path(self) -> Optional[str]:
        return self.page.path if self.page else None

    @property
    def page_title(self) -> Optional[str]:
        return self.page.title if self.page else None

    @property
    def referrer(self) -> Optional[str]:
        return self.page.ref if self.page else None
