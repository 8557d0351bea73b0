"""
Tracking event model for SQLAlchemy
"""

from sqlalchemy import Column, String, Index, text
from sqlalchemy.dialects.postgresql import TIMESTAMP
from sqlalchemy.orm import relationship
from .base import BaseModel, IDMixin, ShopMixin, SessionMixin, JSONPayload


class Event(BaseModel, IDMixin, ShopMixin, SessionMixin):
    """One stored tracking event, deduplicated per shop by client event_id"""

    __tablename__ = "events"

    event_id = Column(String(128), nullable=True)
    name = Column(String(64), nullable=False)
    ts = Column(TIMESTAMP(timezone=True), nullable=False)
    page_path = Column(String(2048), nullable=True)
    payload = Column(JSONPayload, nullable=True)

    # Relationships
    shop = relationship("Shop", back_populates="events")
    session = relationship("VisitorSession", back_populates="events")

    __table_args__ = (
        # Dedup key; without it retries degrade to duplicate rows
        Index(
            "events_shop_event_id_uniq",
            "shop_id",
            "event_id",
            unique=True,
            postgresql_where=text("event_id IS NOT NULL"),
            sqlite_where=text("event_id IS NOT NULL"),
        ),
        Index("events_shop_ts_idx", "shop_id", "ts"),
        Index("events_shop_name_ts_idx", "shop_id", "name", "ts"),
    )

    def __repr__(self) -> str:
        return f"<Event(name={self.name}, event_id={self.event_id}, shop_id={self.shop_id})>"
