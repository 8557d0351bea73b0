"""
Visitor session model for SQLAlchemy

The primary key is the client-generated session identifier. ``first_seen`` is
written once on insert; ``last_seen`` only ever moves forward.
"""

from sqlalchemy import Column, String, Index
from sqlalchemy.dialects.postgresql import TIMESTAMP
from sqlalchemy.orm import relationship
from .base import BaseModel, ShopMixin


class VisitorSession(BaseModel, ShopMixin):
    """Anonymous storefront visitor session"""

    __tablename__ = "sessions"

    id = Column(String(128), primary_key=True)
    visitor_id = Column(String(128), nullable=True)
    first_seen = Column(TIMESTAMP(timezone=True), nullable=False)
    last_seen = Column(TIMESTAMP(timezone=True), nullable=False)
    ip = Column(String(45), nullable=True)
    ua = Column(String(1024), nullable=True)
    referrer = Column(String(2048), nullable=True)

    # Relationships
    shop = relationship("Shop", back_populates="sessions")
    events = relationship("Event", back_populates="session")
    page_views = relationship("PageView", back_populates="session")

    __table_args__ = (
        Index("sessions_shop_first_seen_idx", "shop_id", "first_seen"),
        Index("sessions_shop_last_seen_idx", "shop_id", "last_seen"),
        # Visitor's latest session per shop
        Index("sessions_visitor_shop_last_seen_idx", "visitor_id", "shop_id", "last_seen"),
    )

    def __repr__(self) -> str:
        return f"<VisitorSession(id={self.id}, shop_id={self.shop_id})>"
