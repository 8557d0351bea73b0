"""
Page view model for SQLAlchemy

Projection of ``page_view`` events, written alongside the Event row.
"""

from sqlalchemy import Column, String, Integer, Index
from sqlalchemy.dialects.postgresql import TIMESTAMP
from sqlalchemy.orm import relationship
from .base import BaseModel, IDMixin, ShopMixin, SessionMixin


class PageView(BaseModel, IDMixin, ShopMixin, SessionMixin):
    """Page view with engagement duration"""

    __tablename__ = "page_views"

    path = Column(String(2048), nullable=True)
    title = Column(String(512), nullable=True)
    engaged_ms = Column(Integer, nullable=True)
    ts = Column(TIMESTAMP(timezone=True), nullable=False)
    device = Column(String(16), nullable=True)

    # Relationships
    shop = relationship("Shop", back_populates="page_views")
    session = relationship("VisitorSession", back_populates="page_views")

    __table_args__ = (Index("page_views_shop_ts_idx", "shop_id", "ts"),)
