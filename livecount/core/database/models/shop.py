"""
Shop model for SQLAlchemy

A storefront identified by its domain, created lazily on first event.
"""

from sqlalchemy import Column, String, UniqueConstraint
from sqlalchemy.orm import relationship
from .base import BaseModel, IDMixin, TimestampMixin


class Shop(BaseModel, IDMixin, TimestampMixin):
    """Shop model representing a tracked storefront"""

    __tablename__ = "shops"

    domain = Column(String(253), nullable=False)

    # Relationships
    sessions = relationship(
        "VisitorSession", back_populates="shop", cascade="all, delete-orphan"
    )
    events = relationship("Event", back_populates="shop", cascade="all, delete-orphan")
    page_views = relationship(
        "PageView", back_populates="shop", cascade="all, delete-orphan"
    )

    __table_args__ = (UniqueConstraint("domain", name="shops_domain_unique"),)

    def __repr__(self) -> str:
        return f"<Shop(domain={self.domain})>"
