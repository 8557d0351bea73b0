"""
SQLAlchemy models for LiveCount
"""

from .base import Base, BaseModel, IDMixin, TimestampMixin, ShopMixin, SessionMixin
from .shop import Shop
from .session import VisitorSession
from .event import Event
from .page_view import PageView

__all__ = [
    "Base",
    "BaseModel",
    "IDMixin",
    "TimestampMixin",
    "ShopMixin",
    "SessionMixin",
    "Shop",
    "VisitorSession",
    "Event",
    "PageView",
]
