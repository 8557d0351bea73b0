"""
Base model class for SQLAlchemy models

Provides common functionality and base configuration for all models.
"""

import uuid
from typing import Any, Dict

from sqlalchemy import JSON, Column, String, ForeignKey, func
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP
from sqlalchemy.orm import declarative_base, declared_attr

# Create the declarative base
Base = declarative_base()

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONPayload = JSON().with_variant(JSONB(), "postgresql")


def generate_id() -> str:
    return str(uuid.uuid4())


class TimestampMixin:
    """Mixin for models that need created_at and updated_at timestamps"""

    created_at = Column(
        "created_at",
        TIMESTAMP(timezone=True),
        default=func.current_timestamp(),
        nullable=False,
    )
    updated_at = Column(
        "updated_at",
        TIMESTAMP(timezone=True),
        default=func.current_timestamp(),
        onupdate=func.current_timestamp(),
        nullable=False,
    )


class IDMixin:
    """Mixin for models that need a generated primary key ID"""

    @declared_attr
    def id(cls):
        return Column(String(36), primary_key=True, default=generate_id)


class BaseModel(Base):
    """
    Base model class with common functionality.
    """

    __abstract__ = True

    def to_dict(self) -> Dict[str, Any]:
        """Convert model instance to dictionary"""
        return {
            column.name: getattr(self, column.name) for column in self.__table__.columns
        }

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(id={self.id})>"


class ShopMixin:
    """Mixin for models that belong to a shop"""

    @declared_attr
    def shop_id(cls):
        return Column(
            "shop_id",
            String(36),
            ForeignKey("shops.id", ondelete="CASCADE"),
            nullable=False,
        )


class SessionMixin:
    """Mixin for models that belong to a visitor session"""

    @declared_attr
    def session_id(cls):
        return Column(
            "session_id",
            String(128),
            ForeignKey("sessions.id", ondelete="CASCADE"),
            nullable=True,
            index=True,
        )
