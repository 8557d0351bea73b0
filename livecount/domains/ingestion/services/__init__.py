"""
Ingestion services
"""

from .shop_resolver import ShopResolverService, shop_resolver, dialect_insert
from .session_writer import SessionWriter
from .event_writer import EventWriter
from .ingestion_service import (
    IngestionService,
    IngestionResult,
    RequestContext,
    ingestion_service,
)

__all__ = [
    "ShopResolverService",
    "shop_resolver",
    "dialect_insert",
    "SessionWriter",
    "EventWriter",
    "IngestionService",
    "IngestionResult",
    "RequestContext",
    "ingestion_service",
]
