"""
Ingestion models
"""

from .event import TrackingEvent, PageContext

__all__ = ["TrackingEvent", "PageContext"]
