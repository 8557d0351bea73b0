"""
Ingestion API endpoints
"""

from .collect_api import router as collect_router

__all__ = ["collect_router"]
