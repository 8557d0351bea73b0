"""
Presence API endpoints
"""

from .presence_api import router as presence_router

__all__ = ["presence_router"]
