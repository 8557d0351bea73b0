"""
Database module for LiveCount

Uses SQLAlchemy async for all database operations.
"""

from .engine import (
    get_engine,
    close_engine,
    check_engine_health,
    get_database_url,
)
from .session import (
    build_session_factory,
    get_session_factory,
    reset_session_factory,
    get_transaction_context,
)
from .create_tables import create_all_tables

__all__ = [
    "get_engine",
    "close_engine",
    "check_engine_health",
    "get_database_url",
    "build_session_factory",
    "get_session_factory",
    "reset_session_factory",
    "get_transaction_context",
    "create_all_tables",
]
