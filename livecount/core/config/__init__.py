"""
Configuration module for LiveCount
"""

from .settings import settings, Settings
from .settings import (
    DatabaseSettings,
    RedisSettings,
    PresenceSettings,
    IngestionSettings,
    AgentSettings,
    LoggingSettings,
)

__all__ = [
    "settings",
    "Settings",
    "DatabaseSettings",
    "RedisSettings",
    "PresenceSettings",
    "IngestionSettings",
    "AgentSettings",
    "LoggingSettings",
]
