"""
Logging module for LiveCount
"""

from .logger import get_logger, setup_logging, set_log_level, StructuredLogger
from .formatters import StructuredFormatter, JSONFormatter, ConsoleFormatter
from .handlers import FileHandler, ConsoleHandler
from .config import LoggingConfig

__all__ = [
    "get_logger",
    "setup_logging",
    "set_log_level",
    "StructuredLogger",
    "StructuredFormatter",
    "JSONFormatter",
    "ConsoleFormatter",
    "FileHandler",
    "ConsoleHandler",
    "LoggingConfig",
]
