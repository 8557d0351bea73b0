"""
Configuration-related exceptions
"""

from .base import LiveCountException
from typing import Optional


class ConfigurationError(LiveCountException):
    """Raised when there's a configuration error"""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        details: Optional[dict] = None,
        cause: Optional[Exception] = None,
    ):
        details = dict(details or {})
        if config_key:
            details["config_key"] = config_key
        super().__init__(message, "CONFIGURATION_ERROR", details, cause)
        self.config_key = config_key
