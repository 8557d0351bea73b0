"""
Application-level constants
"""

PROJECT_NAME = "LiveCount"
VERSION = "1.0.0"
DEFAULT_PORT = 8082
HEALTH_CHECK_TIMEOUT = 5
ENVIRONMENT_DEVELOPMENT = "development"

__all__ = [
    "PROJECT_NAME",
    "VERSION",
    "DEFAULT_PORT",
    "HEALTH_CHECK_TIMEOUT",
    "ENVIRONMENT_DEVELOPMENT",
]
