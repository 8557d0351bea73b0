"""
Base exception class for LiveCount
"""

from typing import Optional, Dict, Any


class LiveCountException(Exception):
    """Base exception for all LiveCount errors"""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.cause = cause

    def __str__(self) -> str:
        if self.error_code:
            return f"[{self.error_code}] {self.message}"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/API responses"""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "cause": str(self.cause) if self.cause else None,
            "exception_type": self.__class__.__name__,
        }


class StoreUnavailableError(LiveCountException):
    """Raised when a backing store is not configured or cannot be reached"""

    def __init__(
        self,
        message: str,
        store: str = "unknown",
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message, "STORE_UNAVAILABLE", details, cause)
        self.store = store

    @property
    def note(self) -> str:
        """Short machine-readable tag returned to clients in degraded mode"""
        return f"{self.store}_unavailable"

    def to_dict(self) -> Dict[str, Any]:
        base_dict = super().to_dict()
        base_dict.update({"store": self.store})
        return base_dict
