"""
Main logging module for LiveCount
"""

import logging
from typing import Optional, Dict

from livecount.core.config.settings import settings
from .config import LoggingConfig
from .handlers import FileHandler, ConsoleHandler

# Global logger cache
_loggers: Dict[str, logging.Logger] = {}


class StructuredLogger:
    """Wrapper around standard Python logger that supports structured logging with keyword arguments"""

    def __init__(self, logger: logging.Logger):
        self._logger = logger

    def _format_message(self, message: str, **kwargs) -> str:
        """Format message with structured data as key=value pairs"""
        if not kwargs:
            return message

        structured_parts = []
        for key, value in kwargs.items():
            if value is not None:
                if isinstance(value, (dict, list)):
                    structured_parts.append(f"{key}={str(value)}")
                elif isinstance(value, str) and " " in value:
                    structured_parts.append(f'{key}="{value}"')
                else:
                    structured_parts.append(f"{key}={value}")

        if structured_parts:
            return f"{message} | {' | '.join(structured_parts)}"
        return message

    def _log(self, level: int, message: str, exc_info: bool = False, **kwargs):
        if not self._logger.isEnabledFor(level):
            return
        extra = {"extra_fields": {k: v for k, v in kwargs.items() if v is not None}}
        self._logger.log(
            level, self._format_message(message, **kwargs), exc_info=exc_info, extra=extra
        )

    def debug(self, message: str, **kwargs):
        """Log debug message with structured data"""
        self._log(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs):
        """Log info message with structured data"""
        self._log(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs):
        """Log warning message with structured data"""
        self._log(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs):
        """Log error message with structured data"""
        self._log(logging.ERROR, message, **kwargs)

    def critical(self, message: str, **kwargs):
        """Log critical message with structured data"""
        self._log(logging.CRITICAL, message, **kwargs)

    def exception(self, message: str, **kwargs):
        """Log exception message with structured data and traceback"""
        self._log(logging.ERROR, message, exc_info=True, **kwargs)


def setup_logging(config: Optional[LoggingConfig] = None) -> None:
    """Setup logging configuration for the application"""
    if config is None:
        config = LoggingConfig()

    # Clear existing handlers
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    root_logger.setLevel(getattr(logging, config.level.upper()))

    if config.file.enabled:
        if config.file.app_log_enabled:
            app_handler = FileHandler.create_app_handler(
                log_dir=config.file.log_dir,
                max_bytes=config.file.max_file_size,
                backup_count=config.file.backup_count,
                level=getattr(logging, config.level.upper()),
                formatter_type=config.format,
            )
            root_logger.addHandler(app_handler)

        if config.file.error_log_enabled:
            error_handler = FileHandler.create_error_handler(
                log_dir=config.file.log_dir,
                max_bytes=config.file.max_file_size,
                backup_count=config.file.backup_count,
                formatter_type=config.format,
            )
            root_logger.addHandler(error_handler)

    if config.console.enabled:
        console_handler = ConsoleHandler.create_handler(
            level=getattr(logging, config.console.level.upper()),
            formatter_type=config.format,
        )
        root_logger.addHandler(console_handler)

    # Quiet chatty third-party loggers
    for noisy in ("urllib3", "httpx", "httpcore"):
        set_log_level(noisy, "WARNING")

    logging.info("Logging system initialized")


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger instance"""
    if name not in _loggers:
        _loggers[name] = logging.getLogger(name)

    return StructuredLogger(_loggers[name])


def set_log_level(name: str, level: str) -> None:
    """Set log level for a specific logger"""
    if name not in _loggers:
        _loggers[name] = logging.getLogger(name)
    _loggers[name].setLevel(getattr(logging, level.upper()))


# Initialize logging on module import
try:
    logging_config = LoggingConfig(
        level=settings.logging.LOG_LEVEL,
        format=settings.logging.LOG_FORMAT,
        file=settings.logging.LOGGING["file"],
        console=settings.logging.LOGGING["console"],
    )

    setup_logging(logging_config)

except Exception as e:
    # Fallback to basic logging if setup fails
    print(f"Failed to setup logging: {e}")
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
