"""
Application settings and configuration management
"""

from typing import List
from pydantic import Field, validator
from pydantic_settings import BaseSettings

from livecount.shared.constants.app import (
    PROJECT_NAME,
    VERSION,
    DEFAULT_PORT,
    HEALTH_CHECK_TIMEOUT,
    ENVIRONMENT_DEVELOPMENT,
)
from livecount.shared.constants.redis import (
    DEFAULT_REDIS_PORT,
    DEFAULT_REDIS_DB,
    DEFAULT_REDIS_TLS,
    PRESENCE_KEY_PREFIX,
)
from livecount.shared.constants.presence import (
    DEFAULT_PRESENCE_WINDOW_SECONDS,
    DEFAULT_PRESENCE_KEY_TTL_SECONDS,
    DEFAULT_STREAM_INTERVAL_SECONDS,
    DEFAULT_HEARTBEAT_INTERVAL_SECONDS,
    DEFAULT_LEASE_STALE_SECONDS,
    DEFAULT_INACTIVITY_SECONDS,
    DEFAULT_SESSION_ROTATION_SECONDS,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_UNLOAD_TIMEOUT_SECONDS,
)
from livecount.core.exceptions import ConfigurationError


class DatabaseSettings(BaseSettings):
    """Database configuration settings"""

    # Empty means the durable store is not configured (ingestion degrades)
    DATABASE_URL: str = Field(default="", env="DATABASE_URL")
    # Control SQLAlchemy logging of SQL and pool events
    SQLALCHEMY_ECHO: bool = Field(default=False, env="SQLALCHEMY_ECHO")
    SQLALCHEMY_ECHO_POOL: bool = Field(default=False, env="SQLALCHEMY_ECHO_POOL")

    @validator("DATABASE_URL")
    def validate_database_url(cls, v):
        if not v:
            return ""
        return v.strip()

    @property
    def is_configured(self) -> bool:
        return bool(self.DATABASE_URL)


class RedisSettings(BaseSettings):
    """Redis configuration settings"""

    REDIS_URL: str = Field(default="", env="REDIS_URL")
    REDIS_HOST: str = Field(default="localhost", env="REDIS_HOST")
    REDIS_PORT: int = Field(default=DEFAULT_REDIS_PORT, env="REDIS_PORT")
    REDIS_PASSWORD: str = Field(default="", env="REDIS_PASSWORD")
    REDIS_DB: int = Field(default=DEFAULT_REDIS_DB, env="REDIS_DB")
    REDIS_TLS: bool = Field(default=DEFAULT_REDIS_TLS, env="REDIS_TLS")

    @validator("REDIS_HOST")
    def validate_redis_host(cls, v):
        if not v:
            return "localhost"
        return v

    @validator("REDIS_PASSWORD")
    def validate_redis_password(cls, v):
        if not v:
            return ""
        return v


class PresenceSettings(BaseSettings):
    """Presence store and reader settings"""

    PRESENCE_ENABLED: bool = Field(default=True, env="PRESENCE_ENABLED")
    PRESENCE_KEY_PREFIX: str = Field(
        default=PRESENCE_KEY_PREFIX, env="PRESENCE_KEY_PREFIX"
    )
    # Active horizon; must exceed heartbeat interval plus network latency
    PRESENCE_WINDOW_SECONDS: int = Field(
        default=DEFAULT_PRESENCE_WINDOW_SECONDS, env="PRESENCE_WINDOW_SECONDS"
    )
    # Backstop expiry for a shop's whole sorted set
    PRESENCE_KEY_TTL_SECONDS: int = Field(
        default=DEFAULT_PRESENCE_KEY_TTL_SECONDS, env="PRESENCE_KEY_TTL_SECONDS"
    )
    PRESENCE_STREAM_INTERVAL_SECONDS: float = Field(
        default=DEFAULT_STREAM_INTERVAL_SECONDS,
        env="PRESENCE_STREAM_INTERVAL_SECONDS",
    )

    @validator("PRESENCE_WINDOW_SECONDS")
    def validate_window(cls, v):
        if v <= 0:
            raise ValueError("PRESENCE_WINDOW_SECONDS must be positive")
        return v

    @validator("PRESENCE_KEY_TTL_SECONDS")
    def validate_key_ttl(cls, v):
        if v <= 0:
            raise ValueError("PRESENCE_KEY_TTL_SECONDS must be positive")
        return v


class IngestionSettings(BaseSettings):
    """Event ingestion settings"""

    CLOCK_SKEW_TOLERANCE_SECONDS: int = Field(
        default=300, env="CLOCK_SKEW_TOLERANCE_SECONDS"
    )
    MAX_PAYLOAD_BYTES: int = Field(default=16384, env="MAX_PAYLOAD_BYTES")


class AgentSettings(BaseSettings):
    """Visitor agent (client library) settings"""

    AGENT_API_HOST: str = Field(default="http://localhost:8082", env="AGENT_API_HOST")
    AGENT_HEARTBEAT_INTERVAL_SECONDS: float = Field(
        default=DEFAULT_HEARTBEAT_INTERVAL_SECONDS,
        env="AGENT_HEARTBEAT_INTERVAL_SECONDS",
    )
    AGENT_LEASE_STALE_SECONDS: float = Field(
        default=DEFAULT_LEASE_STALE_SECONDS, env="AGENT_LEASE_STALE_SECONDS"
    )
    AGENT_INACTIVITY_SECONDS: float = Field(
        default=DEFAULT_INACTIVITY_SECONDS, env="AGENT_INACTIVITY_SECONDS"
    )
    AGENT_SESSION_ROTATION_SECONDS: float = Field(
        default=DEFAULT_SESSION_ROTATION_SECONDS,
        env="AGENT_SESSION_ROTATION_SECONDS",
    )
    AGENT_REQUEST_TIMEOUT_SECONDS: float = Field(
        default=DEFAULT_REQUEST_TIMEOUT_SECONDS, env="AGENT_REQUEST_TIMEOUT_SECONDS"
    )
    AGENT_UNLOAD_TIMEOUT_SECONDS: float = Field(
        default=DEFAULT_UNLOAD_TIMEOUT_SECONDS, env="AGENT_UNLOAD_TIMEOUT_SECONDS"
    )


class LoggingSettings(BaseSettings):
    """Logging configuration settings"""

    LOG_LEVEL: str = Field(default="INFO", env="LOG_LEVEL")
    LOG_FORMAT: str = Field(default="console", env="LOG_FORMAT")

    LOGGING: dict = Field(
        default={
            "level": "INFO",
            "file": {
                "enabled": True,
                "log_dir": "logs",
                "max_file_size": 10485760,  # 10MB
                "backup_count": 5,
                "app_log_enabled": True,
                "error_log_enabled": True,
            },
            "console": {
                "enabled": True,
                "level": "INFO",
            },
        },
        env="LOGGING",
    )


class Settings(BaseSettings):
    """Main application settings"""

    # App Configuration
    PROJECT_NAME: str = PROJECT_NAME
    VERSION: str = VERSION
    DEBUG: bool = Field(default=False, env="DEBUG")
    HOST: str = Field(default="0.0.0.0", env="HOST")
    PORT: int = Field(default=DEFAULT_PORT, env="PORT")
    ENVIRONMENT: str = Field(default=ENVIRONMENT_DEVELOPMENT, env="ENVIRONMENT")

    # Sub-settings
    database: DatabaseSettings = DatabaseSettings()
    redis: RedisSettings = RedisSettings()
    presence: PresenceSettings = PresenceSettings()
    ingestion: IngestionSettings = IngestionSettings()
    agent: AgentSettings = AgentSettings()
    logging: LoggingSettings = LoggingSettings()

    # Retry Configuration
    MAX_RETRIES: int = Field(default=3, env="MAX_RETRIES")
    RETRY_DELAY: float = Field(default=0.5, env="RETRY_DELAY")
    RETRY_BACKOFF: float = Field(default=2.0, env="RETRY_BACKOFF")

    # Database Timeout Configuration
    DATABASE_CONNECT_TIMEOUT: int = Field(default=10, env="DATABASE_CONNECT_TIMEOUT")
    DATABASE_QUERY_TIMEOUT: int = Field(default=30, env="DATABASE_QUERY_TIMEOUT")

    # Health Check Configuration
    HEALTH_CHECK_TIMEOUT: int = Field(
        default=HEALTH_CHECK_TIMEOUT, env="HEALTH_CHECK_TIMEOUT"
    )

    # CORS Configuration
    CORS_ORIGINS: List[str] = Field(
        default=["*"],
        env="CORS_ORIGINS",
    )

    class Config:
        env_file = [".env.local", ".env"]  # Try .env.local first, then .env
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "allow"

    def validate_configuration(self) -> None:
        """Validate the complete configuration"""
        window = self.presence.PRESENCE_WINDOW_SECONDS
        heartbeat = self.agent.AGENT_HEARTBEAT_INTERVAL_SECONDS
        if window <= heartbeat:
            raise ConfigurationError(
                f"Presence window ({window}s) must exceed the heartbeat interval "
                f"({heartbeat}s) or active visitors will flicker out of the count",
                config_key="PRESENCE_WINDOW_SECONDS",
            )
        if self.presence.PRESENCE_KEY_TTL_SECONDS < window:
            raise ConfigurationError(
                "PRESENCE_KEY_TTL_SECONDS must not be shorter than the presence window",
                config_key="PRESENCE_KEY_TTL_SECONDS",
            )


# Create settings instance
settings = Settings()

# Validate configuration on import
try:
    settings.validate_configuration()
except ConfigurationError as e:
    print(f"Configuration Error: {e}")
    raise
