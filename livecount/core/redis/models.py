"""
Redis models and configuration classes
"""

from dataclasses import dataclass
from typing import Optional, Dict, Any
from pydantic import BaseModel


@dataclass
class RedisConnectionConfig:
    """Redis connection configuration"""

    host: str = "localhost"
    port: int = 6379
    password: Optional[str] = None
    db: int = 0
    tls: bool = False
    url: Optional[str] = None
    decode_responses: bool = True
    socket_connect_timeout: float = 5.0
    socket_timeout: float = 5.0
    socket_keepalive: bool = True
    retry_on_timeout: bool = True
    health_check_interval: int = 30

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary (password redacted)"""
        return {
            "host": self.host,
            "port": self.port,
            "db": self.db,
            "tls": self.tls,
            "url": "***" if self.url else None,
            "socket_connect_timeout": self.socket_connect_timeout,
            "socket_timeout": self.socket_timeout,
        }


class RedisHealthStatus(BaseModel):
    """Redis health status"""

    is_healthy: bool
    connection_info: Dict[str, Any] = {}
    last_check: str
    error_message: Optional[str] = None
    response_time_ms: Optional[float] = None
