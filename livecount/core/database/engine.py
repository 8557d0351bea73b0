"""
SQLAlchemy async engine configuration for LiveCount

Single process-wide async engine, created lazily from ``DATABASE_URL``.
"""

import asyncio
from typing import Optional

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine
from sqlalchemy.pool import NullPool

from livecount.core.config.settings import settings
from livecount.core.exceptions import StoreUnavailableError
from livecount.core.logging import get_logger

logger = get_logger(__name__)

# Global engine instance
_engine: Optional[AsyncEngine] = None
_engine_lock = asyncio.Lock()


def get_database_url() -> str:
    """Get the database URL with proper async driver"""
    database_url = settings.database.DATABASE_URL

    # Convert to async URL if needed
    if database_url.startswith("postgresql://"):
        database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    elif database_url.startswith("postgres://"):
        database_url = database_url.replace("postgres://", "postgresql+asyncpg://", 1)
    elif database_url.startswith("sqlite://"):
        database_url = database_url.replace("sqlite://", "sqlite+aiosqlite://", 1)

    return database_url


def create_engine(database_url: Optional[str] = None) -> AsyncEngine:
    """Create SQLAlchemy async engine"""
    database_url = database_url or get_database_url()

    engine_kwargs = {
        "url": database_url,
        "echo": settings.database.SQLALCHEMY_ECHO,
        "echo_pool": settings.database.SQLALCHEMY_ECHO_POOL,
        "poolclass": NullPool,
        "connect_args": (
            {
                "command_timeout": settings.DATABASE_QUERY_TIMEOUT,
                "server_settings": {"application_name": "livecount"},
            }
            if "postgresql" in database_url
            else {}
        ),
    }

    engine = create_async_engine(**engine_kwargs)

    @event.listens_for(engine.sync_engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        """Set SQLite pragmas for concurrent test access"""
        if "sqlite" in database_url:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA busy_timeout=5000")
            cursor.close()

    return engine


async def get_engine() -> AsyncEngine:
    """
    Get or create the async database engine.

    Raises:
        StoreUnavailableError: If no DATABASE_URL is configured
    """
    global _engine

    if _engine is not None:
        return _engine

    if not settings.database.is_configured:
        raise StoreUnavailableError("DATABASE_URL is not configured", store="database")

    async with _engine_lock:
        # Double-check pattern to avoid race conditions
        if _engine is None:
            _engine = create_engine()
            logger.info("Database engine created")

    return _engine


async def close_engine() -> None:
    """Close the database engine with proper cleanup"""
    global _engine

    if _engine:
        try:
            await _engine.dispose()
        except Exception as e:
            logger.warning(f"Error disposing engine: {e}")
        finally:
            _engine = None


async def check_engine_health() -> bool:
    """Check if the database engine is healthy"""
    try:
        engine = await get_engine()
        async with engine.connect() as conn:
            await asyncio.wait_for(
                conn.execute(text("SELECT 1")), timeout=settings.HEALTH_CHECK_TIMEOUT
            )
        return True
    except Exception as e:
        logger.warning(f"Database engine health check failed: {e}")
        return False
