"""
SQLAlchemy async session management for LiveCount
"""

import asyncio
from typing import AsyncGenerator, Optional
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from livecount.core.logging import get_logger
from .engine import get_engine

logger = get_logger(__name__)

# Global session factory
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None
_session_factory_lock = asyncio.Lock()


def build_session_factory(engine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to an engine"""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,  # Keep objects accessible after commit
        autoflush=True,
    )


async def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get or create the async session factory"""
    global _session_factory

    if _session_factory is None:
        async with _session_factory_lock:
            if _session_factory is None:
                engine = await get_engine()
                _session_factory = build_session_factory(engine)

    return _session_factory


def reset_session_factory() -> None:
    """Drop the cached factory (after the engine is closed)"""
    global _session_factory
    _session_factory = None


@asynccontextmanager
async def get_transaction_context(
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> AsyncGenerator[AsyncSession, None]:
    """
    Context manager for database transactions with automatic rollback on error.

    Usage:
        async with get_transaction_context() as session:
            # Transaction is committed automatically on exit
            result = await session.execute(query)
    """
    factory = session_factory or await get_session_factory()
    session = factory()
    try:
        yield session
        await session.commit()
    except Exception as e:
        logger.debug(f"Database transaction rolled back: {type(e).__name__}: {e}")
        await session.rollback()
        raise
    finally:
        await session.close()
