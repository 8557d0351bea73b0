"""
Create all database tables from SQLAlchemy models
"""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine

from livecount.core.database.engine import get_engine
from livecount.core.database.models import Base
from livecount.core.logging import get_logger

logger = get_logger(__name__)


async def create_all_tables(engine: Optional[AsyncEngine] = None) -> bool:
    """Create all tables defined in SQLAlchemy models; safe to run repeatedly"""
    try:
        engine = engine or await get_engine()

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        return True

    except Exception as e:
        # Duplicate index/table errors from concurrent startups are fine
        error_msg = str(e).lower()
        if any(keyword in error_msg for keyword in ["already exists", "duplicate"]):
            return True
        logger.error(f"Failed to create tables: {e}")
        return False

