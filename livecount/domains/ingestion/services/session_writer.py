"""
Session Writer

Race-tolerant session upsert. Runs as an explicit update, then insert, then
update-once-more protocol rather than relying on ``ON CONFLICT`` so that
``first_seen`` is written exactly once, by whichever request inserts first.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import case, insert, literal, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from livecount.core.database.models import VisitorSession
from livecount.core.database.session import get_transaction_context
from livecount.core.exceptions import DatabaseQueryError
from livecount.core.logging.logger import get_logger

logger = get_logger(__name__)

MAX_UA_LENGTH = 1024


class SessionWriter:
    """Creates and touches visitor session rows"""

    def __init__(self, session_factory: Optional[async_sessionmaker[AsyncSession]] = None):
        self._session_factory = session_factory

    async def touch(
        self,
        shop_id: str,
        session_id: str,
        event_ts: datetime,
        visitor_id: Optional[str] = None,
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
        referrer: Optional[str] = None,
    ) -> bool:
        """
        Record activity for a session, creating it on first sight.

        1. Update the existing row. Done if a row matched.
        2. Otherwise insert with ``first_seen = last_seen = event_ts``.
        3. If the insert hits the primary key because a concurrent request
           inserted first, update once more. Never surfaced to the caller.

        Each step runs in its own transaction so a later failure in the
        event write cannot roll back this liveness signal.

        Returns:
            bool: True if this call created the session row
        """
        if user_agent:
            user_agent = user_agent[:MAX_UA_LENGTH]

        metadata = {
            "visitor_id": visitor_id,
            "ip": ip,
            "ua": user_agent,
            "referrer": referrer,
        }

        if await self._update(shop_id, session_id, event_ts, metadata):
            return False

        try:
            await self._insert(shop_id, session_id, event_ts, metadata)
            logger.debug("Session created", shop_id=shop_id, session_id=session_id)
            return True
        except IntegrityError:
            logger.info(
                "Concurrent session insert detected, retrying as update",
                shop_id=shop_id,
                session_id=session_id,
            )

        if await self._update(shop_id, session_id, event_ts, metadata):
            return False

        # Primary key taken but no row for this shop: id belongs to another shop
        raise DatabaseQueryError(
            f"Session {session_id} could not be inserted or updated",
            operation="session_upsert",
            details={"shop_id": shop_id, "session_id": session_id},
        )

    async def _update(
        self, shop_id: str, session_id: str, event_ts: datetime, metadata: dict
    ) -> bool:
        ts = literal(event_ts, type_=VisitorSession.last_seen.type)

        # last_seen only moves forward; metadata is last-write-wins but never nulled
        values = {
            "last_seen": case(
                (VisitorSession.last_seen < ts, ts),
                else_=VisitorSession.last_seen,
            )
        }
        values.update({k: v for k, v in metadata.items() if v is not None})

        stmt = (
            update(VisitorSession)
            .where(
                VisitorSession.id == session_id,
                VisitorSession.shop_id == shop_id,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )

        async with get_transaction_context(self._session_factory) as session:
            result = await session.execute(stmt)
            return result.rowcount > 0

    async def _insert(
        self, shop_id: str, session_id: str, event_ts: datetime, metadata: dict
    ) -> None:
        stmt = insert(VisitorSession).values(
            id=session_id,
            shop_id=shop_id,
            first_seen=event_ts,
            last_seen=event_ts,
            **metadata,
        )

        async with get_transaction_context(self._session_factory) as session:
            await session.execute(stmt)
