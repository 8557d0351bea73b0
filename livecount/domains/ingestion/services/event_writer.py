"""
Event Writer - deduplicated event rows and their page-view projection
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from livecount.core.database.models import Event, PageView
from livecount.core.database.session import get_transaction_context
from livecount.core.logging.logger import get_logger
from livecount.domains.ingestion.models import TrackingEvent
from livecount.shared.constants.events import PAGE_VIEW
from .shop_resolver import dialect_insert

logger = get_logger(__name__)


class EventWriter:
    """Writes Event rows, collapsing retried deliveries on (shop_id, event_id)"""

    def __init__(self, session_factory: Optional[async_sessionmaker[AsyncSession]] = None):
        self._session_factory = session_factory

    async def write(
        self,
        shop_id: str,
        event: TrackingEvent,
        event_ts: datetime,
        device: Optional[str] = None,
    ) -> bool:
        """
        Insert the event and, for page views, its PageView row.

        Returns:
            bool: False when an event with the same event_id was already
            stored for the shop (nothing written)
        """
        values = {
            "shop_id": shop_id,
            "session_id": event.session_id,
            "event_id": event.event_id,
            "name": event.event,
            "ts": event_ts,
            "page_path": event.page_path,
            "payload": event.payload,
        }

        async with get_transaction_context(self._session_factory) as session:
            if event.event_id:
                stmt = (
                    dialect_insert(session, Event)
                    .values(**values)
                    .on_conflict_do_nothing(
                        index_elements=[Event.shop_id, Event.event_id],
                        index_where=Event.event_id.isnot(None),
                    )
                    .returning(Event.id)
                )
                result = await session.execute(stmt)
                inserted = result.scalar_one_or_none() is not None
            else:
                # No dedup key: at-least-once
                await session.execute(insert(Event).values(**values))
                inserted = True

            if not inserted:
                logger.debug(
                    "Duplicate event ignored",
                    shop_id=shop_id,
                    event_id=event.event_id,
                    event=event.event,
                )
                return False

            if event.event == PAGE_VIEW:
                await session.execute(
                    insert(PageView).values(
                        shop_id=shop_id,
                        session_id=event.session_id,
                        path=event.page_path,
                        title=event.page_title,
                        engaged_ms=event.duration_ms,
                        ts=event_ts,
                        device=device,
                    )
                )

        return True
