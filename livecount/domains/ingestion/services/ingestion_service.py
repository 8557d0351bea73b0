"""
Ingestion Service

Applies one tracking event durably and idempotently:

- clamp skewed client timestamps to server time
- resolve the shop with an atomic upsert
- touch (or create) the session, in its own transaction
- write the deduplicated event plus its page-view projection

A failure after the session touch leaves the touch in place; losing a
liveness signal is worse than a slightly orphaned session update.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Callable, Optional

from sqlalchemy.exc import (
    DisconnectionError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
)
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from livecount.core.config.settings import settings
from livecount.core.database.session import get_transaction_context
from livecount.core.exceptions import DatabaseQueryError, StoreUnavailableError
from livecount.core.logging.logger import get_logger
from livecount.domains.ingestion.models import TrackingEvent
from livecount.shared.helpers import (
    ValidationResult,
    clamp_client_timestamp,
    classify_device,
    ms_to_datetime,
    now_ms,
    validate_payload,
)
from .event_writer import EventWriter
from .session_writer import SessionWriter
from .shop_resolver import ShopResolverService, shop_resolver

logger = get_logger(__name__)

_UNAVAILABLE_ERRORS = (
    OperationalError,
    DisconnectionError,
    InterfaceError,
    PoolTimeoutError,
    asyncio.TimeoutError,
    OSError,
)


@dataclass
class RequestContext:
    """Network metadata captured at the HTTP seam"""

    ip: Optional[str] = None
    user_agent: Optional[str] = None


@dataclass
class IngestionResult:
    """Outcome of applying one event"""

    shop_id: str
    event_ts_ms: int
    deduplicated: bool = False
    session_created: bool = False


class IngestionService:
    """Validates and applies tracking events"""

    def __init__(
        self,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
        resolver: Optional[ShopResolverService] = None,
        clock: Callable[[], int] = now_ms,
        skew_tolerance_seconds: Optional[float] = None,
    ):
        self._session_factory = session_factory
        self.resolver = resolver or shop_resolver
        self.session_writer = SessionWriter(session_factory)
        self.event_writer = EventWriter(session_factory)
        self._clock = clock
        self.skew_tolerance_seconds = (
            skew_tolerance_seconds
            if skew_tolerance_seconds is not None
            else settings.ingestion.CLOCK_SKEW_TOLERANCE_SECONDS
        )

    def validate(self, raw: Any) -> ValidationResult[TrackingEvent]:
        """Typed validation; never raises for bad input"""
        return validate_payload(TrackingEvent, raw)

    async def ingest(
        self, event: TrackingEvent, context: Optional[RequestContext] = None
    ) -> IngestionResult:
        """
        Apply one validated event.

        Raises:
            StoreUnavailableError: Durable store not configured or unreachable
            DatabaseQueryError: Any other storage failure
        """
        context = context or RequestContext()

        server_ms = self._clock()
        event_ts_ms = clamp_client_timestamp(
            event.ts, server_ms, self.skew_tolerance_seconds
        )
        if event.ts is not None and event_ts_ms != int(event.ts):
            logger.info(
                "Client timestamp outside skew tolerance, using server time",
                shop=event.shop_domain,
                session_id=event.session_id,
                client_ts=event.ts,
                server_ts=server_ms,
            )
        event_ts = ms_to_datetime(event_ts_ms)

        operation = "shop_resolve"
        try:
            async with get_transaction_context(self._session_factory) as session:
                shop_id = await self.resolver.resolve_shop_id(session, event.shop_domain)

            operation = "session_upsert"
            session_created = await self.session_writer.touch(
                shop_id,
                event.session_id,
                event_ts,
                visitor_id=event.visitor_id,
                ip=context.ip,
                user_agent=context.user_agent,
                referrer=event.referrer,
            )

            operation = "event_write"
            inserted = await self.event_writer.write(
                shop_id,
                event,
                event_ts,
                device=classify_device(context.user_agent),
            )

        except StoreUnavailableError:
            raise
        except DatabaseQueryError as e:
            self._log_failure(event, operation, e)
            raise
        except _UNAVAILABLE_ERRORS as e:
            logger.warning(
                "Durable store unreachable, event dropped",
                shop=event.shop_domain,
                session_id=event.session_id,
                event=event.event,
                operation=operation,
                error=str(e),
            )
            raise StoreUnavailableError(
                "Durable store is unreachable", store="database", cause=e
            )
        except SQLAlchemyError as e:
            self._log_failure(event, operation, e)
            raise DatabaseQueryError(
                f"Event ingestion failed during {operation}",
                operation=operation,
                details={
                    "shop": event.shop_domain,
                    "session_id": event.session_id,
                    "event": event.event,
                },
                cause=e,
            )

        return IngestionResult(
            shop_id=shop_id,
            event_ts_ms=event_ts_ms,
            deduplicated=not inserted,
            session_created=session_created,
        )

    def _log_failure(self, event: TrackingEvent, operation: str, error: Exception) -> None:
        logger.error(
            "Event ingestion failed",
            shop=event.shop_domain,
            session_id=event.session_id,
            event=event.event,
            event_id=event.event_id,
            operation=operation,
            error=str(error),
            error_type=type(error).__name__,
        )


# Global instance
ingestion_service = IngestionService()
