"""
Presence API

Heartbeat intake plus polling and Server-Sent Events reads of the
active-visitor count.
"""

import json
from typing import AsyncIterator, Awaitable, Callable, Optional

from fastapi import APIRouter, Depends, Query, Request, Response, status
from fastapi.responses import JSONResponse, StreamingResponse

from livecount.core.config.settings import settings
from livecount.core.exceptions import LiveCountException, StoreUnavailableError
from livecount.core.logging.logger import get_logger
from livecount.domains.presence.models import HeartbeatMessage, validate_shop_value
from livecount.domains.presence.services import (
    PresenceBroadcaster,
    PresenceReader,
    PresenceStore,
    presence_broadcaster,
    presence_reader,
    presence_store,
)
from livecount.shared.helpers import (
    bad_request_response,
    clamp_client_timestamp,
    decode_json_body,
    degraded_response,
    internal_error_response,
    now_ms,
    validate_payload,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/presence", tags=["Presence"])

STREAM_OPENER = ": connected\n\n"


def get_presence_store() -> PresenceStore:
    return presence_store


def get_presence_reader() -> PresenceReader:
    return presence_reader


def get_presence_broadcaster() -> PresenceBroadcaster:
    return presence_broadcaster


def _shop_or_error(shop: str):
    try:
        return validate_shop_value(shop), None
    except ValueError as e:
        return None, bad_request_response(
            [{"loc": "shop", "msg": str(e), "type": "value_error"}]
        )


def etag_matches(if_none_match: Optional[str], etag: str) -> bool:
    """Weak comparison against an If-None-Match header value"""
    if not if_none_match:
        return False
    candidates = [tag.strip() for tag in if_none_match.split(",")]
    if "*" in candidates:
        return True
    bare = etag[2:] if etag.startswith("W/") else etag
    return any((c[2:] if c.startswith("W/") else c) == bare for c in candidates)


@router.post("/beat")
async def beat(request: Request, store: PresenceStore = Depends(get_presence_store)):
    """
    Record a heartbeat from a visitor's leader tab.

    The body is read raw because unload-time beacons arrive as text/plain.
    """
    decoded = decode_json_body(await request.body())
    if decoded.errors:
        return bad_request_response(decoded.errors)

    result = validate_payload(HeartbeatMessage, decoded.value)
    if not result.ok:
        return bad_request_response(result.errors)

    message = result.value
    timestamp_ms = clamp_client_timestamp(
        message.ts, now_ms(), settings.ingestion.CLOCK_SKEW_TOLERANCE_SECONDS
    )

    try:
        await store.beat(message.shop, message.session_id, timestamp_ms)
    except StoreUnavailableError as e:
        logger.warning(
            "Heartbeat dropped, presence store unavailable",
            shop=message.shop,
            session_id=message.session_id,
        )
        return degraded_response(e.note)
    except LiveCountException as e:
        logger.error(
            "Heartbeat write failed",
            shop=message.shop,
            session_id=message.session_id,
            error=e.to_dict(),
        )
        return internal_error_response()

    return {"ok": True}


@router.get("")
async def get_presence(
    request: Request,
    shop: str = Query(..., max_length=253),
    reader: PresenceReader = Depends(get_presence_reader),
):
    """Polling read with weak-ETag conditional responses"""
    shop, error = _shop_or_error(shop)
    if error is not None:
        return error

    try:
        snapshot = await reader.snapshot(shop)
    except LiveCountException as e:
        logger.error("Presence read failed", shop=shop, error=e.to_dict())
        return internal_error_response()

    etag = snapshot.fingerprint()
    headers = {"ETag": etag, "Cache-Control": "no-store"}

    if etag_matches(request.headers.get("if-none-match"), etag):
        return Response(status_code=status.HTTP_304_NOT_MODIFIED, headers=headers)

    return JSONResponse(content=snapshot.to_poll_response(), headers=headers)


async def presence_event_stream(
    broadcaster: PresenceBroadcaster,
    shop: str,
    is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
) -> AsyncIterator[str]:
    """SSE frames for one subscriber: an opening comment then one frame per tick"""
    yield STREAM_OPENER

    async with broadcaster.subscribe(shop) as subscription:
        async for snapshot in subscription:
            if is_disconnected is not None and await is_disconnected():
                logger.debug("Presence stream client disconnected", shop=shop)
                break
            yield f"data: {json.dumps(snapshot.to_stream_message())}\n\n"


@router.get("/stream")
async def stream_presence(
    request: Request,
    shop: str = Query(..., max_length=253),
    broadcaster: PresenceBroadcaster = Depends(get_presence_broadcaster),
):
    """Push the count on every broadcaster tick as Server-Sent Events"""
    shop, error = _shop_or_error(shop)
    if error is not None:
        return error

    return StreamingResponse(
        presence_event_stream(broadcaster, shop, request.is_disconnected),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache, no-transform",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
