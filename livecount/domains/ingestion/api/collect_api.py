"""
Event Collection API

Single-event intake from the visitor agent. Bodies are read raw because
unload-time beacons arrive as text/plain rather than application/json.
"""

from fastapi import APIRouter, Depends, Request

from livecount.core.exceptions import LiveCountException, StoreUnavailableError
from livecount.core.logging.logger import get_logger
from livecount.domains.ingestion.services import (
    IngestionService,
    RequestContext,
    ingestion_service,
)
from livecount.shared.helpers import (
    bad_request_response,
    decode_json_body,
    degraded_response,
    internal_error_response,
)

logger = get_logger(__name__)

router = APIRouter(tags=["Event Collection"])

MAX_IP_LENGTH = 45


def get_ingestion_service() -> IngestionService:
    return ingestion_service


def extract_ip_address(request: Request) -> str | None:
    """Extract IP address from request headers"""
    # Check X-Forwarded-For (for proxies/load balancers)
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # Take the first IP in the chain
        ip = forwarded_for.split(",")[0].strip()
        if ip:
            return ip[:MAX_IP_LENGTH]

    # Check X-Real-IP (for nginx)
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()[:MAX_IP_LENGTH]

    # Fallback to direct client host
    if request.client and request.client.host:
        return request.client.host

    return None


def extract_user_agent(request: Request) -> str | None:
    """Extract User-Agent from request headers"""
    return request.headers.get("User-Agent")


@router.post("/collect")
async def collect(
    request: Request,
    service: IngestionService = Depends(get_ingestion_service),
):
    """
    Ingest one tracking event.

    - 400 with field errors for malformed input, nothing written
    - 200 with a note when the durable store is unavailable
    - 500 for unexpected storage failures (logged with shop/session/event)
    """
    decoded = decode_json_body(await request.body())
    if decoded.errors:
        return bad_request_response(decoded.errors)

    result = service.validate(decoded.value)
    if not result.ok:
        logger.debug("Rejected malformed event", errors=result.errors)
        return bad_request_response(result.errors)

    event = result.value
    context = RequestContext(
        ip=extract_ip_address(request),
        user_agent=extract_user_agent(request),
    )

    try:
        outcome = await service.ingest(event, context)
    except StoreUnavailableError as e:
        return degraded_response(e.note)
    except LiveCountException:
        # Already logged with shop, session and event by the service
        return internal_error_response()

    return {"ok": True, "deduplicated": outcome.deduplicated}
