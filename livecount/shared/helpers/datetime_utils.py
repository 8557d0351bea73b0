"""
DateTime utility functions for LiveCount
"""

import time
from datetime import datetime, timezone
from typing import Optional


def now_utc() -> datetime:
    """Get current UTC datetime"""
    return datetime.now(timezone.utc)


def now_ms() -> int:
    """Current wall-clock time as integer epoch milliseconds"""
    return int(time.time() * 1000)


def ms_to_datetime(epoch_ms: float) -> datetime:
    """Convert epoch milliseconds (as sent by browsers) to an aware UTC datetime"""
    return datetime.fromtimestamp(epoch_ms / 1000.0, tz=timezone.utc)


def clamp_client_timestamp(
    client_ms: Optional[float], server_ms: int, tolerance_seconds: float
) -> int:
    """
    Return the client timestamp unless it is missing or skewed.

    A timestamp further than ``tolerance_seconds`` from server time in either
    direction is replaced by server time, so backdated or future-dated events
    from a buggy or hostile client cannot poison time-series data.

    Args:
        client_ms: Client-supplied epoch milliseconds, may be None
        server_ms: Server wall-clock epoch milliseconds
        tolerance_seconds: Allowed deviation in seconds

    Returns:
        int: Epoch milliseconds to store
    """
    if client_ms is None:
        return server_ms
    if abs(client_ms - server_ms) > tolerance_seconds * 1000:
        return server_ms
    return int(client_ms)

