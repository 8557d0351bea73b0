"""
Helpers module for LiveCount
"""

from .datetime_utils import (
    now_utc,
    now_ms,
    ms_to_datetime,
    clamp_client_timestamp,
)
from .validation_utils import normalize_domain, is_valid_shop_domain, classify_device
from .payload_utils import ValidationResult, decode_json_body, validate_payload
from .response_utils import (
    bad_request_response,
    degraded_response,
    internal_error_response,
)


__all__ = [
    "now_utc",
    "now_ms",
    "ms_to_datetime",
    "clamp_client_timestamp",
    "normalize_domain",
    "is_valid_shop_domain",
    "classify_device",
    "ValidationResult",
    "decode_json_body",
    "validate_payload",
    "bad_request_response",
    "degraded_response",
    "internal_error_response",
]
