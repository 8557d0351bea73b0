"""
JSON response shapes shared by the ingestion and presence endpoints
"""

from typing import Any, Dict, List, Optional

from fastapi import status
from fastapi.responses import JSONResponse


def bad_request_response(errors: List[Dict[str, Any]]) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"ok": False, "error": "bad_request", "details": errors},
    )


def degraded_response(note: str, extra: Optional[Dict[str, Any]] = None) -> JSONResponse:
    """Success with a note; analytics loss must never break the storefront"""
    content = {"ok": True, "note": note}
    if extra:
        content.update(extra)
    return JSONResponse(status_code=status.HTTP_200_OK, content=content)


def internal_error_response() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"ok": False, "error": "internal_error"},
    )
