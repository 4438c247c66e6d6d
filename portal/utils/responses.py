"""Response utility functions."""

from fastapi import status
from fastapi.responses import JSONResponse

from ..api_client import PortalAPIError


def error_response(message: str, status_code: int = status.HTTP_400_BAD_REQUEST) -> JSONResponse:
    """Create standardized error response."""
    return JSONResponse(
        content={"ok": False, "error": message},
        status_code=status_code
    )


def api_error_response(error: PortalAPIError) -> JSONResponse:
    """Relay a backend failure with its user-facing message."""
    status_code = error.status_code if error.status_code and error.status_code >= 400 else status.HTTP_502_BAD_GATEWAY
    return error_response(error.message, status_code=status_code)
