"""Anthropic-style error envelopes."""

from fastapi.responses import JSONResponse

from ...core.exceptions import ProxyError


def anthropic_error_response(exc: ProxyError) -> JSONResponse:
    """Render a bridge error as ``{"type": "error", "error": {...}}``."""
    error = {"type": exc.error_type, "message": exc.message}
    code = getattr(exc, "code", None)
    if code:
        error["code"] = code
    return JSONResponse({"type": "error", "error": error}, status_code=exc.status_code)
