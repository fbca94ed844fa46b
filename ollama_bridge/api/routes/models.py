"""Models listing endpoint - forwarded to the backend unchanged."""

import logging

from fastapi import Request, Response

from ...core.exceptions import BackendUnreachableError
from ...core.registry import get_bridge_state
from .errors import anthropic_error_response

logger = logging.getLogger("ollama-bridge")


async def list_models(request: Request) -> Response:
    """GET /v1/models

    The backend's OpenAI-format listing is mirrored as-is (status,
    content-type and body); it is not reshaped into Anthropic's schema.
    """
    logger.info("Received models list request")
    bridge = get_bridge_state(request)

    try:
        upstream = await bridge.backend.get_models()
    except BackendUnreachableError as exc:
        return anthropic_error_response(exc)

    return Response(
        content=upstream.content,
        status_code=upstream.status_code,
        media_type=upstream.headers.get("content-type", "application/json"),
    )
