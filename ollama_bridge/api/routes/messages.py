"""Anthropic-compatible Messages API endpoint."""

import logging
import time
import uuid

from fastapi import Request, Response
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.requests import ClientDisconnect

from ...core.exceptions import MethodNotAllowedError, ProxyError
from ...core.registry import get_bridge_state
from ...messages import (
    StreamTranslator,
    chat_completion_to_message,
    new_message_id,
    translate_request,
)
from .errors import anthropic_error_response

logger = logging.getLogger("ollama-bridge")

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


async def messages_endpoint(request: Request) -> Response:
    """/v1/messages - translate an Anthropic Messages call for the backend.

    Only POST is served; any other method is answered with 405.
    """
    req_id = uuid.uuid4().hex[:8]
    start_time = time.perf_counter()

    if request.method != "POST":
        logger.info(f"[{req_id}] Rejecting {request.method} on {request.url.path}")
        return anthropic_error_response(MethodNotAllowedError(request.method))

    client_host = request.client.host if request.client else "unknown"
    logger.info(
        f"[{req_id}] Messages API request from {client_host}, "
        f"Content-Length: {request.headers.get('content-length', 'not-set')}"
    )

    bridge = get_bridge_state(request)

    try:
        body = await request.body()
    except ClientDisconnect:
        logger.warning(f"[{req_id}] Client disconnected while sending the request body")
        return Response(status_code=499)  # Client Closed Request

    try:
        messages_request, chat_request = translate_request(body, bridge.model_map)
    except ProxyError as exc:
        logger.info(f"[{req_id}] Invalid messages request: {exc.message}")
        return anthropic_error_response(exc)

    if messages_request.stream:
        translator = StreamTranslator()
        logger.info(
            f"[{req_id}] Starting streaming response {translator.message_id} "
            f"for {chat_request['model']}"
        )
        return StreamingResponse(
            translator.adapt_stream(bridge.backend.iter_chat_completion_lines(chat_request)),
            media_type="text/event-stream",
            headers=SSE_HEADERS,
        )

    try:
        completion = await bridge.backend.create_chat_completion(chat_request)
        message = chat_completion_to_message(
            completion,
            model=messages_request.model,
            message_id=new_message_id(),
        )
    except ProxyError as exc:
        elapsed = time.perf_counter() - start_time
        logger.error(f"[{req_id}] Backend error after {elapsed:.3f}s: {exc.message}")
        return anthropic_error_response(exc)

    elapsed = time.perf_counter() - start_time
    logger.info(
        f"[{req_id}] Completed non-streaming response for {chat_request['model']}, "
        f"took {elapsed:.3f}s"
    )
    return JSONResponse(message)
