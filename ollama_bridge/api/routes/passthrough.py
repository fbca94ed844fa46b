"""Generic passthrough for every path the bridge does not translate.

Method, path, query string, headers and body are forwarded to
``{base_url}{path}`` and the upstream status, headers and raw body are
mirrored back. Nothing is parsed or translated.
"""

from __future__ import annotations

import logging
import time
from typing import Iterable, Optional

import httpx
from fastapi import Request, Response
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask
from starlette.requests import ClientDisconnect

from ...core.backend import filter_request_headers, filter_response_headers, format_httpx_error
from ...core.exceptions import BackendUnreachableError
from ...core.registry import get_bridge_state
from .errors import anthropic_error_response

logger = logging.getLogger("ollama-bridge.passthrough")


def _has_no_body(method: str, status_code: int) -> bool:
    return method == "HEAD" or status_code < 200 or status_code in (204, 304)


def _mirror_headers(
    raw_headers: Iterable[tuple[bytes, bytes]],
    body_length: Optional[int] = None,
) -> list[tuple[bytes, bytes]]:
    """Upstream response headers minus hop-by-hop ones, names lowercased for ASGI.

    Upstream chunked responses lose their transfer-encoding, so a
    content-length is added for the buffered body when none was sent.
    """
    headers = [(key.lower(), value) for key, value in filter_response_headers(raw_headers)]
    if body_length is not None and not any(key.lower() == b"content-length" for key, _ in headers):
        headers.append((b"content-length", str(body_length).encode("latin-1")))
    return headers


async def forward_request(request: Request) -> Response:
    bridge = get_bridge_state(request)
    start_time = time.perf_counter()
    path = request.url.path
    query = request.url.query

    try:
        body = await request.body()
    except ClientDisconnect:
        logger.warning("Client disconnected while sending %s %s", request.method, path)
        return Response(status_code=499)  # Client Closed Request

    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(
            "Forwarding %s %s%s with %d byte body",
            request.method,
            path,
            f"?{query}" if query else "",
            len(body),
        )

    try:
        upstream = await bridge.backend.send_raw(
            request.method,
            path,
            query,
            filter_request_headers(request.headers.raw),
            body,
        )
    except BackendUnreachableError as exc:
        return anthropic_error_response(exc)

    content_type = upstream.headers.get("content-type", "").lower()
    if "text/event-stream" in content_type:
        response = StreamingResponse(
            upstream.aiter_raw(),
            status_code=upstream.status_code,
            background=BackgroundTask(upstream.aclose),
        )
        response.raw_headers = _mirror_headers(upstream.headers.raw)
        return response

    try:
        # Raw bytes keep any content-encoding intact so the mirrored headers still match
        content = b"".join([chunk async for chunk in upstream.aiter_raw()])
    except httpx.HTTPError as exc:
        detail = format_httpx_error(exc, str(upstream.url))
        logger.warning("Passthrough body read failed: %s", detail)
        return anthropic_error_response(BackendUnreachableError(f"Backend unreachable: {detail}"))
    finally:
        await upstream.aclose()

    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(
            "Passthrough %s %s -> %s, %d bytes in %.3fs",
            request.method,
            path,
            upstream.status_code,
            len(content),
            time.perf_counter() - start_time,
        )

    response = Response(content=content, status_code=upstream.status_code)
    response.raw_headers = _mirror_headers(
        upstream.headers.raw,
        body_length=None if _has_no_body(request.method, upstream.status_code) else len(content),
    )
    return response
