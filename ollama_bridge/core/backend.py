"""Backend client for the OpenAI-compatible Ollama endpoint."""

from __future__ import annotations

import json
import logging
from typing import Any, AsyncIterator, Iterable, Optional

import httpx

from .exceptions import BackendDecodeError, BackendUnreachableError

logger = logging.getLogger("ollama-bridge")

DEFAULT_TIMEOUT = 600.0

HOP_BY_HOP_HEADERS = {
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "proxy-connection",
    "te",
    "trailer",
    "transfer-encoding",
    "upgrade",
}

# Recomputed by the HTTP client for the outbound request
TRANSPORT_REQUEST_HEADERS = {"host", "content-length"}


def format_httpx_error(exc: Exception, url: Optional[str] = None) -> str:
    """Produce a detailed, user-facing description of an httpx error."""
    parts = [exc.__class__.__name__]
    message = str(exc).strip()
    if message:
        parts.append(message)

    try:
        request = getattr(exc, "request", None)
    except RuntimeError:
        # httpx raises when .request was never attached
        request = None
    if request is not None:
        parts.append(f"request={request.method} {request.url}")
    elif url:
        parts.append(f"url={url}")

    return "; ".join(parts)


def build_target_url(base_url: str, path: str, query: str = "") -> str:
    """Join the backend base URL with an inbound path and query string."""
    url = f"{base_url.rstrip('/')}{path}"
    if query:
        url = f"{url}?{query}"
    return url


def filter_request_headers(raw_headers: Iterable[tuple[bytes, bytes]]) -> list[tuple[bytes, bytes]]:
    """Drop hop-by-hop and transport-managed headers from an inbound request."""
    drop = HOP_BY_HOP_HEADERS | TRANSPORT_REQUEST_HEADERS | _connection_tokens(raw_headers)
    return [(key, value) for key, value in raw_headers if key.decode("latin-1").lower() not in drop]


def filter_response_headers(raw_headers: Iterable[tuple[bytes, bytes]]) -> list[tuple[bytes, bytes]]:
    """Drop hop-by-hop headers from an upstream response."""
    drop = HOP_BY_HOP_HEADERS | _connection_tokens(raw_headers)
    return [(key, value) for key, value in raw_headers if key.decode("latin-1").lower() not in drop]


def _connection_tokens(raw_headers: Iterable[tuple[bytes, bytes]]) -> set[str]:
    extra: set[str] = set()
    for key, value in raw_headers:
        if key.lower() != b"connection":
            continue
        for name in value.decode("latin-1").split(","):
            name = name.strip().lower()
            if name:
                extra.add(name)
    return extra


class BackendClient:
    """Talks to the Ollama OpenAI-compatible API.

    Two ``httpx.AsyncClient`` instances are held: a bounded one for
    non-streaming and passthrough calls, and one without a timeout for
    streaming completions, which may run arbitrarily long.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            follow_redirects=False,
            transport=transport,
        )
        self._stream_client = httpx.AsyncClient(
            timeout=httpx.Timeout(None),
            follow_redirects=False,
            transport=transport,
        )

    @property
    def chat_completions_url(self) -> str:
        return f"{self.base_url}/chat/completions"

    @property
    def models_url(self) -> str:
        return f"{self.base_url}/models"

    async def aclose(self) -> None:
        await self._client.aclose()
        await self._stream_client.aclose()

    async def create_chat_completion(self, payload: dict[str, Any]) -> Any:
        """POST a non-streaming chat completion and return the decoded body.

        Raises:
            BackendUnreachableError: The request could not be sent or answered.
            BackendDecodeError: The response body is not JSON.
        """
        url = self.chat_completions_url
        try:
            response = await self._client.post(url, json=payload)
        except httpx.HTTPError as exc:
            detail = format_httpx_error(exc, url)
            logger.warning("Backend request failed: %s", detail)
            raise BackendUnreachableError(f"Backend unreachable: {detail}") from exc

        if response.status_code >= 400:
            logger.warning(
                "Backend returned status %s for %s", response.status_code, url
            )

        try:
            return json.loads(response.content)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise BackendDecodeError(f"Failed to decode backend response: {exc}") from exc

    async def iter_chat_completion_lines(self, payload: dict[str, Any]) -> AsyncIterator[str]:
        """Stream a chat completion and yield the response body line by line.

        The connection is opened on first iteration. Transport failures,
        before or during the body, surface as ``BackendUnreachableError``.
        """
        url = self.chat_completions_url
        try:
            async with self._stream_client.stream("POST", url, json=payload) as response:
                if response.status_code >= 400:
                    logger.warning(
                        "Backend returned status %s for streaming %s",
                        response.status_code,
                        url,
                    )
                async for line in response.aiter_lines():
                    yield line
        except httpx.HTTPError as exc:
            detail = format_httpx_error(exc, url)
            raise BackendUnreachableError(f"Backend stream failed: {detail}") from exc

    async def get_models(self) -> httpx.Response:
        """GET the backend model listing and return the raw response."""
        url = self.models_url
        try:
            return await self._client.get(url)
        except httpx.HTTPError as exc:
            detail = format_httpx_error(exc, url)
            logger.warning("Backend models request failed: %s", detail)
            raise BackendUnreachableError(f"Backend unreachable: {detail}") from exc

    async def send_raw(
        self,
        method: str,
        path: str,
        query: str,
        headers: list[tuple[bytes, bytes]],
        body: bytes,
    ) -> httpx.Response:
        """Forward an arbitrary request; the response body is left unread.

        The request is built directly rather than through the client so
        httpx's default accept, accept-encoding, connection and user-agent
        headers are not added to what the caller sent.

        Callers must ``aclose()`` the returned response.
        """
        url = build_target_url(self.base_url, path, query)
        request = httpx.Request(
            method,
            url,
            headers=headers,
            content=body,
            extensions={"timeout": self._client.timeout.as_dict()},
        )
        try:
            return await self._client.send(request, stream=True)
        except httpx.HTTPError as exc:
            detail = format_httpx_error(exc, url)
            logger.warning("Passthrough request failed: %s", detail)
            raise BackendUnreachableError(f"Backend unreachable: {detail}") from exc
