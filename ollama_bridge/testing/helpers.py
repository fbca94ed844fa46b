"""Small builders and decoders shared by the bridge tests."""

from __future__ import annotations

import json
from typing import Any, AsyncIterator, Iterable


async def aiter_lines(lines: Iterable[str]) -> AsyncIterator[str]:
    """Turn a list of lines into an async line source."""
    for line in lines:
        yield line


def parse_sse_events(raw: bytes | str) -> list[dict[str, Any]]:
    """Decode a ``data:``-only SSE body into event dicts.

    Raises AssertionError on any frame that is not a single data line.
    """
    text = raw.decode("utf-8") if isinstance(raw, bytes) else raw
    events = []
    for frame in text.split("\n\n"):
        frame = frame.strip()
        if not frame:
            continue
        assert frame.startswith("data: "), f"unexpected SSE frame: {frame!r}"
        assert "\n" not in frame, f"multi-line SSE frame: {frame!r}"
        events.append(json.loads(frame[len("data: "):]))
    return events


def event_types(events: Iterable[dict[str, Any]]) -> list[str]:
    return [event["type"] for event in events]


def build_messages_request(**overrides: Any) -> dict[str, Any]:
    """A minimal valid Messages request body."""
    body: dict[str, Any] = {
        "model": "llama3.2",
        "max_tokens": 64,
        "messages": [{"role": "user", "content": "Hi"}],
    }
    body.update(overrides)
    return body
