"""Testing utilities for in-process bridge simulations."""

from .fake_upstream import (
    BrokenStream,
    FakeBackend,
    UpstreamResponse,
    broken_stream_transport,
    build_chat_chunks,
    build_chat_completion,
    unreachable_transport,
)
from .helpers import aiter_lines, build_messages_request, event_types, parse_sse_events
from .proxy_harness import FAKE_BACKEND_URL, BridgeHarness

__all__ = [
    "BridgeHarness",
    "BrokenStream",
    "FAKE_BACKEND_URL",
    "FakeBackend",
    "UpstreamResponse",
    "aiter_lines",
    "build_messages_request",
    "event_types",
    "parse_sse_events",
    "broken_stream_transport",
    "build_chat_chunks",
    "build_chat_completion",
    "unreachable_transport",
]
