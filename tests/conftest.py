"""Pytest configuration and fixtures for testing."""

from __future__ import annotations

from typing import Any, AsyncIterator, Generator

import pytest
import pytest_asyncio

BRIDGE_ENV_VARS = (
    "OLLAMA_BRIDGE_CONFIG",
    "OLLAMA_BRIDGE_HOST",
    "OLLAMA_BRIDGE_PORT",
    "OLLAMA_BRIDGE_TIMEOUT",
    "OLLAMA_BRIDGE_LOG_LEVEL",
    "OLLAMA_BASE_URL",
    "OLLAMA_HAIKU_MODEL",
    "OLLAMA_SONNET_MODEL",
    "OLLAMA_OPUS_MODEL",
)


@pytest.fixture(autouse=True)
def clean_bridge_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Keep the developer's shell environment out of every test."""
    for name in BRIDGE_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield


# =============================================================================
# Harness Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def bridge_harness() -> AsyncIterator[tuple[Any, Any]]:
    """Create a bridge wired to a fresh fake backend.

    Returns:
        Tuple of (FakeBackend, BridgeHarness)

    Usage:
        async def test_messages(bridge_harness):
            backend, bridge = bridge_harness
            backend.enqueue_chat_response("Hello")
            # ... test code ...
    """
    from ollama_bridge.testing import BridgeHarness, FakeBackend

    backend = FakeBackend()
    async with BridgeHarness(backend) as bridge:
        yield backend, bridge
