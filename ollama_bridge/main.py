"""FastAPI application factory and embeddable server for the Ollama bridge."""

from __future__ import annotations

import logging
import threading
import time
from contextlib import asynccontextmanager
from typing import Optional

import httpx
import uvicorn
from fastapi import FastAPI
from starlette.routing import Route

from .api.routes import forward_request, list_models, messages_endpoint
from .config_loader import BridgeSettings
from .core.backend import BackendClient
from .core.model_map import build_model_map
from .core.registry import BridgeState

logger = logging.getLogger("ollama-bridge")


def build_bridge_state(
    settings: BridgeSettings,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> BridgeState:
    """Create the model map and backend client shared by every request."""
    return BridgeState(
        model_map=build_model_map(settings.model_overrides),
        backend=BackendClient(
            settings.base_url,
            timeout=settings.timeout_seconds,
            transport=transport,
        ),
    )


def create_app(
    settings: Optional[BridgeSettings] = None,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """Factory function to create the bridge application.

    Args:
        settings: Bridge settings; defaults are used when omitted.
        transport: Optional httpx transport for backend calls (tests route
            these to an in-process fake backend).

    Returns:
        The configured FastAPI application instance. Its backend clients are
        closed when the application lifespan ends.
    """
    settings = settings or BridgeSettings()
    bridge = build_bridge_state(settings, transport=transport)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Ollama bridge starting up...")
        logger.info("Backend base URL: %s", settings.base_url)
        for role, model in settings.model_overrides.items():
            logger.info("  - %s -> %s", role, model)
        try:
            yield
        finally:
            await app.state.bridge.backend.aclose()
            logger.info("Ollama bridge shut down")

    # No docs routes: every unmatched path belongs to the passthrough
    app = FastAPI(
        title="Ollama Bridge",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.bridge = bridge
    app.state.settings = settings

    # Order matters: the catch-all passthrough must be registered last.
    # Plain Starlette routes with no method list accept every HTTP method.
    app.get("/v1/models")(list_models)
    app.router.routes.append(Route("/v1/messages", messages_endpoint))
    app.router.routes.append(Route("/{path:path}", forward_request))

    return app


class BridgeServer:
    """Run the bridge with uvicorn on a background thread.

    Usage:
        server = BridgeServer(settings)
        server.start()
        ...  # talk to server.url
        server.stop()
    """

    def __init__(self, settings: Optional[BridgeSettings] = None, *, startup_timeout: float = 10.0):
        self.settings = settings or BridgeSettings()
        self.startup_timeout = startup_timeout
        self.app = create_app(self.settings)
        self._server: Optional[uvicorn.Server] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def url(self) -> str:
        return f"http://{self.settings.host}:{self.settings.port}"

    def start(self) -> None:
        if self._thread is not None:
            raise RuntimeError("Bridge server already started")

        config = uvicorn.Config(
            self.app,
            host=self.settings.host,
            port=self.settings.port,
            log_level=self.settings.log_level.lower(),
            lifespan="on",
        )
        self._server = uvicorn.Server(config)
        self._thread = threading.Thread(
            target=self._server.run, name="ollama-bridge", daemon=True
        )
        self._thread.start()

        deadline = time.monotonic() + self.startup_timeout
        while not self._server.started:
            if not self._thread.is_alive():
                self._thread = None
                raise RuntimeError(f"Bridge server failed to start on {self.url}")
            if time.monotonic() > deadline:
                self.stop()
                raise RuntimeError(f"Bridge server did not start within {self.startup_timeout}s")
            time.sleep(0.05)

        logger.info("Bridge listening on %s", self.url)

    def stop(self) -> None:
        if self._server is None or self._thread is None:
            return
        self._server.should_exit = True
        self._thread.join(timeout=self.startup_timeout)
        self._thread = None
        self._server = None

    def __enter__(self) -> "BridgeServer":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
