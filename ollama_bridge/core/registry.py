"""Per-application bridge state.

The model map and backend client are created once by the application lifespan
and stored on ``app.state`` so routes can reach them without module globals.
"""

from __future__ import annotations

from dataclasses import dataclass

from starlette.requests import Request

from .backend import BackendClient
from .model_map import ModelMap


@dataclass(frozen=True)
class BridgeState:
    model_map: ModelMap
    backend: BackendClient


def get_bridge_state(request: Request) -> BridgeState:
    """Get the bridge state of the application serving ``request``."""
    state = getattr(request.app.state, "bridge", None)
    if state is None:
        raise RuntimeError("Bridge state not initialized. Is the app lifespan running?")
    return state
