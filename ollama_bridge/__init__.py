"""ollama-bridge - Anthropic Messages API on top of Ollama

A small local proxy that lets clients speaking the Anthropic Messages API
talk to an OpenAI-compatible Ollama backend.

This module provides:
- /v1/messages: request/response translation, streaming included
- /v1/models: the backend model listing, forwarded as-is
- Every other path: forwarded verbatim to the backend

Example:
    >>> from ollama_bridge import create_app, load_settings
    >>> import uvicorn
    >>> uvicorn.run(create_app(load_settings()), host="127.0.0.1", port=18080)
"""

from .config_loader import BridgeSettings, load_config, load_settings
from .core import BackendClient, ProxyError, build_model_map
from .logging import setup_logging
from .main import BridgeServer, build_bridge_state, create_app

__all__ = [
    "BackendClient",
    "BridgeServer",
    "BridgeSettings",
    "ProxyError",
    "build_bridge_state",
    "build_model_map",
    "create_app",
    "load_config",
    "load_settings",
    "setup_logging",
]
