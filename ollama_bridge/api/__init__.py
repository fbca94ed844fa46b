"""API module for the bridge."""

from .routes import forward_request, list_models, messages_endpoint

__all__ = [
    "forward_request",
    "list_models",
    "messages_endpoint",
]
