"""API routes for the bridge."""

from .messages import messages_endpoint
from .models import list_models
from .passthrough import forward_request

__all__ = [
    "forward_request",
    "list_models",
    "messages_endpoint",
]
