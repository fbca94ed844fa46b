"""Core module initialization."""

from .backend import BackendClient, build_target_url, format_httpx_error
from .exceptions import (
    BackendDecodeError,
    BackendUnreachableError,
    ConfigurationError,
    InvalidRequestError,
    MethodNotAllowedError,
    ProxyError,
)
from .model_map import DEFAULT_MODEL_ALIASES, MODEL_ROLES, ModelMap, build_model_map, resolve_model
from .registry import BridgeState, get_bridge_state
from .sse import format_sse_event, sse_data_payload

__all__ = [
    "BackendClient",
    "BackendDecodeError",
    "BackendUnreachableError",
    "BridgeState",
    "ConfigurationError",
    "DEFAULT_MODEL_ALIASES",
    "InvalidRequestError",
    "MODEL_ROLES",
    "MethodNotAllowedError",
    "ModelMap",
    "ProxyError",
    "build_model_map",
    "build_target_url",
    "format_httpx_error",
    "format_sse_event",
    "get_bridge_state",
    "resolve_model",
    "sse_data_payload",
]
