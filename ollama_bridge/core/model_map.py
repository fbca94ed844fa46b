"""Model alias resolution.

The model map is built once at startup and shared read-only by every request.
Lookups are exact; an unknown alias is forwarded to the backend unchanged.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Mapping, Optional

logger = logging.getLogger("ollama-bridge")

ModelMap = Mapping[str, str]

DEFAULT_MODEL_ALIASES: Mapping[str, str] = MappingProxyType({
    "llama3.2": "llama3.2:latest",
    "llama3.2:latest": "llama3.2:latest",
    "llama3.2:3b": "llama3.2:3b",
    "codellama": "codellama:latest",
    "codellama:latest": "codellama:latest",
    "phi3": "phi3:latest",
    "phi3:latest": "phi3:latest",
    "mistral": "mistral:latest",
    "mistral:latest": "mistral:latest",
    "llama3.3": "llama3.3:latest",
    "llama3.3:latest": "llama3.3:latest",
})

# Client-side model tiers that can be pointed at a local model
MODEL_ROLES = ("haiku", "sonnet", "opus")


def build_model_map(overrides: Optional[Mapping[str, str]] = None) -> ModelMap:
    """Build the immutable alias -> backend model id table.

    Each non-empty role override is registered under the role name and as a
    self-mapping, so a client that echoes the resolved id back still resolves.
    """
    table = dict(DEFAULT_MODEL_ALIASES)
    for role in MODEL_ROLES:
        value = (overrides or {}).get(role)
        if not value:
            continue
        table[value] = value
        table[role] = value
        logger.debug("Model role %s mapped to %s", role, value)
    return MappingProxyType(table)


def resolve_model(alias: str, model_map: ModelMap) -> str:
    """Return the backend model id for ``alias``, or ``alias`` itself on a miss."""
    return model_map.get(alias, alias)
