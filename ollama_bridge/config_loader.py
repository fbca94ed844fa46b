"""Configuration loading from YAML files with environment variable support."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml
from dotenv import dotenv_values

from .core.backend import DEFAULT_TIMEOUT
from .core.exceptions import ConfigurationError
from .core.model_map import MODEL_ROLES

logger = logging.getLogger("ollama-bridge")

# Default path to the config file (relative to project root)
DEFAULT_CONFIG_PATH = "configs/config_default.yaml"

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 18080
DEFAULT_BASE_URL = "http://localhost:11434/v1"

MAX_MODEL_NAME_LENGTH = 128
MODEL_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_\-:/.]+$")

_ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)")


@dataclass(frozen=True)
class BridgeSettings:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    base_url: str = DEFAULT_BASE_URL
    timeout_seconds: Optional[float] = DEFAULT_TIMEOUT
    model_overrides: Mapping[str, str] = field(default_factory=dict)
    log_level: str = "INFO"


def resolve_config_path(path: str) -> Path:
    """Resolve config path relative to project root if needed."""
    if Path(path).is_absolute():
        return Path(path)
    project_root = Path(__file__).parent.parent
    return project_root / path


def load_env_values(env_path: Path) -> dict[str, str]:
    """Load environment values from a .env file without mutating os.environ."""
    if not env_path.exists():
        return {}
    raw_values = dotenv_values(env_path)
    return {key: value for key, value in raw_values.items() if value is not None}


def load_config(path: str | None = None, substitute_env: bool = True) -> dict:
    """Load configuration from a YAML file.

    Args:
        path: Path to the config file. Defaults to OLLAMA_BRIDGE_CONFIG, or
              configs/config_default.yaml in the project root.
        substitute_env: Whether to substitute environment variables in the config.

    Returns:
        Parsed configuration dictionary. Empty when no path was given and the
        default file does not exist.

    Raises:
        ConfigurationError: An explicitly requested file is missing or the
            YAML cannot be parsed.
    """
    explicit = path or os.getenv("OLLAMA_BRIDGE_CONFIG")
    config_path = resolve_config_path(explicit or DEFAULT_CONFIG_PATH)

    if not config_path.exists():
        if explicit:
            raise ConfigurationError(f"Config file not found: {config_path}")
        logger.info(f"No config file at {config_path}, using defaults")
        return {}

    logger.info(f"Loading configuration from {config_path}")

    try:
        with config_path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {config_path} must contain a mapping")

    if substitute_env:
        env_values = load_env_values(config_path.with_name(".env"))
        data = _substitute_env_vars(data, env_values)

    return data


def _substitute_env_vars(obj: Any, env_values: Mapping[str, str] | None = None) -> Any:
    """Recursively substitute ${VAR_NAME} and $VAR_NAME in configuration values.

    Values from the .env file win over the process environment. Unset
    variables leave the placeholder in place.
    """
    env_values = env_values or {}

    if isinstance(obj, dict):
        return {k: _substitute_env_vars(v, env_values) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_substitute_env_vars(item, env_values) for item in obj]
    if isinstance(obj, str):

        def replace_var(match):
            var_name = match.group(1) or match.group(2)
            value = env_values.get(var_name)
            if value is None:
                value = os.getenv(var_name)
            if value is None:
                logger.warning(f"Environment variable '{var_name}' is not set; keeping placeholder")
                return match.group(0)
            return value

        return _ENV_VAR_PATTERN.sub(replace_var, obj)
    return obj


def _get(cfg: Mapping, *keys: str) -> Any:
    cur: Any = cfg
    for key in keys:
        if not isinstance(cur, Mapping):
            return None
        cur = cur.get(key)
    return cur


def _to_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _to_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def validate_model_name(model: str) -> None:
    """Raise ConfigurationError if ``model`` is not an acceptable model name."""
    if not model:
        raise ConfigurationError("model name cannot be empty")
    if len(model) > MAX_MODEL_NAME_LENGTH:
        raise ConfigurationError(
            f"model name exceeds maximum length of {MAX_MODEL_NAME_LENGTH} characters"
        )
    if not MODEL_NAME_PATTERN.match(model):
        raise ConfigurationError(
            f"model name contains invalid characters: must match pattern {MODEL_NAME_PATTERN.pattern}"
        )


def _model_overrides(cfg: Mapping[str, Any]) -> dict[str, str]:
    models_cfg = _get(cfg, "models") or {}
    overrides: dict[str, str] = {}
    for role in MODEL_ROLES:
        raw = os.getenv(f"OLLAMA_{role.upper()}_MODEL")
        if raw is None and isinstance(models_cfg, Mapping):
            raw = models_cfg.get(role)
        if raw is None:
            continue
        value = str(raw).strip()
        if not value:
            continue
        try:
            validate_model_name(value)
        except ConfigurationError as exc:
            logger.warning(f"Ignoring {role} model override {value!r}: {exc.message}")
            continue
        overrides[role] = value
    return overrides


def load_settings(path: str | None = None) -> BridgeSettings:
    """Build BridgeSettings from the config file and environment overrides.

    Environment variables: OLLAMA_BRIDGE_HOST, OLLAMA_BRIDGE_PORT,
    OLLAMA_BASE_URL, OLLAMA_BRIDGE_TIMEOUT, OLLAMA_BRIDGE_LOG_LEVEL and
    OLLAMA_{HAIKU,SONNET,OPUS}_MODEL.
    """
    cfg = load_config(path)

    host = os.getenv("OLLAMA_BRIDGE_HOST") or _get(cfg, "server", "host") or DEFAULT_HOST
    port = (
        _to_int(os.getenv("OLLAMA_BRIDGE_PORT"))
        or _to_int(_get(cfg, "server", "port"))
        or DEFAULT_PORT
    )
    base_url = os.getenv("OLLAMA_BASE_URL") or _get(cfg, "backend", "base_url") or DEFAULT_BASE_URL

    timeout_seconds = _to_float(_get(cfg, "backend", "timeout_seconds"))
    timeout_env = os.getenv("OLLAMA_BRIDGE_TIMEOUT")
    if timeout_env is not None:
        env_timeout = _to_float(timeout_env)
        if env_timeout is None:
            logger.warning("Invalid OLLAMA_BRIDGE_TIMEOUT=%s", timeout_env)
        else:
            timeout_seconds = env_timeout
    if timeout_seconds is None:
        timeout_seconds = DEFAULT_TIMEOUT

    log_level = (
        os.getenv("OLLAMA_BRIDGE_LOG_LEVEL") or _get(cfg, "logging", "level") or "INFO"
    )

    return BridgeSettings(
        host=str(host),
        port=port,
        base_url=str(base_url).rstrip("/"),
        # Non-positive timeouts disable the bound entirely
        timeout_seconds=timeout_seconds if timeout_seconds > 0 else None,
        model_overrides=_model_overrides(cfg),
        log_level=str(log_level).upper(),
    )
