# === NAVMAP v1 ===
# {
#   "module": "UnsplashCache.config.loader",
#   "purpose": "Configuration Loading with File/Env/CLI Precedence.",
#   "sections": [
#     {
#       "id": "read-file",
#       "name": "_read_file",
#       "anchor": "function-read-file",
#       "kind": "function"
#     },
#     {
#       "id": "merge-env-overrides",
#       "name": "_merge_env_overrides",
#       "anchor": "function-merge-env-overrides",
#       "kind": "function"
#     },
#     {
#       "id": "load-config",
#       "name": "load_config",
#       "anchor": "function-load-config",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""
Configuration Loading with File/Env/CLI Precedence

Implements three-level config composition:
1. **File level** (YAML/JSON): base configuration
2. **Environment level**: UIC_* prefixed variables override file
3. **CLI level**: programmatic overrides win

Environment variables use double-underscore notation:
  UIC_HTTP__TIMEOUT_READ_S=5            →  http.timeout_read_s=5
  UIC_COLLECTIONS='["317099","1065976"]' →  collections=[...]

JSON values are parsed when possible; everything else stays a string.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from .models import UnsplashCacheConfig

_LOGGER = logging.getLogger(__name__)

# Keys whose values are always strings, even when they look like JSON numbers.
_STRING_KEYS = {"client_id"}

# ============================================================================
# Helpers
# ============================================================================


def _read_file(path: str) -> dict[str, Any]:
    """
    Read YAML or JSON config file.

    Args:
        path: File path (suffix determines format: .yaml/.yml or .json)

    Returns:
        Parsed config dictionary

    Raises:
        ValueError: If file cannot be read or parsed
    """
    p = Path(path)
    if not p.exists():
        raise ValueError(f"Config file not found: {path}")

    try:
        text = p.read_text(encoding="utf-8")
    except OSError as e:
        raise ValueError(f"Cannot read config file {path}: {e}") from e

    suffix = p.suffix.lower()

    if suffix in (".yaml", ".yml"):
        try:
            data = yaml.safe_load(text) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {path}: {e}") from e
    elif suffix == ".json":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {path}: {e}") from e
    else:
        raise ValueError(f"Unsupported file format: {suffix}. Use .yaml or .json")

    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping at the top level")
    return data


def _assign_nested(data: dict[str, Any], dotted_key: str, value: Any) -> None:
    """
    Assign value to nested dict using dot notation.

    Example:
        _assign_nested(data, "http.user_agent", "MyUA")
        → data["http"]["user_agent"] = "MyUA"
    """
    keys = dotted_key.split(".")
    current = data

    for key in keys[:-1]:
        if not isinstance(current.get(key), dict):
            current[key] = {}
        current = current[key]

    current[keys[-1]] = value


def _coerce_env_value(value: str) -> Any:
    """
    Coerce an environment variable string to a config value.

    Tries JSON first (lists, dicts, bools, numbers, null), then bare
    ``true``/``false``; anything else stays a string.
    """
    try:
        return json.loads(value)
    except (json.JSONDecodeError, ValueError):
        pass

    if value.lower() in ("true", "false"):
        return value.lower() == "true"

    return value


def _merge_env_overrides(
    data: dict[str, Any],
    env_prefix: str = "UIC_",
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """
    Overlay environment variables onto config dict.

    Args:
        data: Base config dict (will be modified)
        env_prefix: Environment variable prefix (default: UIC_)
        environ: Environment mapping (default: os.environ)

    Returns:
        Modified data dict
    """
    source = os.environ if environ is None else environ
    for env_key, env_value in source.items():
        if not env_key.startswith(env_prefix):
            continue

        dotted_key = env_key[len(env_prefix) :].lower().replace("__", ".")
        if dotted_key in _STRING_KEYS:
            coerced_value: Any = env_value
        else:
            coerced_value = _coerce_env_value(env_value)

        _assign_nested(data, dotted_key, coerced_value)
        shown = "***masked***" if dotted_key in _STRING_KEYS else repr(coerced_value)
        _LOGGER.debug(f"Environment override: {env_key} → {dotted_key} = {shown}")

    return data


def _merge_cli_overrides(
    data: dict[str, Any], cli_overrides: Mapping[str, Any] | None
) -> dict[str, Any]:
    """
    Recursively merge CLI overrides into base config dict.

    Later values win; None values are ignored so unset CLI options don't
    clobber file or environment settings.
    """
    if not cli_overrides:
        return data

    for key, value in cli_overrides.items():
        if value is None:
            continue
        if isinstance(value, Mapping):
            base = data.get(key) if isinstance(data.get(key), dict) else {}
            merged = _merge_cli_overrides(base, value)
            if merged:
                data[key] = merged
        else:
            data[key] = value

    return data


# ============================================================================
# Public API
# ============================================================================


def load_config(
    path: str | None = None,
    env_prefix: str = "UIC_",
    cli_overrides: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
) -> UnsplashCacheConfig:
    """
    Load UnsplashCacheConfig from file, environment, and CLI with proper precedence.

    **Precedence:** file < environment < CLI

    Args:
        path: Path to YAML/JSON config file (optional)
        env_prefix: Environment variable prefix (default: UIC_)
        cli_overrides: CLI overrides dict (optional)
        environ: Environment mapping to read instead of os.environ

    Returns:
        Validated UnsplashCacheConfig instance

    Raises:
        ValueError: If the file cannot be read or the merged config is invalid
            (pydantic's ValidationError is a ValueError)
    """
    data: dict[str, Any] = {}

    if path:
        try:
            data = _read_file(path)
            _LOGGER.info(f"Loaded config from {path}")
        except ValueError as e:
            _LOGGER.error(f"Failed to load config: {e}")
            raise

    data = _merge_env_overrides(data, env_prefix, environ)
    data = _merge_cli_overrides(data, cli_overrides)

    try:
        config = UnsplashCacheConfig.model_validate(data)
    except ValueError as e:
        _LOGGER.error(f"Configuration validation failed: {e}")
        raise

    _LOGGER.info(f"Configuration validated. Config hash: {config.config_hash()[:8]}...")
    return config


def validate_config_file(path: str) -> bool:
    """
    Validate a config file (with environment overlay).

    Returns:
        True if valid

    Raises:
        ValueError: If invalid
    """
    load_config(path=path)
    return True


def export_config_schema() -> dict[str, Any]:
    """
    Export JSON Schema for UnsplashCacheConfig.

    Returns:
        JSON schema dict (Pydantic v2 format)
    """
    return UnsplashCacheConfig.model_json_schema()
