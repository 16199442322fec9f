"""
Board Coordinator — Environment Config Loader

Three-tier configuration loading:
  1. Base file (board_config.yaml)
  2. Per-environment overlay files (config/{BG_ENV}.yaml merged over base)
  3. Environment variable overrides (BG_ prefixed)

Usage:
    from board_engine.config import load_config, get_config_value

    cfg = load_config(env="prod")
    scale = get_config_value("board.point_scale", cfg, default=100)

Environment variables:
    BG_ENV          — active profile (dev, staging, prod)
    BG_CONFIG_DIR   — directory for overlay files (default: config/)
    BG_CONFIG_PATH  — explicit base config path
    BG_*            — flat overrides (e.g., BG_BOARD_POINT_SCALE=50)
"""

from __future__ import annotations

import copy
import logging
import os
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger("board_coordinator.config")

_META_VARS = {"BG_ENV", "BG_CONFIG_DIR", "BG_CONFIG_PATH", "BG_VERSION"}

DEFAULT_CONFIG: dict[str, Any] = {
    "board": {
        "section_count": 4,
        "cells_per_section": 5,
        "point_scale": 100,
    },
    "llm": {
        "provider": "google",
        "model": "gemini-2.0-flash",
        "temperature": 0.7,
    },
    "retry": {
        "default": {
            "max_attempts": 3,
            "backoff_base": 1.0,
            "backoff_max": 30.0,
            "jitter": 0.0,
        },
    },
}


def deep_merge(base: dict, overlay: dict) -> dict:
    """
    Deep-merge overlay into base. Overlay values win.
    Lists are replaced (not appended). Dicts are recursed.
    """
    result = copy.deepcopy(base)
    for key, value in overlay.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


def _set_nested(d: dict, keys: list[str], value: Any):
    for key in keys[:-1]:
        d = d.setdefault(key, {})
    d[keys[-1]] = value


def find_config_path(base_path: str = "") -> str | None:
    candidates = [
        base_path,
        os.environ.get("BG_CONFIG_PATH", ""),
        "board_config.yaml",
        os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "board_config.yaml"),
    ]
    for c in candidates:
        if c and os.path.isfile(c):
            return c
    return None


def _load_overlay_file(base_path: str, env: str = "", config_dir: str = "") -> dict[str, Any]:
    """Load config/{env}.yaml. Returns empty dict if not found."""
    env = env or os.environ.get("BG_ENV", "")
    if not env:
        return {}

    config_dir = config_dir or os.environ.get("BG_CONFIG_DIR", "config")
    candidates = [
        Path(config_dir) / f"{env}.yaml",
        Path(config_dir) / f"{env}.yml",
    ]
    if base_path:
        candidates.append(Path(os.path.dirname(base_path)) / "config" / f"{env}.yaml")

    for path in candidates:
        if path.exists():
            with open(path) as f:
                overlay = yaml.safe_load(f) or {}
            logger.info("Loaded config overlay: %s (%d keys)", path, len(overlay))
            return overlay

    logger.debug("No config overlay found for env=%s", env)
    return {}


def _load_env_overrides(prefix: str = "BG_") -> dict[str, Any]:
    """
    Load BG_ prefixed environment variables as config overrides.

    BG_SECTION_KEY=value → {"section": {"key": value}}. The first segment
    names the section; the rest is joined back as the key, so
    BG_BOARD_POINT_SCALE=50 → {"board": {"point_scale": 50}}.
    """
    overrides: dict[str, Any] = {}
    for key, value in os.environ.items():
        if not key.startswith(prefix) or key in _META_VARS:
            continue
        parts = key[len(prefix):].lower().split("_", 1)
        if len(parts) != 2 or not parts[1]:
            continue
        try:
            parsed = yaml.safe_load(value)
        except yaml.YAMLError:
            parsed = value
        _set_nested(overrides, parts, parsed)

    if overrides:
        logger.debug("Loaded %d env var overrides", len(overrides))
    return overrides


def load_config(
    base_path: str = "",
    env: str = "",
    config_dir: str = "",
    include_env_vars: bool = True,
) -> dict[str, Any]:
    """
    Load configuration with three-tier merging over built-in defaults.

    Priority (highest wins):
      1. Environment variable overrides (BG_*)
      2. Per-environment overlay file (config/{env}.yaml)
      3. Base config file (board_config.yaml)
      4. DEFAULT_CONFIG
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    path = find_config_path(base_path)
    if path:
        with open(path) as f:
            config = deep_merge(config, yaml.safe_load(f) or {})
        logger.debug("Loaded base config: %s", path)

    overlay = _load_overlay_file(path or "", env=env, config_dir=config_dir)
    if overlay:
        config = deep_merge(config, overlay)

    if include_env_vars:
        env_overrides = _load_env_overrides()
        if env_overrides:
            config = deep_merge(config, env_overrides)

    config["_active_env"] = env or os.environ.get("BG_ENV", "default")
    config["_config_source"] = path or "<defaults>"
    return config


def get_config_value(
    path: str,
    config: dict[str, Any] | None = None,
    default: Any = None,
) -> Any:
    """Get a nested config value by dotted path."""
    if config is None:
        config = load_config()

    current = config
    for key in path.split("."):
        if isinstance(current, dict) and key in current:
            current = current[key]
        else:
            return default
    return current
