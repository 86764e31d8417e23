"""Configuration loading from YAML and environment."""

from __future__ import annotations

import copy
import os
from pathlib import Path
from typing import Any

import yaml

_DEFAULT_PATH = Path(__file__).resolve().parent.parent.parent / "config" / "repolens.yaml"

# (env var, config section, key)
_ENV_OVERRIDES = [
    ("AI_CLIENT_ID", "ai", "client_id"),
    ("AI_CLIENT_SECRET", "ai", "client_secret"),
    ("AI_AUTH_URL", "ai", "auth_url"),
    ("AI_SERVICE_URL", "ai", "service_url"),
    ("AI_MODEL", "ai", "model"),
    ("GITHUB_TOKEN", "github", "token"),
    ("REPOLENS_LOG_LEVEL", "logging", "level"),
    ("REPOLENS_API_PORT", "api", "port"),
    ("REPOLENS_METRICS_PORT", "metrics", "port"),
]


def load_config(config_path: str | Path | None = None) -> dict[str, Any]:
    """
    Load repolens config from YAML with defaults and env var overrides.

    Args:
        config_path: Path to repolens.yaml. Defaults to config/repolens.yaml.

    Returns:
        Nested config dict. Missing file means defaults plus environment.

    Example:
        >>> cfg = load_config()
        >>> cfg["orchestration"]["max_concurrency"]
        5
    """
    path = get_config_path(config_path)
    config = _default_config()
    if path.exists():
        with open(path, encoding="utf-8") as f:
            _merge(config, yaml.safe_load(f) or {})
    for env_name, section, key in _ENV_OVERRIDES:
        if value := os.getenv(env_name):
            config.setdefault(section, {})[key] = value
    config["api"]["port"] = int(config["api"]["port"])
    if config["metrics"]["port"] is not None:
        config["metrics"]["port"] = int(config["metrics"]["port"])
    return config


def get_config_path(config_path: str | Path | None = None) -> Path:
    """Return the path to the config file used for load."""
    return Path(config_path) if config_path is not None else _DEFAULT_PATH


def _merge(base: dict[str, Any], override: dict[str, Any]) -> None:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value


def _default_config() -> dict[str, Any]:
    """Default config when no file is present."""
    return copy.deepcopy({
        "ai": {
            "client_id": None,
            "client_secret": None,
            "auth_url": None,
            "service_url": None,
            "model": "CLAUDE_SONET_3_7_v1",
            "scope": "data:read data:write",
            "timeout_seconds": 60.0,
        },
        "github": {
            "command": "npx",
            "args": ["@modelcontextprotocol/server-github"],
            "token": None,
            "timeout_seconds": 30.0,
        },
        "tools": {"timeout_seconds": 120.0},
        "orchestration": {"max_concurrency": 5, "timeout_seconds": 600.0},
        "api": {"host": "0.0.0.0", "port": 3001},
        "metrics": {"port": None},
        "logging": {"level": "INFO", "json": False},
    })
