"""Configuration and runtime path bootstrapping."""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

DEFAULT_CONFIG: dict[str, Any] = {
    "paths": {"db_path": "workspace/bridge.db", "workspace_dir": "workspace"},
    "memory": {
        "search_limit": 3,
        "recent_limit": 5,
        "decay_interval_hours": 24,
        "log_retention": 500,
    },
    "context": {"limit": 1_000_000, "warn_ratio": 0.75},
    "scheduler": {"interval_seconds": 60, "result_max_chars": 500},
    "agent": {"provider": "mock", "command": [], "cwd": None},
    "logging": {"level": "INFO"},
}

# Environment variable -> (section, key, caster)
ENV_OVERRIDES: dict[str, tuple[str, str, type]] = {
    "CONTEXT_LIMIT": ("context", "limit", int),
    "BRIDGE_DB_PATH": ("paths", "db_path", str),
    "BRIDGE_LOG_LEVEL": ("logging", "level", str),
    "BRIDGE_AGENT_PROVIDER": ("agent", "provider", str),
}


def load_yaml(path: Path) -> dict[str, Any]:
    """Load YAML from file, returning empty mapping when missing."""
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping: {path}")
    return data


def merge_dicts(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge dictionaries."""
    merged: dict[str, Any] = dict(base)
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = merge_dicts(merged[key], value)
        else:
            merged[key] = value
    return merged


def apply_env_overrides(config: dict[str, Any], environ: Mapping[str, str]) -> dict[str, Any]:
    """Overlay the few settings that may come from the environment."""
    merged = dict(config)
    for var, (section, key, caster) in ENV_OVERRIDES.items():
        raw = environ.get(var)
        if raw in (None, ""):
            continue
        try:
            value = caster(raw)
        except ValueError as exc:
            raise ValueError(f"Invalid value for {var}: {raw!r}") from exc
        merged[section] = {**merged.get(section, {}), key: value}
    return merged


def ensure_runtime_dirs(root: Path, config: dict[str, Any]) -> dict[str, Path]:
    """Ensure the workspace and database directories exist and return resolved paths."""
    paths_cfg = config.get("paths", {})
    workspace_dir = (root / paths_cfg.get("workspace_dir", "workspace")).resolve()
    db_path = (root / paths_cfg.get("db_path", "workspace/bridge.db")).resolve()

    workspace_dir.mkdir(parents=True, exist_ok=True)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    return {"workspace_dir": workspace_dir, "db_path": db_path}


def load_effective_config(root: Path, environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    """Merge built-in defaults, config/default.yaml and environment overrides."""
    file_cfg = load_yaml(root / "config" / "default.yaml")
    merged = merge_dicts(DEFAULT_CONFIG, file_cfg)
    return apply_env_overrides(merged, os.environ if environ is None else environ)
