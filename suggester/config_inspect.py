"""Masked view of the effective configuration, for logs and ``show_config``.

The service holds two credentials: the GitHub token and the webhook secret.
They are masked under their ``Settings`` field names and under every
environment variable that can feed them (``GITHUB_TOKEN``,
``INPUT_GITHUB-TOKEN``, ``WEBHOOK_SECRET``...). The environment view only
lists variables that map onto a ``Settings`` field.
"""
from __future__ import annotations

import os
from typing import Any, Dict, Optional

from pydantic import AliasChoices

from .bootstrap import Settings

SECRET_FIELDS = ("github_token", "webhook_secret")


def env_names(field: str) -> tuple[str, ...]:
    """Environment variables ``Settings`` reads ``field`` from."""
    info = Settings.model_fields[field]
    alias = info.validation_alias or info.alias
    if isinstance(alias, AliasChoices):
        return tuple(choice for choice in alias.choices if isinstance(choice, str))
    return (alias,) if isinstance(alias, str) else ()


SECRET_KEYS = frozenset(
    name.upper() for field in SECRET_FIELDS for name in (field, *env_names(field))
)


def mask_value(key: str, value: Any) -> Any:
    if value is None or key.upper() not in SECRET_KEYS:
        return value
    text = str(value)
    return f"{text[:3]}***{text[-2:]}" if len(text) > 12 else "***"


def settings_env() -> Dict[str, str]:
    known = {name.upper() for field in Settings.model_fields for name in env_names(field)}
    return {key: value for key, value in os.environ.items() if key.upper() in known}


def safe_snapshot(custom: Optional[Dict[str, Any]] = None, include_env: bool = True) -> Dict[str, Any]:
    """Sorted, masked mapping of the settings environment overlaid with ``custom``."""
    merged: Dict[str, Any] = settings_env() if include_env else {}
    merged.update(custom or {})
    return {key: mask_value(key, merged[key]) for key in sorted(merged)}


def format_snapshot(snapshot: Dict[str, Any]) -> str:
    width = max(map(len, snapshot), default=0)
    return "\n".join(f"{key:<{width}} = {snapshot[key]}" for key in sorted(snapshot))


def log_settings(logger, settings: Settings) -> None:
    logger.debug("runtime_config", **safe_snapshot(settings.model_dump(), include_env=False))


__all__ = [
    "env_names",
    "mask_value",
    "safe_snapshot",
    "format_snapshot",
    "log_settings",
]
