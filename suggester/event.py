"""Trigger validation: turn a GitHub event into a ``PullRequestRef``.

Everything else the pipeline needs is fetched through the gateway, so the
payload is only checked for the fields listed in ``PullRequestRef``.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from domain.models import PullRequestRef

from .errors import EventValidationError

PULL_REQUEST_EVENT = "pull_request"


def load_event_payload(path: Optional[str]) -> dict[str, Any]:
    """Read the webhook payload GitHub Actions stores at ``GITHUB_EVENT_PATH``."""
    if not path:
        return {}
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise EventValidationError(f"Could not read event payload {path}: {exc}") from exc
    return data if isinstance(data, dict) else {}


def pull_request_from_event(event_name: Optional[str], payload: dict[str, Any]) -> PullRequestRef:
    if event_name != PULL_REQUEST_EVENT:
        raise EventValidationError("This action only works on pull_request events")
    pr = payload.get("pull_request")
    if not isinstance(pr, dict):
        raise EventValidationError("Could not get pull request from context")
    try:
        return PullRequestRef.from_payload(pr)
    except (KeyError, TypeError, ValueError, ValidationError) as exc:
        raise EventValidationError(f"Malformed pull request payload: {exc}") from exc


def repository_from_event(payload: dict[str, Any], default: Optional[str] = None) -> Optional[str]:
    repo = payload.get("repository") or {}
    return repo.get("full_name") or default


__all__ = ["PULL_REQUEST_EVENT", "load_event_payload", "pull_request_from_event", "repository_from_event"]
