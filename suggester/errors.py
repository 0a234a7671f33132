"""Exception types raised across the suggester.

Only ``EventValidationError``, ``RepositoryError`` and ``GatewayError`` ever
escape a run; ``ClassificationError`` is always absorbed by the classifier's
fallback.
"""
from __future__ import annotations

from typing import Optional


class SuggesterError(Exception):
    """Base class for all suggester failures."""


class EventValidationError(SuggesterError):
    """The trigger is not a usable pull_request event."""


class RepositoryError(SuggesterError, ValueError):
    """The target repository is missing or not in ``owner/name`` form."""


class ClassificationError(SuggesterError):
    """The model response could not be turned into a changelog entry."""

    def __init__(self, message: str, *, reason: str = "invalid_response"):
        super().__init__(message)
        self.reason = reason


class GatewayError(SuggesterError):
    """A GitHub API call failed (transport error or non-2xx status)."""

    def __init__(self, operation: str, message: str, *, status_code: Optional[int] = None):
        super().__init__(f"{operation} failed: {message}")
        self.operation = operation
        self.status_code = status_code

    @property
    def is_conflict(self) -> bool:
        # stale sha on a contents write
        return self.status_code in (409, 422)


__all__ = [
    "SuggesterError",
    "EventValidationError",
    "RepositoryError",
    "ClassificationError",
    "GatewayError",
]
