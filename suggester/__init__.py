"""Pull request changelog suggester.

MODULES:
    - core: changelog document model and insertion engine (pure)
    - bootstrap: settings, logging, metrics and application context
    - analyzer: pull request digest used to build the prompt
    - classifier: LLM classification with a never-fatal fallback
    - github: GitHub REST gateway
    - comments: suggestion comment templates
    - pipeline: the ordered one-shot run

USAGE:
    from suggester import generate_updated_changelog, suggest_changelog
"""

from .core import generate_updated_changelog, locate, rewrite  # noqa: F401
from .errors import ClassificationError, EventValidationError, GatewayError, RepositoryError, SuggesterError  # noqa: F401
from .pipeline import SuggestionResult, SuggestionStatus, suggest_changelog  # noqa: F401

__all__ = [
    "generate_updated_changelog",
    "locate",
    "rewrite",
    "suggest_changelog",
    "SuggestionResult",
    "SuggestionStatus",
    "SuggesterError",
    "RepositoryError",
    "EventValidationError",
    "ClassificationError",
    "GatewayError",
]
