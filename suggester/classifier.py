"""LLM-backed changelog entry classifier.

Talks to an OpenAI-compatible chat completions endpoint (GitHub Models by
default, authenticated with the workflow token). ``classify`` never raises:
every failure mode ends in ``fallback_entry`` so a run can always post a
suggestion.
"""
from __future__ import annotations

import json
import re
from typing import Any, Optional

import httpx
import structlog
from pydantic import ValidationError

from domain.models import ChangelogEntry, PRAnalysis

from .bootstrap import CLASSIFICATION_FALLBACKS_TOTAL
from .errors import ClassificationError

logger = structlog.get_logger(__name__)

FALLBACK_DESCRIPTION = "Updated project functionality"
MAX_COMMITS = 10
MAX_KEY_FILES = 10
KEY_FILE_CHANGE_LINES = 20

SYSTEM_PROMPT = """You are a technical writer helping maintain a CHANGELOG.md file following the Keep a Changelog format (https://keepachangelog.com/en/1.1.0/). Your task is to analyze a pull request and generate an appropriate changelog entry.

The Keep a Changelog categories are:
- Added: for new features
- Changed: for changes in existing functionality
- Deprecated: for features that will be removed
- Removed: for removed features
- Fixed: for bug fixes
- Security: for security-related changes

Your response must be in this exact JSON format:
{
"category": "one of: Added, Changed, Deprecated, Removed, Fixed, Security",
"description": "a concise, user-focused description of the change (without leading dash or PR number)"
}

Guidelines:
- Focus on user-facing impact, not implementation details
- Be concise but informative
- Use present tense
- Don't include PR numbers or technical jargon unless necessary
- If multiple categories apply, choose the most significant one"""

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)
_PR_REF_RE = re.compile(r"\s*\(?#\d+\)?")


def build_user_prompt(analysis: PRAnalysis) -> str:
    parts = [f"Pull Request Title: {analysis.title}"]

    if analysis.description:
        parts.append(f"\nPull Request Description:\n{analysis.description}")

    if analysis.commits:
        parts.append("\nCommit Messages:")
        parts.extend(f"- {c.summary}" for c in analysis.commits[:MAX_COMMITS])

    if analysis.diff_summary:
        parts.append(f"\nChange Summary:\n{analysis.diff_summary}")

    key_files = [f for f in analysis.files_changed if f.changes > KEY_FILE_CHANGE_LINES][:MAX_KEY_FILES]
    if key_files:
        parts.append("\nKey Files Modified:")
        parts.extend(f"- {f.filename} (+{f.additions}/-{f.deletions})" for f in key_files)

    parts.append("\nBased on this pull request, generate an appropriate changelog entry.")
    return "\n".join(parts)


def parse_entry_response(content: Optional[str]) -> ChangelogEntry:
    """Turn the model's message content into an entry or raise ``ClassificationError``."""
    if content is not None and not isinstance(content, str):
        raise ClassificationError("Message content is not a string", reason="invalid_response")
    if not content or not content.strip():
        raise ClassificationError("No response from model", reason="empty_response")
    text = _FENCE_RE.sub("", content.strip())
    try:
        data = json.loads(text)
    except ValueError as exc:
        raise ClassificationError(f"Response is not JSON: {exc}", reason="invalid_json") from exc
    if not isinstance(data, dict):
        raise ClassificationError("Response is not a JSON object", reason="invalid_json")

    description = data.get("description")
    if isinstance(description, str):
        description = _PR_REF_RE.sub("", description)
    try:
        return ChangelogEntry(category=data.get("category"), description=description)
    except ValidationError as exc:
        error = exc.errors()[0]
        field = error["loc"][0] if error["loc"] else "entry"
        raise ClassificationError(f"Invalid {field}: {error['msg']}", reason=f"invalid_{field}") from exc


def fallback_entry(analysis: PRAnalysis) -> ChangelogEntry:
    title = analysis.title.strip()
    try:
        return ChangelogEntry(category="Changed", description=title or FALLBACK_DESCRIPTION)
    except ValidationError:
        # a title like "-" is empty once the bullet is stripped
        return ChangelogEntry(category="Changed", description=FALLBACK_DESCRIPTION)


class EntryClassifier:
    """Chat-completions client producing one ``ChangelogEntry`` per analysis."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        model: str = "gpt-4o-mini",
        *,
        temperature: float = 0.3,
        max_tokens: int = 500,
    ):
        self._client = client
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    @property
    def name(self) -> str:
        return f"api_{self.model}"

    @classmethod
    def from_settings(cls, settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> "EntryClassifier":
        headers = {"Content-Type": "application/json"}
        if settings.github_token:
            headers["Authorization"] = f"Bearer {settings.github_token}"
        client = httpx.AsyncClient(
            base_url=settings.models_base_url.rstrip("/"),
            headers=headers,
            timeout=settings.httpx_timeout,
            transport=transport,
        )
        return cls(
            client,
            settings.model,
            temperature=settings.llm_temperature,
            max_tokens=settings.llm_max_tokens,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "EntryClassifier":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def _complete(self, analysis: PRAnalysis) -> Optional[str]:
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_user_prompt(analysis)},
            ],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "response_format": {"type": "json_object"},
        }
        try:
            response = await self._client.post("/chat/completions", json=payload)
            response.raise_for_status()
            result = response.json()
        except httpx.HTTPStatusError as exc:
            raise ClassificationError(
                f"Model endpoint returned HTTP {exc.response.status_code}", reason="http_status"
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise ClassificationError(f"Model request failed: {exc}", reason="transport") from exc

        choices = result.get("choices") if isinstance(result, dict) else None
        if not choices:
            return None
        if not isinstance(choices, list) or not isinstance(choices[0], dict):
            raise ClassificationError("Malformed choices in model response", reason="invalid_response")
        message = choices[0].get("message")
        if message is None:
            return None
        if not isinstance(message, dict):
            raise ClassificationError("Malformed choices in model response", reason="invalid_response")
        return message.get("content")

    async def classify(self, analysis: PRAnalysis) -> ChangelogEntry:
        logger.debug("classification_request", model=self.model, title=analysis.title)
        try:
            content = await self._complete(analysis)
            entry = parse_entry_response(content)
        except ClassificationError as exc:
            CLASSIFICATION_FALLBACKS_TOTAL.labels(reason=exc.reason).inc()
            logger.warning("classification_fallback", reason=exc.reason, error=str(exc), model=self.model)
            return fallback_entry(analysis)
        logger.info("classification_done", category=str(entry.category), model=self.model)
        return entry


__all__ = [
    "SYSTEM_PROMPT",
    "EntryClassifier",
    "build_user_prompt",
    "parse_entry_response",
    "fallback_entry",
]
