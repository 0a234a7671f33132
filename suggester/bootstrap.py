"""Bootstrap module for the changelog suggester.

Central responsibilities:
- Load and validate settings from environment (.env, GitHub Action inputs)
- Configure structured logging (structlog + optional rotating file handler)
- Expose Prometheus metric instruments (counters, histograms)
- Provide a shared context object for the pipeline, the action entrypoint
  and the webhook server

Design notes:
- Nothing here performs network I/O; HTTP clients are created per run
- ``bootstrap()`` is idempotent (safe to call from every request handler)
"""
from __future__ import annotations

import asyncio
import logging
import sys
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional

import httpx
import structlog
from prometheus_client import Counter, Histogram
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# ------------------------------------------------------------
# Settings
# ------------------------------------------------------------

class Settings(BaseSettings):
    """Application settings loaded from environment.

    GitHub Action inputs arrive as ``INPUT_<NAME>`` variables (hyphens kept),
    so the user-facing inputs accept both spellings.
    """

    app_name: str = Field("changelog-suggester", alias="APP_NAME")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_file: str | None = Field(None, alias="LOG_FILE")
    log_max_bytes: int = Field(2_000_000, alias="LOG_MAX_BYTES")  # ~2MB
    log_backup_count: int = Field(5, alias="LOG_BACKUP_COUNT")
    quiet_startup: bool = Field(False, alias="QUIET_STARTUP")

    # GitHub
    github_token: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("GITHUB_TOKEN", "INPUT_GITHUB-TOKEN", "INPUT_GITHUB_TOKEN"),
    )
    github_api_url: str = Field("https://api.github.com", alias="GITHUB_API_URL")
    github_repository: Optional[str] = Field(None, alias="GITHUB_REPOSITORY")  # owner/name
    github_event_name: Optional[str] = Field(None, alias="GITHUB_EVENT_NAME")
    github_event_path: Optional[str] = Field(None, alias="GITHUB_EVENT_PATH")
    github_output: Optional[str] = Field(None, alias="GITHUB_OUTPUT")
    changelog_path: str = Field(
        "CHANGELOG.md",
        validation_alias=AliasChoices("CHANGELOG_PATH", "INPUT_CHANGELOG-PATH", "INPUT_CHANGELOG_PATH"),
    )
    # Write the suggested changelog on the PR branch after commenting
    branch_suggestions: bool = Field(True, alias="BRANCH_SUGGESTIONS")

    # Model (OpenAI-compatible chat completions, GitHub Models by default)
    model: str = Field("gpt-4o-mini", validation_alias=AliasChoices("MODEL", "INPUT_MODEL"))
    models_base_url: str = Field("https://models.github.ai/inference", alias="MODELS_BASE_URL")
    llm_temperature: float = Field(0.3, alias="LLM_TEMPERATURE")
    llm_max_tokens: int = Field(500, alias="LLM_MAX_TOKENS")

    # Misc
    httpx_timeout: int = Field(20, alias="HTTPX_TIMEOUT")
    enable_metrics: bool = Field(True, alias="ENABLE_METRICS")

    # Webhook server
    webhook_secret: Optional[str] = Field(None, alias="WEBHOOK_SECRET")
    trigger_actions_raw: str = Field("opened;synchronize;reopened;ready_for_review", alias="TRIGGER_ACTIONS")
    app_host: str = Field("0.0.0.0", alias="APP_HOST")
    app_port: int = Field(8000, alias="APP_PORT")

    @field_validator("github_token", "webhook_secret")
    @classmethod
    def _blank_to_none(cls, v: Optional[str]) -> Optional[str]:  # noqa: D401
        if v is None:
            return None
        v = v.strip()
        return v or None

    @field_validator("changelog_path")
    @classmethod
    def _sanitize_path(cls, v: str) -> str:
        return v.strip().lstrip("/") or "CHANGELOG.md"

    @property
    def trigger_actions(self) -> list[str]:
        return [a.strip().lower() for a in self.trigger_actions_raw.split(";") if a.strip()]

    # Pydantic-settings v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        validate_assignment=True,
        extra="ignore",
        populate_by_name=True,
    )


# ------------------------------------------------------------
# Logging configuration (structlog)
# ------------------------------------------------------------

_SENSITIVE_KEYS = {
    "authorization",
    "token",
    "github_token",
    "webhook_secret",
    "x-hub-signature-256",
    "api_key",
}


def _scrub(value: Any) -> Any:
    if isinstance(value, dict):
        out = {}
        for k, v in value.items():
            ks = str(k).lower()
            if ks in _SENSITIVE_KEYS or any(sk in ks for sk in ("token", "secret", "authorization")):
                out[k] = "[REDACTED]"
            else:
                out[k] = _scrub(v)
        return out
    if isinstance(value, (list, tuple)):
        return [_scrub(v) for v in value]
    return value


def configure_logging(level: str = "INFO", settings: Settings | None = None) -> None:
    """Configure structured logging with structlog.

    JSON lines on stdout (the Actions log), plus a rotating file when
    ``LOG_FILE`` is set.
    """
    timestamper = structlog.processors.TimeStamper(fmt="iso", utc=True)

    def add_request_id(logger, method_name, event_dict):  # noqa: D401
        bound = structlog.contextvars.get_contextvars()
        for key in ("request_id", "delivery_id"):
            if bound.get(key):
                event_dict[key] = bound[key]
        return event_dict

    def redact_sensitive(logger, method_name, event_dict):  # noqa: D401
        return _scrub(event_dict)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            timestamper,
            add_request_id,
            structlog.processors.add_log_level,
            redact_sensitive,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level.upper(), logging.INFO)),
        # rendered lines go through the stdlib handlers below (stdout + LOG_FILE)
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handlers: list[logging.Handler] = []
    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(logging.Formatter("%(message)s"))
    handlers.append(stream_handler)

    if settings and settings.log_file:
        try:
            log_path = Path(settings.log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                settings.log_file,
                maxBytes=settings.log_max_bytes,
                backupCount=settings.log_backup_count,
                encoding="utf-8",
            )
            file_handler.setFormatter(logging.Formatter("%(message)s"))
            handlers.append(file_handler)
        except OSError as e:  # pragma: no cover
            print(f"Failed to set file handler: {e}", file=sys.stderr)

    root = logging.getLogger()
    root.handlers = handlers
    root.setLevel(getattr(logging, level.upper(), logging.INFO))


# ------------------------------------------------------------
# Metrics instruments
# ------------------------------------------------------------
CHANGELOG_RUNS_TOTAL = Counter(
    "changelog_runs_total", "Pipeline runs by outcome", labelnames=("status",)
)
CHANGELOG_RUN_DURATION_SECONDS = Histogram(
    "changelog_run_duration_seconds", "Duration of a pipeline run in seconds"
)
CLASSIFICATION_FALLBACKS_TOTAL = Counter(
    "changelog_classification_fallbacks_total", "Default entries used instead of the model answer", labelnames=("reason",)
)
COMMENT_ACTIONS_TOTAL = Counter(
    "changelog_comment_actions_total", "Suggestion comments created or updated", labelnames=("action",)
)
BRANCH_WRITES_TOTAL = Counter(
    "changelog_branch_writes_total", "Best-effort changelog writes on PR branches", labelnames=("result",)
)


# ------------------------------------------------------------
# Context dataclass
# ------------------------------------------------------------
@dataclass(slots=True)
class AppContext:
    settings: Settings
    logger: structlog.BoundLogger
    # Injected in tests to route every outgoing request to a mock
    transport: Optional[httpx.AsyncBaseTransport] = None


_context_singleton: Optional[AppContext] = None
_context_lock = asyncio.Lock()


async def bootstrap(force: bool = False, settings: Settings | None = None) -> AppContext:
    """Create (or return existing) application context.

    Args:
        force: Recreate the context even if already initialized.
        settings: Use these settings instead of reading the environment.
    """
    global _context_singleton
    if _context_singleton and not force:
        return _context_singleton

    async with _context_lock:
        if _context_singleton and not force:
            return _context_singleton

        settings = settings or Settings()  # Loads from env automatically
        configure_logging(settings.log_level, settings)
        logger = structlog.get_logger().bind(component="bootstrap")

        from .config_inspect import log_settings  # imports Settings from this module
        log_settings(logger, settings)

        log_method = logger.debug if settings.quiet_startup else logger.info
        log_method(
            "bootstrap_complete",
            model=settings.model,
            changelog_path=settings.changelog_path,
            repository=settings.github_repository,
            branch_suggestions=settings.branch_suggestions,
        )
        ctx = AppContext(settings=settings, logger=logger.bind(subsystem="core"))
        _context_singleton = ctx
        return ctx


# ------------------------------------------------------------
# Helper accessors
# ------------------------------------------------------------
async def get_context() -> AppContext:
    """Public accessor for the global application context."""
    return await bootstrap()


def reset_context() -> None:
    """Forget the cached context (tests, settings reload)."""
    global _context_singleton
    _context_singleton = None
