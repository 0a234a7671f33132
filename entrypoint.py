"""Unified entrypoint for the GitHub Action and the webhook server.

Behavior:
 - Default (Action mode): reads the event GitHub Actions provides
   (GITHUB_EVENT_NAME / GITHUB_EVENT_PATH), runs the pipeline once, writes
   ``skipped``, ``category`` and ``description`` to GITHUB_OUTPUT, exits 0/1.
 - ``--serve``: starts the FastAPI webhook server with uvicorn on APP_HOST / APP_PORT.
 - Honors LOG_LEVEL / LOG_FILE / LOG_MAX_BYTES / LOG_BACKUP_COUNT via bootstrap settings.
 - Test shortcut: set ENTRYPOINT_TEST_MODE=1 to return before doing anything.

Usage (source):
  python entrypoint.py
  python entrypoint.py --serve
"""
from __future__ import annotations

import argparse
import asyncio
import os
import sys
from pathlib import Path
from typing import Optional, Sequence

import structlog

from suggester.bootstrap import AppContext, bootstrap
from suggester.classifier import EntryClassifier
from suggester.errors import SuggesterError
from suggester.event import load_event_payload, pull_request_from_event, repository_from_event
from suggester.github import GitHubGateway
from suggester.pipeline import SuggestionResult, suggest_changelog

logger = structlog.get_logger(__name__)


def _parse_args(argv: Optional[Sequence[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Suggest a Keep a Changelog entry for a pull request")
    parser.add_argument("--serve", action="store_true", help="Run the webhook server instead of a single Action run")
    return parser.parse_args(argv)


def write_outputs(path: Optional[str], result: SuggestionResult) -> None:
    """Append step outputs in the ``name=value`` format GitHub Actions reads."""
    if not path:
        return
    outputs = {
        "skipped": "true" if result.skipped else "false",
        "category": str(result.entry.category) if result.entry else "",
        "description": result.entry.description if result.entry else "",
    }
    with Path(path).open("a", encoding="utf-8") as fh:
        for key, value in outputs.items():
            fh.write(f"{key}={value}\n")


async def run_action(ctx: AppContext) -> SuggestionResult:
    settings = ctx.settings
    payload = load_event_payload(settings.github_event_path)
    pr = pull_request_from_event(settings.github_event_name, payload)
    repository = repository_from_event(payload, settings.github_repository)
    async with GitHubGateway.from_settings(settings, repository, ctx.transport) as gateway, \
            EntryClassifier.from_settings(settings, ctx.transport) as classifier:
        return await suggest_changelog(
            pr,
            gateway,
            classifier,
            changelog_path=settings.changelog_path,
            branch_suggestions=settings.branch_suggestions,
            logger=ctx.logger.bind(component="action"),
        )


async def _run_server(ctx: AppContext) -> None:
    import uvicorn

    config = uvicorn.Config(
        "server.main:app",
        host=ctx.settings.app_host,
        port=ctx.settings.app_port,
        log_level=ctx.settings.log_level.lower(),
    )
    await uvicorn.Server(config).serve()


async def main(argv: Optional[Sequence[str]] = None) -> int:
    # Test shortcut: bail out quickly (used by unit test)
    if os.environ.get("ENTRYPOINT_TEST_MODE") == "1":
        logger.info("entrypoint_test_mode")
        return 0
    args = _parse_args(argv)
    ctx = await bootstrap()

    if args.serve:
        ctx.logger.info("server_starting", host=ctx.settings.app_host, port=ctx.settings.app_port)
        await _run_server(ctx)
        return 0

    try:
        result = await run_action(ctx)
    except SuggesterError as exc:
        ctx.logger.error("run_failed", error=str(exc))
        print(f"::error::{exc}")
        return 1
    write_outputs(ctx.settings.github_output, result)
    if result.skipped:
        ctx.logger.info("run_complete", status=str(result.status))
    else:
        ctx.logger.info("run_complete", **result.to_dict())
    return 0


def run() -> None:
    try:
        code = asyncio.run(main())
    except KeyboardInterrupt:
        print("\n[entrypoint] Interrupted")
        code = 130
    sys.exit(code)


if __name__ == "__main__":
    run()
