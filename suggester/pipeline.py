"""One-shot suggestion pipeline for a single pull request.

Steps run strictly in order, one outstanding call at a time:

1. list changed files; stop when the changelog is already part of the PR
2. gather commits and classify the change
3. read the changelog on the base branch (absent is fine)
4. locate + rewrite (or synthesize the skeleton)
5. create or update the suggestion comment
6. best-effort write of the changelog on the PR head branch

Steps 1-5 propagate ``GatewayError``; step 6 only logs and records failures.
"""
from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from pathlib import PurePosixPath
from typing import Any, Optional

import structlog

from domain.models import ChangelogEntry, PullRequestRef

from .analyzer import analyze_changes
from .bootstrap import (
    BRANCH_WRITES_TOTAL,
    CHANGELOG_RUN_DURATION_SECONDS,
    CHANGELOG_RUNS_TOTAL,
    COMMENT_ACTIONS_TOTAL,
)
from .comments import find_bot_comment, render_missing_changelog_comment, render_suggestion_comment
from .core import generate_updated_changelog, render_skeleton
from .errors import GatewayError


class SuggestionStatus(str, Enum):
    SKIPPED = "skipped"
    SUGGESTED = "suggested"

    def __str__(self) -> str:
        return self.value


class BranchWrite(str, Enum):
    WRITTEN = "written"
    SKIPPED = "skipped"
    CONFLICT = "conflict"
    FAILED = "failed"

    def __str__(self) -> str:
        return self.value


@dataclass(slots=True)
class SuggestionResult:
    status: SuggestionStatus
    entry: Optional[ChangelogEntry] = None
    changelog_existed: Optional[bool] = None
    comment_action: Optional[str] = None  # created | updated
    comment_id: Optional[int] = None
    branch_write: Optional[BranchWrite] = None
    branch_error: Optional[str] = None
    updated_content: Optional[str] = None

    @property
    def skipped(self) -> bool:
        return self.status is SuggestionStatus.SKIPPED

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": str(self.status),
            "skipped": self.skipped,
            "category": str(self.entry.category) if self.entry else None,
            "description": self.entry.description if self.entry else None,
            "changelog_existed": self.changelog_existed,
            "comment_action": self.comment_action,
            "comment_id": self.comment_id,
            "branch_write": str(self.branch_write) if self.branch_write else None,
            "branch_error": self.branch_error,
        }


def is_changelog_path(filename: str, changelog_path: str = "CHANGELOG.md") -> bool:
    """True when ``filename`` is the changelog, at the root or in any directory."""
    name = PurePosixPath(changelog_path).name
    return filename == changelog_path or filename == name or filename.endswith(f"/{name}")


async def suggest_changelog(
    pr: PullRequestRef,
    gateway,
    classifier,
    *,
    changelog_path: str = "CHANGELOG.md",
    branch_suggestions: bool = True,
    logger=None,
) -> SuggestionResult:
    log = (logger or structlog.get_logger(__name__)).bind(pr=pr.number, repository=gateway.repository)
    started = time.perf_counter()
    try:
        result = await _run(pr, gateway, classifier, changelog_path, branch_suggestions, log)
    except Exception:
        CHANGELOG_RUNS_TOTAL.labels(status="error").inc()
        raise
    finally:
        CHANGELOG_RUN_DURATION_SECONDS.observe(time.perf_counter() - started)
    CHANGELOG_RUNS_TOTAL.labels(status=str(result.status)).inc()
    return result


async def _run(pr, gateway, classifier, changelog_path, branch_suggestions, log) -> SuggestionResult:
    # 1
    files = await gateway.list_changed_files(pr.number)
    if any(is_changelog_path(f.filename, changelog_path) for f in files):
        log.info("changelog_already_modified", path=changelog_path)
        return SuggestionResult(status=SuggestionStatus.SKIPPED)

    # 2
    analysis = await analyze_changes(gateway, pr, files)
    entry = await classifier.classify(analysis)
    log.info("entry_generated", category=str(entry.category), description=entry.description)

    # 3
    current = await gateway.read_file(changelog_path, pr.base_ref)
    # an empty file is reported as missing and replaced by the skeleton
    existed = current is not None and current.content.strip() != ""
    base_sha = current.sha if current is not None else None

    # 4
    if existed:
        updated = generate_updated_changelog(current.content, entry)
        body = render_suggestion_comment(entry, current.content, updated, changelog_path)
    else:
        updated = render_skeleton(entry)
        body = render_missing_changelog_comment(entry, updated, changelog_path)

    # 5
    try:
        previous = find_bot_comment(await gateway.list_comments(pr.number))
        if previous is not None:
            comment = await gateway.update_comment(previous.id, body)
            action = "updated"
        else:
            comment = await gateway.create_comment(pr.number, body)
            action = "created"
    except GatewayError as exc:
        log.error("comment_failed", error=str(exc), status_code=exc.status_code)
        raise
    COMMENT_ACTIONS_TOTAL.labels(action=action).inc()
    log.info("comment_posted", action=action, comment_id=comment.id)

    result = SuggestionResult(
        status=SuggestionStatus.SUGGESTED,
        entry=entry,
        changelog_existed=existed,
        comment_action=action,
        comment_id=comment.id,
        updated_content=updated,
    )

    # 6
    if not branch_suggestions:
        result.branch_write = BranchWrite.SKIPPED
    else:
        await _write_branch(pr, gateway, entry, updated, existed, base_sha, changelog_path, result, log)
    BRANCH_WRITES_TOTAL.labels(result=str(result.branch_write)).inc()
    return result


async def _write_branch(pr, gateway, entry, synthesized, existed, base_sha, changelog_path, result, log) -> None:
    target = pr.head_repo if pr.head_repo and pr.head_repo != gateway.repository else None
    try:
        if not existed:
            await gateway.write_file(
                changelog_path,
                synthesized,
                branch=pr.head_ref,
                message=f"Add {changelog_path} with entry for PR #{pr.number}",
                sha=base_sha,
                repository=target,
            )
        else:
            head = await gateway.read_file(changelog_path, pr.head_ref, repository=target)
            if head is None:
                log.info("branch_write_skipped", reason="absent_on_head", branch=pr.head_ref)
                result.branch_write = BranchWrite.SKIPPED
                return
            await gateway.write_file(
                changelog_path,
                generate_updated_changelog(head.content, entry),
                branch=pr.head_ref,
                message=f"Update {changelog_path} for PR #{pr.number}",
                sha=head.sha,
                repository=target,
            )
    except GatewayError as exc:
        result.branch_write = BranchWrite.CONFLICT if exc.is_conflict else BranchWrite.FAILED
        result.branch_error = str(exc)
        log.warning("branch_write_failed", error=str(exc), status_code=exc.status_code, branch=pr.head_ref)
        return
    result.branch_write = BranchWrite.WRITTEN
    log.info("branch_write_done", branch=pr.head_ref, created=not existed)


__all__ = [
    "BranchWrite",
    "SuggestionResult",
    "SuggestionStatus",
    "is_changelog_path",
    "suggest_changelog",
]
