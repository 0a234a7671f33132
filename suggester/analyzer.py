"""Pull request analysis: gather the context the classifier prompts with."""
from __future__ import annotations

from collections import Counter
from pathlib import PurePosixPath
from typing import Sequence

import structlog

from domain.models import FileChange, PRAnalysis, PullRequestRef

logger = structlog.get_logger(__name__)

TOP_EXTENSIONS = 5
SIGNIFICANT_CHANGE_LINES = 50
MAX_SIGNIFICANT_FILES = 5


def file_extension(filename: str) -> str:
    suffix = PurePosixPath(filename).suffix
    return suffix[1:] if suffix else "other"


def create_diff_summary(files: Sequence[FileChange]) -> str:
    """Short plain-text digest of a change set.

    Example::

        Files changed: 3
        Lines added: 120
        Lines deleted: 14
        Main file types: py (2), md (1)
        Significant changes in: suggester/pipeline.py
    """
    additions = sum(f.additions for f in files)
    deletions = sum(f.deletions for f in files)
    lines = [
        f"Files changed: {len(files)}",
        f"Lines added: {additions}",
        f"Lines deleted: {deletions}",
    ]

    types = Counter(file_extension(f.filename) for f in files)
    if types:
        top = ", ".join(f"{ext} ({count})" for ext, count in types.most_common(TOP_EXTENSIONS))
        lines.append(f"Main file types: {top}")

    significant = [f.filename for f in files if f.changes > SIGNIFICANT_CHANGE_LINES][:MAX_SIGNIFICANT_FILES]
    if significant:
        lines.append(f"Significant changes in: {', '.join(significant)}")

    return "\n".join(lines)


async def analyze_changes(gateway, pr: PullRequestRef, files: Sequence[FileChange]) -> PRAnalysis:
    commits = await gateway.list_commits(pr.number)
    analysis = PRAnalysis(
        title=pr.title,
        description=pr.body or "",
        commits=commits,
        files_changed=list(files),
        diff_summary=create_diff_summary(files),
    )
    logger.debug("pr_analyzed", pr=pr.number, commits=len(commits), files=len(files))
    return analysis


__all__ = ["create_diff_summary", "analyze_changes", "file_extension"]
