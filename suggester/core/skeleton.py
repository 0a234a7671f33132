"""Canonical changelog used when a repository has none yet."""
from __future__ import annotations

from domain.models import ChangelogEntry

from .document import UNRELEASED_HEADER, category_heading, entry_line, join_lines

KEEP_A_CHANGELOG_URL = "https://keepachangelog.com/en/1.1.0/"
SEMVER_URL = "https://semver.org/spec/v2.0.0.html"

PREAMBLE = (
    "# Changelog",
    "",
    "All notable changes to this project will be documented in this file.",
    "",
    f"The format is based on [Keep a Changelog]({KEEP_A_CHANGELOG_URL}),",
    f"and this project adheres to [Semantic Versioning]({SEMVER_URL}).",
)


def create_skeleton(entry: ChangelogEntry) -> list[str]:
    return [
        *PREAMBLE,
        "",
        UNRELEASED_HEADER,
        "",
        category_heading(entry.category),
        entry_line(entry.description),
    ]


def render_skeleton(entry: ChangelogEntry, newline: str = "\n") -> str:
    return join_lines(create_skeleton(entry), newline)


__all__ = ["PREAMBLE", "create_skeleton", "render_skeleton"]
