"""Line vocabulary of a Keep a Changelog document.

A document is handled as a plain list of lines. This module holds everything
the locator and the rewriter agree on:

- header / heading / entry predicates (restricted Keep a Changelog grammar,
  no code-fence awareness)
- ``LineRole``: the role each line plays relative to the Unreleased section
- ``LocationResult``: what the locator found, and which rewrite it implies
- helpers to split and join text without losing newline style
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from domain.models import Category

UNRELEASED_HEADER = "## [Unreleased]"

UNRELEASED_HEADER_RE = re.compile(r"^##\s+\[?unreleased\b\]?", re.IGNORECASE)
VERSION_HEADER_RE = re.compile(r"^##\s+\[?v?\d+\.\d+\.\d+")
ENTRY_RE = re.compile(r"^\s*[-*+]\s+")
LINE_BREAK_RE = re.compile(r"\r?\n")

_CATEGORY_BY_HEADING = {f"### {c.value}": c for c in Category}


class LineRole(str, Enum):
    BEFORE_SECTION = "before_section"
    SECTION_HEADER = "section_header"
    IN_UNRELEASED = "in_unreleased"
    IN_CATEGORY = "in_category"
    PAST_BOUNDARY = "past_boundary"

    def __str__(self) -> str:
        return self.value


class RewriteCase(str, Enum):
    APPEND_SECTION = "append_section"  # no Unreleased, no version header
    INSERT_SECTION = "insert_section"  # no Unreleased, above first version header
    ADD_CATEGORY = "add_category"  # Unreleased without the target heading
    APPEND_ENTRY = "append_entry"  # target heading already present

    def __str__(self) -> str:
        return self.value


def is_blank(line: str) -> bool:
    return not line.strip()


def is_unreleased_header(line: str) -> bool:
    return bool(UNRELEASED_HEADER_RE.match(line))


def is_version_header(line: str) -> bool:
    return bool(VERSION_HEADER_RE.match(line))


def is_release_header(line: str) -> bool:
    return is_unreleased_header(line) or is_version_header(line)


def is_heading(line: str) -> bool:
    """H2 or deeper; the H1 title never bounds a category."""
    return line.startswith("##")


def is_entry(line: str) -> bool:
    return bool(ENTRY_RE.match(line))


def heading_category(line: str) -> Optional[Category]:
    return _CATEGORY_BY_HEADING.get(line.rstrip())


def category_heading(category: Category | str) -> str:
    return f"### {Category.parse(category)}"


def entry_line(description: str) -> str:
    return f"- {description}"


@dataclass(frozen=True, slots=True)
class LocationResult:
    """Positions found by a single scan of the document.

    ``section_end`` is the index of the ReleaseHeader closing the Unreleased
    section, or ``len(lines)`` when the section runs to the end. It is None
    when there is no Unreleased section at all.
    """
    unreleased_index: Optional[int] = None
    section_end: Optional[int] = None
    category_index: Optional[int] = None
    first_version_index: Optional[int] = None
    category_headings: tuple[tuple[int, Category], ...] = ()

    @property
    def has_unreleased(self) -> bool:
        return self.unreleased_index is not None

    @property
    def has_category(self) -> bool:
        return self.category_index is not None

    @property
    def case(self) -> RewriteCase:
        if not self.has_unreleased:
            if self.first_version_index is None:
                return RewriteCase.APPEND_SECTION
            return RewriteCase.INSERT_SECTION
        if self.has_category:
            return RewriteCase.APPEND_ENTRY
        return RewriteCase.ADD_CATEGORY


def detect_newline(text: str) -> str:
    return "\r\n" if "\r\n" in text else "\n"


def split_lines(text: str) -> list[str]:
    """Split on ``\\n`` and ``\\r\\n`` only; a final newline does not produce an empty line.

    Form feeds, U+2028 and the other characters ``str.splitlines`` treats as
    breaks stay inside their line.
    """
    if not text:
        return []
    lines = LINE_BREAK_RE.split(text)
    if lines[-1] == "":
        lines.pop()
    return lines


def join_lines(lines: Sequence[str], newline: str = "\n", trailing_newline: bool = True) -> str:
    body = newline.join(lines)
    return body + newline if trailing_newline and lines else body


__all__ = [
    "UNRELEASED_HEADER",
    "LineRole",
    "RewriteCase",
    "LocationResult",
    "is_blank",
    "is_unreleased_header",
    "is_version_header",
    "is_release_header",
    "is_heading",
    "is_entry",
    "heading_category",
    "category_heading",
    "entry_line",
    "detect_newline",
    "split_lines",
    "join_lines",
]
