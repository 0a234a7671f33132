"""Changelog rewriter: insert one entry at the place the locator found.

``rewrite`` is pure. It returns a new list built from slices of the input and
only ever adds lines: one entry, plus the Unreleased header and/or category
heading when they are missing.

Insertion rules per ``RewriteCase``:

APPEND_SECTION
    No Unreleased section and no release at all: append a new section at the
    end, separated by one blank line.
INSERT_SECTION
    No Unreleased section: insert it right above the first version header.
ADD_CATEGORY
    Unreleased exists without the heading: add the heading with its entry,
    keeping Added/Changed/Deprecated/Removed/Fixed/Security order.
APPEND_ENTRY
    The heading exists: append after its last contiguous entry.
"""
from __future__ import annotations

from typing import Optional, Sequence

from domain.models import ChangelogEntry

from .document import (
    UNRELEASED_HEADER,
    LocationResult,
    RewriteCase,
    category_heading,
    detect_newline,
    entry_line,
    is_blank,
    is_entry,
    is_heading,
    join_lines,
    split_lines,
)
from .locator import locate
from .skeleton import render_skeleton


def rewrite(lines: Sequence[str], location: LocationResult, entry: ChangelogEntry) -> list[str]:
    case = location.case
    if case is RewriteCase.APPEND_SECTION:
        return _append_section(lines, entry)
    if case is RewriteCase.INSERT_SECTION:
        assert location.first_version_index is not None
        return _insert(lines, location.first_version_index, _section_block(entry) + [""])
    if case is RewriteCase.ADD_CATEGORY:
        return _add_category(lines, location, entry)
    return _append_entry(lines, location, entry)


def generate_updated_changelog(current: Optional[str], entry: ChangelogEntry) -> str:
    """Return the full changelog text with ``entry`` added.

    A missing, empty or blank document becomes the canonical skeleton. Newline
    style and the presence of a final newline are preserved otherwise.
    """
    if current is None or not current.strip():
        return render_skeleton(entry)
    lines = split_lines(current)
    updated = rewrite(lines, locate(lines, entry.category), entry)
    return join_lines(updated, detect_newline(current), current.endswith("\n"))


def _section_block(entry: ChangelogEntry) -> list[str]:
    return [UNRELEASED_HEADER, "", category_heading(entry.category), entry_line(entry.description)]


def _category_block(entry: ChangelogEntry) -> list[str]:
    return [category_heading(entry.category), entry_line(entry.description)]


def _insert(lines: Sequence[str], at: int, block: list[str]) -> list[str]:
    return [*lines[:at], *block, *lines[at:]]


def _append_section(lines: Sequence[str], entry: ChangelogEntry) -> list[str]:
    separator = [""] if lines and not is_blank(lines[-1]) else []
    return [*lines, *separator, *_section_block(entry)]


def _add_category(lines: Sequence[str], location: LocationResult, entry: ChangelogEntry) -> list[str]:
    assert location.unreleased_index is not None and location.section_end is not None
    rank = entry.category.rank
    anchor = next((i for i, c in location.category_headings if c.rank > rank), None)

    if anchor is not None:
        block = _category_block(entry) + [""]
        if not is_blank(lines[anchor - 1]):
            block.insert(0, "")
        return _insert(lines, anchor, block)

    at = location.unreleased_index + 1
    for index in range(location.unreleased_index + 1, location.section_end):
        if not is_blank(lines[index]):
            at = index + 1
    block = [""] + _category_block(entry)
    if at < len(lines) and not is_blank(lines[at]):
        block.append("")
    return _insert(lines, at, block)


def _append_entry(lines: Sequence[str], location: LocationResult, entry: ChangelogEntry) -> list[str]:
    assert location.category_index is not None and location.section_end is not None
    end = location.section_end
    at = location.category_index + 1
    index = at
    while index < end:
        line = lines[index]
        if is_heading(line):
            break
        if is_blank(line):
            # loose list: keep going only if another entry follows the gap
            following = next((j for j in range(index, end) if not is_blank(lines[j])), None)
            if following is None or not is_entry(lines[following]):
                break
            index = following
            continue
        index += 1
        at = index
    return _insert(lines, at, [entry_line(entry.description)])


__all__ = ["rewrite", "generate_updated_changelog"]
