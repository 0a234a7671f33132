"""Section locator: one pass over a changelog to find where an entry belongs.

Each line gets a role relative to the canonical (first) Unreleased section:

    BEFORE_SECTION  -> SECTION_HEADER -> IN_UNRELEASED <-> IN_CATEGORY -> PAST_BOUNDARY

The section closes at the next ReleaseHeader of any kind. Category headings
are only recognised inside the section, so a lookup never reaches into a
released version.
"""
from __future__ import annotations

from typing import Iterator, Optional, Sequence

from domain.models import Category

from .document import (
    LineRole,
    LocationResult,
    category_heading,
    heading_category,
    is_heading,
    is_release_header,
    is_unreleased_header,
    is_version_header,
)


def iter_line_roles(lines: Sequence[str]) -> Iterator[LineRole]:
    """Yield the role of every line, in order."""
    state = LineRole.BEFORE_SECTION
    for line in lines:
        if state is LineRole.BEFORE_SECTION:
            if is_unreleased_header(line):
                state = LineRole.IN_UNRELEASED
                yield LineRole.SECTION_HEADER
                continue
        elif state in (LineRole.IN_UNRELEASED, LineRole.IN_CATEGORY):
            if is_release_header(line):
                state = LineRole.PAST_BOUNDARY
            elif heading_category(line) is not None:
                state = LineRole.IN_CATEGORY
            elif is_heading(line):
                state = LineRole.IN_UNRELEASED
        yield state


def locate(lines: Sequence[str], category: Category | str) -> LocationResult:
    """Report where the Unreleased section, its boundary and ``category`` sit."""
    target = category_heading(category)
    unreleased_index: Optional[int] = None
    section_end: Optional[int] = None
    category_index: Optional[int] = None
    first_version_index: Optional[int] = None
    headings: list[tuple[int, Category]] = []

    for index, (line, role) in enumerate(zip(lines, iter_line_roles(lines))):
        if first_version_index is None and is_version_header(line):
            first_version_index = index
        if role is LineRole.SECTION_HEADER:
            unreleased_index = index
        elif role is LineRole.PAST_BOUNDARY:
            if section_end is None:
                section_end = index
            if first_version_index is not None:
                break
        elif role is LineRole.IN_CATEGORY:
            found = heading_category(line)
            if found is not None:
                headings.append((index, found))
                if category_index is None and line.rstrip() == target:
                    category_index = index

    if unreleased_index is not None and section_end is None:
        section_end = len(lines)

    return LocationResult(
        unreleased_index=unreleased_index,
        section_end=section_end,
        category_index=category_index,
        first_version_index=first_version_index,
        category_headings=tuple(headings),
    )


__all__ = ["iter_line_roles", "locate"]
