"""Tests for suggester/core/locator.py - single-pass section scan."""
from domain.models import Category
from suggester.core import LineRole, RewriteCase, iter_line_roles, locate


DOC = [
    "# Changelog",                  # 0
    "",                             # 1
    "## [Unreleased]",              # 2
    "",                             # 3
    "### Added",                    # 4
    "- new thing",                  # 5
    "",                             # 6
    "### Fixed",                    # 7
    "- bug",                        # 8
    "",                             # 9
    "## [1.2.0] - 2024-03-01",      # 10
    "### Changed",                  # 11
    "- old change",                 # 12
]


class TestLineRoles:

    def test_roles_follow_section(self):
        roles = list(iter_line_roles(DOC))
        assert roles[0] is LineRole.BEFORE_SECTION
        assert roles[2] is LineRole.SECTION_HEADER
        assert roles[3] is LineRole.IN_UNRELEASED
        assert roles[4] is LineRole.IN_CATEGORY
        assert roles[8] is LineRole.IN_CATEGORY
        assert all(r is LineRole.PAST_BOUNDARY for r in roles[10:])

    def test_non_category_heading_leaves_category(self):
        roles = list(iter_line_roles(["## [Unreleased]", "### Added", "- a", "### Notes", "text"]))
        assert roles[3] is LineRole.IN_UNRELEASED
        assert roles[4] is LineRole.IN_UNRELEASED

    def test_no_unreleased_everything_before_section(self):
        roles = list(iter_line_roles(["# Changelog", "## [1.0.0]", "### Added"]))
        assert set(roles) == {LineRole.BEFORE_SECTION}

    def test_one_role_per_line(self):
        assert len(list(iter_line_roles(DOC))) == len(DOC)
        assert list(iter_line_roles([])) == []


class TestLocate:

    def test_finds_existing_category(self):
        loc = locate(DOC, Category.FIXED)
        assert loc.unreleased_index == 2
        assert loc.section_end == 10
        assert loc.category_index == 7
        assert loc.first_version_index == 10
        assert loc.case is RewriteCase.APPEND_ENTRY

    def test_category_after_boundary_is_ignored(self):
        loc = locate(DOC, "Changed")
        assert loc.category_index is None
        assert loc.case is RewriteCase.ADD_CATEGORY

    def test_collects_section_headings_in_order(self):
        loc = locate(DOC, Category.SECURITY)
        assert loc.category_headings == ((4, Category.ADDED), (7, Category.FIXED))

    def test_section_runs_to_end_without_version(self):
        lines = ["# Changelog", "## [Unreleased]", "### Added", "- a"]
        loc = locate(lines, Category.ADDED)
        assert loc.section_end == len(lines)
        assert loc.first_version_index is None

    def test_second_unreleased_header_closes_section(self):
        lines = ["## [Unreleased]", "- stray", "## Unreleased", "### Fixed", "- nope"]
        loc = locate(lines, Category.FIXED)
        assert loc.unreleased_index == 0
        assert loc.section_end == 2
        assert loc.category_index is None

    def test_unreleased_header_variants(self):
        for header in ("## Unreleased", "## [unreleased]", "##  [UNRELEASED] - soon"):
            assert locate([header, "### Added"], "Added").unreleased_index == 0

    def test_version_header_variants(self):
        for header in ("## 1.0.0", "## [v2.10.3] - 2024-01-01", "## v0.1.0"):
            assert locate(["# Changelog", header], "Added").first_version_index == 1

    def test_heading_must_match_exactly(self):
        lines = ["## [Unreleased]", "### Added stuff", "#### Added", "### added"]
        assert locate(lines, "Added").category_index is None

    def test_trailing_whitespace_on_heading_tolerated(self):
        assert locate(["## [Unreleased]", "### Added  "], "Added").category_index == 1

    def test_no_unreleased_anchors_on_first_version(self):
        loc = locate(["# Changelog", "", "## [1.0.0] - 2024-01-01", "### Added", "- old"], "Added")
        assert loc.unreleased_index is None
        assert loc.section_end is None
        assert loc.category_index is None
        assert loc.first_version_index == 2
        assert loc.case is RewriteCase.INSERT_SECTION

    def test_empty_document(self):
        loc = locate([], Category.ADDED)
        assert not loc.has_unreleased
        assert loc.case is RewriteCase.APPEND_SECTION
