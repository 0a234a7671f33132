"""Markdown bodies of the pull request suggestion comment.

Both templates start with ``COMMENT_MARKER`` so a later run can find and
update its own comment instead of posting a new one.
"""
from __future__ import annotations

import difflib
from typing import Iterable, Optional

from domain.models import ChangelogEntry, IssueComment

from .core.document import split_lines

COMMENT_MARKER = "<!-- changelog-suggestion -->"
LEGACY_HEADING = "## Changelog Suggestion"
DIFF_CONTEXT_LINES = 2


def suggested_diff(current: str, updated: str, path: str = "CHANGELOG.md") -> str:
    """Unified diff fragment between the current and the rewritten changelog."""
    diff = difflib.unified_diff(
        split_lines(current),
        split_lines(updated),
        fromfile=f"a/{path}",
        tofile=f"b/{path}",
        n=DIFF_CONTEXT_LINES,
        lineterm="",
    )
    return "\n".join(diff)


def render_suggestion_comment(
    entry: ChangelogEntry,
    current_content: str,
    updated_content: str,
    path: str = "CHANGELOG.md",
) -> str:
    fragment = suggested_diff(current_content, updated_content, path)
    return f"""{COMMENT_MARKER}
## 📝 Changelog Suggestion

This PR does not include updates to `{path}`. Based on the changes, here's a suggested entry:

**Category:** `{entry.category}`
**Description:** {entry.description}

### Suggested {path} change:

```diff
{fragment}
```

<details>
<summary>Click to see the full updated {path}</summary>

```markdown
{updated_content.rstrip()}
```

</details>

---
*This suggestion was automatically generated. You can apply it directly in GitHub's UI or update your {path} manually.*"""


def render_missing_changelog_comment(entry: ChangelogEntry, full_content: str, path: str = "CHANGELOG.md") -> str:
    return f"""{COMMENT_MARKER}
## Missing {path}

This repository does not have a {path} file. It's recommended to create one to track changes over time.

**Category:** `{entry.category}`
**Description:** {entry.description}

### Suggested {path} to create:

```markdown
{full_content.rstrip()}
```

### Quick add:

The action has attempted to create this file in your PR branch. Check the "Files changed" tab to review and commit it.

---
*This suggestion follows the [Keep a Changelog](https://keepachangelog.com/en/1.1.0/) format.*"""


def find_bot_comment(comments: Iterable[IssueComment]) -> Optional[IssueComment]:
    """Return the first comment a previous run posted, if any.

    Comments written before the marker existed are recognised by their
    heading, but only when a bot account authored them.
    """
    for comment in comments:
        if COMMENT_MARKER in comment.body:
            return comment
        if comment.user_type == "Bot" and LEGACY_HEADING in comment.body:
            return comment
    return None


__all__ = [
    "COMMENT_MARKER",
    "render_suggestion_comment",
    "render_missing_changelog_comment",
    "find_bot_comment",
    "suggested_diff",
]
