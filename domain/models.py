from __future__ import annotations

import re
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Category(str, Enum):
    """Keep a Changelog categories, in the order the convention lists them."""
    ADDED = "Added"
    CHANGED = "Changed"
    DEPRECATED = "Deprecated"
    REMOVED = "Removed"
    FIXED = "Fixed"
    SECURITY = "Security"

    def __str__(self) -> str:
        return self.value

    @property
    def rank(self) -> int:
        return list(Category).index(self)

    @classmethod
    def parse(cls, value: Any) -> "Category":
        """Resolve a category from its name, ignoring case and surrounding blanks."""
        if isinstance(value, Category):
            return value
        text = str(value or "").strip().lower()
        for member in cls:
            if member.value.lower() == text:
                return member
        raise ValueError(f"Invalid category: {value!r}")


_LEADING_BULLET_RE = re.compile(r"^\s*[-*+](?:\s+|$)")
_WHITESPACE_RE = re.compile(r"\s+")


class ChangelogEntry(BaseModel):
    """One change to record, as produced by the classifier.

    Frozen so the rewrite engine can treat it as a plain value. The description
    is normalised to a single line without a leading bullet marker.
    """
    model_config = ConfigDict(frozen=True)

    category: Category
    description: str = Field(..., description="Single-line, user-facing description")

    @field_validator("category", mode="before")
    @classmethod
    def _coerce_category(cls, v: Any) -> Category:
        return Category.parse(v)

    @field_validator("description")
    @classmethod
    def _normalize_description(cls, v: str) -> str:
        text = _LEADING_BULLET_RE.sub("", v.strip())
        text = _WHITESPACE_RE.sub(" ", text).strip()
        if not text:
            raise ValueError("Empty description")
        return text


class CommitInfo(BaseModel):
    sha: str
    message: str

    @property
    def summary(self) -> str:
        return self.message.split("\n", 1)[0].strip()


class FileChange(BaseModel):
    filename: str
    additions: int = 0
    deletions: int = 0
    patch: Optional[str] = None

    @property
    def changes(self) -> int:
        return self.additions + self.deletions


class PRAnalysis(BaseModel):
    """Aggregated pull request context handed to the classifier."""
    title: str
    description: str = ""
    commits: list[CommitInfo] = Field(default_factory=list)
    files_changed: list[FileChange] = Field(default_factory=list)
    diff_summary: str = ""


class PullRequestRef(BaseModel):
    """The subset of a pull_request webhook payload the pipeline relies on."""
    number: int
    title: str = ""
    body: Optional[str] = None
    base_ref: str
    head_ref: str
    head_repo: Optional[str] = Field(None, description="owner/name of the head repository (forks)")

    @classmethod
    def from_payload(cls, pr: dict[str, Any]) -> "PullRequestRef":
        base = pr.get("base") or {}
        head = pr.get("head") or {}
        return cls(
            number=int(pr["number"]),
            title=pr.get("title") or "",
            body=pr.get("body"),
            base_ref=base.get("ref", ""),
            head_ref=head.get("ref", ""),
            head_repo=(head.get("repo") or {}).get("full_name"),
        )


class RepoFile(BaseModel):
    path: str
    content: str
    sha: str


class IssueComment(BaseModel):
    id: int
    body: str = ""
    user_login: Optional[str] = None
    user_type: Optional[str] = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "IssueComment":
        user = data.get("user") or {}
        return cls(
            id=int(data["id"]),
            body=data.get("body") or "",
            user_login=user.get("login"),
            user_type=user.get("type"),
        )
