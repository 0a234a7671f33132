import json
import os
from typing import Any, Optional

import httpx
import pytest

from domain.models import ChangelogEntry, CommitInfo, FileChange, IssueComment, PullRequestRef, RepoFile
from suggester.bootstrap import Settings, reset_context
from suggester.errors import GatewayError

# Quiet logging for the whole run; each test builds its Settings with make_settings()
os.environ.setdefault("QUIET_STARTUP", "1")
os.environ.setdefault("LOG_LEVEL", "WARNING")

REPO = "octo/widgets"


def make_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "github_token": "test-token",
        "github_repository": REPO,
        "github_api_url": "https://api.github.test",
        "models_base_url": "https://models.test/inference",
        "model": "gpt-4o-mini",
        "llm_temperature": 0.3,
        "llm_max_tokens": 500,
        "webhook_secret": None,
        "log_file": None,
        "log_level": "WARNING",
        "quiet_startup": True,
        "github_event_name": None,
        "github_event_path": None,
        "github_output": None,
        "changelog_path": "CHANGELOG.md",
        "branch_suggestions": True,
        "enable_metrics": True,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def make_pr(**overrides: Any) -> PullRequestRef:
    data: dict[str, Any] = {
        "number": 7,
        "title": "Add dark mode",
        "body": "Adds a dark theme toggle.",
        "base_ref": "main",
        "head_ref": "feature/dark-mode",
        "head_repo": REPO,
    }
    data.update(overrides)
    return PullRequestRef(**data)


def pr_payload(number: int = 7, action: str = "opened", title: str = "Add dark mode") -> dict[str, Any]:
    return {
        "action": action,
        "pull_request": {
            "number": number,
            "title": title,
            "body": "Adds a dark theme toggle.",
            "base": {"ref": "main"},
            "head": {"ref": "feature/dark-mode", "repo": {"full_name": REPO}},
        },
        "repository": {"full_name": REPO},
    }


class FakeGateway:
    """In-memory stand-in for GitHubGateway recording every call."""

    def __init__(
        self,
        files: Optional[list[FileChange]] = None,
        base_file: Optional[RepoFile] = None,
        head_file: Optional[RepoFile] = None,
        comments: Optional[list[IssueComment]] = None,
        commits: Optional[list[CommitInfo]] = None,
        fail: Optional[dict[str, GatewayError]] = None,
    ):
        self.repository = REPO
        self.files = files if files is not None else [FileChange(filename="src/app.py", additions=30, deletions=2)]
        self.base_file = base_file
        self.head_file = head_file
        self.comments = comments or []
        self.commits = commits or [CommitInfo(sha="abc123", message="feat: dark mode\n\nlong body")]
        self.fail = fail or {}
        self.calls: list[tuple[str, Any]] = []
        self.writes: list[dict[str, Any]] = []
        self.posted: list[str] = []

    def _check(self, operation: str) -> None:
        if operation in self.fail:
            raise self.fail[operation]

    async def list_changed_files(self, number):
        self.calls.append(("list_changed_files", number))
        self._check("list_changed_files")
        return self.files

    async def list_commits(self, number):
        self.calls.append(("list_commits", number))
        self._check("list_commits")
        return self.commits

    async def read_file(self, path, ref, *, repository=None):
        self.calls.append(("read_file", ref))
        self._check(f"read_file:{ref}")
        return self.head_file if ref != "main" else self.base_file

    async def write_file(self, path, content, *, branch, message, sha=None, repository=None):
        self.calls.append(("write_file", branch))
        self._check("write_file")
        self.writes.append({"path": path, "content": content, "branch": branch, "message": message, "sha": sha})

    async def list_comments(self, number):
        self.calls.append(("list_comments", number))
        self._check("list_comments")
        return self.comments

    async def create_comment(self, number, body):
        self.calls.append(("create_comment", number))
        self._check("create_comment")
        self.posted.append(body)
        return IssueComment(id=1001, body=body, user_login="github-actions[bot]", user_type="Bot")

    async def update_comment(self, comment_id, body):
        self.calls.append(("update_comment", comment_id))
        self._check("update_comment")
        self.posted.append(body)
        return IssueComment(id=comment_id, body=body, user_login="github-actions[bot]", user_type="Bot")

    def operations(self) -> list[str]:
        return [name for name, _ in self.calls]


class FakeClassifier:
    def __init__(self, entry: Optional[ChangelogEntry] = None):
        self.entry = entry or ChangelogEntry(category="Added", description="Dark mode toggle in settings")
        self.seen = []

    async def classify(self, analysis):
        self.seen.append(analysis)
        return self.entry


def chat_response(content: Optional[str]) -> dict[str, Any]:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def json_response(data: Any, status_code: int = 200, headers: Optional[dict[str, str]] = None) -> httpx.Response:
    return httpx.Response(status_code, content=json.dumps(data).encode(), headers={"Content-Type": "application/json", **(headers or {})})


@pytest.fixture(autouse=True)
def fresh_ctx():
    reset_context()
    yield
    reset_context()


def github_api(calls, *, files_status=200):
    """MockTransport handler emulating GitHub + GitHub Models for one PR."""

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append((request.method, request.url.host, request.url.path))
        path = request.url.path
        if request.url.host == "models.test":
            return json_response(chat_response('{"category": "Added", "description": "Dark mode toggle"}'))
        if path == f"/repos/{REPO}/pulls/7/files":
            if files_status != 200:
                return json_response({"message": "Server Error"}, status_code=files_status)
            return json_response([{"filename": "src/theme.py", "additions": 30, "deletions": 2}])
        if path == f"/repos/{REPO}/pulls/7/commits":
            return json_response([{"sha": "abc", "commit": {"message": "feat: dark mode"}}])
        if path == f"/repos/{REPO}/contents/CHANGELOG.md":
            if request.method == "GET":
                return json_response({"message": "Not Found"}, status_code=404)
            return json_response({"content": {"sha": "new"}}, status_code=201)
        if path == f"/repos/{REPO}/issues/7/comments":
            if request.method == "GET":
                return json_response([])
            return json_response({"id": 99, "body": "x", "user": {"type": "Bot"}}, status_code=201)
        return json_response({"message": "unexpected"}, status_code=418)

    return handler
