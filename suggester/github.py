"""GitHub REST gateway (httpx, async).

Thin wrapper over the handful of endpoints the pipeline needs. Each method
issues its request(s) once; any transport failure or non-2xx answer becomes a
``GatewayError`` carrying the operation name and status code. The one
exception is ``read_file``: a 404 means "no such file at this ref" and is
returned as None. Content that cannot be decoded to UTF-8 text is a
``GatewayError`` as well.
"""
from __future__ import annotations

import base64
from typing import Any, Optional

import httpx
import structlog

from domain.models import CommitInfo, FileChange, IssueComment, RepoFile

from .errors import GatewayError, RepositoryError

logger = structlog.get_logger(__name__)

API_VERSION = "2022-11-28"
PER_PAGE = 100
RAW_MEDIA_TYPE = "application/vnd.github.raw"


class GitHubGateway:
    """Repository operations scoped to one ``owner/name`` repository."""

    def __init__(self, client: httpx.AsyncClient, repository: str):
        _check_repository(repository)
        self._client = client
        self.repository = repository

    @classmethod
    def from_settings(
        cls,
        settings,
        repository: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "GitHubGateway":
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": API_VERSION,
            "User-Agent": settings.app_name,
        }
        repository = repository or settings.github_repository or ""
        _check_repository(repository)
        if settings.github_token:
            headers["Authorization"] = f"Bearer {settings.github_token}"
        client = httpx.AsyncClient(
            base_url=settings.github_api_url.rstrip("/"),
            headers=headers,
            timeout=settings.httpx_timeout,
            transport=transport,
        )
        return cls(client, repository)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "GitHubGateway":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # ------------------------------------------------------------
    # Low level
    # ------------------------------------------------------------
    def _repo_url(self, suffix: str, repository: Optional[str] = None) -> str:
        return f"/repos/{repository or self.repository}{suffix}"

    async def _request(self, operation: str, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise GatewayError(operation, str(exc) or type(exc).__name__) from exc
        if response.status_code >= 400:
            message = _error_message(response)
            raise GatewayError(operation, f"HTTP {response.status_code}: {message}", status_code=response.status_code)
        return response

    async def _paginate(self, operation: str, url: str) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        next_url: Optional[str] = url
        params: Optional[dict[str, Any]] = {"per_page": PER_PAGE}
        while next_url:
            response = await self._request(operation, "GET", next_url, params=params)
            page = response.json()
            if not isinstance(page, list):
                raise GatewayError(operation, "expected a JSON array", status_code=response.status_code)
            items.extend(page)
            next_url = response.links.get("next", {}).get("url")
            params = None  # the next link already carries them
        return items

    # ------------------------------------------------------------
    # Pull requests
    # ------------------------------------------------------------
    async def list_changed_files(self, number: int) -> list[FileChange]:
        rows = await self._paginate("list_changed_files", self._repo_url(f"/pulls/{number}/files"))
        return [
            FileChange(
                filename=row.get("filename", ""),
                additions=int(row.get("additions") or 0),
                deletions=int(row.get("deletions") or 0),
                patch=row.get("patch"),
            )
            for row in rows
        ]

    async def list_commits(self, number: int) -> list[CommitInfo]:
        rows = await self._paginate("list_commits", self._repo_url(f"/pulls/{number}/commits"))
        return [
            CommitInfo(sha=row.get("sha", ""), message=(row.get("commit") or {}).get("message", ""))
            for row in rows
        ]

    # ------------------------------------------------------------
    # Contents
    # ------------------------------------------------------------
    async def read_file(self, path: str, ref: str, *, repository: Optional[str] = None) -> Optional[RepoFile]:
        url = self._repo_url(f"/contents/{path}", repository)
        try:
            response = await self._request("read_file", "GET", url, params={"ref": ref})
        except GatewayError as exc:
            if exc.status_code == 404:
                logger.debug("file_absent", path=path, ref=ref)
                return None
            raise
        data = response.json()
        if not isinstance(data, dict) or "content" not in data:
            # a directory listing or a submodule, not a file
            return None
        if data.get("encoding", "base64") == "base64":
            try:
                raw = base64.b64decode(data["content"] or "")
            except ValueError as exc:
                raise GatewayError("read_file", f"{path}@{ref} has corrupt base64 content") from exc
        else:
            # files over 1 MB come back with encoding "none" and an empty content
            response = await self._request(
                "read_file", "GET", url, params={"ref": ref}, headers={"Accept": RAW_MEDIA_TYPE}
            )
            raw = response.content
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise GatewayError("read_file", f"{path}@{ref} is not valid UTF-8") from exc
        return RepoFile(path=path, content=text, sha=data.get("sha", ""))

    async def write_file(
        self,
        path: str,
        content: str,
        *,
        branch: str,
        message: str,
        sha: Optional[str] = None,
        repository: Optional[str] = None,
    ) -> None:
        """Create or update ``path`` on ``branch``.

        ``sha`` is the blob being replaced; GitHub rejects the write when it no
        longer matches the branch head.
        """
        payload: dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
            "branch": branch,
        }
        if sha:
            payload["sha"] = sha
        await self._request("write_file", "PUT", self._repo_url(f"/contents/{path}", repository), json=payload)

    # ------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------
    async def list_comments(self, number: int) -> list[IssueComment]:
        rows = await self._paginate("list_comments", self._repo_url(f"/issues/{number}/comments"))
        return [IssueComment.from_api(row) for row in rows]

    async def create_comment(self, number: int, body: str) -> IssueComment:
        response = await self._request(
            "create_comment", "POST", self._repo_url(f"/issues/{number}/comments"), json={"body": body}
        )
        return IssueComment.from_api(response.json())

    async def update_comment(self, comment_id: int, body: str) -> IssueComment:
        response = await self._request(
            "update_comment", "PATCH", self._repo_url(f"/issues/comments/{comment_id}"), json={"body": body}
        )
        return IssueComment.from_api(response.json())


def _check_repository(repository: str) -> None:
    if not repository or "/" not in repository:
        raise RepositoryError(f"Repository must be 'owner/name', got {repository!r}")


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return response.text[:200]


__all__ = ["GitHubGateway"]
