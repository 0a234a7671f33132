"""Tests for suggester/github.py against a mocked GitHub REST API."""
import base64
import json

import httpx
import pytest

from conftest import REPO, json_response, make_settings
from suggester.errors import GatewayError, RepositoryError
from suggester.github import GitHubGateway


def _gateway(handler, repository=REPO) -> GitHubGateway:
    return GitHubGateway.from_settings(make_settings(), repository, transport=httpx.MockTransport(handler))


def _b64(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def test_repository_required():
    with pytest.raises(RepositoryError):
        GitHubGateway.from_settings(make_settings(github_repository=None))
    with pytest.raises(RepositoryError):
        GitHubGateway.from_settings(make_settings(), "widgets")


@pytest.mark.asyncio
async def test_headers_and_files():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        seen["auth"] = request.headers.get("Authorization")
        seen["accept"] = request.headers.get("Accept")
        return json_response([{"filename": "src/a.py", "additions": 3, "deletions": 1, "patch": "@@"}])

    async with _gateway(handler) as gateway:
        files = await gateway.list_changed_files(7)

    assert seen["path"] == f"/repos/{REPO}/pulls/7/files"
    assert seen["params"] == {"per_page": "100"}
    assert seen["auth"] == "Bearer test-token"
    assert seen["accept"] == "application/vnd.github+json"
    assert files[0].filename == "src/a.py" and files[0].changes == 4


@pytest.mark.asyncio
async def test_pagination_follows_next_link():
    base = f"https://api.github.test/repos/{REPO}/pulls/7/commits"

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.params.get("page") == "2":
            return json_response([{"sha": "b", "commit": {"message": "second"}}])
        return json_response(
            [{"sha": "a", "commit": {"message": "first\n\nbody"}}],
            headers={"Link": f'<{base}?per_page=100&page=2>; rel="next"'},
        )

    async with _gateway(handler) as gateway:
        commits = await gateway.list_commits(7)
    assert [c.sha for c in commits] == ["a", "b"]
    assert commits[0].summary == "first"


@pytest.mark.asyncio
async def test_read_file_decodes_content():
    def handler(request):
        assert request.url.path == f"/repos/{REPO}/contents/CHANGELOG.md"
        assert request.url.params["ref"] == "main"
        return json_response({"type": "file", "content": _b64("# Changelog\n"), "sha": "abc"})

    async with _gateway(handler) as gateway:
        file = await gateway.read_file("CHANGELOG.md", "main")
    assert file.content == "# Changelog\n"
    assert file.sha == "abc"


@pytest.mark.asyncio
async def test_read_file_404_is_absent():
    async with _gateway(lambda r: json_response({"message": "Not Found"}, status_code=404)) as gateway:
        assert await gateway.read_file("CHANGELOG.md", "main") is None


@pytest.mark.asyncio
async def test_read_file_other_errors_raise():
    async with _gateway(lambda r: json_response({"message": "Forbidden"}, status_code=403)) as gateway:
        with pytest.raises(GatewayError) as exc_info:
            await gateway.read_file("CHANGELOG.md", "main")
    assert exc_info.value.status_code == 403
    assert "read_file failed" in str(exc_info.value)
    assert "Forbidden" in str(exc_info.value)


@pytest.mark.asyncio
async def test_read_file_large_file_fetched_raw():
    text = "# Changelog\n\n## [Unreleased]\n" + "- line\n" * 10
    accepts = []

    def handler(request):
        accepts.append(request.headers.get("Accept"))
        if request.headers.get("Accept") == "application/vnd.github.raw":
            return httpx.Response(200, content=text.encode("utf-8"))
        return json_response({"type": "file", "content": "", "encoding": "none", "size": 2_000_000, "sha": "big"})

    async with _gateway(handler) as gateway:
        file = await gateway.read_file("CHANGELOG.md", "main")
    assert file.content == text
    assert file.sha == "big"
    assert accepts == ["application/vnd.github+json", "application/vnd.github.raw"]


@pytest.mark.asyncio
@pytest.mark.parametrize("content", [
    base64.b64encode(b"\xff\xfe bad").decode("ascii"),
    "abc",
])
async def test_read_file_undecodable_content_raises(content):
    async with _gateway(lambda r: json_response({"content": content, "encoding": "base64", "sha": "x"})) as gateway:
        with pytest.raises(GatewayError) as exc_info:
            await gateway.read_file("CHANGELOG.md", "feature")
    assert exc_info.value.operation == "read_file"
    assert exc_info.value.status_code is None


@pytest.mark.asyncio
async def test_write_file_payload():
    seen = {}

    def handler(request):
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return json_response({"content": {"sha": "new"}}, status_code=200)

    async with _gateway(handler) as gateway:
        await gateway.write_file(
            "CHANGELOG.md", "# Changelog\n", branch="feature", message="Update", sha="old", repository="fork/widgets"
        )
    assert seen["method"] == "PUT"
    assert seen["path"] == "/repos/fork/widgets/contents/CHANGELOG.md"
    assert seen["body"] == {"message": "Update", "content": _b64("# Changelog\n"), "branch": "feature", "sha": "old"}


@pytest.mark.asyncio
async def test_write_file_without_sha_and_conflict():
    def handler(request):
        assert "sha" not in json.loads(request.content)
        return json_response({"message": "sha mismatch"}, status_code=409)

    async with _gateway(handler) as gateway:
        with pytest.raises(GatewayError) as exc_info:
            await gateway.write_file("CHANGELOG.md", "x", branch="b", message="m")
    assert exc_info.value.is_conflict


@pytest.mark.asyncio
async def test_comments_round():
    calls = []

    def handler(request):
        calls.append((request.method, request.url.path))
        if request.method == "GET":
            return json_response([{"id": 1, "body": "hi", "user": {"login": "bot", "type": "Bot"}}])
        body = json.loads(request.content)["body"]
        return json_response({"id": 2, "body": body, "user": {"login": "bot", "type": "Bot"}}, status_code=201)

    async with _gateway(handler) as gateway:
        comments = await gateway.list_comments(7)
        created = await gateway.create_comment(7, "new")
        updated = await gateway.update_comment(1, "edit")

    assert comments[0].user_type == "Bot"
    assert created.body == "new" and updated.body == "edit"
    assert calls == [
        ("GET", f"/repos/{REPO}/issues/7/comments"),
        ("POST", f"/repos/{REPO}/issues/7/comments"),
        ("PATCH", f"/repos/{REPO}/issues/comments/1"),
    ]


@pytest.mark.asyncio
async def test_transport_error_wrapped():
    def handler(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    async with _gateway(handler) as gateway:
        with pytest.raises(GatewayError) as exc_info:
            await gateway.create_comment(7, "x")
    assert exc_info.value.status_code is None
    assert exc_info.value.operation == "create_comment"
