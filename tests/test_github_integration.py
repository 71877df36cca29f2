"""Tests for the GitHub contents API storage client."""
import base64
import json

import httpx
import pytest

from taskdb.core.exceptions import RemoteNotFoundError, RevisionConflictError, StorageError
from taskdb.integrations.github import GitHubStorageClient

PATH = "public/tasksDB/demo/tasks.json"


def make_client(handler, token="secret-token"):
    return GitHubStorageClient(
        owner="octo",
        repo="tasks",
        branch="main",
        token=token,
        api_url="https://api.github.test",
        timeout=5,
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_get_file_decodes_content_and_returns_sha():
    captured = {}
    body = '{"tasks": []}'

    def handler(request):
        captured["url"] = str(request.url)
        captured["auth"] = request.headers.get("Authorization")
        encoded = base64.b64encode(body.encode()).decode()
        # GitHub wraps base64 content at 60 characters
        wrapped = "\n".join(encoded[i:i + 60] for i in range(0, len(encoded), 60))
        return httpx.Response(200, json={"content": wrapped, "sha": "abc123"})

    remote = await make_client(handler).get_file(PATH)

    assert remote.content == body
    assert remote.revision == "abc123"
    assert captured["url"] == f"https://api.github.test/repos/octo/tasks/contents/{PATH}?ref=main"
    assert captured["auth"] == "token secret-token"


@pytest.mark.asyncio
async def test_public_access_token_sends_no_auth_header():
    seen = {}

    def handler(request):
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json={"content": "", "sha": "x"})

    await make_client(handler, token="public-access").get_file(PATH)
    assert seen["auth"] is None


@pytest.mark.asyncio
async def test_missing_file_raises_not_found():
    client = make_client(lambda request: httpx.Response(404, json={"message": "Not Found"}))
    with pytest.raises(RemoteNotFoundError):
        await client.get_file(PATH)


@pytest.mark.asyncio
async def test_server_error_raises_storage_error():
    client = make_client(lambda request: httpx.Response(500, json={"message": "boom"}))
    with pytest.raises(StorageError, match="GitHub API error 500: boom"):
        await client.get_file(PATH)


@pytest.mark.asyncio
async def test_transport_failure_raises_storage_error():
    def handler(request):
        raise httpx.ConnectError("unreachable", request=request)

    with pytest.raises(StorageError, match="GitHub request failed"):
        await make_client(handler).get_file(PATH)


@pytest.mark.asyncio
async def test_put_file_sends_revision_and_returns_new_sha():
    captured = {}

    def handler(request):
        captured["method"] = request.method
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"content": {"sha": "def456"}})

    new_revision = await make_client(handler).put_file(PATH, '{"tasks": []}', "Update tasks", revision="abc123")

    assert new_revision == "def456"
    assert captured["method"] == "PUT"
    assert captured["body"]["sha"] == "abc123"
    assert captured["body"]["branch"] == "main"
    assert captured["body"]["message"] == "Update tasks"
    assert base64.b64decode(captured["body"]["content"]).decode() == '{"tasks": []}'


@pytest.mark.asyncio
async def test_put_file_without_revision_omits_sha():
    captured = {}

    def handler(request):
        captured["body"] = json.loads(request.content)
        return httpx.Response(201, json={"content": {"sha": "new"}})

    await make_client(handler).put_file(PATH, "{}", "Create tasks")
    assert "sha" not in captured["body"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status,message",
    [(409, "does not match abc123"), (422, 'Invalid request.\n\n"sha" wasn\'t supplied.')],
)
async def test_stale_revision_raises_conflict(status, message):
    client = make_client(lambda request: httpx.Response(status, json={"message": message}))
    with pytest.raises(RevisionConflictError) as exc_info:
        await client.put_file(PATH, "{}", "Update tasks", revision="abc123")
    assert exc_info.value.path == PATH
    assert exc_info.value.expected == "abc123"


@pytest.mark.asyncio
async def test_other_validation_errors_are_not_conflicts():
    client = make_client(lambda request: httpx.Response(422, json={"message": "content is not valid Base64"}))
    with pytest.raises(StorageError) as exc_info:
        await client.put_file(PATH, "{}", "Update tasks", revision="abc123")
    assert not isinstance(exc_info.value, RevisionConflictError)
