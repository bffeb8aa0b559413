from __future__ import annotations

import base64
import json
from collections.abc import Callable

import httpx
import pytest

from caseforge.core.errors import AuthError, ConflictError, UpstreamError
from caseforge.integrations.github.github_client import GitHubClient, GitHubClientConfig


def _make_client(
    handler: Callable[[httpx.Request], httpx.Response], *, page_size: int = 20
) -> GitHubClient:
    return GitHubClient(
        config=GitHubClientConfig(
            api_base_url="https://api.github.test",
            token="gho_test",
            repository_page_size=page_size,
        ),
        transport=httpx.MockTransport(handler),
    )


def test_list_repositories_sorts_by_update_and_sends_bearer_token() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[{"name": "newest"}, {"name": "older"}])

    with _make_client(handler) as client:
        repos = client.list_repositories()

    assert [r["name"] for r in repos] == ["newest", "older"]
    request = seen[0]
    assert request.url.path == "/user/repos"
    assert request.url.params["sort"] == "updated"
    assert request.url.params["per_page"] == "20"
    assert request.headers["Authorization"] == "Bearer gho_test"


def test_list_repositories_raises_auth_error_on_401() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"message": "Bad credentials"})

    with _make_client(handler) as client, pytest.raises(AuthError):
        client.list_repositories()


def test_list_directory_uses_root_for_empty_path_and_keeps_extra_fields() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.path)
        return httpx.Response(
            200,
            json=[
                {"name": "src", "path": "src", "type": "dir", "sha": "s1", "size": 0},
                {"name": "a.js", "path": "a.js", "type": "file", "sha": "s2", "size": 12},
            ],
        )

    with _make_client(handler) as client:
        entries = client.list_directory(owner="octo", repo="demo", path="")

    assert seen == ["/repos/octo/demo/contents/"]
    assert [(e.name, e.type) for e in entries] == [("src", "dir"), ("a.js", "file")]
    assert entries[1].model_dump()["size"] == 12


def test_list_directory_rejects_file_payload() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"name": "a.js", "type": "file"})

    with _make_client(handler) as client, pytest.raises(UpstreamError):
        client.list_directory(owner="octo", repo="demo", path="a.js")


def test_get_file_content_decodes_wrapped_base64() -> None:
    text = "export const add = (a, b) => a + b;\n" * 4
    encoded = base64.b64encode(text.encode("utf-8")).decode("ascii")
    wrapped = "\n".join(encoded[i : i + 60] for i in range(0, len(encoded), 60))

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/repos/octo/demo/contents/src/math.js"
        return httpx.Response(200, json={"encoding": "base64", "content": wrapped})

    with _make_client(handler) as client:
        assert client.get_file_content(owner="octo", repo="demo", path="src/math.js") == (
            text.encode("utf-8")
        )


def test_upstream_error_carries_status_and_message() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, text="Not Found")

    with _make_client(handler) as client, pytest.raises(UpstreamError) as exc_info:
        client.get_file_content(owner="octo", repo="demo", path="missing.js")
    assert exc_info.value.status_code == 404
    assert exc_info.value.message == "Not Found"


def test_transport_failure_is_upstream_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with _make_client(handler) as client, pytest.raises(UpstreamError) as exc_info:
        client.get_branch_head(owner="octo", repo="demo", branch="main")
    assert exc_info.value.status_code == 0


def test_get_branch_head_returns_commit_sha() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/repos/octo/demo/branches/main"
        return httpx.Response(200, json={"name": "main", "commit": {"sha": "abc123"}})

    with _make_client(handler) as client:
        assert client.get_branch_head(owner="octo", repo="demo", branch="main") == "abc123"


def test_create_branch_posts_ref() -> None:
    bodies: list[dict[str, str]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "POST"
        assert request.url.path == "/repos/octo/demo/git/refs"
        bodies.append(json.loads(request.content))
        return httpx.Response(201, json={"ref": "refs/heads/test-gen/1"})

    with _make_client(handler) as client:
        client.create_branch(owner="octo", repo="demo", branch="test-gen/1", sha="abc123")

    assert bodies == [{"ref": "refs/heads/test-gen/1", "sha": "abc123"}]


def test_create_branch_raises_conflict_when_ref_exists() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(422, json={"message": "Reference already exists"})

    with _make_client(handler) as client, pytest.raises(ConflictError):
        client.create_branch(owner="octo", repo="demo", branch="test-gen/1", sha="abc123")


def test_commit_file_creates_new_file_without_sha() -> None:
    puts: list[dict[str, str]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            assert request.url.params["ref"] == "test-gen/1"
            return httpx.Response(404, json={"message": "Not Found"})
        puts.append(json.loads(request.content))
        return httpx.Response(201, json={"content": {}})

    with _make_client(handler) as client:
        client.commit_file(
            owner="octo",
            repo="demo",
            path="tests/a.test.js",
            content="test('x', () => {});\n",
            branch="test-gen/1",
            message="feat: Add generated test case",
        )

    assert len(puts) == 1
    assert "sha" not in puts[0]
    assert puts[0]["branch"] == "test-gen/1"
    assert puts[0]["message"] == "feat: Add generated test case"
    assert base64.b64decode(puts[0]["content"]).decode("utf-8") == "test('x', () => {});\n"


def test_commit_file_overwrites_existing_file_with_its_sha() -> None:
    puts: list[dict[str, str]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            return httpx.Response(200, json={"type": "file", "sha": "blob1"})
        puts.append(json.loads(request.content))
        return httpx.Response(200, json={"content": {}})

    with _make_client(handler) as client:
        client.commit_file(
            owner="octo",
            repo="demo",
            path="tests/a.test.js",
            content=b"new",
            branch="test-gen/1",
            message="update",
        )

    assert puts[0]["sha"] == "blob1"


def test_open_pull_request_returns_url() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        assert body == {"title": "t", "head": "test-gen/1", "base": "main", "body": "b"}
        return httpx.Response(
            201, json={"number": 7, "html_url": "https://github.test/octo/demo/pull/7"}
        )

    with _make_client(handler) as client:
        created = client.open_pull_request(
            owner="octo", repo="demo", title="t", head="test-gen/1", base="main", body="b"
        )

    assert created.number == 7
    assert created.html_url == "https://github.test/octo/demo/pull/7"


def test_delete_branch_deletes_ref() -> None:
    seen: list[tuple[str, str]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.method, request.url.path))
        return httpx.Response(204)

    with _make_client(handler) as client:
        client.delete_branch(owner="octo", repo="demo", branch="test-gen/1")

    assert seen == [("DELETE", "/repos/octo/demo/git/refs/heads/test-gen/1")]


def test_non_json_success_reply_is_upstream_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>proxy</html>")

    with _make_client(handler) as client, pytest.raises(UpstreamError) as exc_info:
        client.get_branch_head(owner="octo", repo="demo", branch="main")
    assert exc_info.value.status_code == 200


def test_pull_request_reply_without_url_is_upstream_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(201, json={"message": "odd"})

    with _make_client(handler) as client, pytest.raises(UpstreamError) as exc_info:
        client.open_pull_request(
            owner="octo", repo="demo", title="t", head="test-gen/1", base="main", body="b"
        )
    assert exc_info.value.status_code == 201


def test_directory_entry_missing_fields_is_upstream_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[{"name": "a.js"}])

    with _make_client(handler) as client, pytest.raises(UpstreamError):
        client.list_directory(owner="octo", repo="demo", path="")
