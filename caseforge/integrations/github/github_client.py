"""GitHub REST API wrapper.

This module uses GitHub REST v3 endpoints. Authentication is performed via
``Authorization: Bearer <token>`` header with the caller's own token, so a
client instance is built per request and closed when the request ends.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from typing import Any, TypeVar
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from caseforge.core.errors import AuthError, ConflictError, UpstreamError

_ModelT = TypeVar("_ModelT", bound=BaseModel)


class DirectoryEntry(BaseModel):
    """Directory listing item. Unknown GitHub fields are kept verbatim."""

    model_config = ConfigDict(extra="allow")

    name: str
    path: str
    type: str  # file|dir|symlink|submodule
    sha: str


class PullRequestCreated(BaseModel):
    """Subset of PR creation response fields used by the workflow."""

    number: int = Field(..., ge=1)
    html_url: str


@dataclass(frozen=True)
class GitHubClientConfig:
    """GitHub client configuration."""

    api_base_url: str
    token: str
    repository_page_size: int = 20


class GitHubClient:
    """Thin wrapper around GitHub REST API."""

    def __init__(
        self,
        *,
        config: GitHubClientConfig,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._config = config
        self._client = httpx.Client(
            base_url=self._config.api_base_url,
            headers={
                "Accept": "application/vnd.github+json",
                "Authorization": f"Bearer {self._config.token}",
                "X-GitHub-Api-Version": "2022-11-28",
                "User-Agent": "caseforge",
            },
            timeout=httpx.Timeout(30.0),
            transport=transport,
        )

    def close(self) -> None:
        """Closes underlying HTTP client."""

        self._client.close()

    def __enter__(self) -> GitHubClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def list_repositories(self) -> list[dict[str, Any]]:
        """Lists the authenticated user's repositories, most recently updated first."""

        resp = self._request(
            "GET",
            "/user/repos",
            params={"sort": "updated", "per_page": str(self._config.repository_page_size)},
        )
        payload = self._json(resp)
        if not isinstance(payload, list):
            raise UpstreamError(
                status_code=resp.status_code,
                message="Unexpected payload type for repository listing.",
            )
        return payload

    def list_directory(self, *, owner: str, repo: str, path: str = "") -> list[DirectoryEntry]:
        """Lists a directory. An empty ``path`` is the repository root."""

        resp = self._request("GET", self._contents_path(owner=owner, repo=repo, path=path))
        payload = self._json(resp)
        if not isinstance(payload, list):
            raise UpstreamError(
                status_code=resp.status_code,
                message=f"Path is not a directory: {path!r}",
            )
        return [self._validate(DirectoryEntry, item, resp) for item in payload]

    def get_file_content(self, *, owner: str, repo: str, path: str) -> bytes:
        """Fetches a file and decodes GitHub's base64 envelope."""

        resp = self._request("GET", self._contents_path(owner=owner, repo=repo, path=path))
        payload = self._json(resp)
        if (
            not isinstance(payload, dict)
            or payload.get("encoding") != "base64"
            or not isinstance(payload.get("content"), str)
        ):
            raise UpstreamError(
                status_code=resp.status_code,
                message=f"Path has no base64 file content: {path!r}",
            )
        try:
            # GitHub wraps the base64 payload at 60 columns.
            return base64.b64decode(payload["content"])
        except (binascii.Error, ValueError) as exc:
            raise UpstreamError(
                status_code=resp.status_code,
                message=f"Malformed base64 content: {path!r}",
            ) from exc

    def get_branch_head(self, *, owner: str, repo: str, branch: str) -> str:
        """Returns the commit SHA at the tip of ``branch``."""

        resp = self._request("GET", f"/repos/{owner}/{repo}/branches/{quote(branch, safe='')}")
        payload = self._json(resp)
        commit = payload.get("commit") if isinstance(payload, dict) else None
        sha = commit.get("sha") if isinstance(commit, dict) else None
        if not isinstance(sha, str) or not sha:
            raise UpstreamError(
                status_code=resp.status_code,
                message=f"Branch payload has no commit sha: {branch!r}",
            )
        return sha

    def create_branch(self, *, owner: str, repo: str, branch: str, sha: str) -> None:
        """Creates ``refs/heads/<branch>`` pointing at ``sha``."""

        resp = self._client_send(
            "POST",
            f"/repos/{owner}/{repo}/git/refs",
            json={"ref": f"refs/heads/{branch}", "sha": sha},
        )
        if resp.status_code == 422 and "already exists" in resp.text.lower():
            raise ConflictError(status_code=resp.status_code, message=f"Branch exists: {branch}")
        self._raise_for_error(resp)

    def delete_branch(self, *, owner: str, repo: str, branch: str) -> None:
        """Deletes ``refs/heads/<branch>``."""

        self._request("DELETE", f"/repos/{owner}/{repo}/git/refs/heads/{branch}")

    def commit_file(
        self,
        *,
        owner: str,
        repo: str,
        path: str,
        content: str | bytes,
        branch: str,
        message: str,
    ) -> None:
        """Creates or overwrites ``path`` on ``branch`` with a single commit."""

        raw = content.encode("utf-8") if isinstance(content, str) else content
        body: dict[str, str] = {
            "message": message,
            "content": base64.b64encode(raw).decode("ascii"),
            "branch": branch,
        }
        existing_sha = self._find_file_sha(owner=owner, repo=repo, path=path, ref=branch)
        if existing_sha is not None:
            body["sha"] = existing_sha
        self._request("PUT", self._contents_path(owner=owner, repo=repo, path=path), json=body)

    def open_pull_request(
        self,
        *,
        owner: str,
        repo: str,
        title: str,
        head: str,
        base: str,
        body: str,
    ) -> PullRequestCreated:
        """Opens a pull request from ``head`` into ``base``."""

        resp = self._request(
            "POST",
            f"/repos/{owner}/{repo}/pulls",
            json={"title": title, "head": head, "base": base, "body": body},
        )
        return self._validate(PullRequestCreated, self._json(resp), resp)

    def _find_file_sha(self, *, owner: str, repo: str, path: str, ref: str) -> str | None:
        resp = self._client_send(
            "GET",
            self._contents_path(owner=owner, repo=repo, path=path),
            params={"ref": ref},
        )
        if resp.status_code == 404:
            return None
        self._raise_for_error(resp)
        payload = self._json(resp)
        if isinstance(payload, dict) and isinstance(payload.get("sha"), str):
            return payload["sha"]
        return None

    @staticmethod
    def _contents_path(*, owner: str, repo: str, path: str) -> str:
        clean = quote(path.strip("/"), safe="/")
        return f"/repos/{owner}/{repo}/contents/{clean}"

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        resp = self._client_send(method, url, **kwargs)
        self._raise_for_error(resp)
        return resp

    def _client_send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise UpstreamError(status_code=0, message=f"Transport error: {exc}") from exc

    @staticmethod
    def _json(resp: httpx.Response) -> Any:
        try:
            return resp.json()
        except ValueError as exc:
            raise UpstreamError(
                status_code=resp.status_code,
                message="Response body is not valid JSON.",
            ) from exc

    @staticmethod
    def _validate(model: type[_ModelT], payload: Any, resp: httpx.Response) -> _ModelT:
        try:
            return model.model_validate(payload)
        except PydanticValidationError as exc:
            raise UpstreamError(
                status_code=resp.status_code,
                message=f"Unexpected payload for {model.__name__}: {exc.error_count()} errors",
            ) from exc

    @staticmethod
    def _raise_for_error(resp: httpx.Response) -> None:
        if 200 <= resp.status_code < 300:
            return
        message = resp.text
        if resp.status_code == 401:
            raise AuthError(f"GitHub rejected the access token: {message}")
        raise UpstreamError(status_code=resp.status_code, message=message)
