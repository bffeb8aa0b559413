"""Pull request creation workflow.

Four stages, each a single GitHub call: resolve the base branch head, create a
branch at it, commit one file to the branch, open a PR. No stage is retried.
The sequence is not atomic: a failure after the branch exists leaves the
branch (and possibly its commit) in the repository unless
``delete_branch_on_failure`` is enabled.
"""

from __future__ import annotations

import logging
import secrets
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol

from caseforge.core.errors import CaseForgeError, ValidationError
from caseforge.integrations.github.github_client import PullRequestCreated
from caseforge.rendering.pr_template import PullRequestBodyInput, PullRequestBodyRenderer


class WorkflowStage(StrEnum):
    """Workflow stages, in execution order."""

    HEAD_RESOLUTION = "head-resolution"
    BRANCH_CREATION = "branch-creation"
    COMMIT = "commit"
    PR_OPEN = "pr-open"


@dataclass(frozen=True)
class PullRequestRequest:
    """A generated file the user wants proposed as a PR."""

    file_path: str
    code_content: str
    commit_message: str | None = None
    pr_title: str | None = None
    pr_body: str | None = None


@dataclass(frozen=True)
class Created:
    """Terminal success state."""

    url: str
    number: int
    branch: str


@dataclass(frozen=True)
class Failed:
    """Terminal failure state.

    Attributes:
        stage: Stage whose call failed.
        error: The error raised by that call.
        branch: Branch name once chosen; None if the failure came before.
        branch_deleted: True if a compensating branch deletion succeeded.
    """

    stage: WorkflowStage
    error: CaseForgeError
    branch: str | None = None
    branch_deleted: bool = False


WorkflowOutcome = Created | Failed


class RepositoryWriter(Protocol):
    """The part of the GitHub client the workflow needs."""

    def get_branch_head(self, *, owner: str, repo: str, branch: str) -> str: ...

    def create_branch(self, *, owner: str, repo: str, branch: str, sha: str) -> None: ...

    def commit_file(
        self,
        *,
        owner: str,
        repo: str,
        path: str,
        content: str | bytes,
        branch: str,
        message: str,
    ) -> None: ...

    def open_pull_request(
        self, *, owner: str, repo: str, title: str, head: str, base: str, body: str
    ) -> PullRequestCreated: ...

    def delete_branch(self, *, owner: str, repo: str, branch: str) -> None: ...


def build_branch_name(prefix: str) -> str:
    """Returns ``<prefix>/<epoch-ms>-<6 hex>``."""

    return f"{prefix}/{int(time.time() * 1000)}-{secrets.token_hex(3)}"


class PullRequestWorkflow:
    """Runs branch-from-head, commit, and PR-open against one repository."""

    _logger = logging.getLogger(__name__)

    def __init__(
        self,
        *,
        github_client: RepositoryWriter,
        base_branch: str = "main",
        branch_prefix: str = "test-gen",
        default_commit_message: str = "feat: Add generated test case",
        default_pr_title: str = "New Test Case from caseforge",
        delete_branch_on_failure: bool = False,
        branch_namer: Callable[[str], str] = build_branch_name,
        body_renderer: PullRequestBodyRenderer | None = None,
    ) -> None:
        self._github_client = github_client
        self._base_branch = base_branch
        self._branch_prefix = branch_prefix
        self._default_commit_message = default_commit_message
        self._default_pr_title = default_pr_title
        self._delete_branch_on_failure = delete_branch_on_failure
        self._branch_namer = branch_namer
        self._body_renderer = body_renderer or PullRequestBodyRenderer()

    def run(self, *, owner: str, repo: str, request: PullRequestRequest) -> WorkflowOutcome:
        """Runs all stages and returns the terminal state.

        Raises:
            ValidationError: If ``file_path`` or ``code_content`` is empty.
        """

        file_path = request.file_path.strip().strip("/")
        if not file_path:
            raise ValidationError("filePath must not be empty.")
        if not request.code_content:
            raise ValidationError("codeContent must not be empty.")

        try:
            head_sha = self._github_client.get_branch_head(
                owner=owner, repo=repo, branch=self._base_branch
            )
        except CaseForgeError as exc:
            return self._fail(WorkflowStage.HEAD_RESOLUTION, exc, owner=owner, repo=repo)
        self._logger.info(
            "Base head resolved: repo=%s/%s base=%s sha=%s",
            owner,
            repo,
            self._base_branch,
            head_sha,
        )

        branch = self._branch_namer(self._branch_prefix)
        try:
            self._github_client.create_branch(owner=owner, repo=repo, branch=branch, sha=head_sha)
        except CaseForgeError as exc:
            # Nothing was created, so there is nothing to clean up.
            return self._fail(WorkflowStage.BRANCH_CREATION, exc, owner=owner, repo=repo)
        self._logger.info("Branch created: repo=%s/%s branch=%s", owner, repo, branch)

        try:
            self._github_client.commit_file(
                owner=owner,
                repo=repo,
                path=file_path,
                content=request.code_content,
                branch=branch,
                message=request.commit_message or self._default_commit_message,
            )
        except CaseForgeError as exc:
            return self._fail(WorkflowStage.COMMIT, exc, owner=owner, repo=repo, branch=branch)
        self._logger.info(
            "File committed: repo=%s/%s branch=%s path=%s", owner, repo, branch, file_path
        )

        body = request.pr_body or self._body_renderer.render(
            data=PullRequestBodyInput(
                file_path=file_path, branch=branch, base_branch=self._base_branch
            )
        )
        try:
            created = self._github_client.open_pull_request(
                owner=owner,
                repo=repo,
                title=request.pr_title or self._default_pr_title,
                head=branch,
                base=self._base_branch,
                body=body,
            )
        except CaseForgeError as exc:
            return self._fail(WorkflowStage.PR_OPEN, exc, owner=owner, repo=repo, branch=branch)
        self._logger.info(
            "Pull request opened: repo=%s/%s number=%d url=%s",
            owner,
            repo,
            created.number,
            created.html_url,
        )
        return Created(url=created.html_url, number=created.number, branch=branch)

    def _fail(
        self,
        stage: WorkflowStage,
        error: CaseForgeError,
        *,
        owner: str,
        repo: str,
        branch: str | None = None,
    ) -> Failed:
        self._logger.warning(
            "Pull request workflow failed: repo=%s/%s stage=%s branch=%s error=%s",
            owner,
            repo,
            stage,
            branch,
            error,
        )
        branch_deleted = False
        if branch is not None and self._delete_branch_on_failure:
            branch_deleted = self._safe_delete_branch(owner=owner, repo=repo, branch=branch)
        return Failed(stage=stage, error=error, branch=branch, branch_deleted=branch_deleted)

    def _safe_delete_branch(self, *, owner: str, repo: str, branch: str) -> bool:
        try:
            self._github_client.delete_branch(owner=owner, repo=repo, branch=branch)
        except CaseForgeError as exc:
            # Avoid masking original failure.
            self._logger.warning(
                "Orphaned branch could not be deleted: repo=%s/%s branch=%s error=%s",
                owner,
                repo,
                branch,
                exc,
            )
            return False
        self._logger.info("Orphaned branch deleted: repo=%s/%s branch=%s", owner, repo, branch)
        return True
