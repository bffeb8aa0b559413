"""HTTP server for the test case generator.

Endpoints:
  - GET /health
  - GET /auth/github
  - GET /auth/github/callback
  - GET /api/frameworks
  - GET /api/repos
  - GET /api/repo-contents/{owner}/{repo}
  - POST /api/generate-summaries
  - POST /api/generate-code
  - POST /api/create-pr
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Annotated, Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import uvicorn
from fastapi import FastAPI, Header, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from starlette.exceptions import HTTPException as StarletteHTTPException

from caseforge.core.config import AppSettings
from caseforge.core.credentials import extract_bearer_token, resolve_token
from caseforge.core.errors import AuthError, CaseForgeError, ValidationError
from caseforge.core.startup_validation import find_configuration_problems
from caseforge.domain.case_generation import CaseGenerationService, suggest_test_file_path
from caseforge.domain.pr_workflow import Created, PullRequestRequest, PullRequestWorkflow
from caseforge.integrations.github.github_client import GitHubClient, GitHubClientConfig
from caseforge.integrations.github.oauth import OAuthClient, OAuthConfig, build_authorize_url
from caseforge.providers.base import GenerationProvider
from caseforge.providers.gemini import GeminiProvider, GeminiProviderConfig
from caseforge.providers.noop import NoOpProvider
from caseforge.rendering.prompts import Framework

_logger = logging.getLogger(__name__)

GitHubClientFactory = Callable[[str], GitHubClient]
OAuthClientFactory = Callable[[], OAuthClient]

_MISSING_PARAMETERS = "Missing required parameters."
_UNAUTHORIZED = "Unauthorized: Missing or invalid access token"


class FileRef(BaseModel):
    """A selected repository file."""

    path: str


class _ApiRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    token: str | None = None
    owner: str | None = None
    repo: str | None = None


class GenerateSummariesRequest(_ApiRequest):
    """Body of /api/generate-summaries."""

    files: list[FileRef | str] | None = None
    framework: str | None = None

    def selected_paths(self) -> list[str]:
        return [item if isinstance(item, str) else item.path for item in self.files or []]


class GenerateCodeRequest(GenerateSummariesRequest):
    """Body of /api/generate-code."""

    summary: str | None = None


class CreatePullRequestRequest(_ApiRequest):
    """Body of /api/create-pr."""

    file_path: str | None = None
    code_content: str | None = None
    commit_message: str | None = None
    pr_title: str | None = None
    pr_body: str | None = None


def _require(*values: object) -> None:
    for value in values:
        if value is None or (isinstance(value, str | list) and len(value) == 0):
            raise ValidationError(_MISSING_PARAMETERS)


@contextmanager
def _map_failures(action_message: str) -> Iterator[None]:
    """Maps service errors to HTTP errors with a fixed, generic message."""

    try:
        yield
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except AuthError as exc:
        _logger.warning("%s: %s", action_message, exc)
        raise HTTPException(status_code=401, detail=_UNAUTHORIZED) from exc
    except CaseForgeError as exc:
        _logger.exception("%s: %s", action_message, exc)
        raise HTTPException(status_code=500, detail=action_message) from exc


def _build_provider(settings: AppSettings) -> GenerationProvider:
    api_key = settings.get_gemini_api_key()
    if api_key is None:
        return NoOpProvider(message="Gemini is not configured (set GEMINI_API_KEY).")
    return GeminiProvider(config=GeminiProviderConfig(api_key=api_key, model=settings.gemini_model))


def create_app(
    *,
    settings: AppSettings | None = None,
    provider: GenerationProvider | None = None,
    github_client_factory: GitHubClientFactory | None = None,
    oauth_client_factory: OAuthClientFactory | None = None,
) -> FastAPI:
    """Creates FastAPI app."""

    settings = settings or AppSettings()
    logging.basicConfig(level=settings.log_level.upper())
    for problem in find_configuration_problems(settings=settings):
        _logger.warning("Configuration problem: %s", problem)

    generation_provider = provider or _build_provider(settings)

    def default_github_client_factory(token: str) -> GitHubClient:
        return GitHubClient(
            config=GitHubClientConfig(
                api_base_url=settings.github_api_base_url,
                token=token,
                repository_page_size=settings.repository_page_size,
            )
        )

    def default_oauth_client_factory() -> OAuthClient:
        return OAuthClient(config=_oauth_config())

    def _oauth_config() -> OAuthConfig:
        if not settings.github_client_id or not settings.github_client_secret:
            raise AuthError("GitHub OAuth app is not configured.")
        return OAuthConfig(
            client_id=settings.github_client_id,
            client_secret=settings.github_client_secret,
            oauth_base_url=settings.github_oauth_base_url,
            scope=settings.github_oauth_scope,
            redirect_uri=settings.github_oauth_redirect_uri,
        )

    make_github_client = github_client_factory or default_github_client_factory
    make_oauth_client = oauth_client_factory or default_oauth_client_factory

    @contextmanager
    def open_github_client(token: str) -> Iterator[GitHubClient]:
        client = make_github_client(token)
        try:
            yield client
        finally:
            client.close()

    def frontend_redirect(**params: str) -> RedirectResponse:
        parts = urlsplit(settings.frontend_url)
        query = urlencode([*parse_qsl(parts.query, keep_blank_values=True), *params.items()])
        return RedirectResponse(url=urlunsplit(parts._replace(query=query)), status_code=302)

    app = FastAPI(title="caseforge")
    app.state.settings = settings
    app.state.provider = generation_provider
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_cors_allow_origins(),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(_: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"message": exc.detail})

    @app.exception_handler(RequestValidationError)
    async def _invalid_body(_: Request, exc: RequestValidationError) -> JSONResponse:
        _logger.info("Rejected malformed request body: errors=%d", len(exc.errors()))
        return JSONResponse(status_code=400, content={"message": _MISSING_PARAMETERS})

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/auth/github")
    def auth_github() -> RedirectResponse:
        try:
            config = _oauth_config()
        except AuthError as exc:
            _logger.error("GitHub login requested: %s", exc)
            raise HTTPException(status_code=500, detail="GitHub login is not configured.") from exc
        return RedirectResponse(url=build_authorize_url(config=config), status_code=302)

    @app.get("/auth/github/callback")
    def auth_github_callback(code: str | None = None) -> RedirectResponse:
        if not code:
            _logger.warning("OAuth callback without code.")
            return frontend_redirect(error="auth_failed")
        try:
            oauth_client = make_oauth_client()
        except AuthError as exc:
            _logger.error("OAuth callback failed: %s", exc)
            return frontend_redirect(error="auth_failed")
        try:
            token = oauth_client.exchange_code_for_token(code=code)
        except AuthError as exc:
            _logger.error("Error getting access token: %s", exc)
            return frontend_redirect(error="auth_failed")
        finally:
            oauth_client.close()
        return frontend_redirect(token=token)

    @app.get("/api/frameworks")
    def frameworks() -> dict[str, list[str]]:
        return {"frameworks": [framework.value for framework in Framework]}

    @app.get("/api/repos")
    def list_repos(
        authorization: Annotated[str | None, Header()] = None,
    ) -> list[dict[str, Any]]:
        with _map_failures("Failed to fetch repositories"):
            token = extract_bearer_token(authorization)
            with open_github_client(token) as github_client:
                return github_client.list_repositories()

    @app.get("/api/repo-contents/{owner}/{repo}")
    def repo_contents(
        owner: str,
        repo: str,
        path: str = "",
        authorization: Annotated[str | None, Header()] = None,
    ) -> list[dict[str, Any]]:
        with _map_failures("Failed to fetch repository contents"):
            token = extract_bearer_token(authorization)
            with open_github_client(token) as github_client:
                entries = github_client.list_directory(owner=owner, repo=repo, path=path)
            return [entry.model_dump() for entry in entries]

    @app.post("/api/generate-summaries")
    def generate_summaries(
        req: GenerateSummariesRequest,
        authorization: Annotated[str | None, Header()] = None,
    ) -> dict[str, str]:
        with _map_failures("Failed to generate test case summaries."):
            token = resolve_token(body_token=req.token, authorization=authorization)
            _require(req.owner, req.repo, req.files, req.framework)
            with open_github_client(token) as github_client:
                service = CaseGenerationService(
                    github_client=github_client, provider=generation_provider
                )
                summaries = service.generate_summaries(
                    owner=req.owner,
                    repo=req.repo,
                    paths=req.selected_paths(),
                    framework=req.framework,
                )
        return {"summaries": "\n".join(summaries)}

    @app.post("/api/generate-code")
    def generate_code(
        req: GenerateCodeRequest,
        authorization: Annotated[str | None, Header()] = None,
    ) -> dict[str, str]:
        with _map_failures("Failed to generate test case code."):
            token = resolve_token(body_token=req.token, authorization=authorization)
            _require(req.owner, req.repo, req.files, req.summary, req.framework)
            paths = req.selected_paths()
            with open_github_client(token) as github_client:
                service = CaseGenerationService(
                    github_client=github_client, provider=generation_provider
                )
                code = service.generate_code(
                    owner=req.owner,
                    repo=req.repo,
                    paths=paths,
                    framework=req.framework,
                    summary=req.summary,
                )
        return {"code": code, "suggestedFilePath": suggest_test_file_path(paths)}

    @app.post("/api/create-pr")
    def create_pr(
        req: CreatePullRequestRequest,
        authorization: Annotated[str | None, Header()] = None,
    ) -> dict[str, str]:
        with _map_failures("Failed to create Pull Request."):
            token = resolve_token(body_token=req.token, authorization=authorization)
            _require(req.owner, req.repo, req.file_path, req.code_content)
            with open_github_client(token) as github_client:
                workflow = PullRequestWorkflow(
                    github_client=github_client,
                    base_branch=settings.base_branch,
                    branch_prefix=settings.branch_prefix,
                    default_commit_message=settings.default_commit_message,
                    default_pr_title=settings.default_pr_title,
                    delete_branch_on_failure=settings.delete_branch_on_failure,
                )
                outcome = workflow.run(
                    owner=req.owner,
                    repo=req.repo,
                    request=PullRequestRequest(
                        file_path=req.file_path,
                        code_content=req.code_content,
                        commit_message=req.commit_message,
                        pr_title=req.pr_title,
                        pr_body=req.pr_body,
                    ),
                )
            if not isinstance(outcome, Created):
                raise outcome.error
        return {
            "message": "Pull Request created successfully!",
            "url": outcome.url,
            "branch": outcome.branch,
        }

    return app


def main() -> None:
    """Entry point for the ``caseforge-server`` script."""

    settings = AppSettings()
    app = create_app(settings=settings)
    uvicorn.run(
        app,
        host=settings.listen_host,
        port=settings.listen_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
