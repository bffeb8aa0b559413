"""Application configuration.

All secrets must be supplied via environment variables. This module intentionally
avoids printing secret values.
"""

from __future__ import annotations

from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Settings for the API server."""

    model_config = SettingsConfigDict(
        env_prefix="",
        extra="ignore",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # GitHub OAuth app
    github_client_id: str | None = None
    github_client_secret: str | None = None
    github_oauth_base_url: str = "https://github.com"
    github_oauth_scope: str = "repo"
    github_oauth_redirect_uri: str | None = None

    # GitHub REST API
    github_api_base_url: str = "https://api.github.com"
    repository_page_size: int = 20

    # Browser front end (OAuth redirect target and CORS origin)
    frontend_url: str = "http://localhost:3000"
    cors_allow_origins: str | None = None  # comma-separated; defaults to frontend_url

    # Gemini
    gemini_api_key: str | None = None
    google_api_key: str | None = None
    gemini_model: str = "gemini-1.5-flash-latest"

    # Pull request workflow
    base_branch: str = "main"
    branch_prefix: str = "test-gen"
    default_commit_message: str = "feat: Add generated test case"
    default_pr_title: str = "New Test Case from caseforge"
    delete_branch_on_failure: bool = False

    # Server
    listen_host: str = "0.0.0.0"
    listen_port: int = 8080
    log_level: str = "INFO"

    @field_validator(
        "github_client_id",
        "github_client_secret",
        "github_oauth_redirect_uri",
        "gemini_api_key",
        "google_api_key",
        "cors_allow_origins",
        mode="before",
    )
    @classmethod
    def _normalize_env_string(cls, value: Any) -> Any:
        """Normalizes env var strings.

        Docker's `--env-file` does not strip quotes. To avoid subtle auth failures
        like 401 caused by surrounding quotes, we trim whitespace and strip a
        single pair of surrounding quotes.
        """

        if value is None or not isinstance(value, str):
            return value
        text = value.strip()
        if len(text) >= 2 and ((text[0] == text[-1] == '"') or (text[0] == text[-1] == "'")):
            text = text[1:-1].strip()
        return text or None

    def get_gemini_api_key(self) -> str | None:
        """Returns the Gemini key, falling back to GOOGLE_API_KEY."""

        return self.gemini_api_key or self.google_api_key

    def get_cors_allow_origins(self) -> list[str]:
        """Returns the allowed CORS origins."""

        if self.cors_allow_origins is None:
            return [self.frontend_url]
        origins = [origin.strip() for origin in self.cors_allow_origins.split(",")]
        return [origin for origin in origins if origin]
