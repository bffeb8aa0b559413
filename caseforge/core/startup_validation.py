"""Startup validation for required credentials and configuration.

Problems are collected rather than raised one by one so an operator sees all of
them at once.
"""

from __future__ import annotations

from caseforge.core.config import AppSettings
from caseforge.core.errors import ConfigurationError


def find_configuration_problems(*, settings: AppSettings) -> list[str]:
    """Returns human-readable descriptions of missing configuration.

    Args:
        settings: Application settings.

    Returns:
        One entry per problem; empty when the configuration is complete.
    """
    problems: list[str] = []

    if not settings.github_client_id:
        problems.append("GITHUB_CLIENT_ID is required for GitHub login but not set.")
    if not settings.github_client_secret:
        problems.append("GITHUB_CLIENT_SECRET is required for GitHub login but not set.")
    if not settings.get_gemini_api_key():
        problems.append(
            "GEMINI_API_KEY (or GOOGLE_API_KEY) is required for test generation but not set."
        )
    if not settings.base_branch.strip():
        problems.append("BASE_BRANCH must not be empty.")
    if not settings.branch_prefix.strip("/ "):
        problems.append("BRANCH_PREFIX must not be empty.")
    if settings.repository_page_size < 1 or settings.repository_page_size > 100:
        problems.append(
            "REPOSITORY_PAGE_SIZE must be between 1 and 100, "
            f"got: {settings.repository_page_size}"
        )

    return problems


def validate_all(*, settings: AppSettings) -> None:
    """Validates all required credentials and configuration.

    Args:
        settings: Application settings.

    Raises:
        ConfigurationError: If any validation fails.
    """
    problems = find_configuration_problems(settings=settings)
    if problems:
        error_message = "Startup validation failed:\n\n" + "\n".join(f"  - {p}" for p in problems)
        raise ConfigurationError(error_message)
