"""Error types shared across the service.

Components raise these; the HTTP layer maps them to status codes.
"""

from __future__ import annotations


class CaseForgeError(RuntimeError):
    """Base class for all service errors."""


class AuthError(CaseForgeError):
    """Raised when the access token is missing or rejected."""


class ValidationError(CaseForgeError):
    """Raised when a request lacks required fields."""


class ConfigurationError(CaseForgeError):
    """Raised when required settings are missing."""


class UpstreamError(CaseForgeError):
    """Raised when GitHub returns a non-success response."""

    def __init__(self, *, status_code: int, message: str) -> None:
        super().__init__(f"GitHub API error: status={status_code}, message={message}")
        self.status_code = status_code
        self.message = message


class ConflictError(UpstreamError):
    """Raised when a branch ref already exists."""


class GenerationError(CaseForgeError):
    """Raised when the generation model fails or returns nothing usable."""
