"""Access token handling.

Tokens are opaque strings obtained through the OAuth redirect flow and passed
back by the browser on every call. They are never stored or logged.
"""

from __future__ import annotations

from caseforge.core.errors import AuthError


def extract_bearer_token(authorization: str | None) -> str:
    """Returns the token from an ``Authorization: Bearer <token>`` header.

    Raises:
        AuthError: If the header is absent, malformed, or carries an empty token.
    """

    if not authorization:
        raise AuthError("Missing access token.")
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthError("Missing access token.")
    return token.strip()


def resolve_token(*, body_token: str | None, authorization: str | None) -> str:
    """Returns the token from a request body, falling back to the header."""

    if body_token is not None and body_token.strip():
        return body_token.strip()
    return extract_bearer_token(authorization)
