"""GitHub OAuth web flow.

The browser is redirected to GitHub's authorize page; GitHub redirects back
with a temporary ``code`` which is exchanged here for an access token.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from urllib.parse import urlencode

import httpx

from caseforge.core.errors import AuthError

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OAuthConfig:
    """GitHub OAuth app configuration."""

    client_id: str
    client_secret: str
    oauth_base_url: str = "https://github.com"
    scope: str = "repo"
    redirect_uri: str | None = None


def build_authorize_url(*, config: OAuthConfig) -> str:
    """Returns the GitHub authorize URL the browser is redirected to."""

    params = {"client_id": config.client_id, "scope": config.scope}
    if config.redirect_uri is not None:
        params["redirect_uri"] = config.redirect_uri
    return f"{config.oauth_base_url.rstrip('/')}/login/oauth/authorize?{urlencode(params)}"


class OAuthClient:
    """Exchanges OAuth codes for access tokens."""

    def __init__(
        self,
        *,
        config: OAuthConfig,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._config = config
        self._client = httpx.Client(
            base_url=self._config.oauth_base_url,
            headers={"Accept": "application/json", "User-Agent": "caseforge"},
            timeout=httpx.Timeout(30.0),
            transport=transport,
        )

    def close(self) -> None:
        """Closes underlying HTTP client."""

        self._client.close()

    def exchange_code_for_token(self, *, code: str) -> str:
        """Exchanges a temporary OAuth ``code`` for an access token.

        Raises:
            AuthError: If GitHub refuses the code or the reply has no token.
        """

        body = {
            "client_id": self._config.client_id,
            "client_secret": self._config.client_secret,
            "code": code,
        }
        if self._config.redirect_uri is not None:
            body["redirect_uri"] = self._config.redirect_uri
        try:
            resp = self._client.post("/login/oauth/access_token", json=body)
        except httpx.HTTPError as exc:
            raise AuthError(f"OAuth token exchange failed: {exc}") from exc

        if not 200 <= resp.status_code < 300:
            raise AuthError(f"OAuth token exchange failed: status={resp.status_code}")
        try:
            payload = resp.json()
        except ValueError as exc:
            raise AuthError("OAuth token exchange returned a non-JSON body.") from exc

        # GitHub reports a bad or expired code with HTTP 200 and an "error" field.
        if not isinstance(payload, dict) or payload.get("error"):
            error = payload.get("error") if isinstance(payload, dict) else None
            raise AuthError(f"OAuth token exchange was refused: error={error}")
        token = payload.get("access_token")
        if not isinstance(token, str) or not token:
            raise AuthError("OAuth token exchange returned no access token.")
        _logger.info("OAuth token exchange succeeded: scope=%s", payload.get("scope"))
        return token
