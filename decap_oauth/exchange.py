"""Server-side exchange of a GitHub authorization code for an access token."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

logger = logging.getLogger(__name__)

TOKEN_URL = "https://github.com/login/oauth/access_token"


@dataclass(frozen=True)
class TokenGrant:
    access_token: str
    token_type: str | None = None
    scope: str | None = None


@dataclass(frozen=True)
class TokenError:
    error: str
    error_description: str | None = None
    error_uri: str | None = None

    @property
    def message(self) -> str:
        """Text reported to the CMS."""
        return self.error_description or self.error or "oauth_error"


TokenExchangeResult = TokenGrant | TokenError


async def exchange_code(
    client: httpx.AsyncClient,
    *,
    code: str,
    client_id: str,
    client_secret: str,
    redirect_uri: str,
    state: str,
) -> TokenExchangeResult:
    """Exchange ``code`` for a token.

    Makes exactly one request: GitHub codes are single use, so a retry could
    only fail. Failures are returned as :class:`TokenError`, never raised.
    """
    try:
        resp = await client.post(
            TOKEN_URL,
            data={
                "client_id": client_id,
                "client_secret": client_secret,
                "code": code,
                "redirect_uri": redirect_uri,
                "state": state,
            },
            headers={"Accept": "application/json"},
        )
        payload = resp.json()
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("GitHub token endpoint returned an unusable response: %s", exc)
        return TokenError(
            error="invalid_response",
            error_description=f"Unable to parse GitHub response: {exc}",
        )

    if not isinstance(payload, dict):
        payload = {}

    if not resp.is_success or payload.get("error") or not payload.get("access_token"):
        if payload.get("error"):
            return TokenError(
                error=str(payload["error"]),
                error_description=payload.get("error_description"),
                error_uri=payload.get("error_uri"),
            )
        return TokenError(
            error="invalid_token",
            error_description="GitHub response did not include an access token.",
        )

    return TokenGrant(
        access_token=payload["access_token"],
        token_type=payload.get("token_type"),
        scope=payload.get("scope"),
    )
