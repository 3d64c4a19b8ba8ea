"""Google OAuth refresh-token exchange.

Trades a long-lived refresh token for a fresh ``id_token`` that a Cognito
identity pool configured with the ``accounts.google.com`` provider accepts.
See https://developers.google.com/identity/protocols/OAuth2WebServer#offline
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field

import httpx

from aws_exec_cmd.aws_credentials.errors import CredentialError
from aws_exec_cmd.utils.masking import redact_sensitive_fields

logger = logging.getLogger(__name__)

REFRESH_TOKEN_URL = "https://www.googleapis.com/oauth2/v4/token"


class OAuthRefreshError(CredentialError):
    """Raised when the refresh exchange fails or returns no ID token."""

    default_code = "oauth_refresh_error"


@dataclass(frozen=True)
class RefreshResponse:
    id_token: str = field(repr=False)
    access_token: str = field(default="", repr=False)
    expires_in: int = 0
    scope: str = ""
    token_type: str = ""


def request_refresh(
    client_id: str,
    client_secret: str,
    refresh_token: str,
    *,
    token_url: str = REFRESH_TOKEN_URL,
    timeout: float = 10.0,
    http_client: httpx.Client | None = None,
) -> RefreshResponse:
    """POST a refresh_token grant and return the parsed token response."""
    form = {
        "client_id": client_id,
        "client_secret": client_secret,
        "refresh_token": refresh_token,
        "grant_type": "refresh_token",
    }

    client = http_client or httpx.Client(timeout=timeout)
    try:
        resp = client.post(token_url, data=form)
    except httpx.HTTPError as exc:
        raise OAuthRefreshError(f"refresh request to {token_url} failed: {exc}") from exc
    finally:
        if http_client is None:
            client.close()

    try:
        payload = resp.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise OAuthRefreshError(
            f"invalid JSON from {token_url}: status={resp.status_code}"
        ) from exc
    if not isinstance(payload, dict):
        raise OAuthRefreshError(f"invalid JSON from {token_url}: expected object")

    if resp.status_code < 200 or resp.status_code >= 300:
        body = redact_sensitive_fields(payload)
        logger.warning("OAuth refresh rejected: status=%s body=%s", resp.status_code, body)
        raise OAuthRefreshError(
            f"refresh rejected by {token_url}: status={resp.status_code} body={body}",
            code="oauth_rejected",
        )

    id_token = str(payload.get("id_token") or "")
    if not id_token:
        raise OAuthRefreshError(f"refresh response from {token_url} has no id_token")

    logger.info("OAuth refresh succeeded (expires_in=%s)", payload.get("expires_in"))
    return RefreshResponse(
        id_token=id_token,
        access_token=str(payload.get("access_token") or ""),
        expires_in=int(payload.get("expires_in") or 0),
        scope=str(payload.get("scope") or ""),
        token_type=str(payload.get("token_type") or ""),
    )
