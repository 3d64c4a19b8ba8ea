"""Third-party identity provider helpers used by federated login."""

from aws_exec_cmd.auth.google_oauth import (
    REFRESH_TOKEN_URL,
    OAuthRefreshError,
    RefreshResponse,
    request_refresh,
)

__all__ = [
    "OAuthRefreshError",
    "REFRESH_TOKEN_URL",
    "RefreshResponse",
    "request_refresh",
]
