"""Cognito identity pool login with a third-party ID token."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import botocore.session
from botocore import UNSIGNED
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from aws_exec_cmd.aws_credentials.credentials import TemporaryCredentials
from aws_exec_cmd.aws_credentials.errors import CredentialError

logger = logging.getLogger(__name__)

GOOGLE_PROVIDER_NAME = "accounts.google.com"

_CODE_MAP = {
    "NotAuthorizedException": "not_authorized",
    "ResourceNotFoundException": "pool_not_found",
    "InvalidParameterException": "invalid_parameter",
    "ExternalServiceException": "idp_error",
    "TooManyRequestsException": "throttled",
}


class FederatedLoginError(CredentialError):
    """Raised when a Cognito identity pool login fails."""

    default_code = "federated_login_error"


@dataclass(frozen=True)
class IdentityLoginResult:
    credentials: TemporaryCredentials
    identity_id: str


def create_identity_client(
    region: str,
    connect_timeout: int = 5,
    read_timeout: int = 15,
) -> Any:
    # GetId / GetCredentialsForIdentity with Logins are public APIs.
    session = botocore.session.get_session()
    return session.create_client(
        "cognito-identity",
        region_name=region,
        config=Config(
            signature_version=UNSIGNED,
            connect_timeout=connect_timeout,
            read_timeout=read_timeout,
            retries={"total_max_attempts": 1, "mode": "standard"},
        ),
    )


def single_identity_login(
    client: Any,
    pool_id: str,
    provider_name: str,
    provider_token: str,
) -> IdentityLoginResult:
    """Exchange *provider_token* for identity pool credentials."""
    logins = {provider_name: provider_token}
    context = (
        f"pool [{pool_id}] using provider [{provider_name}] "
        f"with [{len(provider_token)}] length token"
    )

    try:
        identity = client.get_id(IdentityPoolId=pool_id, Logins=logins)
    except (ClientError, BotoCoreError) as exc:
        raise _login_error(f"failed to get user identity from {context}", exc) from exc

    identity_id = identity["IdentityId"]
    try:
        resp = client.get_credentials_for_identity(IdentityId=identity_id, Logins=logins)
    except (ClientError, BotoCoreError) as exc:
        raise _login_error(f"failed to get credentials from {context}", exc) from exc

    creds = resp["Credentials"]
    logger.info("Identity pool login succeeded: pool=%s, identity=%s", pool_id, identity_id)
    return IdentityLoginResult(
        credentials=TemporaryCredentials(
            access_key_id=creds["AccessKeyId"],
            secret_access_key=creds["SecretKey"],
            session_token=creds["SessionToken"],
            expiration=creds.get("Expiration"),
        ),
        identity_id=resp.get("IdentityId", identity_id),
    )


def _login_error(message: str, exc: Exception) -> FederatedLoginError:
    if isinstance(exc, ClientError):
        error = exc.response.get("Error", {})
        code = error.get("Code", "Unknown")
        logger.warning("Cognito error: %s: %s", code, error.get("Message", str(exc)))
        return FederatedLoginError(
            f"{message}: {code}: {error.get('Message', str(exc))}",
            code=_CODE_MAP.get(code, "federated_login_error"),
        )
    logger.warning("Cognito request failed: %s", exc)
    return FederatedLoginError(f"{message}: {exc}")
