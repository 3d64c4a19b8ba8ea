"""Credential providers the broker calls on a cache miss.

Two variants share one contract: ``RoleChainProvider`` walks an STS role
chain and ``IdentityPoolProvider`` performs a Cognito federated login. The
broker never needs to know which one it holds.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol

from aws_exec_cmd.auth.google_oauth import request_refresh
from aws_exec_cmd.aws_credentials.chain import ResolutionInput, RoleChainResolver
from aws_exec_cmd.aws_credentials.cognito import (
    GOOGLE_PROVIDER_NAME,
    create_identity_client,
    single_identity_login,
)
from aws_exec_cmd.aws_credentials.credentials import TemporaryCredentials
from aws_exec_cmd.aws_credentials.errors import CredentialValidationError, EmptyChainError

logger = logging.getLogger(__name__)

SUPPORTED_REFRESH_PROVIDERS = frozenset({GOOGLE_PROVIDER_NAME})


@dataclass(frozen=True)
class ProviderInput:
    mfa_serial: str = ""
    mfa_code: str = field(default="", repr=False)
    role_chain: str = ""
    session_ttl_seconds: int = 0
    deadline: datetime | None = None


class CredentialProvider(Protocol):
    name: str

    def get(self, request: ProviderInput) -> TemporaryCredentials: ...


def parse_role_chain(raw: str) -> list[str]:
    return [link.strip() for link in raw.split(",") if link.strip()]


class RoleChainProvider:
    """Provider backed by ``RoleChainResolver``."""

    name = "role-chain"

    def __init__(
        self,
        resolver: RoleChainResolver,
        region: str | None = None,
        session_name: str | None = None,
    ) -> None:
        self._resolver = resolver
        self._region = region
        self._session_name = session_name

    def get(self, request: ProviderInput) -> TemporaryCredentials:
        chain = parse_role_chain(request.role_chain)
        if not chain:
            raise EmptyChainError("role chain required")

        resolve_input = ResolutionInput(
            chain=chain,
            session_name=self._session_name,
            region=self._region,
            duration_seconds=request.session_ttl_seconds,
            deadline=request.deadline,
        )
        if request.mfa_serial:
            resolve_input.serial_number = request.mfa_serial
            resolve_input.token_code = request.mfa_code

        logger.debug("Resolving role chain: %s", resolve_input)
        return self._resolver.resolve(resolve_input)


class IdentityPoolProvider:
    """Provider backed by a Cognito identity pool login.

    The ID token is either given directly or obtained through an OAuth
    refresh exchange (Google only). MFA and the role chain are ignored.
    """

    name = "identity-pool"

    def __init__(
        self,
        pool_id: str,
        provider_name: str,
        *,
        id_token: str | None = None,
        refresh_token: str | None = None,
        client_id: str | None = None,
        client_secret: str | None = None,
        region: str = "us-east-1",
        token_url: str | None = None,
        http_timeout: float = 10.0,
        client: Any = None,
    ) -> None:
        self.pool_id = pool_id
        self.provider_name = provider_name
        self._id_token = id_token or ""
        self._refresh_token = refresh_token or ""
        self._client_id = client_id or ""
        self._client_secret = client_secret or ""
        self._region = region
        self._token_url = token_url
        self._http_timeout = http_timeout
        self._client = client

    def validate(self) -> None:
        if not self.pool_id:
            raise CredentialValidationError("identity pool id required")
        if not self.provider_name:
            raise CredentialValidationError("identity provider name required")
        if not self._id_token and not self._refresh_token:
            raise CredentialValidationError("must input --token or --refresh")
        if self._id_token and self._refresh_token:
            raise CredentialValidationError("only input --token or --refresh")
        if not self._id_token:
            if self.provider_name not in SUPPORTED_REFRESH_PROVIDERS:
                raise CredentialValidationError(
                    f"--refresh is not supported for provider {self.provider_name}"
                )
            if not self._client_id:
                raise CredentialValidationError("--refresh requires --client-id")
            if not self._client_secret:
                raise CredentialValidationError("--refresh requires --client-secret")

    def get(self, request: ProviderInput) -> TemporaryCredentials:
        del request
        self.validate()

        id_token = self._id_token
        if not id_token:
            kwargs: dict[str, Any] = {"timeout": self._http_timeout}
            if self._token_url:
                kwargs["token_url"] = self._token_url
            id_token = request_refresh(
                self._client_id, self._client_secret, self._refresh_token, **kwargs
            ).id_token

        client = self._client or create_identity_client(self._region)
        result = single_identity_login(client, self.pool_id, self.provider_name, id_token)
        return result.credentials
