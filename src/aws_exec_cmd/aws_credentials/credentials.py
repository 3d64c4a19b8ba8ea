"""The access-key/secret/session-token triple handed to a child command."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from aws_exec_cmd.utils.masking import mask_secret

ENV_ACCESS_KEY_ID = "AWS_ACCESS_KEY_ID"
ENV_SECRET_ACCESS_KEY = "AWS_SECRET_ACCESS_KEY"
ENV_SESSION_TOKEN = "AWS_SESSION_TOKEN"


@dataclass(frozen=True)
class TemporaryCredentials:
    """Immutable AWS credentials triple.

    ``expiration`` is informational: STS and Cognito results carry it, static
    and cached triples may not.
    """

    access_key_id: str
    secret_access_key: str
    session_token: str
    expiration: datetime | None = None

    @property
    def has_keys(self) -> bool:
        return bool(self.access_key_id and self.secret_access_key)

    def to_env(self) -> dict[str, str]:
        # https://docs.aws.amazon.com/cli/latest/userguide/cli-environment.html
        return {
            ENV_ACCESS_KEY_ID: self.access_key_id,
            ENV_SECRET_ACCESS_KEY: self.secret_access_key,
            ENV_SESSION_TOKEN: self.session_token,
        }

    def __repr__(self) -> str:
        expiration = self.expiration.isoformat() if self.expiration else None
        return (
            f"TemporaryCredentials(access_key_id={mask_secret(self.access_key_id, visible=8)}, "
            f"expiration={expiration})"
        )
