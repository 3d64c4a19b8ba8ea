"""STS AssumeRole trust elevator.

One call per chain link: assume ``role_arn`` using the basis credentials
produced by the previous link, or no credentials at all. Anonymous calls are
sent UNSIGNED so botocore never falls back to its default provider chain
(which would silently pick up instance or profile credentials that the role
chain did not ask for).

Calls are single-attempt: retries are disabled on the client.
"""

from __future__ import annotations

import hashlib
import logging
import re
import secrets
from typing import Any

import botocore.session
from botocore import UNSIGNED
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from aws_exec_cmd.aws_credentials.credentials import TemporaryCredentials
from aws_exec_cmd.aws_credentials.errors import CredentialError
from aws_exec_cmd.utils.masking import mask_secret

logger = logging.getLogger(__name__)

# AssumeRole requires RoleSessionName; generated names get a random suffix.
SESSION_NAME_PREFIX = "aws-exec-cmd."
_SESSION_NAME_SUFFIX_BYTES = 2

_CODE_MAP = {
    "AccessDenied": "access_denied",
    "ExpiredTokenException": "token_expired",
    "InvalidClientTokenId": "invalid_basis",
    "MalformedPolicyDocument": "policy_error",
    "PackedPolicyTooLarge": "policy_too_large",
    "RegionDisabledException": "region_disabled",
    "ValidationError": "invalid_parameter",
}


class STSCredentialError(CredentialError):
    """Raised when an STS AssumeRole call fails."""

    default_code = "sts_error"


def generate_session_name() -> str:
    return SESSION_NAME_PREFIX + secrets.token_hex(_SESSION_NAME_SUFFIX_BYTES)


class STSCredentialProvider:
    """Stateless STS AssumeRole caller."""

    def __init__(
        self,
        region: str = "us-east-1",
        connect_timeout: int = 5,
        read_timeout: int = 15,
    ) -> None:
        self._region = region
        self._connect_timeout = connect_timeout
        self._read_timeout = read_timeout

    @property
    def region(self) -> str:
        return self._region

    def _get_client(self, basis: TemporaryCredentials | None) -> Any:
        session = botocore.session.get_session()
        config = Config(
            connect_timeout=self._connect_timeout,
            read_timeout=self._read_timeout,
            retries={"total_max_attempts": 1, "mode": "standard"},
        )
        if basis is None:
            return session.create_client(
                "sts",
                region_name=self._region,
                config=config.merge(Config(signature_version=UNSIGNED)),
            )
        return session.create_client(
            "sts",
            region_name=self._region,
            aws_access_key_id=basis.access_key_id,
            aws_secret_access_key=basis.secret_access_key,
            aws_session_token=basis.session_token or None,
            config=config,
        )

    def assume_role(
        self,
        role_arn: str,
        *,
        basis: TemporaryCredentials | None = None,
        session_name: str | None = None,
        serial_number: str | None = None,
        token_code: str | None = None,
        duration_seconds: int | None = None,
    ) -> TemporaryCredentials:
        """
        Assume ``role_arn`` and return its temporary credentials.

        Args:
            role_arn: The ARN of the role to assume
            basis: Credentials that are allowed to assume the role, or None
                for an unsigned request
            session_name: RoleSessionName; generated when empty
            serial_number: MFA device serial or virtual device ARN
            token_code: Current code from the MFA device
            duration_seconds: Session lifetime; omitted when not positive

        Returns:
            TemporaryCredentials with the assumed role's keys

        Raises:
            STSCredentialError: If the STS call fails
        """
        client = self._get_client(basis)
        safe_session_name = (
            self._sanitize_session_name(session_name) if session_name else generate_session_name()
        )

        params: dict[str, Any] = {
            "RoleArn": role_arn,
            "RoleSessionName": safe_session_name,
        }
        if serial_number:
            params["SerialNumber"] = serial_number
        if token_code:
            params["TokenCode"] = token_code
        if duration_seconds and duration_seconds > 0:
            params["DurationSeconds"] = duration_seconds

        try:
            response = client.assume_role(**params)
        except ClientError as exc:
            error_code = exc.response.get("Error", {}).get("Code", "Unknown")
            error_message = exc.response.get("Error", {}).get("Message", str(exc))

            logger.warning(
                "STS failed: role=%s, session=%s, basis=%s, error=%s: %s",
                role_arn,
                safe_session_name,
                mask_secret(basis.access_key_id) if basis else "anonymous",
                error_code,
                error_message,
            )
            raise STSCredentialError(
                f"failed to assume role [{role_arn}]: {error_code}: {error_message}",
                code=_CODE_MAP.get(error_code, "sts_error"),
            ) from exc
        except BotoCoreError as exc:
            logger.warning("STS request failed: role=%s, error=%s", role_arn, exc)
            raise STSCredentialError(f"failed to assume role [{role_arn}]: {exc}") from exc

        creds = response["Credentials"]

        logger.info("Assumed role: %s, session=%s", role_arn, safe_session_name)

        return TemporaryCredentials(
            access_key_id=creds["AccessKeyId"],
            secret_access_key=creds["SecretAccessKey"],
            session_token=creds["SessionToken"],
            expiration=creds.get("Expiration"),
        )

    def _sanitize_session_name(self, name: str) -> str:
        """Sanitize for STS (2-64 chars, alphanumeric/_+=,.@-)."""
        safe = re.sub(r"[^a-zA-Z0-9_+=,.@-]", "-", name)
        safe = re.sub(r"-+", "-", safe).strip("-")
        if len(safe) > 64:
            suffix = hashlib.sha256(name.encode()).hexdigest()[:8]
            safe = safe[:55] + "-" + suffix
        return safe if len(safe) >= 2 else generate_session_name()
