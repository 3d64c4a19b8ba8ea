"""Credential sources that can seed a role chain.

Selected by the chain's first-link alias:

* ``instance`` - the EC2 instance profile via the metadata service
* ``env-triple`` - AWS_ACCESS_KEY_ID / AWS_SECRET_ACCESS_KEY / AWS_SESSION_TOKEN
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping

from botocore.credentials import EnvProvider, InstanceMetadataProvider
from botocore.exceptions import BotoCoreError
from botocore.utils import InstanceMetadataFetcher

from aws_exec_cmd.aws_credentials.credentials import TemporaryCredentials
from aws_exec_cmd.aws_credentials.errors import SeedCredentialError

logger = logging.getLogger(__name__)

INSTANCE_ALIAS = "instance"
ENV_TRIPLE_ALIAS = "env-triple"


def _freeze(creds: object) -> TemporaryCredentials:
    frozen = creds.get_frozen_credentials()  # type: ignore[attr-defined]
    return TemporaryCredentials(
        access_key_id=frozen.access_key,
        secret_access_key=frozen.secret_key,
        session_token=frozen.token or "",
    )


class SeedSources:
    """botocore-backed seed credential lookups."""

    def __init__(
        self,
        metadata_timeout: float = 1.0,
        metadata_attempts: int = 1,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._metadata_timeout = metadata_timeout
        self._metadata_attempts = metadata_attempts
        self._environ = environ

    def instance_credentials(self) -> TemporaryCredentials:
        provider = InstanceMetadataProvider(
            iam_role_fetcher=InstanceMetadataFetcher(
                timeout=self._metadata_timeout,
                num_attempts=self._metadata_attempts,
            )
        )
        try:
            creds = provider.load()
        except BotoCoreError as exc:
            raise SeedCredentialError(
                f"failed to read instance role credentials: {exc}", link=INSTANCE_ALIAS
            ) from exc
        if creds is None:
            raise SeedCredentialError(
                "no instance role credentials available from the metadata service",
                link=INSTANCE_ALIAS,
            )
        logger.debug("Loaded seed credentials from instance metadata")
        return _freeze(creds)

    def environment_credentials(self) -> TemporaryCredentials:
        environ = os.environ if self._environ is None else self._environ
        try:
            creds = EnvProvider(environ=environ).load()
        except BotoCoreError as exc:
            raise SeedCredentialError(
                f"failed to read environment credentials: {exc}", link=ENV_TRIPLE_ALIAS
            ) from exc
        if creds is None:
            raise SeedCredentialError(
                f"{EnvProvider.ACCESS_KEY} is not set in the environment",
                link=ENV_TRIPLE_ALIAS,
            )
        logger.debug("Loaded seed credentials from environment")
        return _freeze(creds)
