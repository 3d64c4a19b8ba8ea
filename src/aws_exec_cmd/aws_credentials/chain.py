"""Role-chain traversal.

A chain is an ordered list of links. The first link may be an alias that
selects a seed credential source; every other link is a role ARN. Each ARN
link is assumed with the credentials produced by the previous step, so the
final step's credentials are the result:

    instance,arn:aws:iam::123456789012:role/a,arn:aws:iam::210987654321:role/b

MFA applies only to the first AssumeRole of a traversal: that is the trust
boundary the device protects, and STS would reject the reused code anyway.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

from aws_exec_cmd.aws_credentials.credentials import TemporaryCredentials
from aws_exec_cmd.aws_credentials.errors import (
    CredentialError,
    DeadlineExceededError,
    ElevationError,
    EmptyChainError,
    InvalidChainLinkError,
    MissingMfaCodeError,
    SeedCredentialError,
    UnrecognizedAliasError,
    format_log,
)
from aws_exec_cmd.aws_credentials.seed import ENV_TRIPLE_ALIAS, INSTANCE_ALIAS
from aws_exec_cmd.utils.time import utc_now

logger = logging.getLogger(__name__)

ARN_PREFIX = "arn:aws:"


def is_role_identifier(link: str) -> bool:
    return link.startswith(ARN_PREFIX)


class TrustElevator(Protocol):
    def assume_role(
        self,
        role_arn: str,
        *,
        basis: TemporaryCredentials | None = None,
        session_name: str | None = None,
        serial_number: str | None = None,
        token_code: str | None = None,
        duration_seconds: int | None = None,
    ) -> TemporaryCredentials: ...


class SeedSource(Protocol):
    def instance_credentials(self) -> TemporaryCredentials: ...

    def environment_credentials(self) -> TemporaryCredentials: ...


@dataclass
class ResolutionInput:
    """Chain to traverse plus the optional static seed and MFA material."""

    chain: list[str]
    access_key_id: str = ""
    secret_access_key: str = ""
    session_token: str = ""
    session_name: str | None = None
    region: str | None = None
    serial_number: str | None = None
    token_code: str | None = field(default=None, repr=False)
    duration_seconds: int = 0
    deadline: datetime | None = None

    def __str__(self) -> str:
        return (
            f"session [{self.session_name or ''}] region [{self.region or ''}] "
            f"mfa serial [{len(self.serial_number or '')} chars] "
            f"mfa code [{len(self.token_code or '')} chars] "
            f"ttl [{self.duration_seconds} sec] chain [{','.join(self.chain)}]"
        )


class ResolutionLog(list):
    """Completed traversal steps, attached to errors raised mid-chain."""

    def __str__(self) -> str:
        return format_log(self)


class RoleChainResolver:
    """Walks a role chain with one AssumeRole per ARN link."""

    def __init__(self, elevator: TrustElevator, seeds: SeedSource) -> None:
        self._elevator = elevator
        self._seeds = seeds

    def resolve(
        self,
        request: ResolutionInput,
        log: ResolutionLog | None = None,
    ) -> TemporaryCredentials:
        """Return the final triple of the chain.

        Completed steps are appended to *log* when one is given.
        """
        chain = [link.strip() for link in request.chain]
        if not any(chain):
            raise EmptyChainError()
        if request.serial_number and not request.token_code:
            raise MissingMfaCodeError(request.serial_number)

        log = ResolutionLog() if log is None else log
        basis: TemporaryCredentials | None = None
        static_seed = bool(request.access_key_id and request.secret_access_key)
        seed_alias = None if static_seed or is_role_identifier(chain[0]) else chain[0]
        links = chain[1:] if seed_alias is not None else chain

        if seed_alias is not None and seed_alias not in (ENV_TRIPLE_ALIAS, INSTANCE_ALIAS):
            raise UnrecognizedAliasError(seed_alias)
        for link in links:
            if link and not is_role_identifier(link):
                raise InvalidChainLinkError(link, request.chain, log)

        if static_seed:
            # E.g. a long-lived keypair on a laptop assumes the first ARN.
            basis = TemporaryCredentials(
                access_key_id=request.access_key_id,
                secret_access_key=request.secret_access_key,
                session_token=request.session_token,
            )
        elif seed_alias is not None:
            basis = self._seed(seed_alias, request, log)

        serial_number = request.serial_number
        token_code = request.token_code

        for link in links:
            if not link:  # e.g. "a,b," split on ","
                continue
            if request.deadline is not None and utc_now() >= request.deadline:
                raise DeadlineExceededError(
                    f"deadline passed before assuming role [{link}] ({request})",
                    link=link,
                    log=log,
                )

            prior_exists = basis is not None and basis.has_keys
            try:
                basis = self._elevator.assume_role(
                    link,
                    basis=basis if prior_exists else None,
                    session_name=request.session_name,
                    serial_number=serial_number,
                    token_code=token_code,
                    duration_seconds=request.duration_seconds,
                )
            except CredentialError as exc:
                raise ElevationError(
                    f"failed to resolve role chain ({request}): {exc}",
                    link=link,
                    log=log,
                    code=exc.code,
                ) from exc
            finally:
                serial_number = None
                token_code = None

            log.append(f"assumed role [{link}] with prior creds [{str(prior_exists).lower()}]")
            logger.debug("Role chain step complete: %s", link)

        if basis is None:
            raise EmptyChainError()
        return basis

    def _seed(self, alias: str, request: ResolutionInput, log: ResolutionLog) -> TemporaryCredentials:
        if alias == ENV_TRIPLE_ALIAS:
            load, step = self._seeds.environment_credentials, "seeded chain with env-triple creds"
        else:
            load, step = self._seeds.instance_credentials, "seeded chain with instance role creds"

        try:
            creds = load()
        except SeedCredentialError as exc:
            raise SeedCredentialError(
                f"failed to resolve role chain ({request}): {exc.reason}",
                link=alias,
                log=log,
                code=exc.code,
            ) from exc

        log.append(step)
        return creds
