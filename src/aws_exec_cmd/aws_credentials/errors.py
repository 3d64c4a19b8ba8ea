"""Error taxonomy for credential resolution and caching.

Every error carries a short machine ``code`` next to its message, the same
shape as ``STSCredentialError``. Callers at the CLI boundary only need to
catch ``CredentialError``.
"""

from __future__ import annotations

from collections.abc import Sequence


class CredentialError(Exception):
    """Base class for all credential acquisition failures."""

    default_code = "credential_error"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.code = code or self.default_code


class CredentialValidationError(CredentialError):
    """Input was rejected before any external call was made."""

    default_code = "validation_error"


class EmptyChainError(CredentialValidationError):
    """Raised when a role chain has no non-blank links."""

    def __init__(self, message: str = "no links in role chain") -> None:
        super().__init__(message)


class UnrecognizedAliasError(CredentialValidationError):
    """Raised when the first chain link is neither an ARN nor a known alias."""

    def __init__(self, alias: str) -> None:
        super().__init__(f"role chain first-link alias [{alias}] is not recognized")
        self.alias = alias


class InvalidChainLinkError(CredentialValidationError):
    """Raised when a non-first link is not a role ARN."""

    def __init__(self, link: str, chain: Sequence[str], log: Sequence[str] = ()) -> None:
        joined = ",".join(chain)
        super().__init__(
            f"non-ARN role [{link}] is only allowed in first chain role, chain [{joined}]"
            f" log [{format_log(log)}]"
        )
        self.link = link
        self.log = tuple(log)


class MissingMfaCodeError(CredentialValidationError):
    """Raised when an MFA serial is configured but no code was supplied."""

    def __init__(self, serial: str, source: str = "") -> None:
        detail = f" from source [{source}]" if source else ""
        super().__init__(f"MFA code required for serial [{serial}]{detail}")
        self.serial = serial


class ElevationError(CredentialError):
    """A role-chain step failed; ``log`` records the steps that completed."""

    default_code = "elevation_error"

    def __init__(
        self,
        message: str,
        *,
        link: str,
        log: Sequence[str] = (),
        code: str | None = None,
    ) -> None:
        super().__init__(f"{message} log [{format_log(log)}]", code=code)
        self.link = link
        self.reason = message
        self.log = tuple(log)


class SeedCredentialError(ElevationError):
    """The seed source selected by a chain alias produced no credentials."""

    default_code = "seed_error"


class DeadlineExceededError(ElevationError):
    """The caller's deadline passed before the next elevation step."""

    default_code = "deadline_exceeded"


class CacheIOError(CredentialError):
    """Cache file could not be read, parsed or written."""

    default_code = "cache_error"

    def __init__(self, message: str, *, path: str) -> None:
        super().__init__(f"{message} [{path}]")
        self.path = path


class ProviderError(CredentialError):
    """Wraps any failure raised by a credential provider."""

    default_code = "provider_error"

    def __init__(self, provider_name: str, cause: BaseException) -> None:
        code = getattr(cause, "code", None)
        super().__init__(f"{provider_name} provider failed: {cause}", code=code)
        self.provider_name = provider_name
        self.cause = cause


def format_log(log: Sequence[str]) -> str:
    return ",".join(log) if log else "no roles resolved"
