"""AWS credential resolution and caching."""

from aws_exec_cmd.aws_credentials.errors import (
    CacheIOError,
    CredentialError,
    CredentialValidationError,
    DeadlineExceededError,
    ElevationError,
    EmptyChainError,
    InvalidChainLinkError,
    MissingMfaCodeError,
    ProviderError,
    SeedCredentialError,
    UnrecognizedAliasError,
)
from aws_exec_cmd.aws_credentials.credentials import TemporaryCredentials
from aws_exec_cmd.aws_credentials.cache import CacheEntry, CacheKey, CredentialCache
from aws_exec_cmd.aws_credentials.sts_provider import (
    STSCredentialError,
    STSCredentialProvider,
)
from aws_exec_cmd.aws_credentials.chain import (
    ResolutionInput,
    ResolutionLog,
    RoleChainResolver,
    is_role_identifier,
)

__all__ = [
    "CacheEntry",
    "CacheIOError",
    "CacheKey",
    "CredentialCache",
    "CredentialError",
    "CredentialValidationError",
    "DeadlineExceededError",
    "ElevationError",
    "EmptyChainError",
    "InvalidChainLinkError",
    "MissingMfaCodeError",
    "ProviderError",
    "ResolutionInput",
    "ResolutionLog",
    "RoleChainResolver",
    "STSCredentialError",
    "STSCredentialProvider",
    "SeedCredentialError",
    "TemporaryCredentials",
    "UnrecognizedAliasError",
    "is_role_identifier",
]
