"""Configuration management for aws-exec-cmd.

Values come from the environment (optionally seeded by a ``.env`` file in the
working directory). Command-line flags override them per invocation by
copying the loaded models; nothing here is mutated after load.
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

_config_logger = logging.getLogger(__name__)

DEFAULT_MFA_SOURCE = "prompt"
DEFAULT_SESSION_TTL_SECONDS = 900
DEFAULT_CACHE_DIRNAME = ".aws-exec-cmd-cache"
ENV_PREFIX = "AWS_EXEC_CMD_"


class LoggingSettings(BaseModel):
    level: str = Field(default="WARNING", description="Python logging level name")
    file: str | None = Field(default=None, description="Optional log file path")


class AuthSettings(BaseModel):
    """Inputs to one credential acquisition: cache, MFA, chain and session."""

    cache_dir: str | None = Field(
        default=None,
        description=f"Cache directory; defaults to ~/{DEFAULT_CACHE_DIRNAME}",
    )
    cache_skip: bool = Field(
        default=False,
        description="Skip reading from cache (but still write after success)",
    )
    mfa_serial: str | None = Field(default=None, description="MFA serial ARN")
    mfa_source: str = Field(
        default=DEFAULT_MFA_SOURCE,
        description="MFA source (to read from an environment variable, provide the variable's name)",
    )
    role_chain: str | None = Field(
        default=None,
        description='Comma-separated aliases, e.g. "instance", or ARNs',
    )
    session_ttl_seconds: int = Field(default=DEFAULT_SESSION_TTL_SECONDS, ge=1)
    session_name: str | None = Field(default=None)
    resolve_timeout_seconds: float = Field(
        default=0.0,
        ge=0.0,
        description="Abort the role chain walk after this many seconds (0 disables)",
    )

    @field_validator("mfa_source")
    @classmethod
    def _validate_mfa_source(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("mfa_source must be 'prompt' or an environment variable name")
        return value


class AWSSettings(BaseModel):
    region: str | None = Field(default=None)
    sts_region: str = Field(default="us-east-1")
    connect_timeout_seconds: int = Field(default=5, ge=1, le=300)
    read_timeout_seconds: int = Field(default=15, ge=1, le=300)
    metadata_timeout_seconds: float = Field(default=1.0, gt=0)
    metadata_attempts: int = Field(default=1, ge=1, le=10)

    @property
    def effective_region(self) -> str:
        return self.region or self.sts_region


class ExecSettings(BaseModel):
    pty: bool = Field(default=False, description="Run in a pseudo-terminal")
    timeout_seconds: int = Field(
        default=0,
        ge=0,
        description="Number of seconds to wait for a non-pty command to finish",
    )


class OAuthSettings(BaseModel):
    token_url: str = Field(default="https://www.googleapis.com/oauth2/v4/token")
    timeout_seconds: float = Field(default=10.0, gt=0)


class Settings(BaseModel):
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    aws: AWSSettings = Field(default_factory=AWSSettings)
    execution: ExecSettings = Field(default_factory=ExecSettings)
    oauth: OAuthSettings = Field(default_factory=OAuthSettings)


ENV_KEYS = {
    "log_level": ENV_PREFIX + "LOG_LEVEL",
    "log_file": ENV_PREFIX + "LOG_FILE",
    "cache_dir": ENV_PREFIX + "CACHE_DIR",
    "cache_skip": ENV_PREFIX + "CACHE_SKIP",
    "mfa_serial": ENV_PREFIX + "MFA_SERIAL",
    "mfa_source": ENV_PREFIX + "MFA_SOURCE",
    "role_chain": ENV_PREFIX + "CHAIN",
    "session_ttl": ENV_PREFIX + "SESSION_TTL",
    "session_name": ENV_PREFIX + "SESSION_NAME",
    "resolve_timeout": ENV_PREFIX + "RESOLVE_TIMEOUT",
    "pty": ENV_PREFIX + "PTY",
    "timeout": ENV_PREFIX + "TIMEOUT",
    "aws_region": "AWS_REGION",
    "aws_default_region": "AWS_DEFAULT_REGION",
    "sts_region": "AWS_STS_REGION",
}

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})


def _env_str(key: str) -> str | None:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return None
    return value.strip()


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        _config_logger.warning(
            "Invalid integer value for %s: %r, using default %d", key, value, default
        )
        return default


def _env_float(key: str, default: float) -> float:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except ValueError:
        _config_logger.warning(
            "Invalid float value for %s: %r, using default %s", key, value, default
        )
        return default


def _resolve_path(path: str) -> str:
    return str(Path(path).expanduser().resolve())


def default_cache_dir() -> Path:
    return Path.home() / DEFAULT_CACHE_DIRNAME


def load_settings() -> Settings:
    """Load configuration and cache the result."""

    return _load_settings_cached()


@lru_cache(maxsize=1)
def _load_settings_cached() -> Settings:
    load_dotenv(dotenv_path=Path.cwd() / ".env")
    log_file_env = _env_str(ENV_KEYS["log_file"])
    cache_dir_env = _env_str(ENV_KEYS["cache_dir"])

    settings_data: dict[str, object] = {
        "logging": {
            "level": os.getenv(ENV_KEYS["log_level"], LoggingSettings().level),
            "file": _resolve_path(log_file_env) if log_file_env else None,
        },
        "auth": {
            "cache_dir": _resolve_path(cache_dir_env) if cache_dir_env else None,
            "cache_skip": _env_bool(ENV_KEYS["cache_skip"], AuthSettings().cache_skip),
            "mfa_serial": _env_str(ENV_KEYS["mfa_serial"]),
            "mfa_source": os.getenv(ENV_KEYS["mfa_source"], AuthSettings().mfa_source),
            "role_chain": _env_str(ENV_KEYS["role_chain"]),
            "session_ttl_seconds": _env_int(
                ENV_KEYS["session_ttl"],
                AuthSettings().session_ttl_seconds,
            ),
            "session_name": _env_str(ENV_KEYS["session_name"]),
            "resolve_timeout_seconds": _env_float(
                ENV_KEYS["resolve_timeout"],
                AuthSettings().resolve_timeout_seconds,
            ),
        },
        "aws": {
            "region": _env_str(ENV_KEYS["aws_region"]) or _env_str(ENV_KEYS["aws_default_region"]),
            "sts_region": os.getenv(ENV_KEYS["sts_region"], AWSSettings().sts_region),
            "connect_timeout_seconds": _env_int(
                ENV_PREFIX + "CONNECT_TIMEOUT",
                AWSSettings().connect_timeout_seconds,
            ),
            "read_timeout_seconds": _env_int(
                ENV_PREFIX + "READ_TIMEOUT",
                AWSSettings().read_timeout_seconds,
            ),
            "metadata_timeout_seconds": _env_float(
                "AWS_METADATA_SERVICE_TIMEOUT",
                AWSSettings().metadata_timeout_seconds,
            ),
            "metadata_attempts": _env_int(
                "AWS_METADATA_SERVICE_NUM_ATTEMPTS",
                AWSSettings().metadata_attempts,
            ),
        },
        "execution": {
            "pty": _env_bool(ENV_KEYS["pty"], ExecSettings().pty),
            "timeout_seconds": _env_int(ENV_KEYS["timeout"], ExecSettings().timeout_seconds),
        },
        "oauth": {
            "token_url": os.getenv(ENV_PREFIX + "OAUTH_TOKEN_URL", OAuthSettings().token_url),
            "timeout_seconds": _env_float(
                ENV_PREFIX + "OAUTH_TIMEOUT",
                OAuthSettings().timeout_seconds,
            ),
        },
    }

    try:
        settings = Settings.model_validate(settings_data)
    except ValidationError as exc:
        raise RuntimeError(f"Invalid configuration: {exc}") from exc

    return settings
