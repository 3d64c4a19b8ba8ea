from __future__ import annotations

from pathlib import Path

import pytest

from aws_exec_cmd import config


def test_defaults() -> None:
    settings = config.load_settings()

    assert settings.logging.level == "WARNING"
    assert settings.logging.file is None
    assert settings.auth.cache_dir is None
    assert settings.auth.cache_skip is False
    assert settings.auth.mfa_serial is None
    assert settings.auth.mfa_source == "prompt"
    assert settings.auth.role_chain is None
    assert settings.auth.session_ttl_seconds == 900
    assert settings.auth.resolve_timeout_seconds == 0
    assert settings.aws.region is None
    assert settings.aws.effective_region == "us-east-1"
    assert settings.execution.pty is False
    assert settings.execution.timeout_seconds == 0
    assert settings.oauth.token_url == "https://www.googleapis.com/oauth2/v4/token"


def test_load_settings_is_cached() -> None:
    assert config.load_settings() is config.load_settings()


def test_env_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("AWS_EXEC_CMD_LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("AWS_EXEC_CMD_CACHE_DIR", str(tmp_path / "cache"))
    monkeypatch.setenv("AWS_EXEC_CMD_CACHE_SKIP", "yes")
    monkeypatch.setenv("AWS_EXEC_CMD_MFA_SERIAL", "arn:aws:iam::123456789012:mfa/dev")
    monkeypatch.setenv("AWS_EXEC_CMD_MFA_SOURCE", "MFA_CODE")
    monkeypatch.setenv("AWS_EXEC_CMD_CHAIN", "instance,arn:aws:iam::123456789012:role/a")
    monkeypatch.setenv("AWS_EXEC_CMD_SESSION_TTL", "3600")
    monkeypatch.setenv("AWS_EXEC_CMD_SESSION_NAME", "deploy")
    monkeypatch.setenv("AWS_EXEC_CMD_RESOLVE_TIMEOUT", "2.5")
    monkeypatch.setenv("AWS_EXEC_CMD_PTY", "true")
    monkeypatch.setenv("AWS_EXEC_CMD_TIMEOUT", "30")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "eu-west-1")

    settings = config.load_settings()

    assert settings.logging.level == "DEBUG"
    assert settings.auth.cache_dir == str((tmp_path / "cache").resolve())
    assert settings.auth.cache_skip is True
    assert settings.auth.mfa_serial == "arn:aws:iam::123456789012:mfa/dev"
    assert settings.auth.mfa_source == "MFA_CODE"
    assert settings.auth.role_chain == "instance,arn:aws:iam::123456789012:role/a"
    assert settings.auth.session_ttl_seconds == 3600
    assert settings.auth.session_name == "deploy"
    assert settings.auth.resolve_timeout_seconds == 2.5
    assert settings.execution.pty is True
    assert settings.execution.timeout_seconds == 30
    assert settings.aws.region == "eu-west-1"


def test_aws_region_preferred_over_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AWS_REGION", "us-west-2")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "eu-west-1")

    assert config.load_settings().aws.effective_region == "us-west-2"


def test_env_int_uses_default_for_blank(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TEST_INT_VALUE", "")
    assert config._env_int("TEST_INT_VALUE", 7) == 7


def test_env_int_invalid_value_returns_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TEST_INT_INVALID", "not_a_number")
    assert config._env_int("TEST_INT_INVALID", 42) == 42


def test_env_float_invalid_value_returns_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TEST_FLOAT_INVALID", "not_a_float")
    assert config._env_float("TEST_FLOAT_INVALID", 2.5) == 2.5


@pytest.mark.parametrize(("raw", "expected"), [("1", True), ("ON", True), ("no", False), ("", False)])
def test_env_bool(monkeypatch: pytest.MonkeyPatch, raw: str, expected: bool) -> None:
    monkeypatch.setenv("TEST_BOOL_VALUE", raw)
    assert config._env_bool("TEST_BOOL_VALUE", not expected) is expected


def test_load_settings_raises_runtime_error_on_validation(monkeypatch: pytest.MonkeyPatch) -> None:
    # Session TTL minimum is 1.
    monkeypatch.setenv("AWS_EXEC_CMD_SESSION_TTL", "0")

    with pytest.raises(RuntimeError, match="Invalid configuration"):
        config.load_settings()


def test_blank_mfa_source_rejected() -> None:
    with pytest.raises(ValueError, match="mfa_source"):
        config.AuthSettings(mfa_source="  ")


def test_default_cache_dir(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("HOME", str(tmp_path))
    assert config.default_cache_dir() == tmp_path / ".aws-exec-cmd-cache"
