from __future__ import annotations

import os

import pytest

from aws_exec_cmd import config

_ISOLATED_ENV_PREFIXES = ("AWS_EXEC_CMD_", "AWS_")


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    # Real AWS credentials or a developer .env must never leak into tests.
    for key in list(os.environ):
        if key.startswith(_ISOLATED_ENV_PREFIXES):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr(config, "load_dotenv", lambda **_: None)
    config._load_settings_cached.cache_clear()
    yield
    config._load_settings_cached.cache_clear()
