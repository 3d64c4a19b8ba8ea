"""Credential broker: cache lookup in front of a credential provider."""

from __future__ import annotations

import logging
import os
from datetime import timedelta
from pathlib import Path

from aws_exec_cmd.aws_credentials.cache import CacheEntry, CacheKey, CredentialCache
from aws_exec_cmd.aws_credentials.credentials import TemporaryCredentials
from aws_exec_cmd.aws_credentials.errors import (
    CacheIOError,
    CredentialError,
    MissingMfaCodeError,
    ProviderError,
)
from aws_exec_cmd.aws_credentials.providers import CredentialProvider, ProviderInput
from aws_exec_cmd.config import DEFAULT_MFA_SOURCE, AuthSettings, default_cache_dir
from aws_exec_cmd.terminal import TerminalPrompter, default_prompter
from aws_exec_cmd.utils.masking import mask_secret
from aws_exec_cmd.utils.time import unix_now, utc_now

logger = logging.getLogger(__name__)

# Cached triples are considered stale this many seconds before STS expiry.
CACHE_EARLY_EXPIRY_SECONDS = 10
MFA_PROMPT = "MFA token:"


class CredentialBroker:
    """Returns a cached triple when one is live, otherwise asks the provider.

    Reads honor ``cache_skip``; writes always happen after a fresh
    acquisition so the next invocation can reuse the result.
    """

    def __init__(
        self,
        settings: AuthSettings,
        prompter: TerminalPrompter | None = None,
    ) -> None:
        self._settings = settings
        self._prompter = prompter

    def cache_dir(self) -> Path:
        if self._settings.cache_dir:
            return Path(self._settings.cache_dir).expanduser()
        try:
            return default_cache_dir()
        except RuntimeError as exc:
            raise CacheIOError(f"failed to get home dir: {exc}", path="~") from exc

    def mfa_code(self) -> str:
        serial = self._settings.mfa_serial
        if not serial:
            return ""

        source = self._settings.mfa_source
        if source == DEFAULT_MFA_SOURCE:
            prompter = self._prompter or default_prompter()
            code = prompter.prompt_hidden(MFA_PROMPT)
        else:
            code = os.environ.get(source, "").strip()

        if not code:
            raise MissingMfaCodeError(serial, source)
        return code

    def acquire(self, provider: CredentialProvider) -> TemporaryCredentials:
        cache = CredentialCache(self.cache_dir())
        mfa_code = self.mfa_code()
        key = CacheKey(
            mfa_serial=self._settings.mfa_serial or "",
            role=self._settings.role_chain or "",
        )

        if not self._settings.cache_skip:
            entry = cache.read(key)
            if entry is not None:
                logger.info("Using cached credentials: key=%s, expires=%d", key, entry.expires)
                creds = entry.credentials
                return TemporaryCredentials(
                    access_key_id=creds.access_key_id,
                    secret_access_key=creds.secret_access_key,
                    session_token=creds.session_token,
                )

        deadline = None
        if self._settings.resolve_timeout_seconds > 0:
            deadline = utc_now() + timedelta(seconds=self._settings.resolve_timeout_seconds)

        request = ProviderInput(
            mfa_serial=self._settings.mfa_serial or "",
            mfa_code=mfa_code,
            role_chain=self._settings.role_chain or "",
            session_ttl_seconds=self._settings.session_ttl_seconds,
            deadline=deadline,
        )
        try:
            creds = provider.get(request)
        except CredentialError as exc:
            raise ProviderError(provider.name, exc) from exc

        expires = unix_now() + self._settings.session_ttl_seconds - CACHE_EARLY_EXPIRY_SECONDS
        cache.write(key, CacheEntry(credentials=creds, expires=expires))
        logger.info(
            "Acquired credentials from %s provider: key_id=%s, key=%s",
            provider.name,
            mask_secret(creds.access_key_id),
            key,
        )
        return creds
