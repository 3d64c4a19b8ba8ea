"""On-disk credential cache keyed by MFA serial and role chain.

One JSON file per key, named by the key's sha256, directly under the cache
directory. Expired files are never removed; the next successful write for the
same key replaces them. There is no cross-process locking: the last writer for
a key wins, which is harmless because equal keys hold interchangeable values.
"""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from aws_exec_cmd.aws_credentials.credentials import TemporaryCredentials
from aws_exec_cmd.aws_credentials.errors import CacheIOError
from aws_exec_cmd.utils.hashing import sha256_text
from aws_exec_cmd.utils.time import unix_now

logger = logging.getLogger(__name__)

_DIR_MODE = 0o700
_FILE_MODE = 0o600


@dataclass(frozen=True)
class CacheKey:
    """Logical cache key; any characters are allowed in either field.

    ``role`` only needs to be unique per credential source, e.g. a role ARN
    or a comma-separated role chain.
    """

    mfa_serial: str
    role: str

    @property
    def digest(self) -> str:
        return sha256_text(self.mfa_serial + self.role)

    def __str__(self) -> str:
        return self.digest


@dataclass(frozen=True)
class CacheEntry:
    credentials: TemporaryCredentials
    expires: int

    def is_expired(self, now: int | None = None) -> bool:
        current = unix_now() if now is None else now
        return self.expires <= current


class _CacheRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    access_key_id: str = Field(alias="AccessKeyID")
    secret_access_key: str = Field(alias="SecretAccessKey")
    session_token: str = Field(alias="SessionToken")
    expires: int = Field(alias="Expires")


class CredentialCache:
    """Content-addressed file store for credential triples."""

    def __init__(self, directory: str | Path) -> None:
        self._directory = Path(directory)

    def path_for(self, key: CacheKey) -> Path:
        return self._directory / key.digest

    def read(self, key: CacheKey) -> CacheEntry | None:
        """Return the live entry for *key*, or None on a miss or expiry.

        Raises ``CacheIOError`` for read failures other than a missing file
        and for content that does not parse.
        """
        path = self.path_for(key)
        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            logger.debug("Credential cache miss: %s", path)
            return None
        except OSError as exc:
            raise CacheIOError(f"failed to read cache file: {exc}", path=str(path)) from exc

        try:
            record = _CacheRecord.model_validate_json(raw)
        except ValidationError as exc:
            raise CacheIOError(f"malformed cache file: {exc}", path=str(path)) from exc

        if not record.access_key_id or not record.secret_access_key:
            logger.debug("Credential cache entry has no key pair: %s", path)
            return None

        entry = CacheEntry(
            credentials=TemporaryCredentials(
                access_key_id=record.access_key_id,
                secret_access_key=record.secret_access_key,
                session_token=record.session_token,
            ),
            expires=record.expires,
        )
        if entry.is_expired():
            logger.debug("Credential cache entry expired: %s", path)
            return None
        return entry

    def write(self, key: CacheKey, entry: CacheEntry) -> Path:
        """Store *entry* under *key*, creating the cache directory if needed."""
        path = self.path_for(key)
        record = _CacheRecord(
            access_key_id=entry.credentials.access_key_id,
            secret_access_key=entry.credentials.secret_access_key,
            session_token=entry.credentials.session_token,
            expires=entry.expires,
        )
        payload = record.model_dump_json(by_alias=True).encode("utf-8")

        try:
            self._directory.mkdir(mode=_DIR_MODE, parents=True, exist_ok=True)
            # mkstemp creates the file 0600; readers see the old file or the new one.
            fd, tmp = tempfile.mkstemp(dir=self._directory, prefix=".", suffix=".tmp")
            try:
                with os.fdopen(fd, "wb") as handle:
                    handle.write(payload)
                os.chmod(tmp, _FILE_MODE)
                os.replace(tmp, path)
            except OSError:
                Path(tmp).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise CacheIOError(f"failed to write cache file: {exc}", path=str(path)) from exc

        logger.debug("Credential cache written: %s (expires=%d)", path, entry.expires)
        return path
