"""Sensitive-value masking for log lines, reprs and error messages.

``redact_sensitive_fields`` walks dicts/lists (e.g. a decoded OAuth error
body) and replaces values whose keys look secret. ``mask_secret`` shortens a
single identifier such as an access key id to a recognisable prefix.
"""

from __future__ import annotations

_MAX_REDACT_DEPTH = 20

# Substring match, case-insensitive.
SENSITIVE_KEY_MARKERS: list[str] = [
    "password",
    "secret",
    "token",
    "accesskey",
    "secretaccesskey",
    "sessiontoken",
    "clientsecret",
    "credential",
    "authorization",
]


def mask_secret(value: str | None, *, visible: int = 4, mask: str = "***") -> str:
    """Return the first *visible* characters of *value* followed by *mask*."""
    if not value:
        return ""
    if len(value) <= visible:
        return mask
    return f"{value[:visible]}{mask}"


def redact_sensitive_fields(
    value: object,
    *,
    mask: str = "***",
    depth: int = 0,
    max_depth: int = _MAX_REDACT_DEPTH,
) -> object:
    """Recursively replace sensitive values in dicts/lists.

    Keys are matched by *substring* against ``SENSITIVE_KEY_MARKERS``
    (case-insensitive).  When ``max_depth`` is exceeded the entire
    sub-tree is replaced with *mask*.
    """
    if depth >= max_depth:
        return mask
    if isinstance(value, dict):
        redacted: dict[str, object] = {}
        for key, val in value.items():
            normalized = str(key).lower().replace("_", "")
            if any(marker in normalized for marker in SENSITIVE_KEY_MARKERS):
                redacted[key] = mask
            else:
                redacted[key] = redact_sensitive_fields(
                    val, mask=mask, depth=depth + 1, max_depth=max_depth,
                )
        return redacted
    if isinstance(value, list):
        return [
            redact_sensitive_fields(
                item, mask=mask, depth=depth + 1, max_depth=max_depth,
            )
            for item in value
        ]
    return value
