from __future__ import annotations

import re
from typing import Any, Iterable, Optional

REDACTED = "[REDACTED]"

SENSITIVE_KEYS = frozenset(
    {
        "access_token",
        "refresh_token",
        "authorization",
        "x-api-key",
        "x_api_key",
        "api_key",
        "client_secret",
        "password",
        "token",
        "databox_token",
    }
)

BEARER_PATTERN = re.compile(r"(?i)\bBearer\s+[A-Za-z0-9\-._~+/]+=*")


def redact_text(text: str) -> str:
    return BEARER_PATTERN.sub(f"Bearer {REDACTED}", text)


def redact(value: Any, sensitive_keys: Optional[Iterable[str]] = None) -> Any:
    """Return a copy of ``value`` with secrets masked.

    Mapping entries whose key matches a sensitive name (case-insensitive) are
    replaced wholesale; bearer tokens embedded in any string are masked.
    The input is never mutated.
    """
    keys = SENSITIVE_KEYS if sensitive_keys is None else frozenset(k.lower() for k in sensitive_keys)
    return _redact(value, keys)


def _redact(value: Any, keys: frozenset) -> Any:
    if isinstance(value, dict):
        out = {}
        for k, v in value.items():
            if isinstance(k, str) and k.lower() in keys:
                out[k] = REDACTED
            else:
                out[k] = _redact(v, keys)
        return out
    if isinstance(value, list):
        return [_redact(v, keys) for v in value]
    if isinstance(value, tuple):
        return tuple(_redact(v, keys) for v in value)
    if isinstance(value, str):
        return redact_text(value)
    return value
