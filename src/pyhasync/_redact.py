"""Redaction of WebSocket frames before they reach DEBUG logs.

The ``auth`` frame carries the long-lived access token; service data may
carry credentials for scripts. Both are masked here.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

_MASK = "<redacted>"
_MAX_DEPTH = 16

_SECRET_KEYS: frozenset[str] = frozenset(
    {
        "access_token",
        "refresh_token",
        "api_password",
        "password",
        "token",
        "authorization",
        "cookie",
    }
)

# Secrets pasted into free-text fields (e.g. notification messages).
_BEARER_RE = re.compile(r"(Bearer\s+)\S+", re.IGNORECASE)


def _is_secret_key(key: object) -> bool:
    return str(key).lower().replace("-", "_") in _SECRET_KEYS


def _redact_text(text: str, max_string: int) -> str:
    text = _BEARER_RE.sub(rf"\1{_MASK}", text)
    if len(text) <= max_string:
        return text
    return f"{text[:max_string]}…<truncated>"


def redact_for_log(value: Any, *, max_string: int = 512) -> Any:
    """Copy of *value* with secret fields masked and long strings shortened."""

    def walk(item: Any, depth: int) -> Any:
        if depth > _MAX_DEPTH:
            return "<max-depth>"
        if item is None or isinstance(item, (bool, int, float)):
            return item
        if isinstance(item, str):
            return _redact_text(item, max_string)
        if isinstance(item, (bytes, bytearray)):
            return f"<bytes:{len(item)}b>"
        if isinstance(item, Mapping):
            return {str(k): _MASK if _is_secret_key(k) else walk(v, depth + 1) for k, v in item.items()}
        if isinstance(item, (list, tuple, set, frozenset)):
            return [walk(v, depth + 1) for v in item]
        return repr(item)

    return walk(value, 0)
