"""Normalization helpers.

Centralizes tolerant parsing of attribute values reported by devices.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from typing import Any


def safe_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool) or value == "":
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def safe_int(value: Any) -> int | None:
    parsed = safe_float(value)
    if parsed is None:
        return None
    return round(parsed)


def safe_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None


def safe_floats(value: Any, count: int) -> tuple[float, ...] | None:
    """Parse a fixed-length numeric array such as ``hs_color`` or ``rgb_color``."""
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence) or len(value) != count:
        return None
    parsed = tuple(safe_float(item) for item in value)
    if any(item is None for item in parsed):
        return None
    return parsed  # type: ignore[return-value]


def is_meaningful(value: Any) -> bool:
    """Return True if the value should be included in a state patch."""
    if value is None:
        return False
    if value == "":
        return False
    if value == {}:
        return False
    return bool(value != [])


def prune_patch(data: dict[str, Any]) -> dict[str, Any]:
    """Drop non-meaningful values from a flat patch."""
    return {key: value for key, value in data.items() if is_meaningful(value)}
