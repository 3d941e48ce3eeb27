"""Suppression of the backend's echo of our own commands."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from pyhasync.models._base import normalize_entity_id

_logger = logging.getLogger(__name__)


class EchoGuard:
    """Remembers when each entity was last commanded.

    While ``now - last_sent <= window`` pushed state for that entity is
    treated as an echo and ignored. The first lookup after the window has
    elapsed evicts the entry. Event-loop-only; not thread-safe.
    """

    def __init__(self, window: float = 3.0, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._window = window
        self._clock = clock
        self._last_sent: dict[str, float] = {}

    @property
    def window(self) -> float:
        return self._window

    def mark_sent(self, entity_id: str) -> None:
        key = normalize_entity_id(entity_id)
        self._last_sent[key] = self._clock()

    def should_ignore(self, entity_id: str) -> bool:
        key = normalize_entity_id(entity_id)
        last = self._last_sent.get(key)
        if last is None:
            return False
        if self._clock() - last <= self._window:
            return True
        del self._last_sent[key]
        _logger.debug("Echo window for %s elapsed", key)
        return False

    def clear(self, entity_id: str | None = None) -> None:
        if entity_id is None:
            self._last_sent.clear()
        else:
            self._last_sent.pop(normalize_entity_id(entity_id), None)

    def __contains__(self, entity_id: object) -> bool:
        if not isinstance(entity_id, str):
            return False
        return normalize_entity_id(entity_id) in self._last_sent
