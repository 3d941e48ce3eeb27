"""In-memory cache of per-entity state.

This is the only component allowed to merge state patches. Optimistic
(local) writes always land; confirmed (pushed or refreshed) writes are
gated by echo suppression.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from pyhasync.models._base import normalize_entity_id
from pyhasync.models.state import CachedState
from pyhasync.state.echo import EchoGuard

_logger = logging.getLogger(__name__)


class StateCache:
    """Per-entity :class:`CachedState` records.

    Readers always receive the frozen model currently stored, so a reader
    can never see a half-applied patch. Every method runs to completion
    without awaiting, which serializes writers on the event loop; the
    cache is not thread-safe and must only be used from that loop.
    """

    def __init__(self, *, echo_guard: EchoGuard) -> None:
        self._echo_guard = echo_guard
        self._states: dict[str, CachedState] = {}

    def get(self, entity_id: str) -> CachedState:
        """Current state, or a neutral default for an untracked entity."""
        key = normalize_entity_id(entity_id)
        state = self._states.get(key)
        if state is None:
            return CachedState(entity_id=key)
        return state

    def tracked_entity_ids(self) -> list[str]:
        return sorted(self._states)

    def __contains__(self, entity_id: object) -> bool:
        return isinstance(entity_id, str) and normalize_entity_id(entity_id) in self._states

    def apply_optimistic(self, entity_id: str, patch: Mapping[str, Any]) -> CachedState:
        """Merge a locally initiated patch immediately."""
        return self._merge(normalize_entity_id(entity_id), patch)

    def apply_confirmed(self, entity_id: str, patch: Mapping[str, Any]) -> bool:
        """Merge backend-confirmed state unless it is an echo of our own command.

        Returns ``True`` when the patch was applied.
        """
        key = normalize_entity_id(entity_id)
        if self._echo_guard.should_ignore(key):
            _logger.debug("Ignoring echo for %s: %s", key, dict(patch))
            return False
        self._merge(key, patch)
        return True

    def remove(self, entity_id: str) -> None:
        key = normalize_entity_id(entity_id)
        self._states.pop(key, None)

    def _merge(self, key: str, patch: Mapping[str, Any]) -> CachedState:
        current = self._states.get(key) or CachedState(entity_id=key)
        if not patch:
            return current
        merged = {**current.model_dump(), **patch, "entity_id": key}
        try:
            updated = CachedState.model_validate(merged)
        except ValidationError as exc:
            _logger.warning("Discarding invalid patch for %s %s: %s", key, dict(patch), exc)
            return current
        self._states[key] = updated
        return updated
