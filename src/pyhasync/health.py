"""Connection health as shown to the operator."""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable
from enum import StrEnum

_logger = logging.getLogger(__name__)


class HealthState(StrEnum):
    OK = "ok"
    DEGRADED = "degraded"


@dataclasses.dataclass(frozen=True, slots=True)
class HealthStatus:
    state: HealthState
    message: str

    @property
    def ok(self) -> bool:
        return self.state is HealthState.OK


HealthListener = Callable[[HealthStatus], None]


class HealthMonitor:
    """Current health plus change notifications.

    Listeners are only called when the state or message actually changes.
    """

    def __init__(self) -> None:
        self._status = HealthStatus(HealthState.DEGRADED, "Not connected")
        self._listeners: list[HealthListener] = []

    @property
    def status(self) -> HealthStatus:
        return self._status

    def add_listener(self, listener: HealthListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def set_ok(self, message: str = "Connected") -> None:
        self._set(HealthStatus(HealthState.OK, message))

    def set_degraded(self, message: str) -> None:
        self._set(HealthStatus(HealthState.DEGRADED, message))

    def _set(self, status: HealthStatus) -> None:
        if status == self._status:
            return
        self._status = status
        _logger.info("Health: %s (%s)", status.state, status.message)
        for listener in list(self._listeners):
            try:
                listener(status)
            except Exception:
                _logger.warning("Health listener failed", exc_info=True)
