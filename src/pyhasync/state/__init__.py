"""State cache, echo suppression and normalized change events."""

from pyhasync.state.echo import EchoGuard
from pyhasync.state.events import ChangeKind, IngestionSource, StateChange
from pyhasync.state.store import StateCache

__all__ = [
    "ChangeKind",
    "EchoGuard",
    "IngestionSource",
    "StateCache",
    "StateChange",
]
