"""Routing of pushed frames to typed state-change events."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import ValidationError

from pyhasync._constants import STATE_CHANGED_EVENT
from pyhasync._transport import CallOutcome, Transport
from pyhasync.exceptions import HaProtocolError
from pyhasync.ingestion.decoders import decode_entity
from pyhasync.models.frames import EventFrame, StateChangedData
from pyhasync.state.events import IngestionSource, StateChange

_logger = logging.getLogger(__name__)

StateChangeListener = Callable[[StateChange], None]


class EventDemultiplexer:
    """Decodes ``state_changed`` events and fans them out to listeners.

    The subscription is bound to a connection: call :meth:`subscribe` again
    after every reconnect.
    """

    def __init__(self) -> None:
        self._listeners: list[StateChangeListener] = []
        self._subscribed = False

    @property
    def subscribed(self) -> bool:
        return self._subscribed

    def add_listener(self, listener: StateChangeListener) -> Callable[[], None]:
        """Register *listener*; returns a callable that removes it again."""
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def reset(self) -> None:
        """Forget the subscription of a connection that is gone."""
        self._subscribed = False

    async def subscribe(self, transport: Transport, *, timeout: float | None = None) -> CallOutcome:
        self._subscribed = False
        outcome = await transport.request("subscribe_events", timeout=timeout, event_type=STATE_CHANGED_EVENT)
        if outcome.ok:
            self._subscribed = True
            _logger.info("Subscribed to %s events", STATE_CHANGED_EVENT)
        else:
            _logger.warning("Subscribing to %s failed: %s", STATE_CHANGED_EVENT, outcome.error)
        return outcome

    def decode(self, frame: Mapping[str, Any]) -> list[StateChange]:
        """Translate one inbound frame into zero or more state changes.

        Never raises: frames that are not ``state_changed`` events are
        ignored, malformed ones are logged and dropped.
        """
        if not isinstance(frame, Mapping) or frame.get("type") != "event":
            return []
        try:
            event = EventFrame.model_validate(frame)
            if event.event.event_type != STATE_CHANGED_EVENT:
                return []
            data = StateChangedData.model_validate(event.event.data)
        except ValidationError as exc:
            _logger.warning("Dropping frame: %s", HaProtocolError(f"Malformed event ({exc.error_count()} errors)"))
            return []
        if data.new_state is None:
            # Entity was removed.
            return []
        return decode_entity(data.new_state, IngestionSource.PUSH)

    def dispatch(self, change: StateChange) -> None:
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                _logger.warning("State change listener failed for %s", change.entity_id, exc_info=True)

    async def run(self, transport: Transport) -> None:
        """Consume inbound frames until the transport closes."""
        async for frame in transport.inbound_events():
            for change in self.decode(frame):
                self.dispatch(change)
