"""Coalescing of bursty adjustments into single service calls."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from collections.abc import Callable, Hashable, Mapping
from typing import Any

from pyhasync._api._common import build_channel_call
from pyhasync._transport import CallOutcome, Transport
from pyhasync.models._base import normalize_entity_id
from pyhasync.models.control import Axis, Channel
from pyhasync.models.state import CachedState
from pyhasync.state.echo import EchoGuard

_logger = logging.getLogger(__name__)

OutcomeCallback = Callable[[str, Channel, CallOutcome], None]
StateReader = Callable[[str], CachedState]

_COLOR_CHANNELS = frozenset({Channel.HS_COLOR, Channel.COLOR_TEMP})


@dataclasses.dataclass(eq=False, slots=True)
class _DebounceSlot:
    entity_id: str
    channel: Channel
    values: dict[Axis, float] = dataclasses.field(default_factory=dict)
    # Cache fields as they were before the slot's first optimistic write.
    restore: dict[str, Any] = dataclasses.field(default_factory=dict)
    timer: asyncio.TimerHandle | None = None
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True
        if self.timer is not None:
            self.timer.cancel()
            self.timer = None


def _lock_key(entity_id: str, channel: Channel) -> Hashable:
    # hs_color and color_temp replace each other on the device, so they
    # share one send queue per entity.
    if channel in _COLOR_CHANNELS:
        return (entity_id, "color")
    return (entity_id, channel)


class CommandDebouncer:
    """Per-(entity, channel) trailing-edge debouncer.

    Every adjustment restarts the slot's countdown. When the countdown
    elapses the slot's latest values go out as exactly one service call.
    Sends for the same slot key never overlap and leave in firing order.
    """

    def __init__(
        self,
        transport: Transport,
        echo_guard: EchoGuard,
        state_reader: StateReader,
        *,
        delay: float = 0.01,
        call_timeout: float | None = None,
        on_outcome: OutcomeCallback | None = None,
    ) -> None:
        self._transport = transport
        self._echo_guard = echo_guard
        self._state_reader = state_reader
        self._delay = delay
        self._call_timeout = call_timeout
        self._on_outcome = on_outcome
        self._slots: dict[tuple[str, Channel], _DebounceSlot] = {}
        self._queued: set[_DebounceSlot] = set()
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def delay(self) -> float:
        return self._delay

    def adjust(
        self,
        entity_id: str,
        axis: Axis,
        value: float,
        *,
        restore: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Record *value* for *axis* and (re)start the slot countdown.

        *restore* is kept with a newly created slot. When this adjustment
        drops a conflicting slot before it was sent, that slot's *restore*
        values are returned so the caller can roll back its optimistic
        write; otherwise the result is empty.

        Must be called from the event loop thread.
        """
        entity = normalize_entity_id(entity_id)
        channel = axis.channel
        loop = asyncio.get_running_loop()

        rollback: dict[str, Any] = {}
        conflict = channel.conflicts_with
        if conflict is not None:
            rollback = self._discard(entity, conflict)

        key = (entity, channel)
        slot = self._slots.get(key)
        if slot is None:
            slot = _DebounceSlot(entity_id=entity, channel=channel, restore=dict(restore or {}))
            self._slots[key] = slot
        elif slot.timer is not None:
            slot.timer.cancel()
        slot.values[axis] = value
        slot.timer = loop.call_later(self._delay, self._fire, key, slot)
        return rollback

    def pending(self, entity_id: str) -> set[Channel]:
        entity = normalize_entity_id(entity_id)
        return {channel for (slot_entity, channel) in self._slots if slot_entity == entity}

    def cancel_pending(self, entity_id: str) -> None:
        """Drop every scheduled or not-yet-started send for *entity_id*.

        Synchronous: once this returns nothing further is sent for the
        entity. A call already written to the socket is not recalled.
        """
        entity = normalize_entity_id(entity_id)
        for key in [key for key in self._slots if key[0] == entity]:
            self._slots.pop(key).cancel()
        for slot in self._queued:
            if slot.entity_id == entity:
                slot.cancel()

    def _discard(self, entity: str, channel: Channel) -> dict[str, Any]:
        rollback: dict[str, Any] = {}
        slot = self._slots.pop((entity, channel), None)
        if slot is not None:
            _logger.debug("Discarding pending %s for %s", channel, entity)
            slot.cancel()
            rollback.update(slot.restore)
        # A queued slot predates the scheduled one, so its values are older.
        for queued in self._queued:
            if queued.entity_id == entity and queued.channel is channel and not queued.cancelled:
                queued.cancel()
                rollback.update(queued.restore)
        return rollback

    def _fire(self, key: tuple[str, Channel], slot: _DebounceSlot) -> None:
        if self._slots.get(key) is slot:
            del self._slots[key]
        slot.timer = None
        if slot.cancelled:
            return
        self._queued.add(slot)
        task = asyncio.get_running_loop().create_task(self._send(slot))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _send(self, slot: _DebounceSlot) -> None:
        lock = self._locks.setdefault(_lock_key(slot.entity_id, slot.channel), asyncio.Lock())
        async with lock:
            self._queued.discard(slot)
            if slot.cancelled:
                return
            call = build_channel_call(slot.entity_id, slot.channel, slot.values, self._state_reader(slot.entity_id))
            self._echo_guard.mark_sent(slot.entity_id)
            outcome = await self._transport.call(
                call.domain,
                call.service,
                call.entity_id,
                call.service_data,
                timeout=self._call_timeout,
            )

        if self._on_outcome is not None:
            try:
                self._on_outcome(slot.entity_id, slot.channel, outcome)
            except Exception:
                _logger.warning("Debounce outcome callback failed for %s", slot.entity_id, exc_info=True)

    async def aclose(self) -> None:
        """Cancel everything scheduled and wait for sends in flight."""
        for slot in self._slots.values():
            slot.cancel()
        self._slots.clear()
        for slot in self._queued:
            slot.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
