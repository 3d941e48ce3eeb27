"""High-level async session that keeps a control surface in sync with Home Assistant."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import Callable
from typing import Any

import aiohttp

from pyhasync._api import cover as _cover_api
from pyhasync._api import light as _light_api
from pyhasync._constants import (
    BRIGHTNESS_MAX_STEP_PERCENT,
    BRIGHTNESS_STEP_PERCENT,
    COLOR_TEMP_STEP_MIREDS,
    HUE_STEP_DEGREES,
    MAX_BRIGHTNESS,
    POSITION_STEP_PERCENT,
    SATURATION_STEP_PERCENT,
)
from pyhasync._transport import CallOutcome, ConnectOutcome, WebSocketTransport
from pyhasync.capabilities import CapabilityResolver
from pyhasync.color import clamp
from pyhasync.config import HaSyncConfig
from pyhasync.debounce import CommandDebouncer
from pyhasync.exceptions import HaConfigError, HaSyncError, HaUnsupportedCommandError
from pyhasync.health import HealthMonitor, HealthStatus
from pyhasync.ingestion.demux import EventDemultiplexer
from pyhasync.ingestion.registry import parse_registry
from pyhasync.ingestion.states import parse_states
from pyhasync.models._base import entity_domain, normalize_entity_id
from pyhasync.models.capabilities import CapabilitySet
from pyhasync.models.control import ActionKind, Axis, Channel, ControlAction, ServiceCall
from pyhasync.models.registry import AreaEntry, DeviceEntry, EntityEntry
from pyhasync.models.state import CachedState
from pyhasync.registry import AreaRegistry
from pyhasync.state.echo import EchoGuard
from pyhasync.state.events import StateChange
from pyhasync.state.store import StateCache

_logger = logging.getLogger(__name__)

_AXIS_FIELDS: dict[Axis, str] = {
    Axis.BRIGHTNESS: "brightness",
    Axis.HUE: "hue",
    Axis.SATURATION: "saturation",
    Axis.COLOR_TEMP: "color_temp_mired",
    Axis.POSITION: "position",
    Axis.TILT: "tilt",
}

# Cache fields written optimistically for each debounced channel.
_CHANNEL_FIELDS: dict[Channel, tuple[str, ...]] = {
    Channel.BRIGHTNESS: ("brightness", "is_on", "state"),
    Channel.HS_COLOR: ("hue", "saturation"),
    Channel.COLOR_TEMP: ("color_temp_mired",),
    Channel.POSITION: ("position",),
    Channel.TILT: ("tilt",),
}


def _step_target(current: CachedState, axis: Axis, ticks: float) -> float:
    """Absolute target for a relative dial movement of *ticks*."""
    if axis is Axis.BRIGHTNESS:
        percent = clamp(ticks * BRIGHTNESS_STEP_PERCENT, -BRIGHTNESS_MAX_STEP_PERCENT, BRIGHTNESS_MAX_STEP_PERCENT)
        return current.effective_brightness + round(MAX_BRIGHTNESS * percent / 100)
    if axis is Axis.COLOR_TEMP:
        return current.color_temp_mired + ticks * COLOR_TEMP_STEP_MIREDS
    if axis is Axis.HUE:
        return current.hue + ticks * HUE_STEP_DEGREES
    if axis is Axis.SATURATION:
        return current.saturation + ticks * SATURATION_STEP_PERCENT
    if axis is Axis.POSITION:
        return (current.position or 0) + ticks * POSITION_STEP_PERCENT
    return (current.tilt or 0) + ticks * POSITION_STEP_PERCENT


class HaSyncClient:
    """Async session for one Home Assistant instance.

    Usage::

        async with HaSyncClient(config, on_entity_changed=redraw) as client:
            await client.connect()
            client.adjust(ControlAction.step_by("light.desk", Axis.BRIGHTNESS, 3))
    """

    def __init__(
        self,
        config: HaSyncConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        on_entity_changed: Callable[[str], None] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._on_entity_changed = on_entity_changed
        self._transport: WebSocketTransport | None = None
        self._debouncer: CommandDebouncer | None = None
        self._consumer_task: asyncio.Task[None] | None = None
        self._echo_guard = EchoGuard(config.echo_window, clock=clock)
        self._store = StateCache(echo_guard=self._echo_guard)
        self._capabilities = CapabilityResolver()
        self._areas = AreaRegistry()
        self._health = HealthMonitor()
        self._demux = EventDemultiplexer()
        self._demux.add_listener(self._on_state_change)

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> HaSyncClient:
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession()
        self._transport = WebSocketTransport(
            self._http_session,
            default_timeout=self._config.call_timeout,
            verify_ssl=self._config.verify_ssl,
            on_connection_lost=self._on_connection_lost,
        )
        self._debouncer = CommandDebouncer(
            self._transport,
            self._echo_guard,
            self._store.get,
            delay=self._config.debounce_delay,
            call_timeout=self._config.call_timeout,
            on_outcome=self._on_debounced_outcome,
        )
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self._stop_consumer()
        # Closing the socket first fails in-flight sends instead of waiting them out.
        if self._transport is not None:
            await self._transport.close()
            self._transport = None
        if self._debouncer is not None:
            await self._debouncer.aclose()
            self._debouncer = None
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        self._health.set_degraded("Not connected")

    def _require_transport(self) -> WebSocketTransport:
        if self._transport is None:
            raise HaSyncError("Client not initialized. Use 'async with HaSyncClient(...) as client:'")
        return self._transport

    def _require_debouncer(self) -> CommandDebouncer:
        if self._debouncer is None:
            raise HaSyncError("Client not initialized. Use 'async with HaSyncClient(...) as client:'")
        return self._debouncer

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    @property
    def is_connected(self) -> bool:
        return self._transport is not None and self._transport.is_connected

    @property
    def health(self) -> HealthStatus:
        return self._health.status

    @property
    def health_monitor(self) -> HealthMonitor:
        return self._health

    async def connect(self) -> ConnectOutcome:
        """Authenticate, subscribe to state changes and load the initial state.

        Replaces any existing connection. Failures are reported through the
        returned outcome and the health monitor; nothing is retried.
        """
        transport = self._require_transport()
        try:
            self._config.validate()
        except HaConfigError as exc:
            self._health.set_degraded(str(exc))
            return ConnectOutcome(ok=False, message=str(exc), error=exc)

        self._demux.reset()
        outcome = await transport.connect_and_authenticate(
            self._config.base_url,
            self._config.access_token,
            timeout=self._config.connect_timeout,
        )
        if not outcome.ok:
            self._health.set_degraded(outcome.message)
            return outcome

        subscribed = await self._demux.subscribe(transport, timeout=self._config.call_timeout)
        if not subscribed.ok:
            message = f"Subscribe failed: {subscribed.message}"
            self._health.set_degraded(message)
            return ConnectOutcome(ok=False, message=message, error=subscribed.error)

        await self._start_consumer(transport)

        refreshed = await self.refresh()
        if not refreshed.ok:
            message = f"Initial refresh failed: {refreshed.message}"
            self._health.set_degraded(message)
            return ConnectOutcome(ok=False, message=message, error=refreshed.error)

        self._health.set_ok("Connected")
        return outcome

    async def refresh(self) -> CallOutcome:
        """Reload every entity and rebuild all capability sets.

        Entities inside their echo window keep their optimistic values.
        """
        transport = self._require_transport()
        outcome = await transport.request("get_states", timeout=self._config.call_timeout)
        if not outcome.ok:
            _logger.warning("get_states failed: %s", outcome.error)
            return outcome

        snapshots = parse_states(outcome.result)
        self._capabilities.refresh({snapshot.entity_id: snapshot.entity.attributes for snapshot in snapshots})
        for snapshot in snapshots:
            if self._store.apply_confirmed(snapshot.entity_id, snapshot.patch):
                self._notify(snapshot.entity_id)
        await self._refresh_registries(transport)
        _logger.info("Refreshed %d entities", len(snapshots))
        return CallOutcome(ok=True, result=len(snapshots))

    async def _refresh_registries(self, transport: WebSocketTransport) -> None:
        """Reload area assignments; on any failure the previous ones are kept."""
        results: dict[str, Any] = {}
        for registry in ("device", "entity", "area"):
            outcome = await transport.request(f"config/{registry}_registry/list", timeout=self._config.call_timeout)
            if not outcome.ok:
                _logger.warning("Loading the %s registry failed: %s", registry, outcome.error)
                return
            results[registry] = outcome.result

        self._areas.refresh(
            parse_registry(results["device"], DeviceEntry, "device"),
            parse_registry(results["entity"], EntityEntry, "entity"),
            parse_registry(results["area"], AreaEntry, "area"),
        )

    async def ping(self) -> CallOutcome:
        return await self._require_transport().ping(timeout=self._config.call_timeout)

    async def _start_consumer(self, transport: WebSocketTransport) -> None:
        await self._stop_consumer()
        self._consumer_task = asyncio.create_task(self._demux.run(transport), name="pyhasync-events")

    async def _stop_consumer(self) -> None:
        task, self._consumer_task = self._consumer_task, None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_display_state(self, entity_id: str) -> CachedState:
        return self._store.get(entity_id)

    def get_capabilities(self, entity_id: str) -> CapabilitySet:
        return self._capabilities.get(entity_id)

    def known_entity_ids(self) -> list[str]:
        return self._capabilities.known_entity_ids()

    def _light_ids(self) -> list[str]:
        return [entity_id for entity_id in self._capabilities.known_entity_ids() if entity_domain(entity_id) == "light"]

    def get_area_id(self, entity_id: str) -> str:
        return self._areas.area_id_for(entity_id)

    def get_area_name(self, area_id: str) -> str:
        return self._areas.area_name(area_id)

    def get_device(self, entity_id: str) -> DeviceEntry | None:
        return self._areas.device_for(entity_id)

    def areas_with_lights(self) -> list[tuple[str, str]]:
        """``(area_id, name)`` pairs of areas holding at least one light, by name."""
        return self._areas.areas_for(self._light_ids())

    def lights_in_area(self, area_id: str) -> list[str]:
        return self._areas.entities_in_area(area_id, self._light_ids())

    # ------------------------------------------------------------------
    # Debounced adjustments
    # ------------------------------------------------------------------

    def adjust(self, action: ControlAction) -> CachedState:
        """Apply one dial/button adjustment.

        The cache is updated immediately and the call goes out once the
        debounce delay passes without further adjustments on the same
        channel. Raises :class:`HaUnsupportedCommandError` before touching
        anything when the entity lacks the capability.
        """
        entity = action.entity_id
        if not self._capabilities.get(entity).supports(action.axis):
            raise HaUnsupportedCommandError(
                f"{entity} does not support {action.axis}",
                entity_id=entity,
                axis=action.axis.value,
            )
        debouncer = self._require_debouncer()

        current = self._store.get(entity)
        if action.kind is ActionKind.STEP:
            target = _step_target(current, action.axis, action.value)
        else:
            target = action.value

        patch: dict[str, Any] = {_AXIS_FIELDS[action.axis]: target}
        if action.axis is Axis.BRIGHTNESS:
            is_on = target > 0
            patch.update(is_on=is_on, state="on" if is_on else "off")

        restore = {field_name: getattr(current, field_name) for field_name in _CHANNEL_FIELDS[action.axis.channel]}
        state = self._store.apply_optimistic(entity, patch)
        self._echo_guard.mark_sent(entity)
        rollback = debouncer.adjust(entity, action.axis, getattr(state, _AXIS_FIELDS[action.axis]), restore=restore)
        if rollback:
            # The dropped colour mode was never sent; show what the device still has.
            state = self._store.apply_optimistic(entity, rollback)
        self._notify(entity)
        return state

    def cancel_pending(self, entity_id: str) -> None:
        if self._debouncer is not None:
            self._debouncer.cancel_pending(entity_id)

    def pending_channels(self, entity_id: str) -> set[Channel]:
        if self._debouncer is None:
            return set()
        return self._debouncer.pending(entity_id)

    # ------------------------------------------------------------------
    # Immediate commands
    # ------------------------------------------------------------------

    def _require_capability(self, entity_id: str, supported: bool, what: str) -> None:
        if not supported:
            raise HaUnsupportedCommandError(f"{entity_id} does not support {what}", entity_id=entity_id, axis=what)

    async def _execute(self, call: ServiceCall, patch: dict[str, Any]) -> CallOutcome:
        transport = self._require_transport()
        if patch:
            self._store.apply_optimistic(call.entity_id, patch)
        self._echo_guard.mark_sent(call.entity_id)
        self._notify(call.entity_id)
        outcome = await transport.call(
            call.domain,
            call.service,
            call.entity_id,
            call.service_data,
            timeout=self._config.call_timeout,
        )
        self._record_outcome(outcome)
        return outcome

    async def turn_on(self, entity_id: str) -> CallOutcome:
        entity = normalize_entity_id(entity_id)
        self._require_capability(entity, self._capabilities.get(entity).on_off, "on_off")
        return await self._execute(_light_api.power_call(entity, "turn_on"), {"is_on": True, "state": "on"})

    async def turn_off(self, entity_id: str) -> CallOutcome:
        entity = normalize_entity_id(entity_id)
        self._require_capability(entity, self._capabilities.get(entity).on_off, "on_off")
        # A late brightness send would switch the light back on.
        self.cancel_pending(entity)
        return await self._execute(_light_api.power_call(entity, "turn_off"), {"is_on": False, "state": "off"})

    async def toggle(self, entity_id: str) -> CallOutcome:
        entity = normalize_entity_id(entity_id)
        self._require_capability(entity, self._capabilities.get(entity).on_off, "on_off")
        is_on = not self._store.get(entity).is_on
        return await self._execute(_light_api.power_call(entity, "toggle"), {"is_on": is_on, "state": "on" if is_on else "off"})

    async def toggle_area_lights(self, area_id: str) -> list[CallOutcome]:
        """Toggle every light in *area_id*, each from its own current state.

        Returns one outcome per light, in :meth:`lights_in_area` order.
        """
        lights = self.lights_in_area(area_id)
        if not lights:
            _logger.warning("No lights in area %s", area_id)
            return []
        return list(await asyncio.gather(*(self.toggle(light) for light in lights)))

    async def apply_light_settings(
        self,
        entity_id: str,
        *,
        brightness: float | None = None,
        color_temp_mired: float | None = None,
        hue: float | None = None,
        saturation: float | None = None,
    ) -> CallOutcome:
        """Send several light parameters in one ``turn_on``.

        Colour temperature wins over hue/saturation when both are given.
        Pending debounced adjustments for the light are dropped.
        """
        entity = normalize_entity_id(entity_id)
        caps = self._capabilities.get(entity)
        if color_temp_mired is not None:
            hue = saturation = None
        if brightness is not None:
            self._require_capability(entity, caps.brightness, Axis.BRIGHTNESS.value)
        if color_temp_mired is not None:
            self._require_capability(entity, caps.color_temp, Axis.COLOR_TEMP.value)
        if hue is not None or saturation is not None:
            self._require_capability(entity, caps.hue_saturation, Channel.HS_COLOR.value)
        if not caps.on_off:
            self._require_capability(entity, False, "on_off")

        self.cancel_pending(entity)
        current = self._store.get(entity)
        call = _light_api.settings_call(
            entity,
            current,
            brightness=brightness,
            color_temp_mired=color_temp_mired,
            hue=hue,
            saturation=saturation,
        )
        patch: dict[str, Any] = {"is_on": True, "state": "on"}
        for field_name, value in (
            ("brightness", brightness),
            ("color_temp_mired", color_temp_mired),
            ("hue", hue),
            ("saturation", saturation),
        ):
            if value is not None:
                patch[field_name] = value
        return await self._execute(call, patch)

    async def _cover_command(self, entity_id: str, service: str, patch: dict[str, Any]) -> CallOutcome:
        entity = normalize_entity_id(entity_id)
        self._require_capability(entity, self._capabilities.get(entity).supports_cover_service(service), service)
        return await self._execute(_cover_api.cover_call(entity, service), patch)

    async def open_cover(self, entity_id: str) -> CallOutcome:
        return await self._cover_command(entity_id, "open_cover", {"state": "opening", "is_on": True})

    async def close_cover(self, entity_id: str) -> CallOutcome:
        return await self._cover_command(entity_id, "close_cover", {"state": "closing"})

    async def stop_cover(self, entity_id: str) -> CallOutcome:
        self.cancel_pending(entity_id)
        return await self._cover_command(entity_id, "stop_cover", {})

    async def toggle_cover(self, entity_id: str) -> CallOutcome:
        return await self._cover_command(entity_id, "toggle", {})

    async def open_cover_tilt(self, entity_id: str) -> CallOutcome:
        return await self._cover_command(entity_id, "open_cover_tilt", {})

    async def close_cover_tilt(self, entity_id: str) -> CallOutcome:
        return await self._cover_command(entity_id, "close_cover_tilt", {})

    async def stop_cover_tilt(self, entity_id: str) -> CallOutcome:
        self.cancel_pending(entity_id)
        return await self._cover_command(entity_id, "stop_cover_tilt", {})

    async def toggle_cover_tilt(self, entity_id: str) -> CallOutcome:
        return await self._cover_command(entity_id, "toggle_cover_tilt", {})

    # ------------------------------------------------------------------
    # Callbacks
    # ------------------------------------------------------------------

    def _on_state_change(self, change: StateChange) -> None:
        if self._store.apply_confirmed(change.entity_id, change.data):
            self._notify(change.entity_id)

    def _on_debounced_outcome(self, entity_id: str, channel: Channel, outcome: CallOutcome) -> None:
        self._record_outcome(outcome)

    def _on_connection_lost(self, reason: str) -> None:
        self._health.set_degraded(reason)

    def _record_outcome(self, outcome: CallOutcome) -> None:
        if outcome.ok:
            self._health.set_ok("Connected")
        else:
            self._health.set_degraded(outcome.message)

    def _notify(self, entity_id: str) -> None:
        if self._on_entity_changed is None:
            return
        try:
            self._on_entity_changed(entity_id)
        except Exception:
            _logger.warning("on_entity_changed callback failed for %s", entity_id, exc_info=True)
