"""Per-domain decoders from reported entity state to ``StateChange`` events.

Decoders are tolerant: a malformed or missing attribute only skips that
axis, it never discards the others.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from pyhasync._constants import MAX_BRIGHTNESS, ON_OFF_DOMAINS
from pyhasync.color import clamp_int, kelvin_to_mired, rgb_to_hs, wrap_hue
from pyhasync.ingestion.normalize import prune_patch, safe_float, safe_floats, safe_int, safe_str
from pyhasync.models.frames import EntityState
from pyhasync.state.events import ChangeKind, IngestionSource, StateChange

_OPEN_COVER_STATES = frozenset({"open", "opening", "closing"})


def _change(entity: EntityState, kind: ChangeKind, source: IngestionSource, data: dict[str, Any]) -> StateChange:
    return StateChange(entity_id=entity.entity_id, kind=kind, source=source, data=data)


def _on_off(entity: EntityState, source: IngestionSource) -> StateChange | None:
    state = safe_str(entity.state)
    if state is None:
        return None
    state = state.lower()
    return _change(entity, ChangeKind.ON_OFF, source, {"state": state, "is_on": state == "on"})


def _color_temp_patch(attributes: dict[str, Any]) -> dict[str, Any]:
    # Newer releases report Kelvin only; the mired fields are derived.
    min_mireds = safe_int(attributes.get("min_mireds"))
    if min_mireds is None:
        max_kelvin = safe_float(attributes.get("max_color_temp_kelvin"))
        min_mireds = round(kelvin_to_mired(max_kelvin)) if max_kelvin else None
    max_mireds = safe_int(attributes.get("max_mireds"))
    if max_mireds is None:
        min_kelvin = safe_float(attributes.get("min_color_temp_kelvin"))
        max_mireds = round(kelvin_to_mired(min_kelvin)) if min_kelvin else None

    mired = safe_int(attributes.get("color_temp"))
    if mired is None:
        kelvin = safe_float(attributes.get("color_temp_kelvin"))
        mired = round(kelvin_to_mired(kelvin)) if kelvin else None

    patch = {"min_mireds": min_mireds, "max_mireds": max_mireds}
    if min_mireds is not None and max_mireds is not None and min_mireds > max_mireds:
        patch = {"min_mireds": max_mireds, "max_mireds": min_mireds}
    patch["color_temp_mired"] = mired
    return prune_patch(patch)


def _hs_patch(attributes: dict[str, Any]) -> dict[str, Any]:
    hs = safe_floats(attributes.get("hs_color"), 2)
    if hs is not None:
        hue, saturation = hs
        return {"hue": wrap_hue(hue), "saturation": max(0.0, min(100.0, saturation))}
    rgb = safe_floats(attributes.get("rgb_color"), 3)
    if rgb is not None:
        hue, saturation = rgb_to_hs(*rgb)
        return {"hue": hue, "saturation": saturation}
    return {}


def decode_light(entity: EntityState, source: IngestionSource = IngestionSource.PUSH) -> list[StateChange]:
    """Decode a ``light.*`` entity.

    An ``off`` state only flips ``is_on``; the last brightness is kept so
    the light comes back at the same level.
    """
    changes: list[StateChange] = []
    on_off = _on_off(entity, source)
    if on_off is not None:
        changes.append(on_off)

    attributes = entity.attributes
    brightness = safe_int(attributes.get("brightness"))
    if brightness is not None:
        changes.append(
            _change(entity, ChangeKind.BRIGHTNESS, source, {"brightness": clamp_int(brightness, 0, MAX_BRIGHTNESS)})
        )

    color_temp = _color_temp_patch(attributes)
    if color_temp:
        changes.append(_change(entity, ChangeKind.COLOR_TEMP, source, color_temp))

    hs = _hs_patch(attributes)
    if hs:
        changes.append(_change(entity, ChangeKind.HS_COLOR, source, hs))
    return changes


def decode_cover(entity: EntityState, source: IngestionSource = IngestionSource.PUSH) -> list[StateChange]:
    changes: list[StateChange] = []
    state = safe_str(entity.state)
    if state is not None:
        state = state.lower()
        changes.append(
            _change(entity, ChangeKind.COVER_STATE, source, {"state": state, "is_on": state in _OPEN_COVER_STATES})
        )

    position = safe_int(entity.attributes.get("current_position"))
    if position is not None:
        changes.append(_change(entity, ChangeKind.POSITION, source, {"position": clamp_int(position, 0, 100)}))

    tilt = safe_int(entity.attributes.get("current_tilt_position"))
    if tilt is not None:
        changes.append(_change(entity, ChangeKind.TILT, source, {"tilt": clamp_int(tilt, 0, 100)}))
    return changes


def decode_on_off(entity: EntityState, source: IngestionSource = IngestionSource.PUSH) -> list[StateChange]:
    change = _on_off(entity, source)
    return [change] if change is not None else []


_DECODERS: dict[str, Callable[[EntityState, IngestionSource], list[StateChange]]] = {
    "light": decode_light,
    "cover": decode_cover,
    **{domain: decode_on_off for domain in ON_OFF_DOMAINS},
}


def decode_entity(entity: EntityState, source: IngestionSource = IngestionSource.PUSH) -> list[StateChange]:
    """Route *entity* to its domain decoder; unsupported domains yield nothing."""
    decoder = _DECODERS.get(entity.domain)
    if decoder is None:
        return []
    return decoder(entity, source)


def merge_changes(changes: list[StateChange]) -> dict[str, Any]:
    """Fold decoded changes of one entity into a single patch."""
    patch: dict[str, Any] = {}
    for change in changes:
        patch.update(change.data)
    return patch
