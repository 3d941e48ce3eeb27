"""Derivation of per-entity capability sets from reported feature metadata."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from pyhasync._constants import (
    COLOR_MODES_BRIGHTNESS,
    COLOR_MODES_HS,
    COVER_SUPPORT_CLOSE,
    COVER_SUPPORT_CLOSE_TILT,
    COVER_SUPPORT_OPEN,
    COVER_SUPPORT_OPEN_TILT,
    COVER_SUPPORT_SET_POSITION,
    COVER_SUPPORT_SET_TILT_POSITION,
    COVER_SUPPORT_STOP,
    COVER_SUPPORT_STOP_TILT,
    LIGHT_SUPPORT_BRIGHTNESS,
    LIGHT_SUPPORT_COLOR,
    LIGHT_SUPPORT_COLOR_TEMP,
    ON_OFF_DOMAINS,
)
from pyhasync.ingestion.normalize import safe_int, safe_str
from pyhasync.models._base import entity_domain, normalize_entity_id
from pyhasync.models.capabilities import CapabilitySet

_logger = logging.getLogger(__name__)

_EMPTY = CapabilitySet()


def _color_modes(attributes: Mapping[str, Any]) -> frozenset[str] | None:
    modes = attributes.get("supported_color_modes")
    if isinstance(modes, str) or not isinstance(modes, Iterable):
        return None
    return frozenset(str(mode).strip().lower() for mode in modes)


def _has(bits: int, flag: int) -> bool:
    return bits & flag == flag


def _resolve_light(attributes: Mapping[str, Any]) -> CapabilitySet:
    modes = _color_modes(attributes)
    if modes:
        color_temp = "color_temp" in modes
        hue_saturation = bool(modes & COLOR_MODES_HS)
        brightness = bool(modes & COLOR_MODES_BRIGHTNESS) or color_temp or hue_saturation
    else:
        bits = safe_int(attributes.get("supported_features")) or 0
        color_temp = _has(bits, LIGHT_SUPPORT_COLOR_TEMP)
        hue_saturation = _has(bits, LIGHT_SUPPORT_COLOR)
        brightness = _has(bits, LIGHT_SUPPORT_BRIGHTNESS) or color_temp or hue_saturation
    return CapabilitySet(
        on_off=True,
        brightness=brightness,
        color_temp=color_temp,
        hue_saturation=hue_saturation,
    )


# Feature bits every cover service needs.
_COVER_SERVICE_BITS: dict[str, int] = {
    "open_cover": COVER_SUPPORT_OPEN,
    "close_cover": COVER_SUPPORT_CLOSE,
    "stop_cover": COVER_SUPPORT_STOP,
    "toggle": COVER_SUPPORT_OPEN | COVER_SUPPORT_CLOSE,
    "set_cover_position": COVER_SUPPORT_SET_POSITION,
    "open_cover_tilt": COVER_SUPPORT_OPEN_TILT,
    "close_cover_tilt": COVER_SUPPORT_CLOSE_TILT,
    "stop_cover_tilt": COVER_SUPPORT_STOP_TILT,
    "toggle_cover_tilt": COVER_SUPPORT_OPEN_TILT | COVER_SUPPORT_CLOSE_TILT,
    "set_cover_tilt_position": COVER_SUPPORT_SET_TILT_POSITION,
}


def _resolve_cover(attributes: Mapping[str, Any]) -> CapabilitySet:
    bits = safe_int(attributes.get("supported_features")) or 0
    tilt_buttons = COVER_SUPPORT_OPEN_TILT | COVER_SUPPORT_CLOSE_TILT | COVER_SUPPORT_STOP_TILT
    return CapabilitySet(
        basic=bool(bits & (COVER_SUPPORT_OPEN | COVER_SUPPORT_CLOSE | COVER_SUPPORT_STOP)),
        position=_has(bits, COVER_SUPPORT_SET_POSITION),
        tilt_position=_has(bits, COVER_SUPPORT_SET_TILT_POSITION),
        tilt_buttons=bool(bits & tilt_buttons),
        cover_services=frozenset(service for service, flag in _COVER_SERVICE_BITS.items() if _has(bits, flag)),
        device_class=safe_str(attributes.get("device_class")),
    )


class CapabilityResolver:
    """Holds the current :class:`CapabilitySet` of every known entity.

    Sets are only ever replaced, never mutated: a refresh swaps in a whole
    new mapping. Used from the event loop only.
    """

    def __init__(self) -> None:
        self._caps: dict[str, CapabilitySet] = {}

    @staticmethod
    def resolve(entity_id: str, attributes: Mapping[str, Any]) -> CapabilitySet:
        """Derive capabilities from device-reported metadata only.

        A feature whose flag is absent is unsupported; there is no default
        set for entities that report nothing.
        """
        domain = entity_domain(entity_id)
        if domain == "light":
            return _resolve_light(attributes)
        if domain == "cover":
            return _resolve_cover(attributes)
        if domain in ON_OFF_DOMAINS:
            return CapabilitySet(on_off=True)
        return _EMPTY

    def get(self, entity_id: str) -> CapabilitySet:
        return self._caps.get(normalize_entity_id(entity_id), _EMPTY)

    def known_entity_ids(self) -> list[str]:
        return sorted(self._caps)

    def update(self, entity_id: str, attributes: Mapping[str, Any]) -> CapabilitySet:
        """Re-derive a single entity, replacing its previous set."""
        key = normalize_entity_id(entity_id)
        caps = self.resolve(key, attributes)
        self._caps = {**self._caps, key: caps}
        return caps

    def refresh(self, entities: Mapping[str, Mapping[str, Any]]) -> None:
        """Rebuild the whole mapping from ``{entity_id: attributes}``."""
        rebuilt = {normalize_entity_id(entity_id): self.resolve(entity_id, attrs) for entity_id, attrs in entities.items()}
        self._caps = rebuilt
        _logger.debug("Resolved capabilities for %d entities", len(rebuilt))
