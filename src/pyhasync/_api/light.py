"""Service calls for lights and other on/off entities.

Services:
  - <domain>.turn_on / turn_off / toggle
  - light.turn_on with brightness, color_temp_kelvin or hs_color
"""

from __future__ import annotations

from typing import Any

from pyhasync._constants import MAX_BRIGHTNESS
from pyhasync.color import clamp, clamp_int, mired_to_kelvin, wrap_hue
from pyhasync.models._base import entity_domain
from pyhasync.models.control import ServiceCall
from pyhasync.models.state import CachedState

LIGHT_DOMAIN = "light"
POWER_SERVICES: frozenset[str] = frozenset({"turn_on", "turn_off", "toggle"})


def power_call(entity_id: str, service: str) -> ServiceCall:
    """``turn_on`` / ``turn_off`` / ``toggle`` in the entity's own domain."""
    if service not in POWER_SERVICES:
        raise ValueError(f"Unknown power service: {service!r}")
    return ServiceCall(domain=entity_domain(entity_id), service=service, entity_id=entity_id)


def brightness_call(entity_id: str, brightness: float) -> ServiceCall:
    return ServiceCall(
        domain=LIGHT_DOMAIN,
        service="turn_on",
        entity_id=entity_id,
        service_data={"brightness": clamp_int(brightness, 0, MAX_BRIGHTNESS)},
    )


def color_temp_call(entity_id: str, mired: float) -> ServiceCall:
    return ServiceCall(
        domain=LIGHT_DOMAIN,
        service="turn_on",
        entity_id=entity_id,
        service_data={"color_temp_kelvin": mired_to_kelvin(mired)},
    )


def _hs_value(hue: float, saturation: float) -> list[float]:
    return [round(wrap_hue(hue), 2), round(clamp(saturation, 0.0, 100.0), 2)]


def hs_call(entity_id: str, hue: float, saturation: float) -> ServiceCall:
    return ServiceCall(
        domain=LIGHT_DOMAIN,
        service="turn_on",
        entity_id=entity_id,
        service_data={"hs_color": _hs_value(hue, saturation)},
    )


def settings_call(
    entity_id: str,
    current: CachedState,
    *,
    brightness: float | None = None,
    color_temp_mired: float | None = None,
    hue: float | None = None,
    saturation: float | None = None,
) -> ServiceCall:
    """One ``turn_on`` carrying several parameters at once.

    At most one colour attribute is sent: colour temperature takes
    priority over hue/saturation when both are given. A missing hue or
    saturation is completed from *current*.
    """
    data: dict[str, Any] = {}
    if brightness is not None:
        data["brightness"] = clamp_int(brightness, 0, MAX_BRIGHTNESS)
    if color_temp_mired is not None:
        data["color_temp_kelvin"] = mired_to_kelvin(color_temp_mired)
    elif hue is not None or saturation is not None:
        data["hs_color"] = _hs_value(
            current.hue if hue is None else hue,
            current.saturation if saturation is None else saturation,
        )
    return ServiceCall(domain=LIGHT_DOMAIN, service="turn_on", entity_id=entity_id, service_data=data)
