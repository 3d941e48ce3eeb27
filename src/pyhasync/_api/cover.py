"""Service calls for covers."""

from __future__ import annotations

from pyhasync.color import clamp_int
from pyhasync.models.control import ServiceCall

COVER_DOMAIN = "cover"

COVER_SERVICES: frozenset[str] = frozenset(
    {
        "open_cover",
        "close_cover",
        "stop_cover",
        "toggle",
        "open_cover_tilt",
        "close_cover_tilt",
        "stop_cover_tilt",
        "toggle_cover_tilt",
    }
)


def cover_call(entity_id: str, service: str) -> ServiceCall:
    if service not in COVER_SERVICES:
        raise ValueError(f"Unknown cover service: {service!r}")
    return ServiceCall(domain=COVER_DOMAIN, service=service, entity_id=entity_id)


def position_call(entity_id: str, position: float) -> ServiceCall:
    return ServiceCall(
        domain=COVER_DOMAIN,
        service="set_cover_position",
        entity_id=entity_id,
        service_data={"position": clamp_int(position, 0, 100)},
    )


def tilt_call(entity_id: str, tilt: float) -> ServiceCall:
    return ServiceCall(
        domain=COVER_DOMAIN,
        service="set_cover_tilt_position",
        entity_id=entity_id,
        service_data={"tilt_position": clamp_int(tilt, 0, 100)},
    )
