"""Per-entity capability flags."""

from __future__ import annotations

from pydantic import Field

from pyhasync.models._base import HaBaseModel
from pyhasync.models.control import Axis


class CapabilitySet(HaBaseModel):
    """What an entity can do, derived from its reported feature metadata.

    Instances are replaced wholesale on refresh and never mutated.

    For covers, ``tilt_position`` gates the tilt dial (``set_cover_tilt_position``)
    while ``tilt_buttons`` only reports that some ``*_cover_tilt`` service
    exists. Which cover services are legal is listed in ``cover_services``.
    """

    on_off: bool = False
    brightness: bool = False
    color_temp: bool = False
    hue_saturation: bool = False
    position: bool = False
    tilt_position: bool = False
    tilt_buttons: bool = False
    basic: bool = False
    cover_services: frozenset[str] = Field(default_factory=frozenset)
    device_class: str | None = None

    def supports(self, axis: Axis) -> bool:
        if axis is Axis.BRIGHTNESS:
            return self.brightness
        if axis is Axis.COLOR_TEMP:
            return self.color_temp
        if axis in (Axis.HUE, Axis.SATURATION):
            return self.hue_saturation
        if axis is Axis.POSITION:
            return self.position
        if axis is Axis.TILT:
            return self.tilt_position
        return False

    def supports_cover_service(self, service: str) -> bool:
        return service in self.cover_services

    @property
    def is_empty(self) -> bool:
        return not any(
            (
                self.on_off,
                self.brightness,
                self.color_temp,
                self.hue_saturation,
                self.position,
                self.tilt_position,
                self.tilt_buttons,
                self.basic,
            )
        )
