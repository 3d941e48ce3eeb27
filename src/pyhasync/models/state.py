"""Cached per-entity device state."""

from __future__ import annotations

from typing import Any

from pydantic import model_validator

from pyhasync._constants import DEFAULT_MAX_MIREDS, DEFAULT_MIN_MIREDS, DEFAULT_WARM_MIREDS, MAX_BRIGHTNESS
from pyhasync.color import clamp, clamp_int, mired_to_kelvin, wrap_hue
from pyhasync.models._base import HaBaseModel


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class CachedState(HaBaseModel):
    """Last known state of one entity.

    All numeric fields are clamped into their valid ranges during
    validation, so a stored instance is always displayable as-is.
    ``position`` and ``tilt`` stay ``None`` for entities that never
    reported them.
    """

    entity_id: str = ""
    state: str | None = None
    is_on: bool = False
    brightness: int = 0
    hue: float = 0.0
    saturation: float = 0.0
    color_temp_mired: int = DEFAULT_WARM_MIREDS
    min_mireds: int = DEFAULT_MIN_MIREDS
    max_mireds: int = DEFAULT_MAX_MIREDS
    position: int | None = None
    tilt: int | None = None

    @model_validator(mode="before")
    @classmethod
    def _clamp_ranges(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        data = dict(values)

        if _is_number(data.get("brightness")):
            data["brightness"] = clamp_int(data["brightness"], 0, MAX_BRIGHTNESS)
        if _is_number(data.get("hue")):
            data["hue"] = wrap_hue(float(data["hue"]))
        if _is_number(data.get("saturation")):
            data["saturation"] = clamp(float(data["saturation"]), 0.0, 100.0)
        for key in ("position", "tilt"):
            if _is_number(data.get(key)):
                data[key] = clamp_int(data[key], 0, 100)

        low = data.get("min_mireds", DEFAULT_MIN_MIREDS)
        high = data.get("max_mireds", DEFAULT_MAX_MIREDS)
        if _is_number(low) and _is_number(high):
            low, high = max(1, round(low)), max(1, round(high))
            if low > high:
                low, high = high, low
            data["min_mireds"], data["max_mireds"] = low, high
            mired = data.get("color_temp_mired", DEFAULT_WARM_MIREDS)
            if _is_number(mired):
                data["color_temp_mired"] = clamp_int(mired, low, high)
        return data

    @property
    def effective_brightness(self) -> int:
        """Brightness as displayed: zero while the light is off."""
        return self.brightness if self.is_on else 0

    @property
    def color_temp_kelvin(self) -> int:
        return mired_to_kelvin(self.color_temp_mired)
