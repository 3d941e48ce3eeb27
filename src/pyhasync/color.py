"""Colour helpers used by the decoders and the command path.

Only the conversions the sync engine consumes live here; full
colour-space handling is left to the rendering layer.
"""

from __future__ import annotations

import colorsys


def clamp(value: float, low: float, high: float) -> float:
    """Clamp *value* into ``[low, high]``."""
    if value < low:
        return low
    if value > high:
        return high
    return value


def clamp_int(value: float, low: int, high: int) -> int:
    return int(clamp(round(value), low, high))


def wrap_hue(value: float) -> float:
    """Wrap a hue in degrees into ``[0, 360)``."""
    wrapped = value % 360.0
    # -1e-18 % 360 rounds to 360.0 in floating point
    return 0.0 if wrapped >= 360.0 else wrapped


def mired_to_kelvin(mired: float) -> int:
    return round(1_000_000 / max(1.0, mired))


def kelvin_to_mired(kelvin: float) -> float:
    # Unrounded; integer mired storage rounds on its own.
    return 1_000_000 / max(1.0, kelvin)


def rgb_to_hs(red: float, green: float, blue: float) -> tuple[float, float]:
    """Convert 0-255 RGB components to (hue degrees, saturation percent)."""
    r = clamp(red, 0, 255) / 255.0
    g = clamp(green, 0, 255) / 255.0
    b = clamp(blue, 0, 255) / 255.0
    hue, saturation, _ = colorsys.rgb_to_hsv(r, g, b)
    return round(wrap_hue(hue * 360.0), 3), round(saturation * 100.0, 3)
