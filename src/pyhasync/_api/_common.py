"""Mapping from a debounced channel to its service call."""

from __future__ import annotations

from collections.abc import Mapping

from pyhasync._api import cover, light
from pyhasync.models.control import Axis, Channel, ServiceCall
from pyhasync.models.state import CachedState


def build_channel_call(
    entity_id: str,
    channel: Channel,
    values: Mapping[Axis, float],
    current: CachedState,
) -> ServiceCall:
    """Build the single call that transmits *values* on *channel*.

    For ``HS_COLOR`` the component that was not adjusted is taken from
    *current*, so hue-only dial turns keep the cached saturation.
    """
    if channel is Channel.BRIGHTNESS:
        return light.brightness_call(entity_id, values[Axis.BRIGHTNESS])
    if channel is Channel.COLOR_TEMP:
        return light.color_temp_call(entity_id, values[Axis.COLOR_TEMP])
    if channel is Channel.HS_COLOR:
        return light.hs_call(
            entity_id,
            values.get(Axis.HUE, current.hue),
            values.get(Axis.SATURATION, current.saturation),
        )
    if channel is Channel.POSITION:
        return cover.position_call(entity_id, values[Axis.POSITION])
    if channel is Channel.TILT:
        return cover.tilt_call(entity_id, values[Axis.TILT])
    raise ValueError(f"Unhandled channel: {channel!r}")
