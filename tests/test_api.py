from __future__ import annotations

import pytest

from pyhasync._api import cover, light
from pyhasync._api._common import build_channel_call
from pyhasync.models.control import Axis, Channel
from pyhasync.models.state import CachedState


def test_power_call_uses_entity_domain() -> None:
    call = light.power_call("script.goodnight", "turn_on")

    assert (call.domain, call.service, call.entity_id, call.service_data) == (
        "script",
        "turn_on",
        "script.goodnight",
        {},
    )
    with pytest.raises(ValueError):
        light.power_call("light.desk", "explode")


def test_channel_calls() -> None:
    current = CachedState(hue=15, saturation=55)

    assert build_channel_call("light.x", Channel.BRIGHTNESS, {Axis.BRIGHTNESS: 300}, current).service_data == {
        "brightness": 255
    }
    assert build_channel_call("light.x", Channel.COLOR_TEMP, {Axis.COLOR_TEMP: 370}, current).service_data == {
        "color_temp_kelvin": 2703
    }
    assert build_channel_call("light.x", Channel.HS_COLOR, {Axis.SATURATION: 90}, current).service_data == {
        "hs_color": [15.0, 90.0]
    }
    position = build_channel_call("cover.blind", Channel.POSITION, {Axis.POSITION: 42.4}, current)
    assert (position.service, position.service_data) == ("set_cover_position", {"position": 42})
    tilt = build_channel_call("cover.blind", Channel.TILT, {Axis.TILT: 120}, current)
    assert (tilt.service, tilt.service_data) == ("set_cover_tilt_position", {"tilt_position": 100})


def test_settings_call_prefers_color_temp_over_hs() -> None:
    call = light.settings_call("light.x", CachedState(), brightness=128, color_temp_mired=250, hue=10, saturation=20)

    assert call.service == "turn_on"
    assert call.service_data == {"brightness": 128, "color_temp_kelvin": 4000}


def test_settings_call_completes_hs_from_current() -> None:
    call = light.settings_call("light.x", CachedState(hue=33, saturation=44), hue=300)
    assert call.service_data == {"hs_color": [300.0, 44.0]}

    assert light.settings_call("light.x", CachedState()).service_data == {}


def test_cover_services() -> None:
    assert cover.cover_call("cover.blind", "stop_cover_tilt").service == "stop_cover_tilt"
    with pytest.raises(ValueError):
        cover.cover_call("cover.blind", "set_cover_position")
