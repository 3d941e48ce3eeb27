from __future__ import annotations

import pytest

from pyhasync.color import clamp, kelvin_to_mired, mired_to_kelvin, rgb_to_hs, wrap_hue


def test_kelvin_mired_round_trip() -> None:
    for kelvin in range(2000, 6501):
        assert abs(mired_to_kelvin(kelvin_to_mired(kelvin)) - kelvin) <= 1


def test_mired_kelvin_round_trip() -> None:
    for mired in range(154, 501):
        assert abs(kelvin_to_mired(mired_to_kelvin(mired)) - mired) <= 1


def test_kelvin_conversion_guards_zero() -> None:
    assert mired_to_kelvin(0) == 1_000_000
    assert kelvin_to_mired(0) == 1_000_000


@pytest.mark.parametrize("value", [-20.0, 0.0, 17.5, 100.0, 250.0])
def test_clamp_is_idempotent(value: float) -> None:
    once = clamp(value, 0.0, 100.0)
    assert clamp(once, 0.0, 100.0) == once
    assert 0.0 <= once <= 100.0


def test_clamp_keeps_in_range_value() -> None:
    assert clamp(42.5, 0, 100) == 42.5


@pytest.mark.parametrize(("hue", "expected"), [(0, 0.0), (359.5, 359.5), (360, 0.0), (-90, 270.0), (725, 5.0)])
def test_wrap_hue(hue: float, expected: float) -> None:
    assert wrap_hue(hue) == expected


def test_rgb_to_hs() -> None:
    assert rgb_to_hs(0, 0, 255) == (240.0, 100.0)
    assert rgb_to_hs(255, 255, 255) == (0.0, 0.0)
    assert rgb_to_hs(64, 64, 64) == (0.0, 0.0)
    assert rgb_to_hs(64, 0, 0) == (0.0, 100.0)
    hue, saturation = rgb_to_hs(255, 128, 0)
    assert hue == pytest.approx(30.1, abs=0.1)
    assert saturation == 100.0
