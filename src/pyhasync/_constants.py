"""Protocol constants and device defaults."""

from __future__ import annotations

WEBSOCKET_PATH = "/api/websocket"

STATE_CHANGED_EVENT = "state_changed"

# Colour temperature bounds used when a light does not report its own.
DEFAULT_MIN_MIREDS = 153
DEFAULT_MAX_MIREDS = 500
DEFAULT_WARM_MIREDS = 370

MAX_BRIGHTNESS = 255

# Per-tick step sizes for relative (dial) adjustments.
BRIGHTNESS_STEP_PERCENT = 1
BRIGHTNESS_MAX_STEP_PERCENT = 10
COLOR_TEMP_STEP_MIREDS = 2
HUE_STEP_DEGREES = 1
SATURATION_STEP_PERCENT = 1
POSITION_STEP_PERCENT = 1

# Light supported_features (legacy, pre colour-modes).
LIGHT_SUPPORT_BRIGHTNESS = 1
LIGHT_SUPPORT_COLOR_TEMP = 2
LIGHT_SUPPORT_COLOR = 16

# Cover supported_features.
COVER_SUPPORT_OPEN = 1
COVER_SUPPORT_CLOSE = 2
COVER_SUPPORT_SET_POSITION = 4
COVER_SUPPORT_STOP = 8
COVER_SUPPORT_OPEN_TILT = 16
COVER_SUPPORT_CLOSE_TILT = 32
COVER_SUPPORT_STOP_TILT = 64
COVER_SUPPORT_SET_TILT_POSITION = 128

COLOR_MODES_HS = frozenset({"hs", "rgb", "rgbw", "rgbww", "xy"})
COLOR_MODES_BRIGHTNESS = frozenset({"brightness", "white"})

ON_OFF_DOMAINS = frozenset({"switch", "script", "input_boolean"})

# Area reported for entities with no area on either the entity or its device.
UNASSIGNED_AREA_ID = "!unassigned"
UNASSIGNED_AREA_NAME = "(No area)"
