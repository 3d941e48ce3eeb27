"""Control actions emitted by the UI layer and outbound service calls."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import Field, field_validator

from pyhasync.models._base import HaBaseModel, normalize_entity_id


class Channel(StrEnum):
    """Unit of outbound transmission.

    Hue and saturation travel together as ``hs_color``; every other axis
    has a channel of its own.
    """

    BRIGHTNESS = "brightness"
    HS_COLOR = "hs_color"
    COLOR_TEMP = "color_temp"
    POSITION = "position"
    TILT = "tilt"

    @property
    def conflicts_with(self) -> Channel | None:
        """Channel whose pending value is discarded when this one is adjusted."""
        if self is Channel.HS_COLOR:
            return Channel.COLOR_TEMP
        if self is Channel.COLOR_TEMP:
            return Channel.HS_COLOR
        return None


class Axis(StrEnum):
    BRIGHTNESS = "brightness"
    HUE = "hue"
    SATURATION = "saturation"
    COLOR_TEMP = "color_temp"
    POSITION = "position"
    TILT = "tilt"

    @property
    def channel(self) -> Channel:
        if self in (Axis.HUE, Axis.SATURATION):
            return Channel.HS_COLOR
        return Channel(self.value)


class ActionKind(StrEnum):
    SET = "set"
    STEP = "step"


class ControlAction(HaBaseModel):
    """A single user adjustment on one axis of one entity.

    ``SET`` carries an absolute target in the axis' native unit
    (brightness 0-255, hue degrees, saturation percent, mireds, percent
    for covers). ``STEP`` carries signed dial ticks.
    """

    entity_id: str
    axis: Axis
    kind: ActionKind = ActionKind.SET
    value: float

    @field_validator("entity_id")
    @classmethod
    def _normalize_entity_id(cls, value: str) -> str:
        entity_id = normalize_entity_id(value)
        if not entity_id:
            raise ValueError("entity_id must be non-empty")
        return entity_id

    @classmethod
    def set_to(cls, entity_id: str, axis: Axis, value: float) -> ControlAction:
        return cls(entity_id=entity_id, axis=axis, kind=ActionKind.SET, value=value)

    @classmethod
    def step_by(cls, entity_id: str, axis: Axis, ticks: int) -> ControlAction:
        return cls(entity_id=entity_id, axis=axis, kind=ActionKind.STEP, value=ticks)


class ServiceCall(HaBaseModel):
    """A ``call_service`` request, ready to hand to the transport."""

    domain: str
    service: str
    entity_id: str
    service_data: dict[str, Any] = Field(default_factory=dict)
