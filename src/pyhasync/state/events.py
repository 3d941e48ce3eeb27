"""Normalized state-change events.

Every ingestion path (push events, full refresh, optimistic local updates)
converts its input into these events. Only the state cache merges them.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pyhasync.models._base import normalize_entity_id


class IngestionSource(StrEnum):
    PUSH = "push"
    REFRESH = "refresh"
    OPTIMISTIC = "optimistic"


class ChangeKind(StrEnum):
    ON_OFF = "on_off"
    BRIGHTNESS = "brightness"
    COLOR_TEMP = "color_temp"
    HS_COLOR = "hs_color"
    POSITION = "position"
    TILT = "tilt"
    COVER_STATE = "cover_state"


class StateChange(BaseModel):
    """One decoded axis of one entity, as a partial ``CachedState`` patch."""

    model_config = ConfigDict(frozen=True)

    entity_id: str = Field(..., description="Normalized entity id")
    kind: ChangeKind
    source: IngestionSource = IngestionSource.PUSH
    data: dict[str, Any] = Field(default_factory=dict, description="CachedState field patch")
    observed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("entity_id")
    @classmethod
    def _normalize_entity_id(cls, value: str) -> str:
        entity_id = normalize_entity_id(value)
        if not entity_id:
            raise ValueError("entity_id must be non-empty")
        return entity_id

    @field_validator("observed_at")
    @classmethod
    def _ensure_tz_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value
