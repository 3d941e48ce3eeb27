"""Wire frame models for the Home Assistant WebSocket API."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import Field, field_validator

from pyhasync.models._base import HaBaseModel, entity_domain, normalize_entity_id


class ErrorInfo(HaBaseModel):
    code: str = ""
    message: str = ""

    @field_validator("code", mode="before")
    @classmethod
    def _coerce_code(cls, value: Any) -> str:
        return str(value)


class ResultFrame(HaBaseModel):
    """Response to a request, correlated by ``id``."""

    id: int
    type: Literal["result"] = "result"
    success: bool = False
    result: Any = None
    error: ErrorInfo | None = None


class EntityState(HaBaseModel):
    """One entity as reported by ``get_states`` or a ``state_changed`` event."""

    entity_id: str
    state: str = ""
    attributes: dict[str, Any] = Field(default_factory=dict)

    @field_validator("entity_id")
    @classmethod
    def _normalize_entity_id(cls, value: str) -> str:
        entity_id = normalize_entity_id(value)
        if "." not in entity_id:
            raise ValueError(f"entity_id has no domain: {value!r}")
        return entity_id

    @property
    def domain(self) -> str:
        return entity_domain(self.entity_id)


class StateChangedData(HaBaseModel):
    entity_id: str
    new_state: EntityState | None = None
    old_state: EntityState | None = None


class EventPayload(HaBaseModel):
    event_type: str
    data: dict[str, Any] = Field(default_factory=dict)


class EventFrame(HaBaseModel):
    """Unsolicited event delivered on a subscription."""

    type: Literal["event"] = "event"
    id: int | None = None
    event: EventPayload
