"""Device, entity and area registry entries."""

from __future__ import annotations

from pydantic import AliasChoices, Field, field_validator

from pyhasync.models._base import HaBaseModel, normalize_entity_id


class DeviceEntry(HaBaseModel):
    id: str
    name: str = ""
    name_by_user: str = ""
    manufacturer: str = ""
    model: str = ""
    area_id: str = ""

    @property
    def display_name(self) -> str:
        return self.name_by_user or self.name


class EntityEntry(HaBaseModel):
    """Registry record of one entity; not every entity has a device."""

    entity_id: str
    device_id: str = ""
    area_id: str = ""
    original_name: str = ""

    @field_validator("entity_id")
    @classmethod
    def _normalize_entity_id(cls, value: str) -> str:
        return normalize_entity_id(value)


class AreaEntry(HaBaseModel):
    # Older cores send ``id`` instead of ``area_id``.
    area_id: str = Field(validation_alias=AliasChoices("area_id", "id"))
    name: str = ""
