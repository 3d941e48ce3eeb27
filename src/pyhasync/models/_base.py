"""Base model for Home Assistant payloads.

Every wire and state model inherits from :class:`HaBaseModel`, which is
frozen, ignores unknown keys and drops explicit ``None`` values so that the
field default is used instead.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator


def normalize_entity_id(entity_id: str) -> str:
    """Canonical form of an entity id (``light.Kitchen `` -> ``light.kitchen``)."""
    return entity_id.strip().lower()


def entity_domain(entity_id: str) -> str:
    domain, _, _ = normalize_entity_id(entity_id).partition(".")
    return domain


class HaBaseModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_none(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        return {key: value for key, value in values.items() if value is not None}
