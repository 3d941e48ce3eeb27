"""Parsing of ``get_states`` results for a full refresh."""

from __future__ import annotations

import dataclasses
import logging
from typing import Any

from pydantic import ValidationError

from pyhasync.ingestion.decoders import decode_entity, merge_changes
from pyhasync.models.frames import EntityState
from pyhasync.state.events import IngestionSource

_logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True, slots=True)
class EntitySnapshot:
    """Decoded state of one entity from a refresh."""

    entity: EntityState
    patch: dict[str, Any]

    @property
    def entity_id(self) -> str:
        return self.entity.entity_id


def parse_states(result: Any) -> list[EntitySnapshot]:
    """Decode the ``get_states`` result, skipping entries that do not validate."""
    if not isinstance(result, list):
        _logger.warning("get_states returned %s instead of a list", type(result).__name__)
        return []

    snapshots: list[EntitySnapshot] = []
    for item in result:
        try:
            entity = EntityState.model_validate(item)
        except ValidationError:
            _logger.debug("Skipping malformed state entry: %r", item, exc_info=True)
            continue
        changes = decode_entity(entity, IngestionSource.REFRESH)
        if not changes:
            continue
        snapshots.append(EntitySnapshot(entity=entity, patch=merge_changes(changes)))
    return snapshots
