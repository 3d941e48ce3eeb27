"""Entity to area resolution from the device, entity and area registries."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from pyhasync._constants import UNASSIGNED_AREA_ID, UNASSIGNED_AREA_NAME
from pyhasync.models._base import normalize_entity_id
from pyhasync.models.registry import AreaEntry, DeviceEntry, EntityEntry

_logger = logging.getLogger(__name__)


class AreaRegistry:
    """Maps entities to areas.

    An entity's own area wins over the area of its device; entities with
    neither fall into :data:`UNASSIGNED_AREA_ID`. Like the capability
    resolver, a refresh replaces every mapping at once.
    """

    def __init__(self) -> None:
        self._devices: dict[str, DeviceEntry] = {}
        self._entities: dict[str, EntityEntry] = {}
        self._area_names: dict[str, str] = {}

    def refresh(
        self,
        devices: Iterable[DeviceEntry],
        entities: Iterable[EntityEntry],
        areas: Iterable[AreaEntry],
    ) -> None:
        self._devices = {device.id: device for device in devices}
        self._entities = {entity.entity_id: entity for entity in entities}
        self._area_names = {area.area_id: area.name or area.area_id for area in areas}
        _logger.debug(
            "Loaded registries: %d devices, %d entities, %d areas",
            len(self._devices),
            len(self._entities),
            len(self._area_names),
        )

    def device_for(self, entity_id: str) -> DeviceEntry | None:
        entry = self._entities.get(normalize_entity_id(entity_id))
        if entry is None or not entry.device_id:
            return None
        return self._devices.get(entry.device_id)

    def area_id_for(self, entity_id: str) -> str:
        entry = self._entities.get(normalize_entity_id(entity_id))
        if entry is not None and entry.area_id:
            return entry.area_id
        device = self.device_for(entity_id)
        if device is not None and device.area_id:
            return device.area_id
        return UNASSIGNED_AREA_ID

    def area_name(self, area_id: str) -> str:
        if area_id == UNASSIGNED_AREA_ID:
            return UNASSIGNED_AREA_NAME
        return self._area_names.get(area_id, area_id)

    def areas_for(self, entity_ids: Iterable[str]) -> list[tuple[str, str]]:
        """``(area_id, name)`` of every area holding one of *entity_ids*, sorted by name."""
        area_ids = {self.area_id_for(entity_id) for entity_id in entity_ids}
        return sorted(((area_id, self.area_name(area_id)) for area_id in area_ids), key=lambda area: area[1].lower())

    def entities_in_area(self, area_id: str, entity_ids: Iterable[str]) -> list[str]:
        return sorted(
            {normalize_entity_id(entity_id) for entity_id in entity_ids if self.area_id_for(entity_id) == area_id}
        )
