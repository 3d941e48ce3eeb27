"""Typed models for Home Assistant frames, cached state and controls."""

from pyhasync.models._base import HaBaseModel, entity_domain, normalize_entity_id
from pyhasync.models.capabilities import CapabilitySet
from pyhasync.models.control import ActionKind, Axis, Channel, ControlAction, ServiceCall
from pyhasync.models.frames import EntityState, ErrorInfo, EventFrame, EventPayload, ResultFrame, StateChangedData
from pyhasync.models.registry import AreaEntry, DeviceEntry, EntityEntry
from pyhasync.models.state import CachedState

__all__ = [
    "ActionKind",
    "AreaEntry",
    "Axis",
    "CachedState",
    "CapabilitySet",
    "Channel",
    "ControlAction",
    "DeviceEntry",
    "EntityEntry",
    "EntityState",
    "ErrorInfo",
    "EventFrame",
    "EventPayload",
    "HaBaseModel",
    "ResultFrame",
    "ServiceCall",
    "StateChangedData",
    "entity_domain",
    "normalize_entity_id",
]
