"""Ingestion of pushed events and refreshed state."""

from pyhasync.ingestion.decoders import decode_cover, decode_entity, decode_light, decode_on_off, merge_changes
from pyhasync.ingestion.demux import EventDemultiplexer
from pyhasync.ingestion.registry import parse_registry
from pyhasync.ingestion.states import EntitySnapshot, parse_states

__all__ = [
    "EntitySnapshot",
    "EventDemultiplexer",
    "decode_cover",
    "decode_entity",
    "decode_light",
    "decode_on_off",
    "merge_changes",
    "parse_registry",
    "parse_states",
]
