"""Parsing of ``config/*_registry/list`` results."""

from __future__ import annotations

import logging
from typing import Any, TypeVar

from pydantic import ValidationError

from pyhasync.models._base import HaBaseModel

_logger = logging.getLogger(__name__)

_EntryT = TypeVar("_EntryT", bound=HaBaseModel)


def parse_registry(result: Any, model: type[_EntryT], registry: str) -> list[_EntryT]:
    """Validate every entry of a registry listing, skipping malformed ones."""
    if not isinstance(result, list):
        _logger.warning("%s registry returned %s instead of a list", registry, type(result).__name__)
        return []

    entries: list[_EntryT] = []
    for item in result:
        try:
            entries.append(model.model_validate(item))
        except ValidationError:
            _logger.debug("Skipping malformed %s registry entry: %r", registry, item, exc_info=True)
    return entries
