"""Record of an authenticated Home Assistant connection."""

from __future__ import annotations

import time

from pydantic import BaseModel, ConfigDict, Field


class Session(BaseModel):
    """Immutable details of one authenticated connection.

    Parameters
    ----------
    ws_url : str
        WebSocket URL the connection was opened against.
    ha_version : str or None
        Server version reported in ``auth_required`` / ``auth_ok``.
    created_at : float
        Monotonic timestamp (``time.monotonic()``) when the handshake
        completed.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        str_strip_whitespace=True,
    )

    ws_url: str
    ha_version: str | None = None
    created_at: float = Field(default_factory=time.monotonic)

    @property
    def age(self) -> float:
        """Seconds since the connection was authenticated."""
        return time.monotonic() - self.created_at
