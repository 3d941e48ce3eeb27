"""Client configuration for pyhasync."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pyhasync.exceptions import HaConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class HaSyncConfig:
    """Client configuration.

    Parameters
    ----------
    base_url : str
        Home Assistant base URL (``http(s)://`` or ``ws(s)://``).
    access_token : str
        Long-lived access token.
    connect_timeout : float
        Seconds allowed for the connect + auth handshake.
    call_timeout : float
        Default per-request deadline in seconds.
    debounce_delay : float
        Quiet period in seconds before a burst of adjustments is sent.
    echo_window : float
        Seconds during which pushed state for a just-commanded entity
        is ignored.
    verify_ssl : bool
        Verify TLS certificates for ``wss://`` connections.
    """

    base_url: str
    access_token: str
    connect_timeout: float = 60.0
    call_timeout: float = 4.0
    debounce_delay: float = 0.01
    echo_window: float = 3.0
    verify_ssl: bool = True

    def validate(self) -> None:
        """Raise :class:`HaConfigError` when required fields are unusable."""
        if not self.base_url or not self.base_url.strip():
            raise HaConfigError("base_url is required")
        scheme = self.base_url.strip().split("://", 1)[0].lower()
        if scheme not in {"http", "https", "ws", "wss"}:
            raise HaConfigError(f"Unsupported URL scheme: {self.base_url!r}")
        if not self.access_token or not self.access_token.strip():
            raise HaConfigError("access_token is required")

    @classmethod
    def from_env(cls, **overrides: Any) -> HaSyncConfig:
        """Create configuration from environment variables.

        Reads ``HASYNC_BASE_URL``, ``HASYNC_ACCESS_TOKEN`` and the optional
        ``HASYNC_*`` tuning variables. Explicit keyword arguments override
        environment values.
        """
        env = os.environ

        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in (
            ("HASYNC_BASE_URL", "base_url"),
            ("HASYNC_ACCESS_TOKEN", "access_token"),
        ):
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        _ENV_FLOAT_MAP = {
            "HASYNC_CONNECT_TIMEOUT": "connect_timeout",
            "HASYNC_CALL_TIMEOUT": "call_timeout",
            "HASYNC_DEBOUNCE_DELAY": "debounce_delay",
            "HASYNC_ECHO_WINDOW": "echo_window",
        }
        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = float(val)

        if "verify_ssl" not in overrides:
            config_kwargs["verify_ssl"] = _env_bool(env.get("HASYNC_VERIFY_SSL"), True)

        config_kwargs.update(overrides)
        if "base_url" not in config_kwargs or "access_token" not in config_kwargs:
            raise HaConfigError("HASYNC_BASE_URL and HASYNC_ACCESS_TOKEN must be set")
        return cls(**config_kwargs)
