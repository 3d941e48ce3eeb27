"""pyhasync - Async Home Assistant state sync for physical control surfaces."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyhasync")
except PackageNotFoundError:
    __version__ = "0+local"
from pyhasync._transport import CallOutcome, ConnectionState, ConnectOutcome, WebSocketTransport
from pyhasync.capabilities import CapabilityResolver
from pyhasync.client import HaSyncClient
from pyhasync.config import HaSyncConfig
from pyhasync.debounce import CommandDebouncer
from pyhasync.exceptions import (
    HaAuthenticationError,
    HaCommandError,
    HaConfigError,
    HaConnectionClosedError,
    HaConnectionError,
    HaProtocolError,
    HaSyncError,
    HaTimeoutError,
    HaUnsupportedCommandError,
)
from pyhasync.health import HealthMonitor, HealthState, HealthStatus
from pyhasync.ingestion import EventDemultiplexer
from pyhasync.models import (
    ActionKind,
    AreaEntry,
    Axis,
    CachedState,
    CapabilitySet,
    Channel,
    ControlAction,
    DeviceEntry,
    EntityEntry,
    ServiceCall,
)
from pyhasync.registry import AreaRegistry
from pyhasync.state import ChangeKind, EchoGuard, IngestionSource, StateCache, StateChange

__all__ = [
    "ActionKind",
    "AreaEntry",
    "AreaRegistry",
    "Axis",
    "CachedState",
    "CallOutcome",
    "CapabilityResolver",
    "CapabilitySet",
    "ChangeKind",
    "Channel",
    "CommandDebouncer",
    "ConnectOutcome",
    "ConnectionState",
    "ControlAction",
    "DeviceEntry",
    "EchoGuard",
    "EntityEntry",
    "EventDemultiplexer",
    "HaAuthenticationError",
    "HaCommandError",
    "HaConfigError",
    "HaConnectionClosedError",
    "HaConnectionError",
    "HaProtocolError",
    "HaSyncClient",
    "HaSyncConfig",
    "HaSyncError",
    "HaTimeoutError",
    "HaUnsupportedCommandError",
    "HealthMonitor",
    "HealthState",
    "HealthStatus",
    "IngestionSource",
    "ServiceCall",
    "StateCache",
    "StateChange",
    "WebSocketTransport",
    "__version__",
]
