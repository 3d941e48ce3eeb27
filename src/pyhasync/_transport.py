"""WebSocket transport for the Home Assistant API with request/response correlation."""

from __future__ import annotations

import asyncio
import contextlib
import dataclasses
import itertools
import json
import logging
from collections.abc import AsyncIterator, Callable
from enum import StrEnum
from typing import Any, Protocol

import aiohttp
from pydantic import ValidationError

from pyhasync._constants import WEBSOCKET_PATH
from pyhasync._redact import redact_for_log
from pyhasync.exceptions import (
    HaAuthenticationError,
    HaCommandError,
    HaConfigError,
    HaConnectionClosedError,
    HaConnectionError,
    HaProtocolError,
    HaSyncError,
    HaTimeoutError,
)
from pyhasync.models.frames import ErrorInfo, ResultFrame
from pyhasync.session import Session

_logger = logging.getLogger(__name__)

_SCHEME_MAP = {"http": "ws", "https": "wss", "ws": "ws", "wss": "wss"}


class ConnectionState(StrEnum):
    DISCONNECTED = "disconnected"
    AUTHENTICATING = "authenticating"
    READY = "ready"
    CLOSED = "closed"


@dataclasses.dataclass(frozen=True, slots=True)
class ConnectOutcome:
    ok: bool
    message: str
    error: HaSyncError | None = None
    session: Session | None = None


@dataclasses.dataclass(frozen=True, slots=True)
class CallOutcome:
    ok: bool
    result: Any = None
    error: HaSyncError | None = None

    @property
    def message(self) -> str:
        return "OK" if self.error is None else str(self.error)


class Transport(Protocol):
    """Structural transport interface used by the session components.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (`WebSocketTransport`) concrete.
    """

    async def call(
        self,
        domain: str,
        service: str,
        entity_id: str,
        service_data: dict[str, Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> CallOutcome:
        ...

    async def request(self, method: str, *, timeout: float | None = None, **fields: Any) -> CallOutcome:
        ...

    def inbound_events(self) -> AsyncIterator[dict[str, Any]]:
        ...


def build_websocket_url(base_url: str) -> str:
    """Map an ``http(s)://`` or ``ws(s)://`` base URL to the API socket URL."""
    text = (base_url or "").strip()
    scheme, sep, rest = text.partition("://")
    ws_scheme = _SCHEME_MAP.get(scheme.lower()) if sep else None
    if ws_scheme is None or not rest.strip("/"):
        raise HaConfigError(f"Invalid Home Assistant URL: {base_url!r}")
    rest = rest.rstrip("/")
    if not rest.endswith(WEBSOCKET_PATH):
        rest += WEBSOCKET_PATH
    return f"{ws_scheme}://{rest}"


class WebSocketTransport:
    """One logical Home Assistant WebSocket connection.

    Requests are correlated to responses by a per-connection integer id.
    Every frame that is not a response is queued for
    :meth:`inbound_events`; the queue outlives individual connections so a
    single consumer can keep iterating across reconnects.
    """

    def __init__(
        self,
        http_session: aiohttp.ClientSession,
        *,
        default_timeout: float = 4.0,
        verify_ssl: bool = True,
        on_connection_lost: Callable[[str], None] | None = None,
    ) -> None:
        self._http = http_session
        self._on_connection_lost = on_connection_lost
        self._default_timeout = default_timeout
        self._verify_ssl = verify_ssl
        self._state = ConnectionState.DISCONNECTED
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._reader_task: asyncio.Task[None] | None = None
        self._ids = itertools.count(1)
        self._send_lock = asyncio.Lock()
        self._pending: dict[int, asyncio.Future[dict[str, Any]]] = {}
        self._events: asyncio.Queue[dict[str, Any] | None] = asyncio.Queue()
        self._session: Session | None = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is ConnectionState.READY

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    async def connect_and_authenticate(self, url: str, token: str, *, timeout: float = 60.0) -> ConnectOutcome:
        """Open the socket and run the auth handshake.

        Any existing connection is torn down first; its pending requests
        fail with :class:`HaConnectionClosedError`. Failures are returned as
        an outcome, never raised.
        """
        if self._state is ConnectionState.CLOSED:
            error: HaSyncError = HaConnectionError("Transport is closed")
            return ConnectOutcome(ok=False, message=str(error), error=error)
        try:
            ws_url = build_websocket_url(url)
            if not token or not token.strip():
                raise HaConfigError("Access token is empty")
        except HaConfigError as exc:
            return ConnectOutcome(ok=False, message=str(exc), error=exc)

        await self._teardown(HaConnectionClosedError("Connection replaced"))
        self._state = ConnectionState.AUTHENTICATING
        _logger.info("Connecting to %s", ws_url)

        try:
            session = await asyncio.wait_for(self._handshake(ws_url, token), timeout)
        except TimeoutError:
            error = HaTimeoutError(f"Handshake with {ws_url} timed out after {timeout}s")
        except HaSyncError as exc:
            error = exc
        except aiohttp.ClientError as exc:
            error = HaConnectionError(f"Cannot connect to {ws_url}: {exc}")
        else:
            self._ids = itertools.count(1)
            self._session = session
            self._state = ConnectionState.READY
            assert self._ws is not None
            self._reader_task = asyncio.create_task(self._reader(self._ws), name="pyhasync-ws-reader")
            _logger.info("Authenticated with Home Assistant %s", session.ha_version or "")
            return ConnectOutcome(ok=True, message="Connected", session=session)

        await self._close_socket()
        self._state = ConnectionState.DISCONNECTED
        _logger.warning("Connection to %s failed: %s", ws_url, error)
        return ConnectOutcome(ok=False, message=str(error), error=error)

    async def _handshake(self, ws_url: str, token: str) -> Session:
        kwargs: dict[str, Any] = {} if self._verify_ssl else {"ssl": False}
        ws = await self._http.ws_connect(ws_url, heartbeat=None, **kwargs)
        self._ws = ws

        first = await self._receive_handshake_frame(ws)
        if first.get("type") != "auth_required":
            raise HaProtocolError(f"Expected auth_required, got {first.get('type')!r}")

        await ws.send_json({"type": "auth", "access_token": token})
        reply = await self._receive_handshake_frame(ws)
        reply_type = reply.get("type")
        if reply_type == "auth_invalid":
            raise HaAuthenticationError(str(reply.get("message") or "Invalid access token"))
        if reply_type != "auth_ok":
            raise HaProtocolError(f"Expected auth_ok, got {reply_type!r}")

        version = reply.get("ha_version") or first.get("ha_version")
        return Session(ws_url=ws_url, ha_version=str(version) if version else None)

    @staticmethod
    async def _receive_handshake_frame(ws: aiohttp.ClientWebSocketResponse) -> dict[str, Any]:
        msg = await ws.receive()
        if msg.type is not aiohttp.WSMsgType.TEXT:
            raise HaConnectionError(f"Connection closed during handshake ({msg.type.name})")
        try:
            payload = json.loads(msg.data)
        except json.JSONDecodeError as exc:
            raise HaProtocolError(f"Handshake frame is not JSON: {msg.data[:200]!r}") from exc
        if not isinstance(payload, dict):
            raise HaProtocolError("Handshake frame is not an object")
        _logger.debug("<- %s", redact_for_log(payload))
        return payload

    async def close(self) -> None:
        """Close the connection for good and end :meth:`inbound_events`."""
        if self._state is ConnectionState.CLOSED:
            return
        await self._teardown(HaConnectionClosedError("Transport closed"))
        self._state = ConnectionState.CLOSED
        self._events.put_nowait(None)

    async def _teardown(self, error: HaSyncError) -> None:
        # Detach first so the reader exits without reporting a lost connection.
        ws, self._ws = self._ws, None
        task, self._reader_task = self._reader_task, None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        await self._close_ws(ws)
        self._fail_pending(error)
        self._session = None
        if self._state is not ConnectionState.CLOSED:
            self._state = ConnectionState.DISCONNECTED

    async def _close_socket(self) -> None:
        ws, self._ws = self._ws, None
        await self._close_ws(ws)

    @staticmethod
    async def _close_ws(ws: aiohttp.ClientWebSocketResponse | None) -> None:
        if ws is not None and not ws.closed:
            with contextlib.suppress(aiohttp.ClientError, ConnectionError):
                await ws.close()

    def _fail_pending(self, error: HaSyncError) -> None:
        pending, self._pending = self._pending, {}
        for future in pending.values():
            if not future.done():
                future.set_exception(error)

    # ------------------------------------------------------------------
    # Reader
    # ------------------------------------------------------------------

    async def _reader(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        reason = "Connection closed by server"
        try:
            async for msg in ws:
                if msg.type is aiohttp.WSMsgType.TEXT:
                    self._dispatch_text(msg.data)
                elif msg.type is aiohttp.WSMsgType.ERROR:
                    reason = f"Connection error: {ws.exception()}"
                    break
        finally:
            if self._ws is ws:
                self._ws = None
                self._session = None
                if self._state is ConnectionState.READY:
                    self._state = ConnectionState.DISCONNECTED
                _logger.warning("WebSocket reader stopped: %s", reason)
                self._fail_pending(HaConnectionClosedError(reason))
                if self._on_connection_lost is not None:
                    try:
                        self._on_connection_lost(reason)
                    except Exception:
                        _logger.warning("on_connection_lost callback failed", exc_info=True)

    def _dispatch_text(self, data: str) -> None:
        try:
            payload = json.loads(data)
        except json.JSONDecodeError:
            _logger.warning("Dropping frame: %s", HaProtocolError(f"Invalid JSON: {data[:200]!r}"))
            return

        # Servers may coalesce several messages into one JSON array.
        messages = payload if isinstance(payload, list) else [payload]
        for message in messages:
            if not isinstance(message, dict):
                _logger.warning("Dropping frame: %s", HaProtocolError(f"Unexpected frame: {message!r}"))
                continue
            _logger.debug("<- %s", redact_for_log(message))
            self._dispatch(message)

    def _dispatch(self, message: dict[str, Any]) -> None:
        if message.get("type") in ("result", "pong"):
            request_id = message.get("id")
            future = self._pending.pop(request_id, None) if isinstance(request_id, int) else None
            if future is None:
                _logger.debug("Response for unknown or expired request id %s", request_id)
            elif not future.done():
                future.set_result(message)
            return
        self._events.put_nowait(message)

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    async def request(self, method: str, *, timeout: float | None = None, **fields: Any) -> CallOutcome:
        """Send ``{"id", "type": method, **fields}`` and await the matching response."""
        ws = self._ws
        if ws is None or self._state is not ConnectionState.READY:
            return CallOutcome(ok=False, error=HaConnectionError("Not connected"))

        future: asyncio.Future[dict[str, Any]] = asyncio.get_running_loop().create_future()
        async with self._send_lock:
            request_id = next(self._ids)
            frame = {"id": request_id, "type": method, **fields}
            self._pending[request_id] = future
            try:
                await ws.send_json(frame)
            except (aiohttp.ClientError, ConnectionError) as exc:
                self._pending.pop(request_id, None)
                return CallOutcome(ok=False, error=HaConnectionError(f"Send failed for {method}: {exc}"))
        _logger.debug("-> %s", redact_for_log(frame))

        deadline = self._default_timeout if timeout is None else timeout
        try:
            message = await asyncio.wait_for(future, deadline)
        except TimeoutError:
            return CallOutcome(
                ok=False,
                error=HaTimeoutError(f"No response to {method} #{request_id} within {deadline}s", request_id=request_id),
            )
        except HaSyncError as exc:
            return CallOutcome(ok=False, error=exc)
        finally:
            # Also covers a cancelled caller.
            if self._pending.get(request_id) is future:
                del self._pending[request_id]
        return self._outcome_from(message)

    @staticmethod
    def _outcome_from(message: dict[str, Any]) -> CallOutcome:
        if message.get("type") == "pong":
            return CallOutcome(ok=True)
        try:
            frame = ResultFrame.model_validate(message)
        except ValidationError as exc:
            return CallOutcome(ok=False, error=HaProtocolError(f"Malformed result frame: {exc.error_count()} errors"))
        if frame.success:
            return CallOutcome(ok=True, result=frame.result)
        info = frame.error or ErrorInfo()
        return CallOutcome(
            ok=False,
            error=HaCommandError(info.message or "Request failed", code=info.code, request_id=frame.id),
        )

    async def call(
        self,
        domain: str,
        service: str,
        entity_id: str,
        service_data: dict[str, Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> CallOutcome:
        """Invoke ``domain.service`` on one entity."""
        fields: dict[str, Any] = {
            "domain": domain,
            "service": service,
            "target": {"entity_id": entity_id},
        }
        if service_data:
            fields["service_data"] = dict(service_data)
        outcome = await self.request("call_service", timeout=timeout, **fields)
        if outcome.ok:
            _logger.info("%s.%s %s %s", domain, service, entity_id, service_data or {})
        else:
            _logger.warning("%s.%s %s failed: %s", domain, service, entity_id, outcome.error)
        return outcome

    async def ping(self, *, timeout: float | None = None) -> CallOutcome:
        return await self.request("ping", timeout=timeout)

    async def inbound_events(self) -> AsyncIterator[dict[str, Any]]:
        """Yield every non-response frame until :meth:`close` is called."""
        while True:
            message = await self._events.get()
            if message is None:
                # Leave the sentinel for any other consumer.
                self._events.put_nowait(None)
                return
            yield message
