from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator
from typing import Any

import aiohttp
import pytest_asyncio
from aiohttp import test_utils, web

GOOD_TOKEN = "good-token"

_REGISTRY_COMMANDS = {
    "config/device_registry/list": "device",
    "config/entity_registry/list": "entity",
    "config/area_registry/list": "area",
}


class FakeHomeAssistant:
    """Minimal in-process Home Assistant WebSocket API."""

    def __init__(self) -> None:
        self.ha_version = "2024.6.0"
        self.silent = False
        self.states: list[dict[str, Any]] = []
        self.received: list[tuple[int, dict[str, Any]]] = []
        self.stall_entities: set[str] = set()
        self.fail_entities: dict[str, tuple[str, str]] = {}
        self.registries: dict[str, list[dict[str, Any]]] = {"device": [], "entity": [], "area": []}
        self.failing_commands: set[str] = set()
        self.sockets: list[web.WebSocketResponse] = []
        self.subscriptions: dict[int, int] = {}
        self.server: test_utils.TestServer | None = None

    @property
    def base_url(self) -> str:
        assert self.server is not None
        return str(self.server.make_url("/"))

    @property
    def calls(self) -> list[dict[str, Any]]:
        return [frame for _, frame in self.received if frame.get("type") == "call_service"]

    def frames_on(self, connection: int) -> list[dict[str, Any]]:
        return [frame for index, frame in self.received if index == connection]

    async def handler(self, request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        index = len(self.sockets)
        self.sockets.append(ws)

        if self.silent:
            async for _ in ws:
                pass
            return ws

        await ws.send_json({"type": "auth_required", "ha_version": self.ha_version})
        auth = await ws.receive_json()
        if auth.get("type") != "auth" or auth.get("access_token") != GOOD_TOKEN:
            await ws.send_json({"type": "auth_invalid", "message": "Invalid access token or password"})
            await ws.close()
            return ws
        await ws.send_json({"type": "auth_ok", "ha_version": self.ha_version})

        async for msg in ws:
            if msg.type is not aiohttp.WSMsgType.TEXT:
                continue
            frame = json.loads(msg.data)
            self.received.append((index, frame))
            await self._handle(ws, index, frame)
        return ws

    async def _handle(self, ws: web.WebSocketResponse, index: int, frame: dict[str, Any]) -> None:
        request_id = frame["id"]
        kind = frame.get("type")
        registry = _REGISTRY_COMMANDS.get(kind)
        if kind in self.failing_commands:
            await ws.send_json(
                {"id": request_id, "type": "result", "success": False, "error": {"code": "unauthorized", "message": "Unauthorized"}}
            )
        elif registry is not None:
            await ws.send_json({"id": request_id, "type": "result", "success": True, "result": self.registries[registry]})
        elif kind == "ping":
            await ws.send_json({"id": request_id, "type": "pong"})
        elif kind == "subscribe_events":
            self.subscriptions[index] = request_id
            await ws.send_json({"id": request_id, "type": "result", "success": True, "result": None})
        elif kind == "get_states":
            await ws.send_json({"id": request_id, "type": "result", "success": True, "result": self.states})
        elif kind == "call_service":
            entity_id = frame["target"]["entity_id"]
            if entity_id in self.stall_entities:
                return
            if entity_id in self.fail_entities:
                code, message = self.fail_entities[entity_id]
                await ws.send_json(
                    {"id": request_id, "type": "result", "success": False, "error": {"code": code, "message": message}}
                )
                return
            await ws.send_json({"id": request_id, "type": "result", "success": True, "result": {"context": {}}})
        else:
            await ws.send_json(
                {
                    "id": request_id,
                    "type": "result",
                    "success": False,
                    "error": {"code": "unknown_command", "message": "Unknown command."},
                }
            )

    async def push_state(self, entity_id: str, state: str, attributes: dict[str, Any] | None = None) -> None:
        for index, ws in enumerate(self.sockets):
            sub_id = self.subscriptions.get(index)
            if ws.closed or sub_id is None:
                continue
            await ws.send_json(
                {
                    "id": sub_id,
                    "type": "event",
                    "event": {
                        "event_type": "state_changed",
                        "data": {
                            "entity_id": entity_id,
                            "old_state": None,
                            "new_state": {"entity_id": entity_id, "state": state, "attributes": attributes or {}},
                        },
                    },
                }
            )

    async def send_raw(self, text: str) -> None:
        for ws in self.sockets:
            if not ws.closed:
                await ws.send_str(text)

    async def drop_all(self) -> None:
        for ws in self.sockets:
            if not ws.closed:
                await ws.close()


async def wait_for_condition(predicate: Any, timeout: float = 2.0) -> None:
    """Poll *predicate* until it is truthy or *timeout* elapses."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


@pytest_asyncio.fixture
async def fake_ha() -> AsyncIterator[FakeHomeAssistant]:
    fake = FakeHomeAssistant()
    app = web.Application()
    app.router.add_get("/api/websocket", fake.handler)

    async def _close_sockets(_app: web.Application) -> None:
        await fake.drop_all()

    app.on_shutdown.append(_close_sockets)
    server = test_utils.TestServer(app)
    await server.start_server()
    fake.server = server
    yield fake
    await server.close()


@pytest_asyncio.fixture
async def http_session() -> AsyncIterator[aiohttp.ClientSession]:
    async with aiohttp.ClientSession() as session:
        yield session
