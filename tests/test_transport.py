from __future__ import annotations

import asyncio

import aiohttp
import pytest
from conftest import GOOD_TOKEN, FakeHomeAssistant, wait_for_condition

from pyhasync._transport import ConnectionState, WebSocketTransport, build_websocket_url
from pyhasync.exceptions import (
    HaAuthenticationError,
    HaCommandError,
    HaConfigError,
    HaConnectionClosedError,
    HaConnectionError,
    HaTimeoutError,
)


@pytest.mark.parametrize(
    ("base_url", "expected"),
    [
        ("http://ha.local:8123", "ws://ha.local:8123/api/websocket"),
        ("https://ha.example.com/", "wss://ha.example.com/api/websocket"),
        ("ws://10.0.0.2:8123/api/websocket", "ws://10.0.0.2:8123/api/websocket"),
        ("HTTPS://proxy.example.com/ha", "wss://proxy.example.com/ha/api/websocket"),
    ],
)
def test_build_websocket_url(base_url: str, expected: str) -> None:
    assert build_websocket_url(base_url) == expected


@pytest.mark.parametrize("base_url", ["", "ha.local:8123", "ftp://ha.local", "http://"])
def test_build_websocket_url_rejects_invalid(base_url: str) -> None:
    with pytest.raises(HaConfigError):
        build_websocket_url(base_url)


async def _connected(fake: FakeHomeAssistant, session: aiohttp.ClientSession, **kwargs: float) -> WebSocketTransport:
    transport = WebSocketTransport(session, **kwargs)
    outcome = await transport.connect_and_authenticate(fake.base_url, GOOD_TOKEN, timeout=2.0)
    assert outcome.ok, outcome.message
    return transport


@pytest.mark.asyncio
async def test_connect_and_authenticate(fake_ha: FakeHomeAssistant, http_session: aiohttp.ClientSession) -> None:
    transport = WebSocketTransport(http_session)
    outcome = await transport.connect_and_authenticate(fake_ha.base_url, GOOD_TOKEN, timeout=2.0)

    assert outcome.ok
    assert outcome.error is None
    assert outcome.session is not None
    assert outcome.session.ha_version == "2024.6.0"
    assert outcome.session.age >= 0
    assert outcome.session.ws_url.endswith("/api/websocket")
    assert transport.state is ConnectionState.READY
    await transport.close()
    assert transport.state is ConnectionState.CLOSED


@pytest.mark.asyncio
async def test_auth_invalid_is_reported_as_outcome(
    fake_ha: FakeHomeAssistant, http_session: aiohttp.ClientSession
) -> None:
    transport = WebSocketTransport(http_session)
    outcome = await transport.connect_and_authenticate(fake_ha.base_url, "wrong", timeout=2.0)

    assert not outcome.ok
    assert isinstance(outcome.error, HaAuthenticationError)
    assert "Invalid access token" in outcome.message
    assert transport.state is ConnectionState.DISCONNECTED
    await transport.close()


@pytest.mark.asyncio
async def test_handshake_timeout(fake_ha: FakeHomeAssistant, http_session: aiohttp.ClientSession) -> None:
    fake_ha.silent = True
    transport = WebSocketTransport(http_session)
    outcome = await transport.connect_and_authenticate(fake_ha.base_url, GOOD_TOKEN, timeout=0.2)

    assert not outcome.ok
    assert isinstance(outcome.error, HaTimeoutError)
    assert transport.state is ConnectionState.DISCONNECTED
    await transport.close()


@pytest.mark.asyncio
async def test_bad_url_and_token_fail_without_network(http_session: aiohttp.ClientSession) -> None:
    transport = WebSocketTransport(http_session)

    outcome = await transport.connect_and_authenticate("not a url", GOOD_TOKEN)
    assert isinstance(outcome.error, HaConfigError)

    outcome = await transport.connect_and_authenticate("http://ha.local:8123", "  ")
    assert isinstance(outcome.error, HaConfigError)
    assert transport.state is ConnectionState.DISCONNECTED


@pytest.mark.asyncio
async def test_request_without_connection_fails_fast(http_session: aiohttp.ClientSession) -> None:
    transport = WebSocketTransport(http_session)
    outcome = await transport.call("light", "turn_on", "light.desk")

    assert not outcome.ok
    assert isinstance(outcome.error, HaConnectionError)


@pytest.mark.asyncio
async def test_call_service_frame(fake_ha: FakeHomeAssistant, http_session: aiohttp.ClientSession) -> None:
    transport = await _connected(fake_ha, http_session)

    outcome = await transport.call("light", "turn_on", "light.desk", {"brightness": 128})

    assert outcome.ok
    assert fake_ha.calls == [
        {
            "id": 1,
            "type": "call_service",
            "domain": "light",
            "service": "turn_on",
            "target": {"entity_id": "light.desk"},
            "service_data": {"brightness": 128},
        }
    ]
    await transport.close()


@pytest.mark.asyncio
async def test_call_service_error_result(fake_ha: FakeHomeAssistant, http_session: aiohttp.ClientSession) -> None:
    fake_ha.fail_entities["light.gone"] = ("not_found", "Entity not found")
    transport = await _connected(fake_ha, http_session)

    outcome = await transport.call("light", "turn_off", "light.gone")

    assert not outcome.ok
    assert isinstance(outcome.error, HaCommandError)
    assert outcome.error.code == "not_found"
    assert outcome.message == "Entity not found"
    assert transport.is_connected
    await transport.close()


@pytest.mark.asyncio
async def test_timeout_evicts_pending_and_keeps_connection(
    fake_ha: FakeHomeAssistant, http_session: aiohttp.ClientSession
) -> None:
    fake_ha.stall_entities.add("light.stuck")
    transport = await _connected(fake_ha, http_session)

    outcome = await transport.call("light", "turn_on", "light.stuck", timeout=0.1)

    assert isinstance(outcome.error, HaTimeoutError)
    assert outcome.error.request_id == 1
    assert transport.pending_count == 0
    assert transport.is_connected
    assert (await transport.ping()).ok
    await transport.close()


@pytest.mark.asyncio
async def test_stalled_entity_does_not_block_other_calls(
    fake_ha: FakeHomeAssistant, http_session: aiohttp.ClientSession
) -> None:
    fake_ha.stall_entities.add("light.stuck")
    transport = await _connected(fake_ha, http_session)

    stalled = asyncio.create_task(transport.call("light", "turn_on", "light.stuck", timeout=0.5))
    await asyncio.sleep(0.05)
    other = await asyncio.wait_for(transport.call("light", "turn_on", "light.desk"), timeout=0.3)

    assert other.ok
    assert not stalled.done()
    assert isinstance((await stalled).error, HaTimeoutError)
    await transport.close()


@pytest.mark.asyncio
async def test_request_ids_restart_per_connection(
    fake_ha: FakeHomeAssistant, http_session: aiohttp.ClientSession
) -> None:
    transport = await _connected(fake_ha, http_session)
    await transport.call("switch", "turn_on", "switch.fan")
    await transport.call("switch", "turn_off", "switch.fan")

    outcome = await transport.connect_and_authenticate(fake_ha.base_url, GOOD_TOKEN, timeout=2.0)
    assert outcome.ok
    await transport.call("switch", "turn_on", "switch.fan")

    assert [frame["id"] for frame in fake_ha.frames_on(0)] == [1, 2]
    assert [frame["id"] for frame in fake_ha.frames_on(1)] == [1]
    await transport.close()


@pytest.mark.asyncio
async def test_connection_loss_fails_pending_requests(
    fake_ha: FakeHomeAssistant, http_session: aiohttp.ClientSession
) -> None:
    fake_ha.stall_entities.add("cover.blind")
    lost: list[str] = []
    transport = await _connected(fake_ha, http_session, default_timeout=5.0)
    transport._on_connection_lost = lost.append  # type: ignore[attr-defined]  # noqa: SLF001

    pending = asyncio.create_task(transport.call("cover", "open_cover", "cover.blind"))
    await wait_for_condition(lambda: transport.pending_count == 1)
    await fake_ha.drop_all()

    outcome = await asyncio.wait_for(pending, timeout=2.0)
    assert isinstance(outcome.error, HaConnectionClosedError)
    assert not transport.is_connected
    assert transport.state is ConnectionState.DISCONNECTED
    assert len(lost) == 1
    await transport.close()


@pytest.mark.asyncio
async def test_inbound_events_skip_responses_and_bad_frames(
    fake_ha: FakeHomeAssistant, http_session: aiohttp.ClientSession
) -> None:
    transport = await _connected(fake_ha, http_session)
    subscribed = await transport.request("subscribe_events", event_type="state_changed")
    assert subscribed.ok

    events = transport.inbound_events()
    await fake_ha.send_raw("this is not json")
    await fake_ha.send_raw("42")
    await fake_ha.push_state("light.desk", "on", {"brightness": 10})

    frame = await asyncio.wait_for(anext(events), timeout=2.0)
    assert frame["type"] == "event"
    assert frame["event"]["data"]["entity_id"] == "light.desk"
    assert transport.is_connected

    await transport.close()
    with pytest.raises(StopAsyncIteration):
        await asyncio.wait_for(anext(events), timeout=1.0)


@pytest.mark.asyncio
async def test_close_is_final(fake_ha: FakeHomeAssistant, http_session: aiohttp.ClientSession) -> None:
    transport = await _connected(fake_ha, http_session)
    await transport.close()
    await transport.close()

    outcome = await transport.connect_and_authenticate(fake_ha.base_url, GOOD_TOKEN)
    assert not outcome.ok
    assert isinstance(outcome.error, HaConnectionError)


@pytest.mark.asyncio
async def test_local_close_and_reconnect_are_not_reported_as_lost(
    fake_ha: FakeHomeAssistant, http_session: aiohttp.ClientSession
) -> None:
    fake_ha.stall_entities.add("cover.blind")
    lost: list[str] = []
    transport = WebSocketTransport(http_session, default_timeout=5.0, on_connection_lost=lost.append)
    assert (await transport.connect_and_authenticate(fake_ha.base_url, GOOD_TOKEN, timeout=2.0)).ok

    pending = asyncio.create_task(transport.call("cover", "open_cover", "cover.blind"))
    await wait_for_condition(lambda: transport.pending_count == 1)
    assert (await transport.connect_and_authenticate(fake_ha.base_url, GOOD_TOKEN, timeout=2.0)).ok

    outcome = await asyncio.wait_for(pending, timeout=2.0)
    assert isinstance(outcome.error, HaConnectionClosedError)
    assert str(outcome.error) == "Connection replaced"

    await transport.close()
    assert lost == []


@pytest.mark.asyncio
async def test_cancelled_caller_releases_pending_request(
    fake_ha: FakeHomeAssistant, http_session: aiohttp.ClientSession
) -> None:
    fake_ha.stall_entities.add("light.stuck")
    transport = await _connected(fake_ha, http_session, default_timeout=5.0)

    task = asyncio.create_task(transport.call("light", "turn_on", "light.stuck"))
    await wait_for_condition(lambda: transport.pending_count == 1)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert transport.pending_count == 0
    await transport.close()
