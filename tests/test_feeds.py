from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from types import SimpleNamespace
from typing import Any

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from dronetrack.config import TrackerConfig
from dronetrack.ingestion.feed import ConnectionStatus, PayloadCallback, StatusCallback
from dronetrack.ingestion.mqtt import MqttFeed, MqttFeedRuntime, MqttFeedSettings
from dronetrack.ingestion.websocket import WebSocketFeed
from dronetrack.render.memory import InMemorySurface
from dronetrack.service import TrackerService, create_feed
from dronetrack.tracker import TrackerCore

_BATCH = {
    "type": "FeatureCollection",
    "features": [{"trackId": "JO-B001", "altitudeMeters": 120, "lat": 31.95, "lng": 35.91, "headingDegrees": 90}],
}


async def _wait_for(predicate: Callable[[], bool], timeout: float = 5.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached before timeout")
        await asyncio.sleep(0.01)


class _FakeClient:
    def __init__(self) -> None:
        self.subscriptions: list[str] = []

    def subscribe(self, topic: str, qos: int = 0) -> None:
        self.subscriptions.append(topic)


class _FakeFeed:
    def __init__(self) -> None:
        self.on_payload: PayloadCallback | None = None
        self.stopped = False

    async def start(self, on_payload: PayloadCallback, on_status: StatusCallback) -> None:
        self.on_payload = on_payload
        on_status(ConnectionStatus.CONNECTED)

    async def stop(self) -> None:
        self.stopped = True


def _runtime(payloads: list[Any], statuses: list[ConnectionStatus]) -> MqttFeedRuntime:
    return MqttFeedRuntime(
        loop=asyncio.get_running_loop(),
        settings=MqttFeedSettings(host="localhost", port=1883, topic="drones/positions"),
        on_payload=payloads.append,
        on_status=statuses.append,
    )


@pytest.mark.asyncio
async def test_mqtt_messages_are_decoded_and_posted_to_loop() -> None:
    payloads: list[Any] = []
    statuses: list[ConnectionStatus] = []
    runtime = _runtime(payloads, statuses)

    runtime._on_message(None, None, SimpleNamespace(topic="drones/positions", payload=json.dumps(_BATCH).encode()))  # type: ignore[attr-defined]
    runtime._on_message(None, None, SimpleNamespace(topic="drones/positions", payload=b"\x00not-json"))  # type: ignore[attr-defined]
    await asyncio.sleep(0.01)

    assert payloads == [_BATCH]


@pytest.mark.asyncio
async def test_mqtt_connect_subscribes_and_reports_status() -> None:
    statuses: list[ConnectionStatus] = []
    runtime = _runtime([], statuses)
    client = _FakeClient()

    runtime._on_connect(client, None, None, SimpleNamespace(value=0), None)  # type: ignore[attr-defined, arg-type]
    runtime._on_connect(client, None, None, SimpleNamespace(value=135), None)  # type: ignore[attr-defined, arg-type]
    await asyncio.sleep(0.01)

    assert client.subscriptions == ["drones/positions"]
    assert statuses == [ConnectionStatus.CONNECTED, ConnectionStatus.ERROR]


def test_create_feed_follows_config() -> None:
    assert isinstance(create_feed(TrackerConfig(feed_kind="mqtt")), MqttFeed)
    assert isinstance(create_feed(TrackerConfig()), WebSocketFeed)


@pytest.mark.asyncio
async def test_websocket_feed_delivers_frames_and_reconnects() -> None:
    async def handler(request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        await ws.send_str("not json")
        await ws.send_str(json.dumps(_BATCH))
        await ws.close()
        return ws

    app = web.Application()
    app.router.add_get("/feed", handler)
    server = TestServer(app)
    await server.start_server()

    payloads: list[Any] = []
    statuses: list[ConnectionStatus] = []
    feed = WebSocketFeed(str(server.make_url("/feed")), reconnect_delay=0.05, heartbeat=None)
    try:
        await feed.start(payloads.append, statuses.append)
        await _wait_for(lambda: feed.connections >= 2 and len(payloads) >= 2)
    finally:
        await feed.stop()
        await server.close()

    assert payloads[0] == _BATCH
    assert statuses[:2] == [ConnectionStatus.CONNECTING, ConnectionStatus.CONNECTED]
    assert ConnectionStatus.DISCONNECTED in statuses
    assert statuses[-1] == ConnectionStatus.DISCONNECTED


@pytest.mark.asyncio
async def test_websocket_feed_reports_error_when_endpoint_is_down() -> None:
    statuses: list[ConnectionStatus] = []
    feed = WebSocketFeed("ws://127.0.0.1:1/feed", reconnect_delay=0.05)
    try:
        await feed.start(lambda payload: None, statuses.append)
        await _wait_for(lambda: ConnectionStatus.ERROR in statuses)
    finally:
        await feed.stop()

    assert feed.connections == 0


@pytest.mark.asyncio
async def test_service_sweeps_silent_tracks_and_tears_down_on_exit() -> None:
    surface = InMemorySurface()
    feed = _FakeFeed()
    statuses: list[ConnectionStatus] = []

    async with TrackerService(
        surface,
        config=TrackerConfig(stale_window_ms=300),
        feed=feed,
        on_status=statuses.append,
    ) as service:
        assert feed.on_payload is not None
        feed.on_payload(_BATCH)
        assert "JO-B001" in service.core.snapshot
        assert len(surface.markers) == 1

        await _wait_for(lambda: "JO-B001" not in service.core.snapshot, timeout=2.0)
        assert surface.markers == {}

        feed.on_payload(_BATCH)
        assert len(surface.markers) == 1

    assert feed.stopped
    assert not service.is_running
    assert surface.markers == {}
    assert service.core.is_closed
    assert statuses == [ConnectionStatus.CONNECTED]


async def _serve_frames(frames: list[str]) -> TestServer:
    async def handler(request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        for frame in frames:
            await ws.send_str(frame)
        await ws.close()
        return ws

    app = web.Application()
    app.router.add_get("/feed", handler)
    server = TestServer(app)
    await server.start_server()
    return server


@pytest.mark.asyncio
async def test_websocket_feed_survives_out_of_range_values_in_a_frame() -> None:
    huge = int("9" * 400)
    server = await _serve_frames(
        [
            json.dumps({"features": [{"trackId": "JO-R002", "altitudeMeters": huge, "lat": 1, "lng": 2}, _BATCH["features"][0]]}),
            json.dumps({"features": [{"trackId": "JO-R003", "altitudeMeters": 50, "lat": 31.9, "lng": 35.8}]}),
        ]
    )
    surface = InMemorySurface()
    core = TrackerCore(surface, config=TrackerConfig())
    feed = WebSocketFeed(str(server.make_url("/feed")), reconnect_delay=5.0, heartbeat=None)
    try:
        await feed.start(core.handle_payload, core.set_connection_status)
        await _wait_for(lambda: "JO-R003" in core.snapshot)
    finally:
        await feed.stop()
        await server.close()

    assert sorted(core.snapshot) == ["JO-B001", "JO-R003"]
    assert feed.connections == 1


@pytest.mark.asyncio
async def test_websocket_feed_keeps_reading_after_handler_error() -> None:
    server = await _serve_frames([json.dumps(_BATCH), json.dumps({"features": []})])
    payloads: list[Any] = []

    def on_payload(payload: Any) -> None:
        if not payloads:
            payloads.append("failed")
            raise RuntimeError("handler bug")
        payloads.append(payload)

    feed = WebSocketFeed(str(server.make_url("/feed")), reconnect_delay=5.0, heartbeat=None)
    try:
        await feed.start(on_payload, lambda status: None)
        await _wait_for(lambda: len(payloads) >= 2)
    finally:
        await feed.stop()
        await server.close()

    assert payloads == ["failed", {"features": []}]
    assert feed.connections == 1
