"""
Tests for the websocket device bridge and connection manager.
"""
import asyncio
import base64
from datetime import datetime, timezone

import pytest

from accident_log.services.device import (
    Capability, DeviceBridge, parse_date, parse_image, parse_location
)
from accident_log.websocket import ConnectionManager


class FakeWebSocket:
    """Records every JSON message sent to the device."""

    def __init__(self, fail=False):
        self.sent = []
        self.accepted = False
        self.fail = fail

    async def accept(self):
        self.accepted = True

    async def send_json(self, message):
        if self.fail:
            raise RuntimeError("connection closed")
        self.sent.append(message)


@pytest.fixture
def connections():
    return ConnectionManager()


@pytest.fixture
def bridge(connections):
    return DeviceBridge(connections, timeout=1.0)


async def reply_to_last(connections, ws, payload):
    """Wait for the bridge to send a request, then answer it."""
    while not ws.sent or "request_id" not in ws.sent[-1]:
        await asyncio.sleep(0)
    connections.handle_message({
        "type": "device_reply",
        "request_id": ws.sent[-1]["request_id"],
        "payload": payload,
    })


class TestConnectionManager:

    @pytest.mark.asyncio
    async def test_broadcast_drops_failed_connections(self, connections):
        good, bad = FakeWebSocket(), FakeWebSocket(fail=True)
        await connections.connect(good)
        await connections.connect(bad)

        await connections.broadcast({"type": "haptic_pulse", "duration_ms": 5000})

        assert good.sent == [{"type": "haptic_pulse", "duration_ms": 5000}]
        assert connections.active_connections == [good]

    @pytest.mark.asyncio
    async def test_request_without_device_returns_none(self, connections):
        assert await connections.request({"type": "camera_capture"}, timeout=1.0) is None

    @pytest.mark.asyncio
    async def test_request_times_out(self, connections):
        ws = FakeWebSocket()
        await connections.connect(ws)

        result = await connections.request({"type": "location_request"}, timeout=0.01)

        assert result is None
        assert connections.pending == {}

    def test_unknown_reply_ignored(self, connections):
        assert not connections.handle_message(
            {"type": "device_reply", "request_id": "nope", "payload": {}}
        )
        assert not connections.handle_message({"type": "hello"})


class TestDeviceBridge:

    @pytest.mark.asyncio
    async def test_permission_request_is_broadcast(self, connections, bridge):
        ws = FakeWebSocket()
        await connections.connect(ws)

        await bridge.request({Capability.FINE_LOCATION, Capability.COARSE_LOCATION})

        assert ws.sent == [{
            "type": "permission_request",
            "capabilities": ["coarse_location", "fine_location"],
        }]

    @pytest.mark.asyncio
    async def test_pulse_without_device_is_noop(self, bridge):
        await bridge.pulse(5000)

    @pytest.mark.asyncio
    async def test_capture_returns_image(self, connections, bridge):
        ws = FakeWebSocket()
        await connections.connect(ws)
        encoded = base64.b64encode(b"\xff\xd8jpeg").decode()

        photo, _ = await asyncio.gather(
            bridge.capture(),
            reply_to_last(connections, ws, {"image_data": encoded}),
        )

        assert photo == b"\xff\xd8jpeg"
        assert ws.sent[0]["type"] == "camera_capture"

    @pytest.mark.asyncio
    async def test_location_reply(self, connections, bridge):
        ws = FakeWebSocket()
        await connections.connect(ws)

        location, _ = await asyncio.gather(
            bridge.get_current_location(),
            reply_to_last(connections, ws, {"latitude": -34.9, "longitude": -56.16, "accuracy": 8}),
        )

        assert location.latitude == -34.9
        assert location.longitude == -56.16
        assert location.accuracy_meters == 8.0

    @pytest.mark.asyncio
    async def test_location_error_reply(self, connections, bridge):
        ws = FakeWebSocket()
        await connections.connect(ws)

        location, _ = await asyncio.gather(
            bridge.get_current_location(),
            reply_to_last(connections, ws, {"error": "permission denied"}),
        )

        assert location is None

    @pytest.mark.asyncio
    async def test_date_picker_sends_initial(self, connections, bridge):
        ws = FakeWebSocket()
        await connections.connect(ws)
        initial = datetime(2024, 3, 1, tzinfo=timezone.utc)

        selected, _ = await asyncio.gather(
            bridge.select_date(initial),
            reply_to_last(connections, ws, {"selected": "2024-03-15"}),
        )

        assert ws.sent[0]["initial"] == initial.isoformat()
        assert selected == datetime(2024, 3, 15, tzinfo=timezone.utc)


class TestPayloadParsing:

    def test_parse_image_rejects_bad_base64(self):
        assert parse_image({"image_data": "not base64!!"}) is None
        assert parse_image(None) is None
        assert parse_image({}) is None

    def test_parse_location_rejects_incomplete(self):
        assert parse_location({"latitude": 1.0}) is None
        assert parse_location({"latitude": 1.0, "longitude": 2.0}) is None
        assert parse_location({"latitude": "x", "longitude": 1.0}) is None

    def test_parse_date_keeps_timezone(self):
        value = parse_date({"selected": "2024-03-15T00:00:00+09:00"})
        assert value.utcoffset().total_seconds() == 9 * 3600

    def test_parse_date_accepts_utc_suffix(self):
        value = parse_date({"selected": "2024-03-15T00:00:00.000Z"})
        assert value == datetime(2024, 3, 15, tzinfo=timezone.utc)

    def test_parse_date_rejects_garbage(self):
        assert parse_date({"selected": "tomorrow"}) is None
        assert parse_date(None) is None
