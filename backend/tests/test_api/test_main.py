"""Tests for the application surface: wiring, health and the notification socket."""

import asyncio
import time

import pytest
from fastapi.testclient import TestClient

from eurohazard.main import build_pipeline, create_app, forward_notifications
from eurohazard.services.broadcaster import GLOBAL_CHANNEL, Broadcaster


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as client:
        yield client


class TestBuildPipeline:
    async def test_registers_every_scheduled_task(self, settings):
        pipeline = await build_pipeline(settings)
        try:
            tasks = pipeline.scheduler.tasks
            assert set(tasks) == {
                "seismic", "natural_events", "weather", "risk_predictions", "weather_reaper",
            }
            assert tasks["seismic"].interval_seconds == 300
            assert tasks["natural_events"].interval_seconds == 600
            assert tasks["weather"].interval_seconds == 1800
            assert tasks["risk_predictions"].interval_seconds == 3600
            assert tasks["weather_reaper"].interval_seconds == 1800
        finally:
            await pipeline.close()


class TestHealth:
    def test_health_reports_database_and_tasks(self, client):
        response = client.get("/health")
        assert response.status_code == 200

        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["scheduler_enabled"] is False
        assert len(body["tasks"]) == 5


class TestNotificationSocket:
    def test_unknown_action_is_rejected(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"action": "dance"})
            assert ws.receive_json() == {"type": "error", "message": "Unknown action"}

    def test_invalid_json_is_rejected(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_text("not json")
            assert ws.receive_json() == {"type": "error", "message": "Invalid JSON"}

    def test_join_region_subscribes_client(self, client):
        broadcaster = client.app.state.pipeline.broadcaster
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"action": "join_region", "region": "uk"})
            # Round-trip a bad action so the join has been processed
            ws.send_json({"action": "noop"})
            ws.receive_json()
            assert broadcaster.subscriber_count("region_UK") == 1

    def test_binary_frame_is_rejected(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_bytes(b"\x00\x01")
            assert ws.receive_json() == {"type": "error", "message": "Invalid JSON"}
            # The socket is still usable afterwards
            ws.send_json({"action": "dance"})
            assert ws.receive_json()["message"] == "Unknown action"

    def test_disconnect_releases_subscription(self, client):
        broadcaster = client.app.state.pipeline.broadcaster
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"action": "join_region", "region": "FR"})
            ws.send_json({"action": "noop"})
            ws.receive_json()
            assert broadcaster.subscriber_count(GLOBAL_CHANNEL) == 1
        # Server-side cleanup runs after the close frame is handled
        for _ in range(50):
            if broadcaster.subscriber_count(GLOBAL_CHANNEL) == 0:
                break
            time.sleep(0.01)
        assert broadcaster.subscriber_count(GLOBAL_CHANNEL) == 0
        assert broadcaster.subscriber_count("region_FR") == 0


class TestForwardNotifications:
    async def test_send_failure_ends_forwarding_quietly(self):
        class ClosedSocket:
            def __init__(self):
                self.attempts = 0

            async def send_json(self, message):
                self.attempts += 1
                raise RuntimeError("socket closed")

        broadcaster = Broadcaster()
        subscription = broadcaster.subscribe(GLOBAL_CHANNEL)
        broadcaster.publish(GLOBAL_CHANNEL, {"type": "first"})
        broadcaster.publish(GLOBAL_CHANNEL, {"type": "second"})
        socket = ClosedSocket()

        await asyncio.wait_for(forward_notifications(socket, subscription), timeout=1)

        assert socket.attempts == 1

    async def test_relays_messages_in_order(self):
        class RecordingSocket:
            def __init__(self):
                self.sent = []

            async def send_json(self, message):
                self.sent.append(message)

        broadcaster = Broadcaster()
        subscription = broadcaster.subscribe(GLOBAL_CHANNEL)
        socket = RecordingSocket()
        task = asyncio.create_task(forward_notifications(socket, subscription))

        broadcaster.publish(GLOBAL_CHANNEL, {"type": "a"})
        broadcaster.publish(GLOBAL_CHANNEL, {"type": "b"})
        await asyncio.sleep(0.01)
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)

        assert [m["type"] for m in socket.sent] == ["a", "b"]
