"""HTTP API tests against an in-process aiohttp server."""

import asyncio

import pytest
from aiohttp.test_utils import TestClient, TestServer

from oled_bridge.core.api import APIController, APIServer
from oled_bridge.core.errors import DeliveryFailedError
from oled_bridge.dashboard import DashboardController
from oled_bridge.display import ConnectionSupervisor
from oled_bridge.session import SessionEventHandler
from oled_bridge.voice import VoiceCommandProcessor
from tests.infrastructure.mocks import FakeLink, RecordingDisplay


async def _no_sleep(delay: float) -> None:
    await asyncio.sleep(0)


def _build_controller():
    supervisor = ConnectionSupervisor(FakeLink(), auto_reconnect=False, sleep=_no_sleep)
    display = RecordingDisplay()
    dashboard = DashboardController()
    handler = SessionEventHandler(display, dashboard, VoiceCommandProcessor(display, dashboard))
    return APIController(supervisor, display, handler, package_name="oled-test"), display


async def _client(controller) -> TestClient:
    app = APIServer(controller).create_app()
    client = TestClient(TestServer(app))
    await client.start_server()
    return client


class TestSystemRoutes:
    @pytest.mark.asyncio
    async def test_status_before_display_opens(self):
        controller, _ = _build_controller()
        client = await _client(controller)
        try:
            resp = await client.get("/status")
            data = await resp.json()
        finally:
            await client.close()

        assert resp.status == 200
        assert data["status"] == "running"
        assert data["package"] == "oled-test"
        assert data["displayConnected"] is False
        assert data["supervisorState"] == "uninitialized"
        assert data["queuedCommands"] == 0
        assert data["activeSessions"] == 0

    @pytest.mark.asyncio
    async def test_health_reflects_link(self):
        controller, _ = _build_controller()
        client = await _client(controller)
        try:
            degraded = await (await client.get("/health")).json()
            await controller.supervisor.start()
            healthy = await (await client.get("/health")).json()
            await controller.supervisor.shutdown()
        finally:
            await client.close()

        assert degraded == {"status": "degraded", "displayConnected": False}
        assert healthy == {"status": "healthy", "displayConnected": True}


class TestWebhookRoute:
    @pytest.mark.asyncio
    async def test_session_start_is_acknowledged_then_processed(self):
        controller, display = _build_controller()
        client = await _client(controller)
        try:
            resp = await client.post(
                "/webhook",
                json={"sessionId": "s-1", "userId": "u-1", "event": "session_start"},
            )
            text = await resp.text()
            await controller.wait_for_events()
        finally:
            await client.close()

        assert resp.status == 200
        assert text == "OK"
        assert display.commands == ["textxy:10,10,MentraOS Connected!"]
        assert controller.sessions["s-1"].started

    @pytest.mark.asyncio
    async def test_events_for_one_session_run_in_order(self):
        controller, display = _build_controller()
        client = await _client(controller)
        try:
            for body in (
                {"sessionId": "s-1", "event": "session_start"},
                {"sessionId": "s-1", "event": "transcription", "text": "show logo", "isFinal": True},
                {"sessionId": "s-1", "event": "button_press", "button": "DOWN"},
                {"sessionId": "s-1", "event": "session_end"},
            ):
                await client.post("/webhook", json=body)
            await controller.wait_for_events()
        finally:
            await client.close()

        assert display.commands == [
            "textxy:10,10,MentraOS Connected!",
            "logo",
            "weather",
            "textxy:10,20,MentraOS Disconnected",
        ]
        assert controller.sessions == {}

    @pytest.mark.asyncio
    async def test_event_queued_behind_session_end_still_runs(self):
        controller, display = _build_controller()
        tasks = [
            await controller.handle_webhook(body)
            for body in (
                {"sessionId": "s-1", "event": "session_start"},
                {"sessionId": "s-1", "event": "session_end"},
                {"sessionId": "s-1", "event": "button_press", "button": "DOWN"},
            )
        ]
        await controller.wait_for_events()

        assert [t.exception() for t in tasks] == [None, None, None]
        assert display.commands[-1] == "weather"
        assert controller.sessions == {}

        await controller.handle_webhook({"sessionId": "s-1", "event": "session_start"})
        await controller.wait_for_events()
        assert controller.sessions["s-1"].started

    @pytest.mark.asyncio
    async def test_missing_session_id(self):
        controller, _ = _build_controller()
        client = await _client(controller)
        try:
            resp = await client.post("/webhook", json={"event": "session_start"})
            data = await resp.json()
        finally:
            await client.close()

        assert resp.status == 400
        assert data["error"]["code"] == "MISSING_FIELD"

    @pytest.mark.asyncio
    async def test_unknown_event(self):
        controller, _ = _build_controller()
        client = await _client(controller)
        try:
            resp = await client.post("/webhook", json={"sessionId": "s-1", "event": "teleport"})
            data = await resp.json()
        finally:
            await client.close()

        assert resp.status == 400
        assert data["error"]["code"] == "VALIDATION_ERROR"
        assert controller.sessions == {}

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        controller, _ = _build_controller()
        client = await _client(controller)
        try:
            resp = await client.post("/webhook", data="not json")
            data = await resp.json()
        finally:
            await client.close()

        assert resp.status == 400
        assert data["error"]["code"] == "INVALID_BODY"


class TestDisplayRoute:
    @pytest.mark.asyncio
    async def test_command_delivered(self):
        controller, display = _build_controller()
        client = await _client(controller)
        try:
            resp = await client.post("/display", json={"command": "clear"})
            data = await resp.json()
        finally:
            await client.close()

        assert resp.status == 200
        assert data == {"success": True, "command": "clear"}
        assert display.commands == ["clear"]

    @pytest.mark.asyncio
    async def test_delivery_failure(self):
        controller, display = _build_controller()
        display.fail_with(DeliveryFailedError("clear", 3))
        client = await _client(controller)
        try:
            resp = await client.post("/display", json={"command": "clear"})
            data = await resp.json()
        finally:
            await client.close()

        assert resp.status == 502
        assert data["success"] is False
        assert "after 3 attempts" in data["error"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [{"command": "two\nlines"}, {"command": ""}, {"command": 5}])
    async def test_invalid_command(self, body):
        controller, display = _build_controller()
        client = await _client(controller)
        try:
            resp = await client.post("/display", json=body)
            data = await resp.json()
        finally:
            await client.close()

        assert resp.status == 400
        assert data["error"]["code"] == "VALIDATION_ERROR"
        assert display.commands == []


class TestAPIServer:
    @pytest.mark.asyncio
    async def test_start_and_stop(self, unused_tcp_port):
        controller, _ = _build_controller()
        server = APIServer(controller, host="127.0.0.1", port=unused_tcp_port)

        await server.start()
        assert server.is_running
        assert server.url == f"http://127.0.0.1:{unused_tcp_port}"

        await server.stop()
        assert not server.is_running
