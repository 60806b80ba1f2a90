"""
API Controller - Thin async facade the HTTP routes call into.

Holds the per-session state for webhook traffic and delegates display
work to the connection supervisor, the display controller and the
session event handler.
"""

from __future__ import annotations

import asyncio
import datetime
from typing import Any, Dict, Mapping, Optional, Set, TYPE_CHECKING

from oled_bridge import __version__
from oled_bridge.core.errors import SendError
from oled_bridge.core.logging_utils import get_module_logger
from oled_bridge.session.local import LocalSession

if TYPE_CHECKING:
    from oled_bridge.display.controller import DisplayController
    from oled_bridge.display.supervisor import ConnectionSupervisor
    from oled_bridge.session.handler import SessionEventHandler


logger = get_module_logger("APIController")

WEBHOOK_EVENTS = frozenset({
    "session_start",
    "transcription",
    "button_press",
    "capabilities",
    "session_end",
})


class APIController:
    """
    Entry point for HTTP routes.

    Webhook events are acknowledged immediately and processed in the
    background, one at a time per session, so a request never waits on a
    display that is reconnecting.
    """

    def __init__(
        self,
        supervisor: "ConnectionSupervisor",
        display: "DisplayController",
        session_handler: "SessionEventHandler",
        package_name: str = "oled-bridge",
    ):
        self.supervisor = supervisor
        self.display = display
        self.session_handler = session_handler
        self.package_name = package_name

        self.sessions: Dict[str, LocalSession] = {}
        self._session_locks: Dict[str, asyncio.Lock] = {}
        self._event_tasks: Set[asyncio.Task] = set()

    # =========================================================================
    # System
    # =========================================================================

    async def health_check(self) -> Dict[str, Any]:
        connected = self.supervisor.display_connected
        return {
            "status": "healthy" if connected else "degraded",
            "displayConnected": connected,
        }

    async def get_status(self) -> Dict[str, Any]:
        return {
            "status": "running",
            "package": self.package_name,
            "displayConnected": self.supervisor.display_connected,
            "queuedCommands": self.supervisor.queued_commands,
            "supervisorState": self.supervisor.state.value,
            "activeSessions": len(self.sessions),
            "version": __version__,
            "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
        }

    # =========================================================================
    # Display
    # =========================================================================

    async def send_display_command(self, command: str) -> Dict[str, Any]:
        """Send a raw wire command and wait for delivery."""
        try:
            await self.display.send_command(command)
        except SendError as e:
            logger.warning("Display command %r failed: %s", command, e)
            return {"success": False, "error": str(e)}
        return {"success": True, "command": command}

    # =========================================================================
    # Webhook
    # =========================================================================

    def get_session(self, session_id: str, user_id: str = "") -> LocalSession:
        session = self.sessions.get(session_id)
        if session is None:
            session = LocalSession(session_id, user_id)
            self.sessions[session_id] = session
            self._session_locks[session_id] = asyncio.Lock()
        return session

    async def handle_webhook(self, body: Mapping[str, Any]) -> asyncio.Task:
        """Validate a webhook event and schedule it; raises ValueError/KeyError on bad input."""
        session_id = body["sessionId"]
        event = body["event"]
        if event not in WEBHOOK_EVENTS:
            raise ValueError(f"Unknown event: {event}")

        user_id = body.get("userId") or ""
        logger.info("Received webhook: sessionId=%s, userId=%s, event=%s", session_id, user_id, event)

        session = self.get_session(session_id, user_id)
        # Bound now: a queued session_end may drop the entry before this event runs.
        lock = self._session_locks[session_id]
        task = asyncio.create_task(
            self._process_event(session, lock, event, body),
            name=f"webhook:{session_id}:{event}",
        )
        self._event_tasks.add(task)
        task.add_done_callback(self._event_tasks.discard)
        return task

    async def _process_event(
        self,
        session: LocalSession,
        lock: asyncio.Lock,
        event: str,
        body: Mapping[str, Any],
    ) -> None:
        handler = self.session_handler
        async with lock:
            try:
                if event == "session_start":
                    session.started = True
                    await handler.on_session_start(session)
                elif event == "transcription":
                    await handler.on_transcription(
                        session,
                        str(body.get("text") or ""),
                        bool(body.get("isFinal", False)),
                    )
                elif event == "button_press":
                    await handler.on_button_press(session, str(body.get("button") or ""))
                elif event == "capabilities":
                    await handler.on_capabilities(session, body.get("capabilities") or {})
                elif event == "session_end":
                    await handler.on_session_end(session)
            except Exception as e:
                logger.error("Error handling webhook %s for %s: %s", event, session.session_id, e)
            finally:
                if event == "session_end" and self.sessions.get(session.session_id) is session:
                    del self.sessions[session.session_id]
                    self._session_locks.pop(session.session_id, None)

    async def wait_for_events(self) -> None:
        """Wait until every scheduled webhook event has been processed."""
        while self._event_tasks:
            await asyncio.gather(*list(self._event_tasks), return_exceptions=True)

    async def close(self) -> None:
        tasks = list(self._event_tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._event_tasks.clear()
