"""
Session Event Handler

Reacts to wearable session events: start, final transcriptions, button
presses, capability reports and session end. Voice commands go to the
VoiceCommandProcessor; everything else drives the display directly.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, TYPE_CHECKING

from oled_bridge.core.logging_utils import get_module_logger
from .types import Session

if TYPE_CHECKING:
    from oled_bridge.dashboard.controller import DashboardController
    from oled_bridge.display.controller import DisplayController
    from oled_bridge.voice.processor import CommandMatch, VoiceCommandProcessor

logger = get_module_logger("SessionEventHandler")

WELCOME_TEXT = "MentraOS Connected!"
GOODBYE_TEXT = "MentraOS Disconnected"
NO_COMMAND_FEEDBACK = 'No command recognized. Say "help" for commands.'
DEVICE_INFO_TITLE = "Device Info"


class SessionEventHandler:
    def __init__(
        self,
        display: "DisplayController",
        dashboard: "DashboardController",
        voice: "VoiceCommandProcessor",
    ):
        self.display = display
        self.dashboard = dashboard
        self.voice = voice

        # button -> (display action, dashboard text)
        self._buttons = {
            "SELECT": (self._select_pressed, "SELECT Button"),
            "BACK": (self.display.show_index, "Index Screen"),
            "UP": (self.display.show_directions, "Directions"),
            "DOWN": (self.display.show_weather, "Weather"),
        }

    async def on_session_start(self, session: Session) -> None:
        logger.info("New session started: %s for user %s", session.session_id, session.user_id)
        await self.display.show_text(WELCOME_TEXT, 10, 10)
        await self.dashboard.initialize(session)
        await session.layouts.show_text_wall("OLED Display App Ready", duration_ms=5000)

    async def on_transcription(
        self,
        session: Session,
        text: str,
        is_final: bool,
    ) -> Optional["CommandMatch"]:
        if not is_final:
            return None

        logger.info("Final transcription received: %r", text)
        try:
            result = await self.voice.process_transcription(text, session)
        except Exception as e:
            logger.error("Error processing voice command: %s", e)
            await session.layouts.show_text_wall(f"Error: {e}", duration_ms=3000)
            return None

        if result is None:
            logger.info("No command recognized in transcription")
            await session.layouts.show_text_wall(NO_COMMAND_FEEDBACK, duration_ms=3000)
        return result

    async def _select_pressed(self) -> None:
        await self.display.clear()
        await self.display.show_text("Button: SELECT", 10, 10)

    async def on_button_press(self, session: Session, button: str) -> bool:
        """Returns False for buttons with no action or when the action failed."""
        logger.info("Button pressed: %s", button)
        entry = self._buttons.get(button)
        if entry is None:
            logger.debug("No action bound to button %s", button)
            return False

        action, label = entry
        try:
            await action()
            await self.dashboard.update_display_content(session, label)
            await session.layouts.show_text_wall(f"{button} Button Pressed", duration_ms=2000)
        except Exception as e:
            logger.error("Error handling button press %s: %s", button, e)
            return False
        return True

    async def on_capabilities(self, session: Session, capabilities: Mapping[str, Any]) -> None:
        logger.info("Received capabilities: %s", dict(capabilities))
        try:
            content = await session.dashboard.get_content()
            sections = ((content or {}).get("expanded") or {}).get("sections")
            if not sections:
                return
            if any(section.get("title") == DEVICE_INFO_TITLE for section in sections):
                return

            sections.append(self._device_info_section(capabilities))
            await session.dashboard.update_content({"expanded": content["expanded"]})
        except Exception as e:
            logger.error("Error updating dashboard with capabilities: %s", e)

    @staticmethod
    def _device_info_section(capabilities: Mapping[str, Any]) -> Dict[str, Any]:
        def yes_no(key: str) -> str:
            return "Yes" if capabilities.get(key) else "No"

        return {
            "title": DEVICE_INFO_TITLE,
            "items": [
                {"label": "Has Display", "value": yes_no("hasDisplay")},
                {"label": "Has Microphone", "value": yes_no("hasMicrophone")},
            ],
        }

    async def on_session_end(self, session: Session) -> None:
        logger.info("Session ended: %s", session.session_id)
        try:
            await self.display.show_text(GOODBYE_TEXT, 10, 20)
        except Exception as e:
            logger.error("Error showing disconnect message: %s", e)
        await self.dashboard.clear(session)
