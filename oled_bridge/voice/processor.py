"""
Voice Command Processor

Matches final transcriptions against an ordered command table and runs
the first handler whose pattern matches. Each handler drives the OLED,
records what was shown on the session dashboard and confirms in the
glasses.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, TYPE_CHECKING

from oled_bridge.core.logging_utils import get_module_logger
from oled_bridge.display.protocols import SYMBOL_ESCAPES, escape_newlines
from oled_bridge.search.web_search import format_results_for_display
from oled_bridge.session.types import Session

if TYPE_CHECKING:
    from oled_bridge.dashboard.controller import DashboardController
    from oled_bridge.display.controller import DisplayController
    from oled_bridge.search.web_search import WebSearchService

logger = get_module_logger("VoiceCommandProcessor")

Handler = Callable[["re.Match[str]", Session], Awaitable[Dict[str, Any]]]

TEXT_WALL_MS = 3000
SHORT_TEXT_WALL_MS = 2000
HELP_CARD_MS = 10000

DEG = SYMBOL_ESCAPES["degree"]
UP = SYMBOL_ESCAPES["up"]
DOWN = SYMBOL_ESCAPES["down"]
RIGHT = SYMBOL_ESCAPES["right"]


@dataclass
class VoiceCommand:
    pattern: "re.Pattern[str]"
    handler: Handler
    description: str


@dataclass
class CommandMatch:
    """Outcome of a matched transcription; ``error`` is set if the handler failed."""
    command: str
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None


def _pattern(expr: str) -> "re.Pattern[str]":
    return re.compile(expr, re.IGNORECASE)


class VoiceCommandProcessor:
    def __init__(
        self,
        display: "DisplayController",
        dashboard: "DashboardController",
        search: Optional["WebSearchService"] = None,
    ):
        self.display = display
        self.dashboard = dashboard
        self.search = search

        # Order matters: first match wins.
        self.commands: List[VoiceCommand] = [
            VoiceCommand(_pattern(r"(?:show|display) text\s+(.+)"), self.handle_show_text,
                         "Show text on display"),
            VoiceCommand(_pattern(r"(?:show|display) temperature"), self.handle_show_temperature,
                         "Show temperature with degree symbol"),
            VoiceCommand(_pattern(r"(?:show|display|set) time"), self.handle_show_time,
                         "Show current time"),
            VoiceCommand(_pattern(r"(?:show|display) weather"), self.handle_weather,
                         "Show weather demo"),
            VoiceCommand(_pattern(r"(?:show|display) forecast"), self.handle_forecast,
                         "Show weather forecast with symbols"),
            VoiceCommand(_pattern(r"(?:show|display) logo"), self.handle_show_logo,
                         "Show logo"),
            VoiceCommand(_pattern(r"(?:show|display) directions"), self.handle_directions,
                         "Show direction arrows"),
            VoiceCommand(_pattern(r"(?:clear|clean) (?:screen|display)"), self.handle_clear_screen,
                         "Clear screen"),
        ]
        if search is not None:
            self.commands.append(
                VoiceCommand(_pattern(r"(?:search|look up)\s+(?:for\s+)?(.+)"), self.handle_search,
                             "Search the web")
            )
        self.commands.append(
            VoiceCommand(_pattern(r"(?:help|show help|commands|show commands)"), self.handle_help,
                         "Show help")
        )

    async def process_transcription(self, text: str, session: Session) -> Optional[CommandMatch]:
        """Run the first matching command; None if nothing matched."""
        logger.info("Processing transcription: %r", text)

        for command in self.commands:
            match = command.pattern.search(text)
            if not match:
                continue

            logger.info("Matched command: %s", command.description)
            try:
                result = await command.handler(match, session)
            except Exception as e:
                logger.error("Error executing command %r: %s", command.description, e)
                return CommandMatch(command.description, error=str(e))
            return CommandMatch(command.description, result=result)

        logger.info("No command matched")
        return None

    async def _confirm(self, session: Session, shown: str, message: str,
                       duration_ms: int = TEXT_WALL_MS) -> None:
        await self.dashboard.update_display_content(session, shown)
        await session.layouts.show_text_wall(message, duration_ms=duration_ms)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    async def handle_show_text(self, match, session: Session) -> Dict[str, Any]:
        text = (match.group(1) or "").strip()
        await self.display.show_text(text)
        await self._confirm(session, text, f"Displaying: {text}")
        return {"text": text}

    async def handle_show_temperature(self, match, session: Session) -> Dict[str, Any]:
        temp = "72°F"
        await self.display.show_text(f"Temp: 72{DEG} F", 30, 20)
        await self._confirm(session, f"Temp: {temp}", f"Temperature: {temp}")
        return {"temperature": temp}

    async def handle_show_time(self, match, session: Session) -> Dict[str, Any]:
        time_str = datetime.now().strftime("%I:%M:%S %p").lstrip("0")
        await self.display.show_plain_text(time_str)
        await self._confirm(session, time_str, f"Time: {time_str}")
        return {"time": time_str}

    async def handle_weather(self, match, session: Session) -> Dict[str, Any]:
        await self.display.show_weather()
        await self._confirm(session, "Weather demo", "Weather demo displayed")
        return {"success": True}

    async def handle_forecast(self, match, session: Session) -> Dict[str, Any]:
        await self.display.clear()
        await self.display.show_text(f"Now: 72{DEG} F", 5, 5)
        await self.display.show_text(f"Today: 68-75{DEG} F {UP}", 5, 15)
        await self.display.show_text(f"Tomorrow: 65-70{DEG} F {DOWN}", 5, 25)
        await self.display.show_text(f"Wind: NE 5mph {RIGHT}", 5, 35)
        await self._confirm(session, "Weather Forecast", "Weather forecast displayed with special symbols")
        return {"success": True}

    async def handle_show_logo(self, match, session: Session) -> Dict[str, Any]:
        await self.display.show_logo()
        await self._confirm(session, "Logo", "Logo displayed", SHORT_TEXT_WALL_MS)
        return {"success": True}

    async def handle_directions(self, match, session: Session) -> Dict[str, Any]:
        await self.display.show_directions()
        await self._confirm(session, "Direction arrows", "Direction arrows displayed")
        return {"success": True}

    async def handle_clear_screen(self, match, session: Session) -> Dict[str, Any]:
        await self.display.clear()
        await self._confirm(session, "Screen cleared", "Display cleared", SHORT_TEXT_WALL_MS)
        return {"success": True}

    async def handle_search(self, match, session: Session) -> Dict[str, Any]:
        query = match.group(1).strip()
        await session.layouts.show_text_wall(f"Searching: {query}", duration_ms=SHORT_TEXT_WALL_MS)

        response = await self.search.search_web(query)
        await self.display.show_multiline(escape_newlines(format_results_for_display(response).rstrip()))

        if response.success:
            await self._confirm(session, f"Search: {query}", response.answer or "No answer found")
        else:
            await self._confirm(session, "Search failed", f"Search error: {response.error}")
        return {"query": query, **response.to_dict()}

    async def handle_help(self, match, session: Session) -> Dict[str, Any]:
        await self.display.show_help()
        await self.dashboard.update_display_content(session, "Help displayed")
        command_list = "\n".join(command.description for command in self.commands)
        await session.layouts.show_reference_card(
            "Available Voice Commands",
            command_list,
            duration_ms=HELP_CARD_MS,
        )
        return {"success": True}
