"""
Display Controller

High-level operations for the OLED display. Each call maps to exactly one
wire command and goes through the CommandSender, so it inherits queueing
while the link is down and retries while it is up.
"""

from __future__ import annotations

from oled_bridge.core.logging_utils import get_module_logger
from . import protocols
from .protocols import DEFAULT_DISPLAY_HEIGHT, DEFAULT_DISPLAY_WIDTH
from .sender import CommandSender

logger = get_module_logger("DisplayController")


class DisplayController:
    """Stateless translation from display operations to wire commands."""

    def __init__(
        self,
        sender: CommandSender,
        width: int = DEFAULT_DISPLAY_WIDTH,
        height: int = DEFAULT_DISPLAY_HEIGHT,
    ):
        self.sender = sender
        self.width = width
        self.height = height

    async def send_command(self, command: str) -> None:
        """Send a raw wire command; waits for delivery.

        Commands outside the known vocabulary are logged and still sent.
        """
        if not protocols.is_known_command(command):
            logger.warning("Sending unrecognised command: %s", command)
        await self.sender.send(command)

    async def show_text(self, text: str, x: int = 0, y: int = 0) -> None:
        """Draw ``text`` with its top-left corner at (x, y)."""
        if not (0 <= x < self.width and 0 <= y < self.height):
            logger.warning(
                "Text position (%d, %d) is outside the %dx%d display",
                x, y, self.width, self.height,
            )
        await self.send_command(protocols.build_text_xy(x, y, text))

    async def show_plain_text(self, text: str) -> None:
        await self.send_command(protocols.build_text(text))

    async def show_multiline(self, text: str) -> None:
        """``text`` must already use the literal ``\\n`` separator (see escape_newlines)."""
        await self.send_command(protocols.build_multiline(text))

    async def scroll(self, text: str) -> None:
        await self.send_command(protocols.build_scroll(text))

    async def clear(self) -> None:
        await self.send_command(protocols.CMD_CLEAR)

    async def reset(self) -> None:
        await self.send_command(protocols.CMD_RESET)

    async def show_logo(self) -> None:
        await self.send_command(protocols.CMD_LOGO)

    async def show_weather(self) -> None:
        await self.send_command(protocols.CMD_WEATHER)

    async def show_directions(self) -> None:
        await self.send_command(protocols.CMD_DIRECTIONS)

    async def show_help(self) -> None:
        await self.send_command(protocols.CMD_HELP)

    async def show_index(self) -> None:
        await self.send_command(protocols.CMD_SHOW_INDEX)
