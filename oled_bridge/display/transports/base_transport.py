"""
Base Link

Abstract byte-stream link to the display microcontroller. Concrete links
report lifecycle changes through ``on_event`` so the owner can react to
unexpected drops without polling.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Awaitable, Callable, Optional

from oled_bridge.core.logging_utils import get_module_logger

logger = get_module_logger("BaseLink")


class LinkEvent(Enum):
    """Lifecycle notifications emitted by a link."""
    OPENED = "opened"
    CLOSED = "closed"
    FAULT = "fault"


# (event, error) -> None; error is only set for FAULT
LinkEventCallback = Callable[[LinkEvent, Optional[BaseException]], Awaitable[None]]


class BaseLink(ABC):
    """
    Abstract base class for display links.

    ``write`` failures are raised to the caller as LinkWriteError. Drops
    noticed by the link itself (device unplugged, EOF) arrive as FAULT
    and CLOSED events instead.
    """

    def __init__(self, port: str, baudrate: int):
        self.port = port
        self.baudrate = baudrate
        self._open = False
        self._last_error: Optional[str] = None
        self.on_event: Optional[LinkEventCallback] = None

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    @abstractmethod
    async def open(self) -> None:
        """Open the device; raises LinkOpenError on failure."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close the device. Idempotent; emits CLOSED only if it was open."""
        ...

    @abstractmethod
    async def write(self, data: bytes) -> None:
        """Write raw bytes; raises LinkWriteError on transport failure."""
        ...

    async def _emit(self, event: LinkEvent, error: Optional[BaseException] = None) -> None:
        if self.on_event is None:
            return
        try:
            await self.on_event(event, error)
        except Exception as e:
            logger.error("Link event handler failed for %s on %s: %s", event.value, self.port, e)

    async def __aenter__(self):
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False
