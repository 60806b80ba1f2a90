"""Exception hierarchy for the display link and command delivery."""

from __future__ import annotations

from typing import Optional


class OledBridgeError(Exception):
    """Base class for all errors raised by oled_bridge."""


class LinkError(OledBridgeError):
    """The byte-stream link to the display device failed."""

    def __init__(self, message: str, port: Optional[str] = None):
        super().__init__(message)
        self.port = port


class LinkOpenError(LinkError):
    """The device could not be opened (missing, permission denied, busy)."""


class LinkWriteError(LinkError):
    """The transport reported an I/O error while writing."""


class SendError(OledBridgeError):
    """A command could not be delivered to the device."""

    def __init__(self, message: str, command: str):
        super().__init__(message)
        self.command = command


class DeliveryFailedError(SendError):
    """Every write attempt for a command failed."""

    def __init__(self, command: str, attempts: int, last_error: Optional[BaseException] = None):
        detail = f": {last_error}" if last_error is not None else ""
        super().__init__(
            f"Failed to send command {command!r} after {attempts} attempts{detail}",
            command,
        )
        self.attempts = attempts
        self.last_error = last_error


class QueueAbandonedError(SendError):
    """A queued command was rejected because the supervisor shut down."""

    def __init__(self, command: str, reason: str = "shutdown"):
        super().__init__(f"Command {command!r} abandoned ({reason})", command)
        self.reason = reason


__all__ = [
    "OledBridgeError",
    "LinkError",
    "LinkOpenError",
    "LinkWriteError",
    "SendError",
    "DeliveryFailedError",
    "QueueAbandonedError",
]
