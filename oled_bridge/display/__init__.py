"""
OLED display over a serial link.

The supervisor owns the link and the command queue; the controller turns
display operations into wire commands.
"""

from oled_bridge.core.errors import (
    DeliveryFailedError,
    LinkError,
    LinkOpenError,
    LinkWriteError,
    OledBridgeError,
    QueueAbandonedError,
    SendError,
)
from .controller import DisplayController
from .protocols import escape_newlines
from .sender import CommandSender
from .supervisor import ConnectionSupervisor, SupervisorState
from .transports import BaseLink, LinkEvent, SerialLink

__all__ = [
    "BaseLink",
    "CommandSender",
    "ConnectionSupervisor",
    "DeliveryFailedError",
    "DisplayController",
    "LinkError",
    "LinkEvent",
    "LinkOpenError",
    "LinkWriteError",
    "OledBridgeError",
    "QueueAbandonedError",
    "SendError",
    "SerialLink",
    "SupervisorState",
    "escape_newlines",
]
