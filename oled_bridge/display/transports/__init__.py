"""
Display link transports.

- BaseLink: abstract link with lifecycle events
- SerialLink: pyserial-asyncio implementation
"""

from .base_transport import BaseLink, LinkEvent, LinkEventCallback
from .serial_transport import SerialLink

__all__ = [
    'BaseLink',
    'LinkEvent',
    'LinkEventCallback',
    'SerialLink',
]
