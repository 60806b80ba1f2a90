"""
HTTP API for the OLED bridge.

Usage:
    from oled_bridge.core.api import APIController, APIServer

    controller = APIController(supervisor, display, session_handler)
    server = APIServer(controller, host="0.0.0.0", port=3000)
    await server.start()
"""

from .controller import APIController
from .server import APIServer

__all__ = ["APIController", "APIServer"]
