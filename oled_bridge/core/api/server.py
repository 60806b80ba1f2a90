"""
API Server - HTTP front end of the bridge.

The wearable platform posts session events to ``/webhook``; operators poll
``/status`` and ``/health`` and can push raw commands through ``/display``.
Everything runs on the loop that owns the serial link.
"""

from typing import Optional

from aiohttp import web

from oled_bridge.core.logging_utils import get_module_logger

from .controller import APIController
from .middleware import error_handling_middleware, request_logging_middleware
from .routes import setup_all_routes


logger = get_module_logger("APIServer")

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3000


class APIServer:
    def __init__(
        self,
        controller: APIController,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
    ):
        self.controller = controller
        self.host = host
        self.port = port
        self._runner: Optional[web.AppRunner] = None

    def create_app(self) -> web.Application:
        """Application with the bridge routes; also used directly by tests."""
        app = web.Application(
            middlewares=[request_logging_middleware, error_handling_middleware],
        )
        app["controller"] = self.controller
        setup_all_routes(app, self.controller)
        return app

    @property
    def is_running(self) -> bool:
        return self._runner is not None

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"

    async def start(self) -> None:
        if self._runner is not None:
            logger.warning("Server already listening on %s", self.url)
            return

        runner = web.AppRunner(self.create_app())
        await runner.setup()
        try:
            await web.TCPSite(runner, self.host, self.port).start()
        except OSError:
            await runner.cleanup()
            raise

        self._runner = runner
        logger.info("Server listening on %s", self.url)

    async def stop(self) -> None:
        """Close the listener, then cancel webhook work still in flight."""
        runner, self._runner = self._runner, None
        if runner is None:
            return

        logger.info("Stopping HTTP server on %s", self.url)
        await runner.cleanup()
        await self.controller.close()
        logger.info("HTTP server stopped")
