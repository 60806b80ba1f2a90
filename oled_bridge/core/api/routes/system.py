"""
System Routes - Is the bridge up, and can it reach the display?
"""

from aiohttp import web

from ..controller import APIController


def setup_system_routes(app: web.Application, controller: APIController) -> None:
    app.router.add_get("/status", status_handler)
    app.router.add_get("/health", health_handler)


def _controller(request: web.Request) -> APIController:
    return request.app["controller"]


async def status_handler(request: web.Request) -> web.Response:
    """GET /status - Link state, queue depth and active sessions."""
    return web.json_response(await _controller(request).get_status())


async def health_handler(request: web.Request) -> web.Response:
    """GET /health - "healthy" while the serial link is open, "degraded" otherwise."""
    return web.json_response(await _controller(request).health_check())
