"""
Webhook Routes - Session events from the wearable platform.
"""

from aiohttp import web

from ..controller import APIController
from ..middleware import parse_json_body


def setup_webhook_routes(app: web.Application, controller: APIController) -> None:
    """Register webhook routes."""
    app.router.add_post("/webhook", webhook_handler)


async def webhook_handler(request: web.Request) -> web.Response:
    """POST /webhook - Acknowledge an event and process it in the background."""
    controller: APIController = request.app["controller"]
    body, error = await parse_json_body(request)
    if error:
        return error

    await controller.handle_webhook(body)
    return web.Response(text="OK")
