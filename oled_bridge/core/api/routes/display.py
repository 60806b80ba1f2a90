"""
Display Routes - Raw command access to the OLED.
"""

from aiohttp import web

from oled_bridge.display.protocols import validate_command

from ..controller import APIController
from ..middleware import create_error_response, parse_json_body


def setup_display_routes(app: web.Application, controller: APIController) -> None:
    """Register display routes."""
    app.router.add_post("/display", display_command_handler)


async def display_command_handler(request: web.Request) -> web.Response:
    """POST /display - Send one wire command, e.g. {"command": "clear"}."""
    controller: APIController = request.app["controller"]
    body, error = await parse_json_body(request)
    if error:
        return error

    command = body["command"]
    if not isinstance(command, str):
        return create_error_response("VALIDATION_ERROR", "command must be a string", status=400)
    validate_command(command)

    result = await controller.send_display_command(command)
    return web.json_response(result, status=200 if result["success"] else 502)
