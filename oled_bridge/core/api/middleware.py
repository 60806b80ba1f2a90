"""
API Middleware - Request timing and uniform JSON errors.

Error bodies look like::

    {"error": {"code": "VALIDATION_ERROR", "message": "..."}, "status": 400}
"""

import time
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from aiohttp import web

from oled_bridge.core.errors import SendError
from oled_bridge.core.logging_utils import get_module_logger


logger = get_module_logger("APIMiddleware")

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


def create_error_response(
    code: str,
    message: str,
    status: int = 400,
    details: Optional[Dict[str, Any]] = None,
) -> web.Response:
    error: Dict[str, Any] = {"code": code, "message": message}
    if details:
        error["details"] = details
    return web.json_response({"error": error, "status": status}, status=status)


@web.middleware
async def request_logging_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    started = time.perf_counter()
    status: Any = "error"
    try:
        response = await handler(request)
        status = response.status
        return response
    except web.HTTPException as e:
        status = e.status
        raise
    finally:
        logger.debug(
            "%s %s -> %s (%.1f ms)",
            request.method, request.path, status, (time.perf_counter() - started) * 1000,
        )


@web.middleware
async def error_handling_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    try:
        return await handler(request)
    except web.HTTPException as e:
        if e.status < 400:
            raise
        code = (e.reason or "HTTP error").upper().replace(" ", "_")
        return create_error_response(code, e.text or e.reason or "", status=e.status)
    except SendError as e:
        logger.warning("Display command %r failed: %s", e.command, e)
        return create_error_response("DISPLAY_UNAVAILABLE", str(e), status=502)
    except KeyError as e:
        logger.warning("Missing field in %s %s: %s", request.method, request.path, e)
        return create_error_response("MISSING_FIELD", f"Missing required field: {e}")
    except ValueError as e:
        logger.warning("Rejected %s %s: %s", request.method, request.path, e)
        return create_error_response("VALIDATION_ERROR", str(e))
    except Exception as e:
        logger.exception("Unhandled error in %s %s", request.method, request.path)
        return create_error_response(
            "INTERNAL_ERROR",
            "An unexpected error occurred",
            status=500,
            details={"type": type(e).__name__},
        )


async def parse_json_body(request: web.Request) -> Tuple[Optional[Dict[str, Any]], Optional[web.Response]]:
    """Returns ``(body, None)`` for a non-empty JSON object, else ``(None, error_response)``."""
    try:
        body = await request.json()
    except ValueError:
        return None, create_error_response("INVALID_BODY", "Request body must be valid JSON")
    if not isinstance(body, dict):
        return None, create_error_response("INVALID_BODY", "Request body must be a JSON object")
    if not body:
        return None, create_error_response("EMPTY_BODY", "Request body must contain data")
    return body, None
