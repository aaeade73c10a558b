"""Error handling pipeline for API requests.

Maps exceptions raised while routing to JSON error responses::

    {"success": false, "status": 404,
     "error": {"message": "...", "type": "Route Not Found", "code": 404},
     "timestamp": "..."}

``HTTPError`` keeps its own status, any other ``GravitycarError`` is a
400, everything else is a 500. The error ``context`` is only exposed in
debug mode; the field list of a ``ParameterValidationError`` always is.
"""

import logging
from datetime import UTC, datetime
from typing import Any

from gravitycar.errors import GravitycarError, HTTPError, ParameterValidationError
from gravitycar.http.response import JSONResponse

logger = logging.getLogger("gravitycar.server")

FRAMEWORK_ERROR_TYPE = "Framework Error"
INTERNAL_ERROR_TYPE = "Internal Server Error"


def error_body(
    status: int,
    message: str,
    error_type: str,
    context: dict[str, Any] | None = None,
) -> dict[str, Any]:
    error: dict[str, Any] = {"message": message, "type": error_type, "code": status}
    if context:
        error["context"] = context
    return {
        "success": False,
        "status": status,
        "error": error,
        "timestamp": datetime.now(UTC).isoformat(),
    }


def handle_http_error(exc: HTTPError, method: str, path: str, debug: bool) -> JSONResponse:
    """Map an HTTPError to a JSON error response."""
    if exc.status >= 500:
        logger.error("%d %s %s — %s", exc.status, method, path, exc.detail)
    else:
        logger.info("%d %s %s — %s", exc.status, method, path, exc.detail)

    body = error_body(exc.status, exc.detail or f"Error {exc.status}", exc.error_type, exc.context if debug else None)
    if isinstance(exc, ParameterValidationError):
        body.update(exc.to_response())

    response = JSONResponse(body, status=exc.status)
    for name, value in exc.headers:
        response = response.with_header(name, value)
    return response


def handle_framework_error(exc: GravitycarError, method: str, path: str, debug: bool) -> JSONResponse:
    """A framework error that isn't an HTTPError is the caller's fault: 400."""
    logger.warning("400 %s %s — %s", method, path, exc)
    body = error_body(400, str(exc), FRAMEWORK_ERROR_TYPE, exc.context if debug else None)
    return JSONResponse(body, status=400)


def handle_internal_error(exc: Exception, method: str, path: str, debug: bool) -> JSONResponse:
    """Handle unexpected exceptions as 500 errors."""
    logger.exception("500 %s %s", method, path)
    message = f"{type(exc).__name__}: {exc}" if debug else INTERNAL_ERROR_TYPE
    return JSONResponse(error_body(500, message, INTERNAL_ERROR_TYPE), status=500)


def handle_error(exc: Exception, method: str, path: str, debug: bool) -> JSONResponse:
    if isinstance(exc, HTTPError):
        return handle_http_error(exc, method, path, debug)
    if isinstance(exc, GravitycarError):
        return handle_framework_error(exc, method, path, debug)
    return handle_internal_error(exc, method, path, debug)
