"""ASGI handler — translates ASGI scope/messages into a Router call.

The only component that touches raw ASGI directly. Builds the merged
``request_data`` (query string plus body), routes it, and sends the
result back as a JSON envelope.
"""

import logging
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from gravitycar._internal.asgi import HTTPScope, Receive, Scope, Send, read_body
from gravitycar.http.forms import parse_body
from gravitycar.http.query import QueryParams
from gravitycar.http.response import JSONResponse
from gravitycar.routing.router import Router
from gravitycar.server.errors import handle_error
from gravitycar.server.sender import send_response

logger = logging.getLogger("gravitycar.server")

BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})
NO_CACHE = ("Cache-Control", "no-cache, must-revalidate")


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    router: Router,
    debug: bool,
) -> None:
    """Process a single HTTP request through the full pipeline."""
    if scope["type"] != "http":
        return

    http = HTTPScope.from_scope(scope)
    if http.method == "OPTIONS":
        await send_response(JSONResponse({}).with_header(*NO_CACHE), send)
        return

    try:
        headers = http.header_map()
        request_data = await build_request_data(http, headers, receive)
        result = await router.route(http.method, http.path, request_data, headers=headers)
        response = to_response(result)
    except Exception as exc:
        response = handle_error(exc, http.method, http.path, debug)

    await send_response(response, send)


async def build_request_data(http: HTTPScope, headers: Mapping[str, str], receive: Receive) -> dict[str, Any]:
    """Query parameters, overlaid with the parsed body for POST/PUT/PATCH."""
    data = QueryParams(http.query_string).to_request_data()
    if http.method in BODY_METHODS:
        body = await read_body(receive)
        data.update(await parse_body(body, headers.get("content-type", "")))
    return data


def to_response(result: Any) -> JSONResponse:
    """Wrap a controller result in the API success envelope.

    A ``JSONResponse`` is sent as is, and so is a dict that already
    carries ``success`` (a formatter envelope).
    """
    if isinstance(result, JSONResponse):
        return result
    if isinstance(result, Mapping) and "success" in result:
        return JSONResponse(dict(result)).with_header(*NO_CACHE)

    data = result.get("data", result) if isinstance(result, Mapping) else result
    envelope: dict[str, Any] = {
        "success": True,
        "status": 200,
        "data": data,
        "timestamp": datetime.now(UTC).isoformat(),
    }
    if isinstance(data, (list, tuple)):
        envelope["count"] = len(data)
    if isinstance(result, Mapping):
        if "count" in result:
            envelope.setdefault("count", result["count"])
        if "pagination" in result:
            envelope["pagination"] = result["pagination"]
        if isinstance(result.get("meta"), Mapping):
            envelope["meta"] = result["meta"]
        if "message" in result:
            envelope["message"] = result["message"]

    logger.debug("Response envelope: data type %s, count %s", type(data).__name__, envelope.get("count"))
    return JSONResponse(envelope).with_header(*NO_CACHE)
