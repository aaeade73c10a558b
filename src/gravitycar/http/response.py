"""JSON response with chainable .with_*() transformation API.

Each transformation returns a new JSONResponse. Every API response,
success or error, goes out as one of these.
"""

import json as json_module
from dataclasses import dataclass, replace
from typing import Any

JSON_CONTENT_TYPE = "application/json; charset=utf-8"


@dataclass(frozen=True, slots=True)
class JSONResponse:
    """An HTTP response whose body is a JSON document.

    ``data`` is serialized on demand; values JSON cannot encode natively
    (datetimes, decimals) are rendered with ``str``.
    """

    data: Any = None
    status: int = 200
    headers: tuple[tuple[str, str], ...] = ()
    content_type: str = JSON_CONTENT_TYPE

    def with_status(self, status: int) -> "JSONResponse":
        return replace(self, status=status)

    def with_header(self, name: str, value: str) -> "JSONResponse":
        return replace(self, headers=(*self.headers, (name, value)))

    @property
    def body_bytes(self) -> bytes:
        return json_module.dumps(self.data, default=str).encode("utf-8")

    @property
    def text(self) -> str:
        return self.body_bytes.decode("utf-8")
