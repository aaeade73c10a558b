"""Request — one routed API call.

Binds the matched route's ``parameterNames`` to the path components,
carries the merged request data (query string plus body), and, once the
Router has run the parsing pipeline, the parsed and validated
parameters along with the helpers that produced them.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from gravitycar.errors import ParameterMismatch
from gravitycar.routing.paths import dynamic_positions, parse_path_components

if TYPE_CHECKING:
    from gravitycar.contracts import User
    from gravitycar.formatting import ResponseFormatter
    from gravitycar.parsing.coordinator import RequestParameterParser
    from gravitycar.validation.filters import FilterCriteria
    from gravitycar.validation.search import SearchEngine


class Request:
    """A routed request.

    ``parameter_names`` comes in one of two shapes:

    - positional: one entry per path component, ``""`` where nothing is
      captured (``["", "userId"]`` for ``/Users/42``)
    - compact: one name per wildcard in the route (``["userId"]`` for
      ``/Users/?``); needs ``route_components`` to locate the wildcards

    Path parameters take precedence over request data in ``get`` and
    ``all``.
    """

    def __init__(
        self,
        url: str,
        parameter_names: Sequence[str],
        method: str,
        request_data: Mapping[str, Any] | None = None,
        route_components: Sequence[str] | None = None,
        *,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        self.url = url
        self.method = method.upper()
        self.request_data: dict[str, Any] = dict(request_data or {})
        self.headers: dict[str, str] = {k.lower(): v for k, v in (headers or {}).items()}

        path = url.split("?", 1)[0]
        self.path_components = parse_path_components(path)
        self._path_params = self._bind(list(parameter_names), route_components)

        # Attached by the Router
        self.parameter_parser: RequestParameterParser | None = None
        self.filter_criteria: FilterCriteria | None = None
        self.search_engine: SearchEngine | None = None
        self.response_formatter: ResponseFormatter | None = None
        self.parsed_params: dict[str, Any] = {}
        self.validated_params: dict[str, Any] = {}
        self.user: User | None = None

    def _bind(self, names: list[str], route_components: Sequence[str] | None) -> dict[str, str]:
        components = self.path_components
        if not names:
            return {}
        if len(names) == len(components):
            return {name: components[i] for i, name in enumerate(names) if name}

        if route_components is not None and len(route_components) == len(components):
            positions = dynamic_positions(list(route_components))
            if len(names) == len(positions):
                return {name: components[pos] for name, pos in zip(names, positions, strict=True) if name}

        raise ParameterMismatch(
            "Parameter names count must match path components count",
            context={
                "parameterNames": names,
                "pathComponents": components,
                "url": self.url,
                "method": self.method,
            },
        )

    def __repr__(self) -> str:
        return f"Request({self.method} {self.url}, path_params={self._path_params!r})"

    # -- Parameter access --

    @property
    def path_params(self) -> dict[str, str]:
        return dict(self._path_params)

    def get(self, name: str, default: Any = None) -> Any:
        if name in self._path_params:
            return self._path_params[name]
        return self.request_data.get(name, default)

    def has(self, name: str) -> bool:
        return self._path_params.get(name) is not None or self.request_data.get(name) is not None

    def all(self) -> dict[str, Any]:
        return {**self.request_data, **self._path_params}

    def get_request_param(self, key: str, default: Any = None) -> Any:
        """Request data only; path parameters are ignored."""
        return self.request_data.get(key, default)

    def has_request_param(self, key: str) -> bool:
        return key in self.request_data

    # -- Parsed/validated parameters --

    def _param(self, key: str, default: Any) -> Any:
        if key in self.validated_params:
            return self.validated_params[key]
        return self.parsed_params.get(key, default)

    @property
    def filters(self) -> list[dict[str, Any]]:
        return self._param("filters", [])

    @property
    def search_params(self) -> dict[str, Any]:
        return self._param("search", {})

    @property
    def pagination_params(self) -> dict[str, Any]:
        return self._param("pagination", {})

    @property
    def sorting_params(self) -> list[dict[str, Any]]:
        return self._param("sorting", [])

    @property
    def response_format(self) -> str:
        return self._param("responseFormat", None) or "standard"

    def format_response(self, data: Sequence[Any], meta: Mapping[str, Any] | None = None, fmt: str | None = None) -> dict[str, Any]:
        """Render through the attached formatter, or a plain envelope without one."""
        if self.response_formatter is None:
            return {"success": True, "data": list(data), "meta": dict(meta or {})}
        return self.response_formatter.format(data, meta or {}, fmt or self.response_format)
