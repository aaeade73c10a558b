"""MetadataController — route documentation served from the registry."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from gravitycar.errors import InternalError
from gravitycar.formatting import ResponseFormatter
from gravitycar.routing.providers import ApiController

if TYPE_CHECKING:
    from gravitycar.http.request import Request
    from gravitycar.routing.registry import RouteRegistry


class MetadataController(ApiController):
    def register_routes(self) -> list[Mapping[str, Any]]:
        api_class = type(self).__name__
        return [
            {
                "method": "GET",
                "path": "/metadata/routes",
                "apiClass": api_class,
                "apiMethod": "routes_summary",
                "parameterNames": [],
                "allowedRoles": ["*"],
            },
            {
                "method": "GET",
                "path": "/metadata/routes/?",
                "apiClass": api_class,
                "apiMethod": "model_routes",
                "parameterNames": ["", "", "modelName"],
                "allowedRoles": ["*"],
            },
            {
                "method": "GET",
                "path": "/metadata/formats",
                "apiClass": api_class,
                "apiMethod": "formats",
                "parameterNames": [],
                "allowedRoles": ["*"],
            },
        ]

    def _registry(self) -> RouteRegistry:
        if self.registry is None:
            raise InternalError("Route registry not available")
        return self.registry

    def routes_summary(self, request: Request) -> dict[str, Any]:
        return {"data": self._registry().get_routes_summary()}

    def model_routes(self, request: Request) -> dict[str, Any]:
        """Explicit and implied routes for one model, each with its documentation."""
        registry = self._registry()
        model = request.get("modelName")
        routes = registry.get_model_routes(model)
        for route in routes:
            doc = registry.get_endpoint_documentation(route["path"], route["method"])
            route["description"] = doc.get("description", "")
        return {"data": {"model": model, "routes": routes}, "count": len(routes)}

    def formats(self, request: Request) -> dict[str, Any]:
        """Request formats in detection order and the response formats."""
        parser = request.parameter_parser
        return {
            "data": {
                "requestFormats": parser.available_formats() if parser is not None else [],
                "responseFormats": ResponseFormatter.available_formats(),
            }
        }
