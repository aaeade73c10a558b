"""Router — matches a request to a registered route and dispatches it.

Per request::

    candidates -> best match -> Request -> parse/validate -> access -> dispatch

Candidates come from the registry's ``method -> path length`` index and
are ranked by ``PathScorer``. Failures at any stage raise typed errors
(``RouteNotFound``, ``ParameterMismatch``, ``ParameterValidationError``,
``Unauthenticated``, ``PermissionDenied``) for the ASGI layer to turn
into responses.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from gravitycar._internal.invoke import invoke
from gravitycar.errors import InternalError, NotFound, ParameterMismatch, RouteNotFound
from gravitycar.formatting import ResponseFormatter
from gravitycar.http.request import Request
from gravitycar.parsing.base import MAX_PAGE_SIZE
from gravitycar.parsing.coordinator import RequestParameterParser
from gravitycar.routing.paths import parse_path_components
from gravitycar.routing.scorer import PathScorer
from gravitycar.security.access import AccessPolicy
from gravitycar.validation.filters import FilterCriteria
from gravitycar.validation.result import ParameterValidationResult
from gravitycar.validation.search import SearchEngine

if TYPE_CHECKING:
    from gravitycar.contracts import Model, ModelFactory
    from gravitycar.routing.registry import RouteRegistry
    from gravitycar.routing.route import RouteRecord

logger = logging.getLogger("gravitycar.routing")

MODEL_NAME_PARAM = "modelName"
ROUTE_SAMPLE_SIZE = 10

# Request data is a query only for reads; writes carry a record payload.
QUERY_METHODS = frozenset({"GET"})


class ControllerFactory:
    """Instantiates controller classes with the dependencies they accept.

    A dependency is passed when the constructor names it (or takes
    ``**kwargs``) and a value for it was configured.
    """

    __slots__ = ("_dependencies",)

    def __init__(self, **dependencies: Any) -> None:
        self._dependencies = {name: value for name, value in dependencies.items() if value is not None}

    def create(self, cls: type) -> Any:
        try:
            params = inspect.signature(cls).parameters
        except (TypeError, ValueError):
            return cls()

        accepts_any = any(p.kind is inspect.Parameter.VAR_KEYWORD for p in params.values())
        kwargs = {
            name: value for name, value in self._dependencies.items() if accepts_any or name in params
        }
        return cls(**kwargs)


class Router:
    """Routes ``(method, path, request_data)`` to a controller method.

    Usage::

        router = Router(registry, model_factory=catalog)
        result = await router.route("GET", "/Users/42", {"include": "roles"})
    """

    def __init__(
        self,
        registry: RouteRegistry,
        *,
        scorer: PathScorer | None = None,
        parameter_parser: RequestParameterParser | None = None,
        filter_criteria: FilterCriteria | None = None,
        search_engine: SearchEngine | None = None,
        response_formatter: ResponseFormatter | None = None,
        model_factory: ModelFactory | None = None,
        access_policy: AccessPolicy | None = None,
        controller_factory: ControllerFactory | None = None,
        max_page_size: int = MAX_PAGE_SIZE,
    ) -> None:
        self.registry = registry
        self.scorer = scorer or PathScorer()
        self.parameter_parser = parameter_parser or RequestParameterParser(max_page_size=max_page_size)
        self.filter_criteria = filter_criteria or FilterCriteria()
        self.search_engine = search_engine or SearchEngine()
        self.response_formatter = response_formatter or ResponseFormatter()
        self.model_factory = model_factory
        self.access_policy = access_policy or AccessPolicy()
        self.controller_factory = controller_factory or ControllerFactory(
            model_factory=model_factory, registry=registry
        )
        self.max_page_size = max_page_size

    async def route(
        self,
        method: str,
        path: str,
        request_data: Mapping[str, Any] | None = None,
        *,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        """Match, validate, authorize and dispatch one request.

        Returns whatever the controller method returns.
        """
        method = method.upper()
        path = path.split("?", 1)[0]
        logger.info("Routing request: %s %s", method, path)

        route = self.match(method, path)
        request = Request(
            path,
            route.parameter_names,
            method,
            request_data,
            route.path_components,
            headers=headers,
        )

        self.attach_request_helpers(request)
        request.parsed_params = self.parameter_parser.parse_unified(request.request_data)

        model = self.get_model(request)
        if model is not None and method in QUERY_METHODS:
            request.validated_params = self.perform_validation_with_model(request, model, request.parsed_params)

        await self.access_policy.check(route, request)
        self.validate_request_parameters(request, route)
        return await self.dispatch(route, request)

    # -- Matching --

    def match(self, method: str, path: str) -> RouteRecord:
        """Best route for ``method path``.

        Raises:
            RouteNotFound: No candidate scored above zero.
        """
        length = len(parse_path_components(path))
        candidates = self.registry.get_routes_by_method_and_length(method, length)
        route = self.scorer.find_best_match(method, path, candidates) if candidates else None

        if route is None:
            route = self._fallback_match(method, path, length)

        if route is None:
            sample = [r.describe() for r in self.registry.routes[:ROUTE_SAMPLE_SIZE]]
            logger.warning("No matching route found for %s %s", method, path)
            raise RouteNotFound(method, path, sample)

        logger.debug("Matched %s %s to %s -> %s.%s", method, path, route.path, route.short_class_name, route.api_method)
        return route

    def _fallback_match(self, method: str, path: str, length: int) -> RouteRecord | None:
        # Scores are 0 across lengths, so this only ever finds nothing
        for other_length, routes in self.registry.get_routes_by_method(method).items():
            if other_length == length:
                continue
            logger.debug("Fallback: scoring %d %s routes of length %d", len(routes), method, other_length)
            route = self.scorer.find_best_match(method, path, routes)
            if route is not None:
                return route
        return None

    # -- Request pipeline --

    def attach_request_helpers(self, request: Request) -> None:
        request.parameter_parser = self.parameter_parser
        request.filter_criteria = self.filter_criteria
        request.search_engine = self.search_engine
        request.response_formatter = self.response_formatter

    def get_model(self, request: Request) -> Model | None:
        """The model named by the ``modelName`` path parameter, if any.

        Raises:
            NotFound: A model name was given but the factory doesn't know it.
        """
        name = request.get(MODEL_NAME_PARAM)
        if not name or self.model_factory is None:
            return None

        model = self.model_factory.get(name)
        if model is None:
            raise NotFound(
                "Model not found",
                context={"model_name": name, "available_models": self.model_factory.available_models()},
            )
        return model

    def perform_validation_with_model(
        self,
        request: Request,
        model: Model,
        parsed: Mapping[str, Any],
    ) -> dict[str, Any]:
        """Validate parsed parameters against *model*, collecting every problem.

        Unknown filter fields and operators, unsearchable search fields,
        unknown sort fields and out-of-range pagination are reported
        together in one ``ParameterValidationError``.
        """
        result = ParameterValidationResult()
        filters = list(parsed.get("filters") or ())
        search = dict(parsed.get("search") or {})
        sorting = list(parsed.get("sorting") or ())
        pagination = dict(parsed.get("pagination") or {})

        self._check_filters(filters, model, result)
        self._check_search(search, model, result)
        self._check_sorting(sorting, model, result)
        self._check_pagination(pagination, result)

        if result.has_errors:
            logger.warning(
                "Parameter validation failed for %s %s: %d errors",
                request.method,
                request.url,
                result.error_count,
            )
            result.raise_if_errors()

        return {
            "filters": self.filter_criteria.validate_and_filter_for_model(filters, model),
            "search": self.search_engine.validate_search_for_model(search, model),
            "sorting": sorting,
            "pagination": pagination,
            "responseFormat": parsed.get("responseFormat"),
        }

    def _check_filters(self, filters: list[dict[str, Any]], model: Model, result: ParameterValidationResult) -> None:
        db_fields = [f.name for f in model.fields if f.is_db_field]
        for item in filters:
            name = item.get("field", "")
            field = model.get_field(name)
            if field is None or not field.is_db_field:
                result.add_error(name, f"Unknown filter field '{name}' for model {model.name}", item.get("value"))
                result.add_suggestion(f"Filterable fields: {', '.join(db_fields)}")
                continue
            operator = item.get("operator", "")
            if not field.supports_operator(operator):
                result.add_error(name, f"Operator '{operator}' is not supported for field '{name}'", operator)
                result.add_suggestion(f"Operators for '{name}': {', '.join(field.supported_operators())}")

    def _check_search(self, search: dict[str, Any], model: Model, result: ParameterValidationResult) -> None:
        if not search.get("term") or not search.get("fields"):
            return
        searchable = list(self.search_engine.get_searchable_fields(model))
        for name in search["fields"]:
            field = model.get_field(name)
            if field is None or not field.is_db_field or not self.search_engine.is_field_searchable(field):
                result.add_error(name, f"Field '{name}' is not searchable", name)
                result.add_suggestion(f"Searchable fields: {', '.join(searchable)}")

    def _check_sorting(self, sorting: list[dict[str, Any]], model: Model, result: ParameterValidationResult) -> None:
        db_fields = [f.name for f in model.fields if f.is_db_field]
        for entry in sorting:
            name = entry.get("field", "")
            field = model.get_field(name)
            if field is None or not field.is_db_field:
                result.add_error(name, f"Cannot sort by unknown field '{name}'", entry.get("direction"))
                result.add_suggestion(f"Sortable fields: {', '.join(db_fields)}")

    def _check_pagination(self, pagination: dict[str, Any], result: ParameterValidationResult) -> None:
        page = pagination.get("page", 1)
        page_size = pagination.get("pageSize", 1)
        if not isinstance(page, int) or page < 1:
            result.add_error("page", "Page must be a positive integer", page)
            result.add_suggestion("Pages are numbered from 1")
        if not isinstance(page_size, int) or not 1 <= page_size <= self.max_page_size:
            result.add_error("pageSize", f"Page size must be between 1 and {self.max_page_size}", page_size)
            result.add_suggestion(f"Use a page size of at most {self.max_page_size}")

    def validate_request_parameters(self, request: Request, route: RouteRecord) -> None:
        """Every named route parameter must be present on the request.

        Raises:
            ParameterMismatch: Naming the first missing parameter.
        """
        for name in route.parameter_names:
            if name and not request.has(name):
                raise ParameterMismatch(
                    f"Missing required route parameter: {name}",
                    context={"route": route.path, "url": request.url, "parameterNames": list(route.parameter_names)},
                )

    # -- Dispatch --

    async def dispatch(self, route: RouteRecord, request: Request) -> Any:
        cls = self.registry.get_class(route.resolved_api_class)
        if cls is None:
            logger.error("API controller class not found: %s", route.resolved_api_class)
            raise InternalError(
                f"API controller class not found: {route.api_class}",
                context={"route": route.describe(), "resolvedApiClass": route.resolved_api_class},
            )

        controller = self.controller_factory.create(cls)
        handler = getattr(controller, route.api_method, None)
        if not callable(handler):
            logger.error("Handler method not found: %s.%s", route.resolved_api_class, route.api_method)
            raise InternalError(
                f"Handler method not found: {route.api_method}",
                context={"route": route.describe(), "apiClass": route.resolved_api_class},
            )

        logger.debug("Dispatching %s to %s.%s", route.describe(), cls.__name__, route.api_method)
        return await invoke(handler, request)
