"""RouteRegistry — discovery, validation, grouping and caching of routes.

One registry per process, owned by the ``App``. On construction it loads
the route cache when one exists; otherwise it discovers routes from:

1. the built-in controllers (``ModelCrudController`` first, so the
   wildcard CRUD routes are in place before anything else registers)
2. ``ApiController`` classes passed explicitly or found under
   ``config.controllers_package``
3. model route providers passed explicitly or found under
   ``config.models_package``

and writes a fresh cache. Invalid declarations are logged and skipped.

Routes are grouped by method and path length so the Router only scores
candidates that can possibly match::

    {"GET": {1: [RouteRecord(...)], 2: [...]}, "POST": {...}}
"""

from __future__ import annotations

import importlib
import json
import logging
import os
import re
import tempfile
import time
from collections import Counter
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Any

from gravitycar.config import AppConfig
from gravitycar.controllers.crud import ModelCrudController
from gravitycar.controllers.metadata import MetadataController
from gravitycar.errors import RouteFormatError
from gravitycar.routing.paths import dynamic_positions, is_wildcard, parse_path_components
from gravitycar.routing.providers import (
    ApiController,
    discover_controllers,
    discover_route_providers,
    qualified_name,
)
from gravitycar.routing.route import RouteRecord
from gravitycar.routing.scorer import PathScorer

if TYPE_CHECKING:
    from gravitycar.contracts import ModelFactory

logger = logging.getLogger("gravitycar.routing")

VALID_METHODS = ("GET", "POST", "PUT", "DELETE", "PATCH")
REQUIRED_FIELDS = ("method", "path", "apiClass", "apiMethod")
CONTROLLER_SUFFIX = "APIController"
MODEL_NAME_PARAM = "modelName"

DEFAULT_CONTROLLERS: tuple[type[ApiController], ...] = (ModelCrudController, MetadataController)

GroupedRoutes = dict[str, dict[int, list[RouteRecord]]]


class RouteRegistry:
    """Registered routes plus the class table dispatch resolves against.

    Usage::

        registry = RouteRegistry(AppConfig(use_route_cache=False), controllers=[MoviesAPIController])
        registry.get_routes_by_method_and_length("GET", 2)
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        controllers: Sequence[type[ApiController]] = (),
        route_providers: Sequence[Any] = (),
        default_controllers: Sequence[type[ApiController]] = DEFAULT_CONTROLLERS,
        model_factory: ModelFactory | None = None,
        autoload: bool = True,
    ) -> None:
        self.config = config or AppConfig()
        self.cache_path = Path(self.config.route_cache_path)
        self.model_factory = model_factory
        self._default_controllers = tuple(default_controllers)
        self._controllers = tuple(controllers)
        self._route_providers = tuple(route_providers)
        self._classes: dict[str, type] = {}
        self._routes: list[RouteRecord] = []
        self._grouped: GroupedRoutes = {}
        self._scorer = PathScorer()

        for cls in (*self._default_controllers, *self._controllers):
            self.register_class(cls)
        for provider in self._route_providers:
            self.register_class(provider if isinstance(provider, type) else type(provider))

        if autoload:
            self.load()

    # -- Lifecycle --

    def load(self) -> None:
        """Use the cache when allowed and valid, otherwise discover and cache."""
        if self.config.use_route_cache and self.load_from_cache():
            return
        self.discover()
        if self.config.use_route_cache:
            self.cache_routes()

    def discover(self) -> int:
        """Run a full discovery pass. Returns the number of registered routes."""
        self._routes = []

        controllers = [*self._default_controllers, *self._controllers]
        if self.config.controllers_package:
            controllers.extend(discover_controllers(self.config.controllers_package))
        providers: list[Any] = list(self._route_providers)
        if self.config.models_package:
            providers.extend(discover_route_providers(self.config.models_package))

        seen: set[type] = set()
        for cls in controllers:
            if cls in seen:
                continue
            seen.add(cls)
            self.register_class(cls)
            self.register_provider_routes(cls(), qualified_name(cls))

        for provider in providers:
            instance = provider() if isinstance(provider, type) else provider
            self.register_class(type(instance))
            self.register_provider_routes(instance, qualified_name(type(instance)))

        self.group_routes_by_method_and_length()
        logger.info("Route discovery complete: %d routes registered", len(self._routes))
        return len(self._routes)

    def rebuild_cache(self) -> int:
        """Discard routes, rediscover and rewrite the cache."""
        self.clear_cache()
        count = self.discover()
        self.cache_routes()
        return count

    # -- Class table --

    def register_class(self, cls: type) -> None:
        self._classes[qualified_name(cls)] = cls

    def get_class(self, resolved_name: str) -> type | None:
        """Class registered under *resolved_name*, importing it once if needed."""
        cls = self._classes.get(resolved_name)
        if cls is None:
            cls = self._import_class(resolved_name)
            if cls is not None:
                self._classes[resolved_name] = cls
        return cls

    def _import_class(self, dotted: str) -> type | None:
        module_name, _, attr = dotted.rpartition(".")
        if not module_name:
            return None
        try:
            module = importlib.import_module(module_name)
        except ImportError:
            return None
        obj = getattr(module, attr, None)
        return obj if isinstance(obj, type) else None

    def resolve_controller_class_name(self, api_class: str) -> str | None:
        """Resolve a declared ``apiClass`` to a registered, qualified class name.

        Tried in order:

        1. a dotted name that is already known or importable
        2. the model convention ``<models_package>.<model>.api.<ApiClass>``,
           where ``<model>`` is ``ApiClass`` minus ``APIController``
        3. a short name matching a registered route's class, then the
           class table
        """
        if "." in api_class:
            return api_class if self.get_class(api_class) is not None else None

        if self.config.models_package:
            model = api_class.removesuffix(CONTROLLER_SUFFIX)
            candidate = f"{self.config.models_package}.{model.lower()}.api.{api_class}"
            if self.get_class(candidate) is not None:
                return candidate

        for route in self._routes:
            if route.short_class_name == api_class:
                return route.resolved_api_class
        for name, cls in self._classes.items():
            if cls.__name__ == api_class:
                return name
        return None

    # -- Registration --

    def validate_route_format(self, declaration: Mapping[str, Any]) -> str:
        """Check one declaration. Returns the resolved class name.

        Raises:
            RouteFormatError: Naming the first problem found.
        """
        if not isinstance(declaration, Mapping):
            raise RouteFormatError("Route declaration must be a mapping", {"route": declaration})
        context = {"route": dict(declaration)}
        for required in REQUIRED_FIELDS:
            if not declaration.get(required):
                raise RouteFormatError(f"Route missing required field: {required}", context)

        method = str(declaration["method"]).upper()
        if method not in VALID_METHODS:
            raise RouteFormatError(f"Invalid HTTP method: {declaration['method']}", context)

        path = declaration["path"]
        if not isinstance(path, str) or not path.startswith("/"):
            raise RouteFormatError(f"Route path must start with '/': {path}", context)

        api_class = str(declaration["apiClass"])
        resolved = self.resolve_controller_class_name(api_class)
        if resolved is None:
            raise RouteFormatError(f"API class not found: {api_class}", context)

        api_method = declaration["apiMethod"]
        if not isinstance(api_method, str) or not callable(getattr(self.get_class(resolved), api_method, None)):
            raise RouteFormatError(f"API method '{api_method}' not found in class '{resolved}'", context)

        roles = declaration.get("allowedRoles")
        if roles is not None and (
            isinstance(roles, str) or not isinstance(roles, Sequence) or not all(isinstance(r, str) for r in roles)
        ):
            raise RouteFormatError("allowedRoles must be a list of strings", context)

        rbac_action = declaration.get("RBACAction")
        if rbac_action is not None and not isinstance(rbac_action, str):
            raise RouteFormatError("RBACAction must be a string", context)

        names = declaration.get("parameterNames")
        if names is not None:
            if (
                isinstance(names, str)
                or not isinstance(names, Sequence)
                or not all(isinstance(n, str) for n in names)
            ):
                raise RouteFormatError("parameterNames must be a list of strings", context)
            components = parse_path_components(path)
            if len(names) not in (len(components), len(dynamic_positions(components))):
                raise RouteFormatError(
                    "Parameter names count must match path components count",
                    {**context, "parameterNames": list(names), "pathComponents": components},
                )
        return resolved

    def register_route(self, declaration: Mapping[str, Any]) -> RouteRecord | None:
        """Validate and add one route; invalid routes are logged and skipped."""
        try:
            resolved = self.validate_route_format(declaration)
        except RouteFormatError as exc:
            logger.warning("Failed to register route: %s (%r)", exc, exc.context.get("route"))
            return None

        record = RouteRecord.build(declaration, resolved)
        self._routes.append(record)
        logger.debug("Registered route %s -> %s.%s", record.describe(), resolved, record.api_method)
        return record

    def register_provider_routes(self, provider: Any, source: str) -> int:
        """Register every route a provider declares. Returns how many were kept."""
        try:
            declarations = list(provider.register_routes() or ())
        except Exception:
            logger.exception("Failed to collect routes from %s", source)
            return 0

        kept = sum(1 for declaration in declarations if self.register_route(declaration) is not None)
        if declarations:
            logger.info("Registered %d of %d routes from %s", kept, len(declarations), source)
        return kept

    # -- Lookup --

    def group_routes_by_method_and_length(self) -> GroupedRoutes:
        grouped: GroupedRoutes = {}
        for route in self._routes:
            grouped.setdefault(route.method, {}).setdefault(route.path_length, []).append(route)
        self._grouped = grouped
        return grouped

    def get_routes_by_method_and_length(self, method: str, path_length: int) -> list[RouteRecord]:
        return list(self._grouped.get(method.upper(), {}).get(path_length, ()))

    def get_routes_by_method(self, method: str) -> dict[int, list[RouteRecord]]:
        return {length: list(routes) for length, routes in self._grouped.get(method.upper(), {}).items()}

    @property
    def routes(self) -> list[RouteRecord]:
        return list(self._routes)

    @property
    def grouped_routes(self) -> GroupedRoutes:
        return {method: {length: list(r) for length, r in by_len.items()} for method, by_len in self._grouped.items()}

    def __len__(self) -> int:
        return len(self._routes)

    # -- Cache --

    def load_from_cache(self) -> bool:
        """Load routes and groups from the cache file.

        Returns False, leaving the registry untouched, when the file is
        missing, unreadable or not ``{routes, groupedRoutes, ...}``.
        """
        if not self.cache_path.is_file():
            return False
        try:
            data = json.loads(self.cache_path.read_text(encoding="utf-8"))
            if not isinstance(data, dict) or "routes" not in data or "groupedRoutes" not in data:
                logger.warning("Route cache %s has an unexpected shape, ignoring it", self.cache_path)
                return False
            routes = [RouteRecord.from_dict(item) for item in data["routes"]]
            grouped: GroupedRoutes = {
                method: {int(length): [RouteRecord.from_dict(item) for item in items] for length, items in by_len.items()}
                for method, by_len in data["groupedRoutes"].items()
            }
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as exc:
            logger.warning("Failed to load route cache %s: %s", self.cache_path, exc)
            return False

        self._routes = routes
        self._grouped = grouped
        logger.info("Loaded %d routes from cache %s", len(routes), self.cache_path)
        return True

    def cache_routes(self) -> None:
        """Write ``{routes, groupedRoutes, cached_at}`` to the cache file.

        Written to a temporary file and moved into place, so a reader sees
        either the old cache or the complete new one.
        """
        payload = {
            "routes": [route.to_dict() for route in self._routes],
            "groupedRoutes": {
                method: {str(length): [route.to_dict() for route in routes] for length, routes in by_len.items()}
                for method, by_len in self._grouped.items()
            },
            "cached_at": int(time.time()),
        }
        try:
            self.cache_path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.cache_path.parent, prefix=".routes-", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(payload, fh, indent=2)
                os.replace(tmp_name, self.cache_path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            logger.warning("Failed to write route cache %s: %s", self.cache_path, exc)
            return
        logger.info("Route cache written: %s", self.cache_path)

    def clear_cache(self) -> bool:
        """Delete the cache file. Returns whether one existed."""
        try:
            self.cache_path.unlink()
        except FileNotFoundError:
            return False
        logger.info("Route cache cleared: %s", self.cache_path)
        return True

    # -- Documentation views --

    def route_model_name(self, route: RouteRecord) -> str | None:
        """Model a route belongs to, if one can be read off it.

        Taken from the ``<model>.api`` namespace segment of the class, a
        ``<Model>APIController`` class name, or a literal first path
        component named ``modelName``.
        """
        parts = route.resolved_api_class.split(".")
        if "api" in parts[1:-1]:
            return parts[parts.index("api", 1) - 1]
        short = route.short_class_name
        if short.endswith(CONTROLLER_SUFFIX) and short != CONTROLLER_SUFFIX:
            return short.removesuffix(CONTROLLER_SUFFIX)
        if (
            route.path_components
            and route.parameter_names
            and len(route.parameter_names) == route.path_length
            and route.parameter_names[0] == MODEL_NAME_PARAM
            and not is_wildcard(route.path_components[0])
        ):
            return route.path_components[0]
        return None

    def get_model_routes(self, model_name: str) -> list[dict[str, Any]]:
        """Explicit routes for *model_name* plus the CRUD routes implied for it.

        Implied routes come from wildcard routes whose first component
        captures ``modelName``; they carry ``"implied": True`` and exist
        for documentation only.
        """
        wanted = model_name.lower()
        explicit = [route for route in self._routes if (self.route_model_name(route) or "").lower() == wanted]
        taken = {(route.method, route.path.lower()) for route in explicit}

        result = [route.to_dict() for route in explicit]
        for route in self._routes:
            if not self._is_model_wildcard(route):
                continue
            path = "/" + "/".join([model_name, *route.path_components[1:]])
            if (route.method, path.lower()) in taken:
                continue
            implied = route.to_dict()
            implied.update(path=path, implied=True, wildcardPath=route.path)
            result.append(implied)
        return result

    def _is_model_wildcard(self, route: RouteRecord) -> bool:
        if not route.path_components or not is_wildcard(route.path_components[0]):
            return False
        names = route.parameter_names
        return bool(names) and names[0] == MODEL_NAME_PARAM

    def get_routes_by_model(self, model_names: Iterable[str] | None = None) -> dict[str, list[dict[str, Any]]]:
        """``{model: routes}`` for the given models, the factory's, or those named by routes."""
        if model_names is None:
            if self.model_factory is not None:
                model_names = self.model_factory.available_models()
            else:
                model_names = sorted({name for route in self._routes if (name := self.route_model_name(route))})
        return {name: self.get_model_routes(name) for name in model_names}

    def get_routes_summary(self) -> dict[str, Any]:
        return {
            "total_routes": len(self._routes),
            "methods": dict(Counter(route.method for route in self._routes)),
            "path_lengths": dict(sorted(Counter(route.path_length for route in self._routes).items())),
            "controllers": sorted({route.resolved_api_class for route in self._routes}),
            "routes": [
                {
                    "method": route.method,
                    "path": route.path,
                    "apiClass": route.api_class,
                    "apiMethod": route.api_method,
                    "model": self.route_model_name(route),
                }
                for route in self._routes
            ],
        }

    def get_endpoint_documentation(self, path: str, method: str = "GET") -> dict[str, Any]:
        """Describe the route serving ``method path``; ``{}`` when none does.

        *path* may be a registered pattern (``/?/?``) or a concrete path
        (``/Users/42``), which is matched the way the Router would.
        """
        method = method.upper()
        route = next((r for r in self._routes if r.method == method and r.path == path), None)
        if route is None:
            candidates = self.get_routes_by_method_and_length(method, len(parse_path_components(path)))
            route = self._scorer.find_best_match(method, path, candidates)
        if route is None:
            return {}

        components = parse_path_components(path)
        model = self.route_model_name(route)
        if model is None and self._is_model_wildcard(route) and components and not is_wildcard(components[0]):
            model = components[0]
        return {
            "method": route.method,
            "path": path,
            "routePath": route.path,
            "apiClass": route.resolved_api_class,
            "apiMethod": route.api_method,
            "parameters": [name for name in route.parameter_names if name],
            "model": model,
            "public": route.is_public,
            "description": _describe(route.api_method, model),
        }


_CAMEL_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def _describe(api_method: str, model: str | None) -> str:
    words = _CAMEL_RE.sub(" ", api_method).replace("_", " ").strip().lower()
    text = words[:1].upper() + words[1:]
    return f"{text} ({model})" if model else text
