"""Tests for gravitycar.routing.registry — route validation, grouping and cache."""

import json
from pathlib import Path
from typing import Any

import pytest

from gravitycar.config import AppConfig
from gravitycar.controllers.crud import ModelCrudController
from gravitycar.errors import RouteFormatError
from gravitycar.routing.providers import ApiController
from gravitycar.routing.registry import RouteRegistry


class UsersAPIController(ApiController):
    def register_routes(self) -> list[dict[str, Any]]:
        return [
            {
                "method": "GET",
                "path": "/Users/?",
                "apiClass": "UsersAPIController",
                "apiMethod": "show",
                "parameterNames": ["", "userId"],
            },
            {
                "method": "GET",
                "path": "/Users/?/profile",
                "apiClass": "UsersAPIController",
                "apiMethod": "profile",
                "parameterNames": ["userId"],
                "allowedRoles": ["admin"],
            },
        ]

    def show(self, request: Any) -> dict[str, Any]:
        return {"data": {"id": request.get("userId")}}

    async def profile(self, request: Any) -> dict[str, Any]:
        return {"data": {"id": request.get("userId"), "profile": True}}


class MoviesAPIController(ApiController):
    def register_routes(self) -> list[dict[str, Any]]:
        return []

    def poster(self, request: Any) -> dict[str, Any]:
        return {"data": "poster"}


class MoviesModel:
    def register_routes(self) -> list[dict[str, Any]]:
        return [
            {
                "method": "GET",
                "path": "/Movies/?/poster",
                "apiClass": "MoviesAPIController",
                "apiMethod": "poster",
                "parameterNames": ["", "id", ""],
            }
        ]


class BrokenProvider:
    def register_routes(self) -> list[dict[str, Any]]:
        raise RuntimeError("metadata unavailable")


class MalformedProvider:
    def register_routes(self) -> list[Any]:
        return [
            {
                "method": "GET",
                "path": "/Users/?/broken",
                "apiClass": "UsersAPIController",
                "apiMethod": "show",
                "parameterNames": 5,
            },
            "GET /Users/?/text",
            {
                "method": "GET",
                "path": "/Users/?/summary",
                "apiClass": "UsersAPIController",
                "apiMethod": "show",
                "parameterNames": ["userId"],
            },
        ]


def _registry(**kwargs: Any) -> RouteRegistry:
    kwargs.setdefault("default_controllers", ())
    kwargs.setdefault("controllers", [UsersAPIController])
    return RouteRegistry(AppConfig(use_route_cache=False), **kwargs)


class TestValidateRouteFormat:
    def _valid(self, **overrides: Any) -> dict[str, Any]:
        declaration = {
            "method": "GET",
            "path": "/Users/?",
            "apiClass": "UsersAPIController",
            "apiMethod": "show",
            "parameterNames": ["", "userId"],
        }
        declaration.update(overrides)
        return declaration

    def test_valid_route_resolves_class(self) -> None:
        registry = _registry()
        resolved = registry.validate_route_format(self._valid())
        assert resolved.endswith(".UsersAPIController")

    def test_missing_field(self) -> None:
        registry = _registry()
        declaration = self._valid()
        del declaration["apiMethod"]
        with pytest.raises(RouteFormatError, match="Route missing required field: apiMethod"):
            registry.validate_route_format(declaration)

    def test_invalid_method(self) -> None:
        registry = _registry()
        with pytest.raises(RouteFormatError, match="Invalid HTTP method: FETCH"):
            registry.validate_route_format(self._valid(method="FETCH"))

    def test_lowercase_method_accepted(self) -> None:
        registry = _registry()
        registry.validate_route_format(self._valid(method="get"))

    def test_path_must_start_with_slash(self) -> None:
        registry = _registry()
        with pytest.raises(RouteFormatError, match="Route path must start with '/': Users"):
            registry.validate_route_format(self._valid(path="Users"))

    def test_unknown_class(self) -> None:
        registry = _registry()
        with pytest.raises(RouteFormatError, match="API class not found: NopeAPIController"):
            registry.validate_route_format(self._valid(apiClass="NopeAPIController"))

    def test_unknown_method(self) -> None:
        registry = _registry()
        with pytest.raises(RouteFormatError, match="API method 'missing' not found"):
            registry.validate_route_format(self._valid(apiMethod="missing"))

    def test_parameter_count_mismatch(self) -> None:
        registry = _registry()
        with pytest.raises(RouteFormatError, match="Parameter names count must match"):
            registry.validate_route_format(self._valid(parameterNames=["a", "b", "c"]))

    def test_compact_parameter_names(self) -> None:
        registry = _registry()
        registry.validate_route_format(self._valid(parameterNames=["userId"]))

    def test_parameter_names_must_be_strings(self) -> None:
        registry = _registry()
        with pytest.raises(RouteFormatError, match="parameterNames must be a list of strings"):
            registry.validate_route_format(self._valid(parameterNames="userId"))

    def test_non_sequence_parameter_names(self) -> None:
        registry = _registry()
        with pytest.raises(RouteFormatError, match="parameterNames must be a list of strings"):
            registry.validate_route_format(self._valid(parameterNames=5))

    def test_declaration_must_be_mapping(self) -> None:
        registry = _registry()
        with pytest.raises(RouteFormatError, match="Route declaration must be a mapping"):
            registry.validate_route_format(["GET", "/Users/?"])  # type: ignore[arg-type]

    def test_allowed_roles_must_be_list(self) -> None:
        registry = _registry()
        with pytest.raises(RouteFormatError, match="allowedRoles must be a list of strings"):
            registry.validate_route_format(self._valid(allowedRoles="admin"))
        registry.validate_route_format(self._valid(allowedRoles=["admin"]))

    def test_rbac_action_must_be_string(self) -> None:
        registry = _registry()
        with pytest.raises(RouteFormatError, match="RBACAction must be a string"):
            registry.validate_route_format(self._valid(RBACAction=["read"]))


class TestRegistration:
    def test_discovers_controller_routes(self) -> None:
        registry = _registry()
        assert len(registry) == 2
        assert {r.path for r in registry.routes} == {"/Users/?", "/Users/?/profile"}

    def test_invalid_route_skipped(self) -> None:
        registry = _registry()
        assert registry.register_route({"method": "GET", "path": "nope"}) is None
        assert len(registry) == 2

    def test_register_route_derives_path_fields(self) -> None:
        registry = _registry()
        record = registry.register_route(
            {
                "method": "post",
                "path": "/Users/?/avatar",
                "apiClass": "UsersAPIController",
                "apiMethod": "show",
                "parameterNames": ["userId"],
            }
        )
        assert record is not None
        assert record.method == "POST"
        assert record.path_components == ("Users", "?", "avatar")
        assert record.path_length == 3
        assert record.dynamic_positions == [1]

    def test_model_route_provider(self) -> None:
        registry = _registry(controllers=[UsersAPIController, MoviesAPIController], route_providers=[MoviesModel()])
        routes = registry.get_routes_by_method_and_length("GET", 3)
        assert {r.path for r in routes} == {"/Users/?/profile", "/Movies/?/poster"}

    def test_failing_provider_is_skipped(self) -> None:
        registry = _registry(route_providers=[BrokenProvider()])
        assert len(registry) == 2

    def test_malformed_declarations_skipped_with_valid_sibling(self) -> None:
        registry = _registry(route_providers=[MalformedProvider()])
        assert len(registry) == 3
        assert "/Users/?/summary" in {r.path for r in registry.routes}
        assert "/Users/?/broken" not in {r.path for r in registry.routes}

    def test_string_roles_not_split_into_characters(self) -> None:
        registry = _registry()
        record = registry.register_route(
            {
                "method": "GET",
                "path": "/Users/?/audit",
                "apiClass": "UsersAPIController",
                "apiMethod": "show",
                "parameterNames": ["userId"],
                "allowedRoles": "admin",
            }
        )
        assert record is None

    def test_default_controllers_register_first(self) -> None:
        registry = RouteRegistry(AppConfig(use_route_cache=False), controllers=[UsersAPIController])
        assert registry.routes[0].resolved_api_class.endswith(ModelCrudController.__name__)
        assert registry.routes[0].path == "/?"

    def test_duplicate_controller_registered_once(self) -> None:
        registry = _registry(controllers=[UsersAPIController, UsersAPIController])
        assert len(registry) == 2

    def test_autoload_disabled(self) -> None:
        registry = _registry(autoload=False)
        assert len(registry) == 0
        assert registry.discover() == 2


class TestGrouping:
    def test_grouped_by_method_and_length(self) -> None:
        registry = RouteRegistry(AppConfig(use_route_cache=False), controllers=[UsersAPIController])
        grouped = registry.grouped_routes
        assert {r.path for r in grouped["GET"][1]} == {"/?"}
        assert {r.path for r in grouped["PUT"][3]} == {"/?/?/restore"}

    def test_lookup_is_case_insensitive_on_method(self) -> None:
        registry = _registry()
        assert len(registry.get_routes_by_method_and_length("get", 2)) == 1

    def test_missing_bucket_is_empty(self) -> None:
        registry = _registry()
        assert registry.get_routes_by_method_and_length("DELETE", 2) == []
        assert registry.get_routes_by_method("DELETE") == {}

    def test_routes_by_method(self) -> None:
        registry = _registry()
        by_length = registry.get_routes_by_method("GET")
        assert sorted(by_length) == [2, 3]


class TestClassResolution:
    def test_short_name_from_class_table(self) -> None:
        registry = _registry(autoload=False)
        resolved = registry.resolve_controller_class_name("UsersAPIController")
        assert resolved is not None
        assert registry.get_class(resolved) is UsersAPIController

    def test_dotted_name_imported(self) -> None:
        registry = _registry(autoload=False)
        name = "gravitycar.controllers.metadata.MetadataController"
        assert registry.resolve_controller_class_name(name) == name

    def test_unknown_dotted_name(self) -> None:
        registry = _registry(autoload=False)
        assert registry.resolve_controller_class_name("nowhere.Missing") is None

    def test_package_discovery(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        package = tmp_path / "gc_discovered_api"
        package.mkdir()
        (package / "__init__.py").write_text("")
        (package / "reports.py").write_text(
            "from gravitycar.routing.providers import ApiController\n"
            "\n"
            "class ReportsAPIController(ApiController):\n"
            "    def register_routes(self):\n"
            "        return [{'method': 'GET', 'path': '/reports', 'apiClass': 'ReportsAPIController',"
            " 'apiMethod': 'index'}]\n"
            "\n"
            "    def index(self, request):\n"
            "        return {'data': []}\n"
        )
        monkeypatch.syspath_prepend(str(tmp_path))

        registry = RouteRegistry(
            AppConfig(use_route_cache=False, controllers_package="gc_discovered_api"),
            default_controllers=(),
        )
        assert [r.describe() for r in registry.routes] == ["GET /reports"]
        assert registry.routes[0].resolved_api_class == "gc_discovered_api.reports.ReportsAPIController"

    def test_model_package_convention(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        widgets = tmp_path / "gc_models_pkg" / "widgets"
        widgets.mkdir(parents=True)
        (tmp_path / "gc_models_pkg" / "__init__.py").write_text("")
        (widgets / "__init__.py").write_text("")
        (widgets / "api.py").write_text(
            "from gravitycar.routing.providers import ApiController\n"
            "\n"
            "class WidgetsAPIController(ApiController):\n"
            "    def register_routes(self):\n"
            "        return []\n"
            "\n"
            "    def spin(self, request):\n"
            "        return {'data': 'spun'}\n"
        )
        (widgets / "model.py").write_text(
            "class Widgets:\n"
            "    def register_routes(self):\n"
            "        return [{'method': 'POST', 'path': '/Widgets/?/spin', 'apiClass': 'WidgetsAPIController',"
            " 'apiMethod': 'spin', 'parameterNames': ['id']}]\n"
        )
        monkeypatch.syspath_prepend(str(tmp_path))

        registry = RouteRegistry(
            AppConfig(use_route_cache=False, models_package="gc_models_pkg"),
            default_controllers=(),
        )
        assert len(registry) == 1
        route = registry.routes[0]
        assert route.resolved_api_class == "gc_models_pkg.widgets.api.WidgetsAPIController"
        assert registry.route_model_name(route) == "widgets"


class TestRouteCache:
    def _config(self, tmp_path: Path) -> AppConfig:
        return AppConfig(route_cache_path=tmp_path / "cache" / "api_routes.json")

    def test_discovery_writes_cache(self, tmp_path: Path) -> None:
        config = self._config(tmp_path)
        RouteRegistry(config, controllers=[UsersAPIController])

        data = json.loads(Path(config.route_cache_path).read_text())
        assert set(data) >= {"routes", "groupedRoutes", "cached_at"}
        assert "GET" in data["groupedRoutes"]

    def test_cache_round_trip(self, tmp_path: Path) -> None:
        config = self._config(tmp_path)
        first = RouteRegistry(config, controllers=[UsersAPIController])

        # No controllers passed: routes can only come from the cache
        second = RouteRegistry(config)
        assert second.grouped_routes == first.grouped_routes
        assert second.routes == first.routes

    def test_bad_shape_triggers_discovery(self, tmp_path: Path) -> None:
        config = self._config(tmp_path)
        path = Path(config.route_cache_path)
        path.parent.mkdir(parents=True)
        path.write_text(json.dumps({"routes": []}))

        registry = RouteRegistry(config, default_controllers=(), controllers=[UsersAPIController])
        assert len(registry) == 2
        assert "groupedRoutes" in json.loads(path.read_text())

    def test_unparseable_cache_ignored(self, tmp_path: Path) -> None:
        config = self._config(tmp_path)
        path = Path(config.route_cache_path)
        path.parent.mkdir(parents=True)
        path.write_text("{not json")

        registry = RouteRegistry(config, autoload=False)
        assert registry.load_from_cache() is False

    def test_clear_cache(self, tmp_path: Path) -> None:
        config = self._config(tmp_path)
        registry = RouteRegistry(config, default_controllers=(), controllers=[UsersAPIController])
        assert registry.clear_cache() is True
        assert registry.clear_cache() is False

    def test_rebuild_cache(self, tmp_path: Path) -> None:
        config = self._config(tmp_path)
        registry = RouteRegistry(config, default_controllers=(), controllers=[UsersAPIController])
        assert registry.rebuild_cache() == 2
        assert Path(config.route_cache_path).is_file()

    def test_cache_disabled_writes_nothing(self, tmp_path: Path) -> None:
        config = AppConfig(route_cache_path=tmp_path / "routes.json", use_route_cache=False)
        RouteRegistry(config, controllers=[UsersAPIController])
        assert not (tmp_path / "routes.json").exists()


class TestDocumentationViews:
    def _registry(self) -> RouteRegistry:
        return RouteRegistry(AppConfig(use_route_cache=False), controllers=[UsersAPIController])

    def test_route_model_name_from_controller(self) -> None:
        registry = self._registry()
        route = next(r for r in registry.routes if r.path == "/Users/?")
        assert registry.route_model_name(route) == "Users"

    def test_wildcard_route_has_no_model(self) -> None:
        registry = self._registry()
        assert registry.route_model_name(registry.routes[0]) is None

    def test_model_routes_include_implied(self) -> None:
        registry = self._registry()
        routes = registry.get_model_routes("Users")

        explicit = [r for r in routes if not r.get("implied")]
        implied = [r for r in routes if r.get("implied")]
        assert {r["path"] for r in explicit} == {"/Users/?", "/Users/?/profile"}

        create = next(r for r in implied if r["method"] == "POST")
        assert create["path"] == "/Users"
        assert create["wildcardPath"] == "/?"

    def test_explicit_route_shadows_implied(self) -> None:
        registry = self._registry()
        routes = registry.get_model_routes("Users")
        assert len([r for r in routes if r["method"] == "GET" and r["path"] == "/Users/?"]) == 1

    def test_routes_by_model(self) -> None:
        registry = self._registry()
        by_model = registry.get_routes_by_model()
        assert list(by_model) == ["Users"]

    def test_routes_summary(self) -> None:
        registry = self._registry()
        summary = registry.get_routes_summary()
        assert summary["total_routes"] == len(registry)
        assert summary["methods"]["DELETE"] == 1
        assert any(r["model"] == "Users" for r in summary["routes"])

    def test_endpoint_documentation_for_concrete_path(self) -> None:
        registry = self._registry()
        doc = registry.get_endpoint_documentation("/Users/42")
        assert doc["routePath"] == "/Users/?"
        assert doc["apiMethod"] == "show"
        assert doc["parameters"] == ["userId"]
        assert doc["model"] == "Users"
        assert doc["description"] == "Show (Users)"

    def test_endpoint_documentation_for_wildcard_model(self) -> None:
        registry = self._registry()
        doc = registry.get_endpoint_documentation("/Books/7", "get")
        assert doc["routePath"] == "/?/?"
        assert doc["model"] == "Books"
        assert doc["public"] is True

    def test_endpoint_documentation_for_unknown_path(self) -> None:
        registry = self._registry()
        assert registry.get_endpoint_documentation("/a/b/c/d") == {}
