"""Tests for gravitycar.app — full requests through the ASGI interface."""

from typing import Any

import pytest

from gravitycar.app import App
from gravitycar.config import AppConfig
from gravitycar.controllers.store import InMemoryRecordStore
from gravitycar.http.request import Request
from gravitycar.models import ModelCatalog, ModelDefinition, ModelField
from gravitycar.routing.providers import ApiController
from gravitycar.security.tokens import TokenConfig, TokenUser, TokenUserProvider
from gravitycar.testing import TestClient
from gravitycar.validation.fields import FieldKind

USERS = ModelDefinition(
    "Users",
    fields=(
        ModelField("id", FieldKind.ID),
        ModelField("username", FieldKind.TEXT, required=True),
        ModelField("email", FieldKind.EMAIL),
        ModelField("age", FieldKind.INTEGER),
        ModelField("status", FieldKind.ENUM, options={"active": "Active", "inactive": "Inactive"}),
    ),
)

SEED = {
    "Users": [
        {"id": "1", "username": "ada", "email": "ada@example.com", "age": 36, "status": "active"},
        {"id": "2", "username": "grace", "email": "grace@example.com", "age": 45, "status": "inactive"},
    ]
}

PROVIDER = TokenUserProvider(TokenConfig(secret_key="app-test-secret"))


class ReportsAPIController(ApiController):
    def register_routes(self) -> list[dict[str, Any]]:
        return [
            {
                "method": "GET",
                "path": "/reports",
                "apiClass": "ReportsAPIController",
                "apiMethod": "summary",
                "allowedRoles": ["admin"],
            },
        ]

    async def summary(self, request: Request) -> dict[str, Any]:
        user = await self.current_user(request)
        return {"data": {"requested_by": user.id if user else None}}


def _app(*, debug: bool = False, **kw: Any) -> App:
    return App(
        AppConfig(debug=debug, use_route_cache=False),
        models=ModelCatalog([USERS]),
        store=InMemoryRecordStore(SEED),
        **kw,
    )


def _bearer(user_id: str, *roles: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {PROVIDER.issue_token(TokenUser(user_id, frozenset(roles)))}"}


class TestCrudListing:
    async def test_list(self) -> None:
        async with TestClient(_app()) as client:
            response = await client.get("/Users")
            assert response.status == 200
            assert response.content_type == "application/json; charset=utf-8"
            body = response.json()
            assert body["success"] is True
            assert [row["username"] for row in body["data"]] == ["ada", "grace"]
            assert body["pagination"]["total"] == 2
            assert "username" in body["meta"]["search"]["available_fields"]

    async def test_filter_and_sort(self) -> None:
        async with TestClient(_app()) as client:
            response = await client.get("/Users", query={"age": "30", "sortBy": "age", "sortOrder": "desc"})
            body = response.json()
            assert body["meta"]["filters"]["applied"][0]["value"] == 30
            assert body["data"] == []

    async def test_structured_filters(self) -> None:
        async with TestClient(_app()) as client:
            response = await client.get("/Users", query={"filter[age][greaterThan]": "40"})
            assert [row["username"] for row in response.json()["data"]] == ["grace"]

    async def test_overflowing_filter_value_dropped(self) -> None:
        async with TestClient(_app()) as client:
            response = await client.get("/Users", query={"age": "1e400"})
            assert response.status == 200
            assert response.json()["pagination"]["total"] == 2

    async def test_search(self) -> None:
        async with TestClient(_app()) as client:
            response = await client.get("/Users", query={"search": "GRACE"})
            assert [row["id"] for row in response.json()["data"]] == ["2"]

    async def test_mui_format(self) -> None:
        async with TestClient(_app()) as client:
            response = await client.get("/Users", query={"page": "0", "pageSize": "1", "sortModel": "[]"})
            body = response.json()
            assert body["rowCount"] == 2
            assert body["meta"]["page"] == 0
            assert len(body["data"]) == 1

    async def test_requested_response_format(self) -> None:
        async with TestClient(_app()) as client:
            response = await client.get("/Users", query={"responseFormat": "cursor"})
            assert response.json()["pageInfo"]["hasNextPage"] is False

    async def test_validation_error(self) -> None:
        async with TestClient(_app()) as client:
            response = await client.get("/Users", query={"bogus": "1"})
            assert response.status == 400
            body = response.json()
            assert body["success"] is False
            assert body["error"]["message"] == "Parameter validation failed"
            assert body["error"]["type"] == "Parameter Validation Error"
            assert body["validation_errors"][0]["error"] == "Unknown filter field 'bogus' for model Users"
            assert body["error_count"] == 1
            assert "context" not in body["error"]

    async def test_validation_context_in_debug(self) -> None:
        async with TestClient(_app(debug=True)) as client:
            response = await client.get("/Users", query={"bogus": "1"})
            assert response.json()["error"]["context"]["error_count"] == 1


class TestCrudRecords:
    async def test_retrieve(self) -> None:
        async with TestClient(_app()) as client:
            body = (await client.get("/Users/1")).json()
            assert body["success"] is True
            assert body["status"] == 200
            assert body["data"]["username"] == "ada"

    async def test_retrieve_missing(self) -> None:
        async with TestClient(_app()) as client:
            response = await client.get("/Users/99")
            assert response.status == 404
            assert response.json()["error"]["message"] == "Record not found"

    async def test_create(self) -> None:
        async with TestClient(_app()) as client:
            response = await client.post("/Users", json={"username": "linus", "age": 54, "shoe_size": 44})
            body = response.json()
            assert response.status == 200
            assert body["message"] == "Record created successfully"
            assert body["data"]["id"] == "3"
            assert "shoe_size" not in body["data"]

    async def test_create_urlencoded(self) -> None:
        async with TestClient(_app()) as client:
            response = await client.post(
                "/Users",
                body=b"username=margaret",
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
            assert response.json()["data"]["username"] == "margaret"

    async def test_create_missing_required(self) -> None:
        async with TestClient(_app()) as client:
            response = await client.post("/Users", json={"age": 20})
            body = response.json()
            assert response.status == 400
            assert body["error"]["message"] == "Record validation failed"
            assert body["validation_errors"][0]["field"] == "username"

    async def test_invalid_json(self) -> None:
        async with TestClient(_app()) as client:
            response = await client.post(
                "/Users", body=b"{broken", headers={"Content-Type": "application/json"}
            )
            assert response.status == 400
            assert response.json()["error"]["message"] == "Invalid JSON in request body"

    @pytest.mark.parametrize("method", ["put", "patch"])
    async def test_update(self, method: str) -> None:
        async with TestClient(_app()) as client:
            response = await getattr(client, method)("/Users/1", json={"age": 37})
            body = response.json()
            assert body["message"] == "Record updated successfully"
            assert body["data"]["age"] == 37

    async def test_delete_and_restore(self) -> None:
        async with TestClient(_app()) as client:
            deleted = await client.delete("/Users/2")
            assert deleted.json()["message"] == "Record deleted successfully"
            assert (await client.get("/Users/2")).status == 404

            listing = (await client.get("/Users/deleted")).json()
            assert listing["count"] == 1
            assert listing["data"][0]["id"] == "2"

            restored = await client.put("/Users/2/restore")
            assert restored.json()["message"] == "Record restored successfully"
            assert (await client.get("/Users/2")).status == 200

    async def test_restore_live_record(self) -> None:
        async with TestClient(_app()) as client:
            response = await client.put("/Users/1/restore")
            assert response.status == 404
            assert response.json()["error"]["message"] == "Deleted record not found"


class TestRoutingErrors:
    async def test_options_preflight(self) -> None:
        async with TestClient(_app()) as client:
            response = await client.options("/anything/at/all")
            assert response.status == 200
            assert response.json() == {}
            assert response.header("Cache-Control") == "no-cache, must-revalidate"

    async def test_no_route(self) -> None:
        async with TestClient(_app()) as client:
            response = await client.delete("/Users")
            assert response.status == 404
            error = response.json()["error"]
            assert error["message"] == "No matching route found for DELETE /Users"
            assert error["type"] == "Route Not Found"

    async def test_unknown_model(self) -> None:
        async with TestClient(_app()) as client:
            response = await client.get("/Widgets")
            assert response.status == 404
            assert response.json()["error"]["message"] == "Model not found"


class TestAuthentication:
    async def test_anonymous(self) -> None:
        app = _app(controllers=[ReportsAPIController], current_user_provider=PROVIDER)
        async with TestClient(app) as client:
            response = await client.get("/reports")
            assert response.status == 401
            assert response.header("WWW-Authenticate") == "Bearer"

    async def test_wrong_role(self) -> None:
        app = _app(controllers=[ReportsAPIController], current_user_provider=PROVIDER)
        async with TestClient(app) as client:
            response = await client.get("/reports", headers=_bearer("7", "guest"))
            assert response.status == 403
            assert response.json()["error"]["message"] == "Insufficient role for this route"

    async def test_authorized(self) -> None:
        app = _app(controllers=[ReportsAPIController], current_user_provider=PROVIDER)
        async with TestClient(app) as client:
            response = await client.get("/reports", headers=_bearer("1", "admin"))
            assert response.status == 200
            assert response.json()["data"] == {"requested_by": "1"}

    async def test_crud_routes_stay_public(self) -> None:
        app = _app(current_user_provider=PROVIDER)
        async with TestClient(app) as client:
            assert (await client.get("/Users")).status == 200


class TestMetadata:
    async def test_formats(self) -> None:
        async with TestClient(_app()) as client:
            data = (await client.get("/metadata/formats")).json()["data"]
            assert data["requestFormats"] == ["ag-grid", "mui-datagrid", "advanced", "structured", "simple"]
            assert "swr" in data["responseFormats"]

    async def test_routes_summary(self) -> None:
        async with TestClient(_app(controllers=[ReportsAPIController])) as client:
            data = (await client.get("/metadata/routes")).json()["data"]
            assert data["total_routes"] == 12
            assert data["methods"]["GET"] == 7

    async def test_model_routes(self) -> None:
        async with TestClient(_app()) as client:
            body = (await client.get("/metadata/routes/Users")).json()
            paths = {(route["method"], route["path"]) for route in body["data"]["routes"]}
            assert ("GET", "/Users/?") in paths
            assert ("PUT", "/Users/?/restore") in paths
            assert body["count"] == len(paths)
            assert all(route["implied"] for route in body["data"]["routes"])


class TestLifecycle:
    async def test_lifespan(self) -> None:
        app = _app()
        incoming = [{"type": "lifespan.startup"}, {"type": "lifespan.shutdown"}]
        sent: list[dict[str, Any]] = []

        async def receive() -> dict[str, Any]:
            return incoming.pop(0)

        async def send(message: dict[str, Any]) -> None:
            sent.append(message)

        await app({"type": "lifespan"}, receive, send)
        assert [m["type"] for m in sent] == ["lifespan.startup.complete", "lifespan.shutdown.complete"]
        assert len(app.registry) > 0

    def test_register_after_freeze(self) -> None:
        app = _app()
        assert len(app.router.registry) == 11
        with pytest.raises(RuntimeError, match="Cannot register routes"):
            app.controller(ReportsAPIController)

    async def test_controller_decorator(self) -> None:
        app = _app(current_user_provider=PROVIDER)

        @app.controller
        class PingAPIController(ApiController):
            def register_routes(self) -> list[dict[str, Any]]:
                return [{"method": "GET", "path": "/ping", "apiClass": "PingAPIController", "apiMethod": "ping"}]

            def ping(self, request: Request) -> dict[str, Any]:
                return {"data": "pong"}

        async with TestClient(app) as client:
            assert (await client.get("/ping")).json()["data"] == "pong"
