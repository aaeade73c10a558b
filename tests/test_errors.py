"""Tests for gravitycar.errors — exception hierarchy and HTTP mapping."""

import pytest

from gravitycar.errors import (
    BadRequest,
    ConfigurationError,
    GravitycarError,
    HTTPError,
    InternalError,
    NotFound,
    ParameterMismatch,
    ParameterValidationError,
    PermissionDenied,
    RouteFormatError,
    RouteNotFound,
    Unauthenticated,
)


class TestHierarchy:
    def test_framework_errors(self) -> None:
        assert issubclass(ConfigurationError, GravitycarError)
        assert issubclass(RouteFormatError, GravitycarError)
        assert not issubclass(RouteFormatError, HTTPError)

    def test_http_errors(self) -> None:
        assert issubclass(HTTPError, GravitycarError)
        assert issubclass(RouteNotFound, NotFound)
        assert issubclass(ParameterMismatch, BadRequest)
        assert issubclass(ParameterValidationError, BadRequest)

    def test_context_defaults_to_empty(self) -> None:
        assert GravitycarError("boom").context == {}

    def test_catchable_as_base(self) -> None:
        with pytest.raises(GravitycarError):
            raise NotFound()


class TestHTTPError:
    def test_str(self) -> None:
        assert str(NotFound("Model not found")) == "404: Model not found"
        assert str(HTTPError(status=418)) == "418"

    def test_error_type(self) -> None:
        assert RouteNotFound("GET", "/x").error_type == "Route Not Found"
        assert InternalError().error_type == "Internal Error"

    def test_statuses(self) -> None:
        assert BadRequest().status == 400
        assert NotFound().status == 404
        assert InternalError().status == 500


class TestRouteNotFound:
    def test_message_and_context(self) -> None:
        exc = RouteNotFound("GET", "/api/nonexistent", ["GET /?"])
        assert exc.detail == "No matching route found for GET /api/nonexistent"
        assert exc.method == "GET"
        assert exc.path == "/api/nonexistent"
        assert exc.available_routes == ["GET /?"]


class TestAuthErrors:
    def test_unauthenticated(self) -> None:
        exc = Unauthenticated("GET", "/Users")
        assert exc.status == 401
        assert ("WWW-Authenticate", "Bearer") in exc.headers
        assert exc.context == {"method": "GET", "path": "/Users"}

    def test_permission_denied(self) -> None:
        exc = PermissionDenied(
            "Permission denied: delete on Users",
            method="DELETE",
            path="/Users/1",
            user_id="7",
            required="delete",
        )
        assert exc.status == 403
        assert exc.user_id == "7"
        assert exc.required == "delete"


class TestParameterValidationError:
    def test_to_response(self) -> None:
        errors = [{"field": "page", "error": "Page must be a positive integer", "value": 0}]
        exc = ParameterValidationError(errors=errors, suggestions=["Pages are numbered from 1"])
        assert exc.detail == "Parameter validation failed"
        assert exc.to_response() == {
            "validation_errors": errors,
            "suggestions": ["Pages are numbered from 1"],
            "error_count": 1,
        }
