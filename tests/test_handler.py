"""Tests for gravitycar.server — success envelopes and error responses."""

from gravitycar.errors import (
    ConfigurationError,
    HTTPError,
    NotFound,
    ParameterValidationError,
    Unauthenticated,
)
from gravitycar.http.response import JSONResponse
from gravitycar.server.errors import error_body, handle_error
from gravitycar.server.handler import to_response


class TestToResponse:
    def test_json_response_passes_through(self) -> None:
        response = JSONResponse({"raw": True}, status=202)
        assert to_response(response) is response

    def test_formatter_envelope_passes_through(self) -> None:
        envelope = {"success": True, "data": [], "meta": {}}
        response = to_response(envelope)
        assert response.data == envelope
        assert ("Cache-Control", "no-cache, must-revalidate") in response.headers

    def test_wraps_data_and_message(self) -> None:
        response = to_response({"data": {"id": "1"}, "message": "Record created successfully"})
        body = response.data
        assert body["success"] is True
        assert body["status"] == 200
        assert body["data"] == {"id": "1"}
        assert body["message"] == "Record created successfully"
        assert "count" not in body
        assert "timestamp" in body

    def test_list_gets_count(self) -> None:
        body = to_response([1, 2, 3]).data
        assert body["data"] == [1, 2, 3]
        assert body["count"] == 3

    def test_explicit_count_and_pagination(self) -> None:
        body = to_response({"data": {"routes": []}, "count": 4, "pagination": {"page": 1}}).data
        assert body["count"] == 4
        assert body["pagination"] == {"page": 1}

    def test_mapping_without_data_is_the_data(self) -> None:
        assert to_response({"total": 2}).data["data"] == {"total": 2}

    def test_none(self) -> None:
        assert to_response(None).data["data"] is None


class TestErrorBody:
    def test_shape(self) -> None:
        body = error_body(404, "Model not found", "Not Found")
        assert body["success"] is False
        assert body["status"] == 404
        assert body["error"] == {"message": "Model not found", "type": "Not Found", "code": 404}

    def test_context_included_when_given(self) -> None:
        body = error_body(400, "bad", "Bad Request", {"field": "page"})
        assert body["error"]["context"] == {"field": "page"}


class TestHandleError:
    def test_http_error(self) -> None:
        exc = NotFound("Model not found", context={"model_name": "Widgets"})
        response = handle_error(exc, "GET", "/Widgets", debug=False)
        assert response.status == 404
        assert response.data["error"]["type"] == "Not Found"
        assert "context" not in response.data["error"]

    def test_context_in_debug(self) -> None:
        exc = NotFound("Model not found", context={"model_name": "Widgets"})
        response = handle_error(exc, "GET", "/Widgets", debug=True)
        assert response.data["error"]["context"] == {"model_name": "Widgets"}

    def test_acronym_type_name(self) -> None:
        response = handle_error(HTTPError(status=418), "GET", "/tea", debug=False)
        assert response.data["error"] == {"message": "Error 418", "type": "HTTPError", "code": 418}

    def test_validation_errors_always_listed(self) -> None:
        errors = [{"field": "page", "error": "Page must be a positive integer", "value": 0}]
        exc = ParameterValidationError(errors=errors, suggestions=["Pages are numbered from 1"])
        body = handle_error(exc, "GET", "/Users", debug=False).data
        assert body["status"] == 400
        assert body["validation_errors"] == errors
        assert body["suggestions"] == ["Pages are numbered from 1"]
        assert body["error_count"] == 1

    def test_error_headers_forwarded(self) -> None:
        response = handle_error(Unauthenticated("GET", "/Users"), "GET", "/Users", debug=False)
        assert response.status == 401
        assert ("WWW-Authenticate", "Bearer") in response.headers

    def test_framework_error_is_400(self) -> None:
        response = handle_error(ConfigurationError("No models package"), "GET", "/x", debug=False)
        assert response.status == 400
        assert response.data["error"]["type"] == "Framework Error"
        assert response.data["error"]["message"] == "No models package"

    def test_unexpected_error_is_500(self) -> None:
        response = handle_error(ValueError("boom"), "GET", "/x", debug=False)
        assert response.status == 500
        assert response.data["error"]["message"] == "Internal Server Error"

    def test_unexpected_error_detail_in_debug(self) -> None:
        response = handle_error(ValueError("boom"), "GET", "/x", debug=True)
        assert response.data["error"]["message"] == "ValueError: boom"
