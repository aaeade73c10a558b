"""ModelCrudController — generic CRUD for every model through wildcard routes.

Registered before any other controller. ``/?`` and ``/?/?`` capture the
model name and record id, so ``GET /Users/42`` reaches ``retrieve``
unless a more specific route (a literal ``/Users/?``) outscores it.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, ClassVar

from gravitycar.errors import BadRequest, InternalError, NotFound
from gravitycar.formatting import ResponseFormatter
from gravitycar.routing.providers import ApiController
from gravitycar.validation.result import ParameterValidationResult

if TYPE_CHECKING:
    from gravitycar.contracts import Model, RecordStore
    from gravitycar.http.request import Request

logger = logging.getLogger("gravitycar.controllers")

_MODEL_NAME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")


class ModelCrudController(ApiController):
    """List, retrieve, create, update, delete and restore any model's records."""

    # None keeps the CRUD routes public; set roles to protect them
    allowed_roles: ClassVar[tuple[str, ...] | None] = None

    def register_routes(self) -> list[Mapping[str, Any]]:
        api_class = type(self).__name__
        routes = [
            ("GET", "/?", "list", ["modelName"]),
            ("GET", "/?/?", "retrieve", ["modelName", "id"]),
            ("GET", "/?/deleted", "list_deleted", ["modelName", ""]),
            ("POST", "/?", "create", ["modelName"]),
            ("PUT", "/?/?", "update", ["modelName", "id"]),
            ("PATCH", "/?/?", "update", ["modelName", "id"]),
            ("DELETE", "/?/?", "delete", ["modelName", "id"]),
            ("PUT", "/?/?/restore", "restore", ["modelName", "id", ""]),
        ]
        declarations: list[Mapping[str, Any]] = []
        for method, path, api_method, names in routes:
            declaration: dict[str, Any] = {
                "method": method,
                "path": path,
                "apiClass": api_class,
                "apiMethod": api_method,
                "parameterNames": names,
            }
            if self.allowed_roles is not None:
                declaration["allowedRoles"] = list(self.allowed_roles)
            declarations.append(declaration)
        return declarations

    # -- Helpers --

    def _store(self) -> RecordStore:
        if self.store is None:
            raise InternalError("No record store configured")
        return self.store

    def _model_name(self, request: Request) -> str:
        name = request.get("modelName")
        if not name:
            raise BadRequest("Model name is required")
        if not _MODEL_NAME_RE.match(name):
            raise BadRequest(
                "Invalid model name format",
                context={"model_name": name, "allowed_pattern": _MODEL_NAME_RE.pattern},
            )
        return name

    def _model(self, name: str) -> Model | None:
        if self.model_factory is None:
            return None
        model = self.model_factory.get(name)
        if model is None:
            raise NotFound(
                "Model not found",
                context={"model_name": name, "available_models": self.model_factory.available_models()},
            )
        return model

    def _record_id(self, request: Request) -> str:
        record_id = request.get("id")
        if not record_id:
            raise BadRequest("ID is required")
        return str(record_id)

    def _params(self, request: Request) -> dict[str, Any]:
        return request.validated_params or request.parsed_params

    def _payload(self, request: Request, model: Model | None, *, creating: bool) -> dict[str, Any]:
        """Body fields the model knows about, with required fields checked on create."""
        data = dict(request.request_data)
        if model is None:
            return data

        fields = {f.name: f for f in model.fields if f.is_db_field}
        payload = {key: value for key, value in data.items() if key in fields}
        if creating:
            result = ParameterValidationResult()
            for field in fields.values():
                if getattr(field, "required", False) and field.name != "id" and payload.get(field.name) in (None, ""):
                    result.add_error(field.name, f"{field.name} is required")
            if result.has_errors:
                result.add_suggestion(f"Provide values for: {', '.join(e['field'] for e in result.errors)}")
                result.raise_if_errors("Record validation failed")
        return payload

    # -- Actions --

    def list(self, request: Request) -> dict[str, Any]:
        name = self._model_name(request)
        model = self._model(name)
        params = self._params(request)

        rows, total = self._store().list(name, params)
        meta = ResponseFormatter.build_meta(params, total, len(rows))
        if model is not None:
            if request.filter_criteria is not None:
                meta["filters"]["available"] = list(request.filter_criteria.get_supported_filters(model).values())
            if request.search_engine is not None:
                meta["search"]["available_fields"] = list(request.search_engine.get_searchable_fields(model))
            meta["sorting"]["available"] = [f.name for f in model.fields if f.is_db_field]

        logger.info(
            "Listed %s: %d of %d records (%d filters, %d sorts, format %s)",
            name,
            len(rows),
            total,
            len(params.get("filters") or ()),
            len(params.get("sorting") or ()),
            request.response_format,
        )
        return request.format_response(rows, meta)

    def retrieve(self, request: Request) -> dict[str, Any]:
        name = self._model_name(request)
        self._model(name)
        record_id = self._record_id(request)
        record = self._store().get(name, record_id)
        if record is None:
            raise NotFound("Record not found", context={"model": name, "id": record_id})
        return {"data": record}

    def list_deleted(self, request: Request) -> dict[str, Any]:
        name = self._model_name(request)
        self._model(name)
        rows, _ = self._store().list_deleted(name, {"sorting": self._params(request).get("sorting") or []})
        return {"data": rows, "count": len(rows)}

    def create(self, request: Request) -> dict[str, Any]:
        name = self._model_name(request)
        model = self._model(name)
        record = self._store().create(name, self._payload(request, model, creating=True))
        logger.info("Created %s record %s", name, record.get("id"))
        return {"data": record, "message": "Record created successfully"}

    def update(self, request: Request) -> dict[str, Any]:
        name = self._model_name(request)
        model = self._model(name)
        record_id = self._record_id(request)
        record = self._store().update(name, record_id, self._payload(request, model, creating=False))
        if record is None:
            raise NotFound("Record not found", context={"model": name, "id": record_id})
        logger.info("Updated %s record %s", name, record_id)
        return {"data": record, "message": "Record updated successfully"}

    def delete(self, request: Request) -> dict[str, Any]:
        name = self._model_name(request)
        self._model(name)
        record_id = self._record_id(request)
        if not self._store().delete(name, record_id):
            raise NotFound("Record not found", context={"model": name, "id": record_id})
        logger.info("Deleted %s record %s", name, record_id)
        return {"data": {"id": record_id}, "message": "Record deleted successfully"}

    def restore(self, request: Request) -> dict[str, Any]:
        name = self._model_name(request)
        self._model(name)
        record_id = self._record_id(request)
        record = self._store().restore(name, record_id)
        if record is None:
            raise NotFound("Deleted record not found", context={"model": name, "id": record_id})
        logger.info("Restored %s record %s", name, record_id)
        return {"data": record, "message": "Record restored successfully"}
