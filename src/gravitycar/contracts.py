"""Protocols for the collaborators the request pipeline consumes.

The ORM, the user store and the permission service live outside
gravitycar. The Router, the validators and the default controllers only
depend on these shapes; ``ModelDefinition``/``ModelCatalog`` and
``InMemoryRecordStore`` are the in-tree implementations.
"""

from __future__ import annotations

from collections.abc import Awaitable, Mapping, Sequence
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from gravitycar.http.request import Request
    from gravitycar.validation.fields import FieldKind

# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


@runtime_checkable
class FieldCapabilities(Protocol):
    """What validation needs to know about one field."""

    @property
    def name(self) -> str: ...

    @property
    def kind(self) -> FieldKind: ...

    @property
    def is_db_field(self) -> bool: ...

    @property
    def is_searchable(self) -> bool: ...

    @property
    def is_default_searchable(self) -> bool | None: ...

    @property
    def options(self) -> Mapping[str, str]: ...

    def supported_operators(self) -> tuple[str, ...]: ...

    def supports_operator(self, operator: str) -> bool: ...


@runtime_checkable
class Model(Protocol):
    """A model as seen by FilterCriteria and SearchEngine."""

    @property
    def name(self) -> str: ...

    @property
    def fields(self) -> Sequence[FieldCapabilities]: ...

    @property
    def searchable_fields(self) -> Sequence[str]: ...

    def get_field(self, name: str) -> FieldCapabilities | None: ...


class ModelFactory(Protocol):
    """Resolves a model name (from the ``modelName`` path parameter)."""

    def get(self, name: str) -> Model | None: ...

    def available_models(self) -> list[str]: ...


# ---------------------------------------------------------------------------
# Users and permissions
# ---------------------------------------------------------------------------


@runtime_checkable
class User(Protocol):
    """Minimal user protocol.

    Any object with ``id`` and ``roles`` satisfies this.
    """

    @property
    def id(self) -> str: ...

    @property
    def roles(self) -> frozenset[str]: ...


class CurrentUserProvider(Protocol):
    """Resolves the user making a request, or None when anonymous.

    May be sync or async; the Router awaits either.
    """

    def get_current_user(self, request: Request) -> User | None | Awaitable[User | None]: ...


class PermissionChecker(Protocol):
    """Answers model/action permission questions for a user."""

    def has_permission(self, user: User, action: str, component: str) -> bool: ...


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


class RecordStore(Protocol):
    """Storage used by the default CRUD controller.

    ``params`` is the Request's validated parameter envelope
    (``filters``, ``search``, ``sorting``, ``pagination``).
    """

    def list(self, model: str, params: Mapping[str, Any]) -> tuple[list[dict[str, Any]], int]: ...

    def list_deleted(self, model: str, params: Mapping[str, Any]) -> tuple[list[dict[str, Any]], int]: ...

    def get(self, model: str, record_id: str) -> dict[str, Any] | None: ...

    def create(self, model: str, data: Mapping[str, Any]) -> dict[str, Any]: ...

    def update(self, model: str, record_id: str, data: Mapping[str, Any]) -> dict[str, Any] | None: ...

    def delete(self, model: str, record_id: str) -> bool: ...

    def restore(self, model: str, record_id: str) -> dict[str, Any] | None: ...
