"""Gravitycar exception hierarchy.

Shared across the route registry, Router, request pipeline and the ASGI
layer so every module raises and catches the same types. Anything that
should become an HTTP status derives from ``HTTPError``; the ASGI layer
translates those, everything else is an internal error.
"""

import re
from dataclasses import dataclass, field
from typing import Any


class GravitycarError(Exception):
    """Base for all gravitycar-specific errors.

    Carries a ``context`` dict with diagnostic details (never shown to
    clients unless the app runs in debug mode).
    """

    def __init__(self, message: str = "", context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.context = context or {}


class ConfigurationError(GravitycarError):
    """Raised when app wiring is invalid.

    Typically surfaces while the ``App`` builds its registry at startup.
    """


class RouteFormatError(GravitycarError):
    """A declared route record failed structural validation.

    The registry logs these and skips the route; discovery continues.
    """


@dataclass(frozen=True, eq=False)
class HTTPError(GravitycarError):
    """An error that maps directly to an HTTP status code.

    Raised by the Router, the access policy, or controllers. The ASGI
    handler catches these and renders a JSON error body.
    """

    status: int
    detail: str = ""
    context: dict[str, Any] = field(default_factory=dict)
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)

    @property
    def error_type(self) -> str:
        """Human-readable type name: ``RouteNotFound`` -> ``Route Not Found``."""
        return re.sub(r"(?<=[a-z])(?=[A-Z])", " ", type(self).__name__)


class BadRequest(HTTPError):  # noqa: N818 — conventional name in web frameworks
    """400 — the request cannot be served as sent."""

    def __init__(self, detail: str = "Bad Request", context: dict[str, Any] | None = None) -> None:
        super().__init__(status=400, detail=detail, context=context or {})


class Unauthorized(HTTPError):  # noqa: N818
    """401 — no usable credentials."""

    def __init__(self, detail: str = "Authentication required", context: dict[str, Any] | None = None) -> None:
        super().__init__(
            status=401,
            detail=detail,
            context=context or {},
            headers=(("WWW-Authenticate", "Bearer"),),
        )


class Forbidden(HTTPError):  # noqa: N818
    """403 — authenticated, but not allowed."""

    def __init__(self, detail: str = "Forbidden", context: dict[str, Any] | None = None) -> None:
        super().__init__(status=403, detail=detail, context=context or {})


class NotFound(HTTPError):  # noqa: N818
    """404 — the requested resource does not exist."""

    def __init__(self, detail: str = "Not Found", context: dict[str, Any] | None = None) -> None:
        super().__init__(status=404, detail=detail, context=context or {})


class InternalError(HTTPError):
    """500 — unexpected failure inside the framework."""

    def __init__(self, detail: str = "Internal Server Error", context: dict[str, Any] | None = None) -> None:
        super().__init__(status=500, detail=detail, context=context or {})


class RouteNotFound(NotFound):
    """No registered route scored above zero for the method and path.

    The context carries a sample of the available routes so a developer
    can see what the registry actually knows about.
    """

    def __init__(self, method: str, path: str, available_routes: list[str] | None = None) -> None:
        super().__init__(
            f"No matching route found for {method} {path}",
            context={
                "method": method,
                "path": path,
                "available_routes": available_routes or [],
            },
        )

    @property
    def method(self) -> str:
        return self.context["method"]

    @property
    def path(self) -> str:
        return self.context["path"]

    @property
    def available_routes(self) -> list[str]:
        return self.context["available_routes"]


class ParameterMismatch(BadRequest):
    """Route parameter names do not line up with the request path."""


class ParameterValidationError(BadRequest):
    """Aggregate of every field-level problem found in one request.

    Built from a ``ParameterValidationResult`` so a client sees all
    problems at once instead of fixing them one round trip at a time.
    """

    def __init__(
        self,
        detail: str = "Parameter validation failed",
        errors: list[dict[str, Any]] | None = None,
        suggestions: list[str] | None = None,
    ) -> None:
        errors = errors or []
        super().__init__(
            detail,
            context={
                "validation_errors": errors,
                "suggestions": suggestions or [],
                "error_count": len(errors),
            },
        )

    @property
    def errors(self) -> list[dict[str, Any]]:
        return self.context["validation_errors"]

    @property
    def suggestions(self) -> list[str]:
        return self.context["suggestions"]

    @property
    def error_count(self) -> int:
        return len(self.errors)

    def to_response(self) -> dict[str, Any]:
        """Body fragment listing every problem, for the JSON error response."""
        return {
            "validation_errors": self.errors,
            "suggestions": self.suggestions,
            "error_count": self.error_count,
        }


class Unauthenticated(Unauthorized):
    """A protected route was requested without a resolvable current user."""

    def __init__(self, method: str, path: str) -> None:
        super().__init__(
            "Authentication required",
            context={"method": method, "path": path},
        )


class PermissionDenied(Forbidden):
    """The current user lacks the role or permission a route requires."""

    def __init__(
        self,
        detail: str,
        *,
        method: str,
        path: str,
        user_id: str | None,
        required: list[str] | str,
    ) -> None:
        super().__init__(
            detail,
            context={
                "method": method,
                "path": path,
                "user_id": user_id,
                "required": required,
            },
        )

    @property
    def user_id(self) -> str | None:
        return self.context["user_id"]

    @property
    def required(self) -> list[str] | str:
        return self.context["required"]
