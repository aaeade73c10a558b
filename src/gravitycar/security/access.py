"""Route access control — authentication and role/permission checks.

Routes without ``allowedRoles``, or with the ``*`` role, are public.
Anything else needs a current user holding one of the listed roles. When
a ``PermissionChecker`` is configured, CRUD-shaped routes (those that
capture ``modelName``) and routes declaring an ``RBACAction`` also need
the model/action permission.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from gravitycar._internal.invoke import invoke
from gravitycar.errors import PermissionDenied, Unauthenticated

if TYPE_CHECKING:
    from gravitycar.contracts import CurrentUserProvider, PermissionChecker, User
    from gravitycar.http.request import Request
    from gravitycar.routing.route import RouteRecord

logger = logging.getLogger("gravitycar.security")

MODEL_NAME_PARAM = "modelName"


def map_method_to_action(method: str, has_id: bool) -> str:
    """CRUD action for an HTTP method.

    ``GET`` is ``read`` with a record id and ``list`` without one.
    """
    method = method.upper()
    if method == "GET":
        return "read" if has_id else "list"
    if method == "POST":
        return "create"
    if method in ("PUT", "PATCH"):
        return "update"
    if method == "DELETE":
        return "delete"
    return "read"


class AccessPolicy:
    """Decides whether a request may reach its route."""

    def __init__(
        self,
        current_user_provider: CurrentUserProvider | None = None,
        permission_checker: PermissionChecker | None = None,
    ) -> None:
        self.current_user_provider = current_user_provider
        self.permission_checker = permission_checker

    async def resolve_user(self, request: Request) -> User | None:
        if self.current_user_provider is None:
            return None
        return await invoke(self.current_user_provider.get_current_user, request)

    async def check(self, route: RouteRecord, request: Request) -> User | None:
        """Authorize *request* for *route*; returns the user on protected routes.

        Raises:
            Unauthenticated: Protected route, no current user.
            PermissionDenied: The user lacks the role or the permission.
        """
        if route.is_public:
            logger.debug("Public route %s", route.describe())
            return None

        user = await self.resolve_user(request)
        if user is None:
            logger.warning("Unauthenticated request for %s %s", request.method, request.url)
            raise Unauthenticated(request.method, request.url)

        required_roles = list(route.allowed_roles or ())
        if not set(user.roles) & set(required_roles):
            logger.warning(
                "User %s lacks roles %s for %s (has %s)",
                user.id,
                required_roles,
                route.describe(),
                sorted(user.roles),
            )
            raise PermissionDenied(
                "Insufficient role for this route",
                method=request.method,
                path=request.url,
                user_id=user.id,
                required=required_roles,
            )

        if self.permission_checker is not None and (route.rbac_action or MODEL_NAME_PARAM in route.parameter_names):
            action = route.rbac_action or map_method_to_action(request.method, bool(request.get("id")))
            component = request.get(MODEL_NAME_PARAM) or route.short_class_name
            if not self.permission_checker.has_permission(user, action, component):
                logger.warning("User %s denied %s on %s", user.id, action, component)
                raise PermissionDenied(
                    f"Permission denied: {action} on {component}",
                    method=request.method,
                    path=request.url,
                    user_id=user.id,
                    required=action,
                )

        request.user = user
        logger.debug("User %s authorized for %s", user.id, route.describe())
        return user
