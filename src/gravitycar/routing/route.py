"""RouteRecord frozen dataclass.

The registry builds one ``RouteRecord`` per validated route declaration.
Declarations (and the cache file) use the camelCase wire keys
``method``, ``path``, ``apiClass``, ``apiMethod``, ``parameterNames``;
``to_dict``/``from_dict`` translate between the two.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from gravitycar.routing.paths import dynamic_positions, parse_path_components


@dataclass(frozen=True, slots=True)
class RouteRecord:
    """A registered route.

    Created during discovery (or loaded from the cache) and never mutated
    afterwards. ``path_components``, ``path_length`` and
    ``resolved_api_class`` are derived at registration time.
    """

    method: str
    path: str
    api_class: str
    api_method: str
    parameter_names: tuple[str, ...] = ()
    path_components: tuple[str, ...] = ()
    path_length: int = 0
    resolved_api_class: str = ""
    allowed_roles: tuple[str, ...] | None = None
    rbac_action: str | None = None

    @classmethod
    def build(cls, declaration: Mapping[str, Any], resolved_api_class: str) -> RouteRecord:
        """Create a record from a validated declaration, deriving path fields."""
        components = tuple(parse_path_components(declaration["path"]))
        roles = declaration.get("allowedRoles")
        return cls(
            method=str(declaration["method"]).upper(),
            path=declaration["path"],
            api_class=declaration["apiClass"],
            api_method=declaration["apiMethod"],
            parameter_names=tuple(declaration.get("parameterNames") or ()),
            path_components=components,
            path_length=len(components),
            resolved_api_class=resolved_api_class,
            allowed_roles=tuple(roles) if roles is not None else None,
            rbac_action=declaration.get("RBACAction"),
        )

    @property
    def dynamic_positions(self) -> list[int]:
        """Indexes of wildcard components."""
        return dynamic_positions(list(self.path_components))

    @property
    def is_public(self) -> bool:
        """No ``allowedRoles`` restriction, or the ``*`` wildcard role."""
        return not self.allowed_roles or "*" in self.allowed_roles

    @property
    def short_class_name(self) -> str:
        return self.resolved_api_class.rsplit(".", 1)[-1]

    def describe(self) -> str:
        return f"{self.method} {self.path}"

    # -- Cache / wire shape --

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "method": self.method,
            "path": self.path,
            "apiClass": self.api_class,
            "apiMethod": self.api_method,
            "parameterNames": list(self.parameter_names),
            "pathComponents": list(self.path_components),
            "pathLength": self.path_length,
            "resolvedApiClass": self.resolved_api_class,
        }
        if self.allowed_roles is not None:
            data["allowedRoles"] = list(self.allowed_roles)
        if self.rbac_action is not None:
            data["RBACAction"] = self.rbac_action
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RouteRecord:
        roles = data.get("allowedRoles")
        return cls(
            method=data["method"],
            path=data["path"],
            api_class=data["apiClass"],
            api_method=data["apiMethod"],
            parameter_names=tuple(data.get("parameterNames", ())),
            path_components=tuple(data.get("pathComponents", ())),
            path_length=int(data.get("pathLength", 0)),
            resolved_api_class=data.get("resolvedApiClass", ""),
            allowed_roles=tuple(roles) if roles is not None else None,
            rbac_action=data.get("RBACAction"),
        )
