"""Route providers — controllers and models that declare routes.

A provider produces route declarations::

    {
        "method": "GET",
        "path": "/Movies/?/poster",
        "apiClass": "MoviesAPIController",
        "apiMethod": "poster",
        "parameterNames": ["", "id", ""],
        "allowedRoles": ["admin", "user"],   # optional; "*" is public
        "RBACAction": "read",                # optional
    }

Controllers subclass ``ApiController``. Models (or any other object)
satisfy ``RouteProvider`` by exposing ``register_routes()``. Both are made
known to the registry explicitly or found by ``discover_controllers`` /
``discover_route_providers`` scanning a package.
"""

from __future__ import annotations

import importlib
import inspect
import logging
import pkgutil
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator, Mapping
from typing import TYPE_CHECKING, Any, ClassVar, Protocol, runtime_checkable

from gravitycar._internal.invoke import invoke

if TYPE_CHECKING:
    from gravitycar.contracts import CurrentUserProvider, ModelFactory, RecordStore, User
    from gravitycar.http.request import Request
    from gravitycar.routing.registry import RouteRegistry

logger = logging.getLogger("gravitycar.routing")

DEFAULT_ROLES_AND_ACTIONS: dict[str, list[str]] = {
    "admin": ["*"],
    "manager": ["list", "read", "create", "update", "delete"],
    "user": ["list", "read", "create", "update", "delete"],
    "guest": ["list", "read", "create", "update", "delete"],
}


@runtime_checkable
class RouteProvider(Protocol):
    """Anything that produces route declarations."""

    def register_routes(self) -> list[Mapping[str, Any]]: ...


class ApiController(ABC):
    """Base for API controllers.

    Dependencies are keyword-only and optional so the registry can
    instantiate a controller just to collect its routes; the app's
    controller factory passes the real ones at dispatch time.
    """

    roles_and_actions: ClassVar[dict[str, list[str]]] = DEFAULT_ROLES_AND_ACTIONS

    def __init__(
        self,
        *,
        model_factory: ModelFactory | None = None,
        store: RecordStore | None = None,
        current_user_provider: CurrentUserProvider | None = None,
        registry: RouteRegistry | None = None,
    ) -> None:
        self.model_factory = model_factory
        self.store = store
        self.current_user_provider = current_user_provider
        self.registry = registry

    @abstractmethod
    def register_routes(self) -> list[Mapping[str, Any]]:
        """Route declarations served by this controller."""

    def get_roles_and_actions(self) -> dict[str, list[str]]:
        return dict(self.roles_and_actions)

    @property
    def controller_name(self) -> str:
        return f"{type(self).__module__}.{type(self).__qualname__}"

    async def current_user(self, request: Request) -> User | None:
        """The request's user, resolved by the Router or the provider."""
        if request.user is not None:
            return request.user
        if self.current_user_provider is None:
            return None
        return await invoke(self.current_user_provider.get_current_user, request)


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------


def qualified_name(cls: type) -> str:
    """``module.ClassName`` — the key classes are registered under."""
    return f"{cls.__module__}.{cls.__qualname__}"


def iter_package_modules(package: str) -> Iterator[Any]:
    """Import *package* and every module below it."""
    root = importlib.import_module(package)
    yield root
    search_path = getattr(root, "__path__", None)
    if search_path is None:
        return
    for info in pkgutil.walk_packages(search_path, prefix=f"{package}."):
        try:
            yield importlib.import_module(info.name)
        except ImportError:
            logger.warning("Skipping %s: import failed", info.name, exc_info=True)


def _collect(package: str, predicate: Callable[[type], bool]) -> list[type]:
    found: dict[str, type] = {}
    for module in iter_package_modules(package):
        for _, obj in inspect.getmembers(module, inspect.isclass):
            # Only classes defined in the scanned package, once each
            if obj.__module__ != module.__name__:
                continue
            if predicate(obj):
                found.setdefault(qualified_name(obj), obj)
    return list(found.values())


def discover_controllers(package: str) -> list[type[ApiController]]:
    """Concrete ``ApiController`` subclasses defined under *package*."""
    controllers = _collect(
        package,
        lambda cls: issubclass(cls, ApiController) and not inspect.isabstract(cls),
    )
    logger.info("Discovered %d API controllers in %s", len(controllers), package)
    return controllers


def discover_route_providers(package: str) -> list[type]:
    """Non-controller classes under *package* that define ``register_routes``."""
    providers = _collect(
        package,
        lambda cls: (
            not issubclass(cls, ApiController)
            and not inspect.isabstract(cls)
            and callable(getattr(cls, "register_routes", None))
        ),
    )
    logger.info("Discovered %d model route providers in %s", len(providers), package)
    return providers
