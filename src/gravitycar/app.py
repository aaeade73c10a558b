"""Gravitycar application class.

Mutable during setup (controllers, model route providers). Frozen on the
first ASGI call, or explicitly via ``app.registry``/``app.router``: the
route registry is loaded (cache or discovery) and the Router is built
exactly once per process.
"""

import logging
import threading
from collections.abc import Sequence
from typing import Any

from gravitycar._internal.asgi import Receive, Scope, Send
from gravitycar.config import AppConfig
from gravitycar.contracts import CurrentUserProvider, ModelFactory, PermissionChecker, RecordStore
from gravitycar.controllers.store import InMemoryRecordStore
from gravitycar.formatting import ResponseFormatter
from gravitycar.models import ModelCatalog
from gravitycar.parsing.coordinator import RequestParameterParser
from gravitycar.routing.providers import ApiController
from gravitycar.routing.registry import RouteRegistry
from gravitycar.routing.router import ControllerFactory, Router
from gravitycar.security.access import AccessPolicy
from gravitycar.server.handler import handle_request

logger = logging.getLogger("gravitycar")


class App:
    """The gravitycar application.

    Usage::

        app = App(
            AppConfig(controllers_package="myapp.api"),
            models=ModelCatalog([users, movies]),
            current_user_provider=TokenUserProvider(TokenConfig(secret_key="...")),
        )

        @app.controller
        class ReportsAPIController(ApiController):
            ...

    Thread safety:
        Setup is single-threaded. The freeze transition uses a Lock +
        double-check so exactly one thread builds the registry.
    """

    __slots__ = (
        "_controllers",
        "_current_user_provider",
        "_freeze_lock",
        "_frozen",
        "_model_providers",
        "_permission_checker",
        "_registry",
        "_router",
        "config",
        "models",
        "store",
    )

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        controllers: Sequence[type[ApiController]] = (),
        model_providers: Sequence[Any] = (),
        models: ModelFactory | None = None,
        store: RecordStore | None = None,
        current_user_provider: CurrentUserProvider | None = None,
        permission_checker: PermissionChecker | None = None,
    ) -> None:
        self.config: AppConfig = config or AppConfig()
        self.models: ModelFactory = models if models is not None else ModelCatalog()
        self.store: RecordStore = store if store is not None else InMemoryRecordStore()
        self._controllers: list[type[ApiController]] = list(controllers)
        self._model_providers: list[Any] = list(model_providers)
        self._current_user_provider = current_user_provider
        self._permission_checker = permission_checker
        self._frozen = False
        self._freeze_lock = threading.Lock()
        self._registry: RouteRegistry | None = None
        self._router: Router | None = None

        logging.getLogger("gravitycar").setLevel(self.config.log_level.upper())

    # -- Setup --

    def controller(self, cls: type[ApiController]) -> type[ApiController]:
        """Register an ``ApiController`` subclass. Usable as a decorator."""
        self._check_not_frozen()
        self._controllers.append(cls)
        return cls

    def model_provider(self, provider: Any) -> Any:
        """Register a model (class or instance) that declares its own routes."""
        self._check_not_frozen()
        self._model_providers.append(provider)
        return provider

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = "Cannot register routes after the app has started serving requests."
            raise RuntimeError(msg)

    # -- Runtime --

    @property
    def registry(self) -> RouteRegistry:
        self._ensure_frozen()
        assert self._registry is not None
        return self._registry

    @property
    def router(self) -> Router:
        self._ensure_frozen()
        assert self._router is not None
        return self._router

    def rebuild_routes(self) -> int:
        """Rediscover routes and rewrite the route cache."""
        return self.registry.rebuild_cache()

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point."""
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return

        await handle_request(scope, receive, send, router=self.router, debug=self.config.debug)

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        """Build the registry at startup so the first request doesn't pay for it."""
        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    self._ensure_frozen()
                except Exception as exc:
                    logger.exception("Startup failed")
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.startup.complete"})

            elif msg_type == "lifespan.shutdown":
                await send({"type": "lifespan.shutdown.complete"})
                return

    # -- Internal --

    def _ensure_frozen(self) -> None:
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._freeze()

    def _freeze(self) -> None:
        """Load routes and wire the Router.

        MUST only be called while holding _freeze_lock.
        """
        config = self.config
        registry = RouteRegistry(
            config,
            controllers=self._controllers,
            route_providers=self._model_providers,
            model_factory=self.models,
        )
        self._registry = registry
        self._router = Router(
            registry,
            parameter_parser=RequestParameterParser(
                max_page_size=config.max_page_size,
                default_page_size=config.default_page_size,
            ),
            response_formatter=ResponseFormatter(),
            model_factory=self.models,
            access_policy=AccessPolicy(self._current_user_provider, self._permission_checker),
            controller_factory=ControllerFactory(
                model_factory=self.models,
                store=self.store,
                current_user_provider=self._current_user_provider,
                registry=registry,
            ),
            max_page_size=config.max_page_size,
        )
        self._frozen = True
        logger.info("App ready: %d routes", len(registry))
