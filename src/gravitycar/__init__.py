"""Gravitycar — a REST API routing core for data-grid frontends.

Routes are declared by controllers and models, matched by a wildcard
path scorer, and every request's pagination, sorting, filters and search
are normalized from whichever grid library sent them (AG-Grid, MUI
DataGrid, or plain query parameters) and rendered back in that
library's response shape.

Basic usage::

    from gravitycar import App, AppConfig, ModelCatalog, ModelDefinition

    app = App(AppConfig(use_route_cache=False), models=ModelCatalog([users]))

    # serve with any ASGI server: uvicorn myapp:app

Signed bearer tokens (``pip install gravitycar[auth]``)::

    from gravitycar.security import TokenConfig, TokenUserProvider
    app = App(current_user_provider=TokenUserProvider(TokenConfig(secret_key="...")))
"""

__version__ = "0.1.0"
__all__ = [
    "ApiController",
    "App",
    "AppConfig",
    "ConfigurationError",
    "GravitycarError",
    "HTTPError",
    "JSONResponse",
    "ModelCatalog",
    "ModelDefinition",
    "ModelField",
    "NotFound",
    "Request",
    "RouteNotFound",
    "RouteRegistry",
    "Router",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import gravitycar`` fast while providing a clean top-level API.
    """
    if name == "App":
        from gravitycar.app import App

        return App

    if name == "AppConfig":
        from gravitycar.config import AppConfig

        return AppConfig

    if name == "Request":
        from gravitycar.http.request import Request

        return Request

    if name == "JSONResponse":
        from gravitycar.http.response import JSONResponse

        return JSONResponse

    if name == "ApiController":
        from gravitycar.routing.providers import ApiController

        return ApiController

    if name == "RouteRegistry":
        from gravitycar.routing.registry import RouteRegistry

        return RouteRegistry

    if name == "Router":
        from gravitycar.routing.router import Router

        return Router

    if name in ("ModelCatalog", "ModelDefinition", "ModelField"):
        from gravitycar import models as _models

        return getattr(_models, name)

    if name in ("ConfigurationError", "GravitycarError", "HTTPError", "NotFound", "RouteNotFound"):
        from gravitycar import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
