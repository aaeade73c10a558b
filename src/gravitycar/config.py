"""Application configuration.

AppConfig is a frozen dataclass — immutable after creation, IDE-autocompletable,
no string-key dict lookups.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path

_TRUE_VALUES = ("true", "1", "yes", "on")


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(debug=True, controllers_package="myapp.api")
    """

    debug: bool = False

    # Route discovery
    controllers_package: str | None = None  # Scanned for ApiController subclasses
    models_package: str | None = None  # Model-name convention root + model route providers

    # Route cache (manual invalidation via RouteRegistry.rebuild_cache())
    route_cache_path: str | Path = "cache/api_routes.json"
    use_route_cache: bool = True

    # Pagination limits shared by every request format
    default_page_size: int = 20
    max_page_size: int = 1000

    # Logging
    log_level: str = "info"

    @classmethod
    def from_env(cls, prefix: str = "GRAVITYCAR_") -> AppConfig:
        """Build a config from ``<PREFIX><FIELD_NAME>`` environment variables.

        ``GRAVITYCAR_DEBUG=1 GRAVITYCAR_MAX_PAGE_SIZE=500`` overrides
        ``debug`` and ``max_page_size``; unset fields keep their defaults.
        """
        overrides: dict[str, object] = {}
        for f in fields(cls):
            raw = os.environ.get(f"{prefix}{f.name.upper()}")
            if raw is None:
                continue
            default = f.default
            if isinstance(default, bool):
                overrides[f.name] = raw.strip().lower() in _TRUE_VALUES
            elif isinstance(default, int):
                overrides[f.name] = int(raw)
            else:
                overrides[f.name] = raw
        return cls(**overrides)
