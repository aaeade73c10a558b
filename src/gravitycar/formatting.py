"""ResponseFormatter — one result set, many client envelopes.

``format(data, meta, fmt)`` renders the same rows and metadata into the
envelope a particular client library expects. ``meta`` has the shape
``build_meta`` produces::

    {
        "pagination": {"page", "pageSize", "total", "pageCount",
                       "hasNextPage", "hasPreviousPage", "offset", "limit"},
        "filters": {"applied": [...], "available": [...]},
        "sorting": {"applied": [...], "available": [...]},
        "search": {"applied": {...}, "available_fields": [...]},
    }

Unknown format names render the standard envelope.
"""

from __future__ import annotations

import hashlib
import json
import logging
import math
import time
from collections.abc import Callable, Mapping, Sequence
from datetime import UTC, datetime
from typing import Any

logger = logging.getLogger("gravitycar.formatting")

FORMAT_DESCRIPTIONS: dict[str, str] = {
    "standard": "Standard REST API format",
    "ag-grid": "AG-Grid server-side data source",
    "mui": "Material-UI DataGrid server-side",
    "tanstack-query": "TanStack Query (React Query)",
    "swr": "SWR data fetching",
    "infinite-scroll": "Infinite scroll pagination",
    "cursor": "Cursor-based pagination",
}

FORMAT_ALIASES: dict[str, str] = {
    "mui-datagrid": "mui",
    "react-query": "tanstack-query",
}

DEFAULT_FORMAT = "standard"


class ResponseFormatter:
    """Renders response envelopes keyed by format name."""

    def __init__(self) -> None:
        self._renderers: dict[str, Callable[[Sequence[Any], Mapping[str, Any]], dict[str, Any]]] = {
            "ag-grid": self.format_for_ag_grid,
            "mui": self.format_for_mui_datagrid,
            "tanstack-query": self.format_for_tanstack_query,
            "swr": self.format_for_swr,
            "infinite-scroll": self.format_for_infinite_scroll,
            "cursor": self.format_for_cursor,
            "standard": self.format_standard,
        }

    def format(self, data: Sequence[Any], meta: Mapping[str, Any] | None = None, fmt: str = DEFAULT_FORMAT) -> dict[str, Any]:
        meta = meta or {}
        started = time.perf_counter()
        name = FORMAT_ALIASES.get(fmt, fmt)
        renderer = self._renderers.get(name, self.format_standard)
        response = renderer(list(data), meta)
        logger.info(
            "Response formatted as %s: %d records in %.2fms",
            fmt,
            len(data),
            (time.perf_counter() - started) * 1000,
        )
        return response

    # -- Renderers --

    def format_for_ag_grid(self, data: list[Any], meta: Mapping[str, Any]) -> dict[str, Any]:
        """``lastRow`` stays None while more rows remain."""
        pagination = meta.get("pagination") or {}
        last_row = None
        if "hasNextPage" in pagination and not pagination["hasNextPage"]:
            last_row = (pagination.get("offset") or 0) + len(data)

        response: dict[str, Any] = {"success": True, "data": data, "lastRow": last_row}
        if meta.get("debug"):
            response["meta"] = {
                "pagination": pagination,
                "filters": meta.get("filters", []),
                "sorting": meta.get("sorting", []),
                "search": meta.get("search", []),
            }
        return response

    def format_for_mui_datagrid(self, data: list[Any], meta: Mapping[str, Any]) -> dict[str, Any]:
        """MUI pages are 0-based; ``rowCount`` is the full total."""
        pagination = meta.get("pagination") or {}
        page = pagination.get("page")
        return {
            "success": True,
            "data": data,
            "rowCount": pagination.get("total", 0),
            "meta": {
                "page": max(0, page - 1) if isinstance(page, int) else 0,
                "pageSize": pagination.get("pageSize", 25),
                "total": pagination.get("total", 0),
                "hasNextPage": pagination.get("hasNextPage", False),
                "hasPreviousPage": pagination.get("hasPreviousPage", False),
            },
            "filters": meta.get("filters", []),
            "sorting": meta.get("sorting", []),
        }

    def format_for_tanstack_query(self, data: list[Any], meta: Mapping[str, Any]) -> dict[str, Any]:
        return {
            "success": True,
            "data": data,
            "meta": self.build_comprehensive_meta(meta),
            "links": self.build_pagination_links(meta.get("pagination") or {}),
            "timestamp": datetime.now(UTC).isoformat(),
        }

    def format_for_swr(self, data: list[Any], meta: Mapping[str, Any]) -> dict[str, Any]:
        return {
            "success": True,
            "data": data,
            "meta": self.build_comprehensive_meta(meta),
            "pagination": self.build_swr_pagination(meta.get("pagination") or {}),
            "cache_key": self.generate_cache_key(meta),
            "timestamp": int(time.time()),
        }

    def format_for_infinite_scroll(self, data: list[Any], meta: Mapping[str, Any]) -> dict[str, Any]:
        pagination = meta.get("pagination") or {}
        return {
            "success": True,
            "data": data,
            "pagination": {
                "hasNextPage": pagination.get("hasNextPage", False),
                "nextCursor": pagination.get("nextCursor"),
                "pageSize": pagination.get("pageSize", len(data)),
            },
            "meta": {
                "total": pagination.get("total"),
                "filters": meta.get("filters", []),
                "search": meta.get("search", []),
            },
        }

    def format_for_cursor(self, data: list[Any], meta: Mapping[str, Any]) -> dict[str, Any]:
        pagination = meta.get("pagination") or {}
        return {
            "success": True,
            "data": data,
            "pageInfo": {
                "hasNextPage": pagination.get("hasNextPage", False),
                "hasPreviousPage": pagination.get("hasPreviousPage", False),
                "startCursor": pagination.get("startCursor"),
                "endCursor": pagination.get("endCursor"),
            },
            "meta": {
                "total": pagination.get("total"),
                "filters": meta.get("filters", []),
                "sorting": meta.get("sorting", []),
            },
        }

    def format_standard(self, data: list[Any], meta: Mapping[str, Any]) -> dict[str, Any]:
        return {
            "success": True,
            "data": data,
            "meta": self.build_comprehensive_meta(meta),
            "pagination": self.build_standard_pagination(meta.get("pagination") or {}),
        }

    # -- Meta builders --

    @staticmethod
    def build_meta(params: Mapping[str, Any], total: int, count: int | None = None) -> dict[str, Any]:
        """Derive renderer meta from a request's validated params and the row total.

        *count* (rows in this page) fills the cursor fields when given.
        """
        pagination = params.get("pagination") or {}
        page = int(pagination.get("page", 1))
        page_size = int(pagination.get("pageSize", 20))
        offset = int(pagination.get("offset", (page - 1) * page_size))
        page_count = math.ceil(total / page_size) if page_size > 0 else 0
        has_next = page < page_count

        built = {
            "page": page,
            "pageSize": page_size,
            "total": total,
            "pageCount": page_count,
            "hasNextPage": has_next,
            "hasPreviousPage": page > 1,
            "offset": offset,
            "limit": int(pagination.get("limit", page_size)),
            "nextCursor": str(offset + page_size) if has_next else None,
        }
        if count is not None:
            built["startCursor"] = str(offset) if count else None
            built["endCursor"] = str(offset + count - 1) if count else None

        search = params.get("search") or {}
        return {
            "pagination": built,
            "filters": {"applied": list(params.get("filters") or [])},
            "sorting": {"applied": list(params.get("sorting") or [])},
            "search": {"applied": dict(search) if search.get("term") else {}},
        }

    def build_comprehensive_meta(self, meta: Mapping[str, Any]) -> dict[str, Any]:
        filters = meta.get("filters") or {}
        sorting = meta.get("sorting") or {}
        search = meta.get("search") or {}
        comprehensive: dict[str, Any] = {
            "pagination": self.build_standard_pagination(meta.get("pagination") or {}),
            "filters": {
                "applied": _get(filters, "applied", []),
                "available": _get(filters, "available", []),
            },
            "sorting": {
                "applied": _get(sorting, "applied", []),
                "available": _get(sorting, "available", []),
            },
            "search": {
                "applied": _get(search, "applied", []),
                "available_fields": _get(search, "available_fields", []),
            },
        }
        if "query_time" in meta:
            comprehensive["performance"] = {
                "query_time_ms": meta["query_time"],
                "total_records": (meta.get("pagination") or {}).get("total", 0),
            }
        return comprehensive

    def build_standard_pagination(self, pagination: Mapping[str, Any]) -> dict[str, Any]:
        return {
            "page": pagination.get("page", 1),
            "pageSize": pagination.get("pageSize", 20),
            "total": pagination.get("total", 0),
            "pageCount": pagination.get("pageCount", 0),
            "hasNextPage": pagination.get("hasNextPage", False),
            "hasPreviousPage": pagination.get("hasPreviousPage", False),
            "offset": pagination.get("offset", 0),
            "limit": pagination.get("limit", 20),
        }

    def build_swr_pagination(self, pagination: Mapping[str, Any]) -> dict[str, Any]:
        return {
            "current": pagination.get("page", 1),
            "size": pagination.get("pageSize", 20),
            "total": pagination.get("total", 0),
            "pages": pagination.get("pageCount", 0),
            "hasMore": pagination.get("hasNextPage", False),
        }

    def build_pagination_links(self, pagination: Mapping[str, Any]) -> dict[str, str]:
        page = pagination.get("page", 1)
        page_count = pagination.get("pageCount", 0)
        page_size = pagination.get("pageSize", 20)
        links: dict[str, str] = {}
        if page > 1:
            links["first"] = _page_url(1, page_size)
            links["prev"] = _page_url(page - 1, page_size)
        if page < page_count:
            links["next"] = _page_url(page + 1, page_size)
            links["last"] = _page_url(page_count, page_size)
        links["self"] = _page_url(page, page_size)
        return links

    def generate_cache_key(self, meta: Mapping[str, Any]) -> str:
        """MD5 of the canonical JSON of pagination, filters, sorting and search."""
        key_data = {
            "pagination": meta.get("pagination") or {},
            "filters": _get(meta.get("filters") or {}, "applied", []),
            "sorting": _get(meta.get("sorting") or {}, "applied", []),
            "search": _get(meta.get("search") or {}, "applied", []),
        }
        canonical = json.dumps(key_data, sort_keys=True, separators=(",", ":"), default=str)
        return hashlib.md5(canonical.encode("utf-8"), usedforsecurity=False).hexdigest()

    # -- Format catalogue --

    @staticmethod
    def available_formats() -> dict[str, str]:
        return dict(FORMAT_DESCRIPTIONS)

    @staticmethod
    def is_valid_format(fmt: str) -> bool:
        return fmt in FORMAT_DESCRIPTIONS or fmt in FORMAT_ALIASES

    @staticmethod
    def format_description(fmt: str) -> str | None:
        return FORMAT_DESCRIPTIONS.get(FORMAT_ALIASES.get(fmt, fmt))


def _get(section: Any, key: str, default: Any) -> Any:
    if isinstance(section, Mapping):
        return section.get(key, default)
    return default


def _page_url(page: int, page_size: int) -> str:
    return f"?page={page}&pageSize={page_size}"
