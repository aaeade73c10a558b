"""Plain ``field=value`` parameters; the unconditional fallback.

Every key outside ``RESERVED_PARAMS`` becomes an equals filter, so
``?status=active&page=2`` filters on ``status`` and pages to 2.
"""

import logging
from collections.abc import Mapping
from typing import Any

from gravitycar.parsing.base import DEFAULT_PAGE, FormatParser, split_list, to_int

logger = logging.getLogger("gravitycar.parsing")

RESERVED_PARAMS = frozenset(
    {
        "page",
        "pageSize",
        "per_page",
        "offset",
        "limit",
        "sortBy",
        "sortOrder",
        "sort",
        "search",
        "search_fields",
        "q",
        "include_total",
        "include_available_filters",
        "responseFormat",
        "format",
    }
)


class SimpleRequestParser(FormatParser):
    name = "simple"

    def can_handle(self, data: Mapping[str, Any]) -> bool:
        return True

    def parse(self, data: Mapping[str, Any]) -> dict[str, Any]:
        parsed = {
            "pagination": self.parse_pagination(data),
            "sorting": self.parse_sorting(data),
            "filters": self.parse_filters(data),
            "search": self.parse_search(data),
            "responseFormat": self.name,
        }
        logger.debug("Simple parse: %d filters, %d sorts", len(parsed["filters"]), len(parsed["sorting"]))
        return parsed

    def parse_pagination(self, data: Mapping[str, Any]) -> dict[str, Any]:
        page = to_int(data.get("page"), DEFAULT_PAGE) if "page" in data else DEFAULT_PAGE
        raw_size = data.get("pageSize", data.get("per_page"))
        page_size = to_int(raw_size, self.default_page_size) if raw_size is not None else self.default_page_size
        return self.create_pagination_structure(page, page_size)

    def parse_sorting(self, data: Mapping[str, Any]) -> list[dict[str, Any]]:
        sorting = []
        if data.get("sortBy"):
            sorting.append(self.create_sort_structure(data["sortBy"], data.get("sortOrder", "asc")))
        sort = data.get("sort")
        if isinstance(sort, str):
            for pair in sort.split(","):
                field, _, direction = pair.strip().partition(":")
                if field.strip():
                    sorting.append(self.create_sort_structure(field.strip(), direction.strip() or "asc"))
        return sorting

    def parse_filters(self, data: Mapping[str, Any]) -> list[dict[str, Any]]:
        filters = []
        for key, value in data.items():
            if key in RESERVED_PARAMS or value is None or value == "" or isinstance(value, Mapping):
                continue
            filters.append(self.create_filter_structure(key, "equals", value))
        return filters

    def parse_search(self, data: Mapping[str, Any]) -> dict[str, Any]:
        term = data.get("search") or data.get("q") or ""
        fields = data.get("search_fields")
        return self.search_structure(term, split_list(fields) if fields else None)
