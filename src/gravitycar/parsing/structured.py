"""Structured ``filter[field][operator]=value`` parameters.

Example::

    GET /Users?startRow=0&endRow=100&filter[role][equals]=admin
        &filter[age][between]=18,65&sort[0][field]=created_at&sort[0][direction]=desc

Signature: a ``filter`` map where some field carries a recognised
operator key, or an indexed ``sort`` list of ``{field, direction}`` maps.
"""

import logging
from collections.abc import Mapping
from typing import Any

from gravitycar.parsing.base import (
    SORT_DIRECTIONS,
    SPLIT_OPERATORS,
    VALID_OPERATORS,
    FormatParser,
    indexed_items,
    nest_params,
    split_list,
    to_int,
)

logger = logging.getLogger("gravitycar.parsing")


class StructuredRequestParser(FormatParser):
    name = "structured"

    def can_handle(self, data: Mapping[str, Any]) -> bool:
        nested = nest_params(data)
        filters = nested.get("filter")
        if isinstance(filters, Mapping):
            for spec in filters.values():
                if isinstance(spec, Mapping) and any(self.is_valid_operator(key) for key in spec):
                    return True
        for _, entry in indexed_items(nested.get("sort")):
            if isinstance(entry, Mapping) and "field" in entry:
                return True
        return False

    def parse(self, data: Mapping[str, Any]) -> dict[str, Any]:
        nested = nest_params(data)
        logger.debug("Structured parse of keys %s", sorted(nested))
        return {
            "pagination": self.parse_pagination(nested),
            "filters": self.parse_filters(nested),
            "sorting": self.parse_sorting(nested),
            "search": self.parse_search(nested),
            "responseFormat": self.name,
        }

    def parse_pagination(self, data: Mapping[str, Any]) -> dict[str, Any]:
        if "startRow" in data and "endRow" in data:
            start_row = to_int(data["startRow"], 0)
            page_size = self.constrain_page_size(to_int(data["endRow"], 0) - start_row)
            return self.create_pagination_structure(start_row // page_size + 1, page_size, offset=start_row)
        page = to_int(data.get("page"), 1)
        page_size = to_int(data.get("pageSize"), self.default_page_size)
        return self.create_pagination_structure(page, page_size)

    def parse_filters(self, data: Mapping[str, Any]) -> list[dict[str, Any]]:
        raw = data.get("filter")
        if not isinstance(raw, Mapping):
            return []

        filters = []
        for field, spec in raw.items():
            if not self.sanitize_field_name(field):
                continue
            if not isinstance(spec, Mapping):
                filters.append(self.create_filter_structure(field, "equals", spec))
                continue
            for operator, value in spec.items():
                if not self.is_valid_operator(operator):
                    continue
                if operator in SPLIT_OPERATORS and isinstance(value, str):
                    value = split_list(value)
                filters.append(self.create_filter_structure(field, operator, value))
        return filters

    def parse_sorting(self, data: Mapping[str, Any]) -> list[dict[str, Any]]:
        sorting = []
        for _, entry in sorted(indexed_items(data.get("sort")), key=lambda pair: pair[0]):
            if not isinstance(entry, Mapping):
                continue
            field = self.sanitize_field_name(entry.get("field", ""))
            direction = str(entry.get("direction", "asc")).lower()
            if field and direction in SORT_DIRECTIONS:
                sorting.append({"field": field, "direction": direction})
        return sorting

    def parse_search(self, data: Mapping[str, Any]) -> dict[str, Any]:
        return self.search_structure(data.get("search") or "", data.get("searchFields"))

    def is_valid_operator(self, operator: Any) -> bool:
        return operator in VALID_OPERATORS
