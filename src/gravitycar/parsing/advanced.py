"""Advanced REST-style parameters.

Example::

    GET /Users?filter[age][gte]=18&filter[status]=active&sort=created_at:desc,name
        &per_page=50&search=john&search_fields=first_name,email&include_total=true

Signature: any of ``per_page``, ``search_fields``, ``include_total``,
``include_available_filters``, ``include_metadata``, or a ``sort``
string containing a colon.
"""

import logging
from collections.abc import Mapping
from typing import Any

from gravitycar.parsing.base import (
    SORT_DIRECTIONS,
    SPLIT_OPERATORS,
    VALID_OPERATORS,
    FormatParser,
    nest_params,
    split_list,
    to_bool,
    to_int,
)

logger = logging.getLogger("gravitycar.parsing")

SIGNATURE_KEYS = (
    "per_page",
    "search_fields",
    "include_total",
    "include_available_filters",
    "include_metadata",
)

SHORTHAND_OPERATORS: dict[str, str] = {
    "eq": "equals",
    "ne": "notEquals",
    "gt": "greaterThan",
    "gte": "greaterThanOrEqual",
    "lt": "lessThan",
    "lte": "lessThanOrEqual",
}

OPTION_FLAGS = (
    ("include_total", "includeTotal"),
    ("include_available_filters", "includeAvailableFilters"),
    ("include_metadata", "includeMetadata"),
)


class AdvancedRequestParser(FormatParser):
    name = "advanced"

    def can_handle(self, data: Mapping[str, Any]) -> bool:
        if any(key in data for key in SIGNATURE_KEYS):
            return True
        sort = data.get("sort")
        return isinstance(sort, str) and ":" in sort

    def parse(self, data: Mapping[str, Any]) -> dict[str, Any]:
        nested = nest_params(data)
        parsed = {
            "pagination": self.parse_pagination(nested),
            "filters": self.parse_filters(nested),
            "sorting": self.parse_sorting(nested),
            "search": self.parse_search(nested),
            "responseFormat": self.name,
            "options": self.parse_options(nested),
        }
        logger.debug(
            "Advanced parse: %d filters, %d sorts, options=%s",
            len(parsed["filters"]),
            len(parsed["sorting"]),
            parsed["options"],
        )
        return parsed

    def parse_pagination(self, data: Mapping[str, Any]) -> dict[str, Any]:
        raw_size = data.get("per_page", data.get("pageSize"))
        page_size = to_int(raw_size, self.default_page_size) if raw_size is not None else self.default_page_size
        return self.create_pagination_structure(to_int(data.get("page"), 1), page_size)

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
                    logger.debug("Ignoring unknown operator %r on %r", operator, field)
                    continue
                operator = self.normalize_operator(operator)
                if operator in SPLIT_OPERATORS and isinstance(value, str):
                    value = split_list(value)
                filters.append(self.create_filter_structure(field, operator, value))
        return filters

    def parse_sorting(self, data: Mapping[str, Any]) -> list[dict[str, Any]]:
        """``"created_at:desc,name"`` left to right; a bare field sorts ascending."""
        sort = data.get("sort")
        if not sort or not isinstance(sort, str):
            return []

        sorting = []
        for pair in (part.strip() for part in sort.split(",")):
            field, sep, direction = pair.partition(":")
            field = self.sanitize_field_name(field.strip())
            direction = direction.strip().lower() if sep else "asc"
            if field and direction in SORT_DIRECTIONS:
                sorting.append({"field": field, "direction": direction})
        return sorting

    def parse_search(self, data: Mapping[str, Any]) -> dict[str, Any]:
        operator = data.get("search_operator") or "contains"
        return self.search_structure(data.get("search") or "", data.get("search_fields"), str(operator))

    def parse_options(self, data: Mapping[str, Any]) -> dict[str, Any]:
        options: dict[str, Any] = {}
        for key, option in OPTION_FLAGS:
            if key in data:
                options[option] = to_bool(data[key])
        if data.get("include"):
            options["include"] = split_list(data["include"])
        return options

    def is_valid_operator(self, operator: Any) -> bool:
        return operator in VALID_OPERATORS or operator in SHORTHAND_OPERATORS

    def normalize_operator(self, operator: str) -> str:
        return SHORTHAND_OPERATORS.get(operator, operator)
