"""AG-Grid server-side row model parameters.

Signature: ``startRow`` and ``endRow``. Sorting arrives as
``sort[i][colId]``/``sort[i][sort]``, filters as
``filters[field][type]``/``filters[field][filter]``.
"""

import logging
from collections.abc import Mapping
from typing import Any

from gravitycar.parsing.base import FormatParser, indexed_items, nest_params, to_int

logger = logging.getLogger("gravitycar.parsing")

FILTER_TYPE_MAP: dict[str, str] = {
    "equals": "equals",
    "notEqual": "notEquals",
    "contains": "contains",
    "notContains": "notContains",
    "startsWith": "startsWith",
    "endsWith": "endsWith",
    "lessThan": "lessThan",
    "lessThanOrEqual": "lessThanOrEqual",
    "greaterThan": "greaterThan",
    "greaterThanOrEqual": "greaterThanOrEqual",
    "inRange": "between",
    "empty": "isNull",
    "notEmpty": "isNotNull",
    "blank": "isNull",
    "notBlank": "isNotNull",
}

_VALUELESS = frozenset({"isNull", "isNotNull"})


class AgGridRequestParser(FormatParser):
    name = "ag-grid"

    def can_handle(self, data: Mapping[str, Any]) -> bool:
        return "startRow" in data and "endRow" in data

    def parse(self, data: Mapping[str, Any]) -> dict[str, Any]:
        nested = nest_params(data)
        parsed = {
            "pagination": self.parse_pagination(nested),
            "sorting": self.parse_sorting(nested),
            "filters": self.parse_filters(nested),
            "search": self.parse_search(nested),
            "responseFormat": self.name,
        }
        logger.debug(
            "AG-Grid parse: startRow=%s endRow=%s, %d filters, %d sorts",
            nested.get("startRow"),
            nested.get("endRow"),
            len(parsed["filters"]),
            len(parsed["sorting"]),
        )
        return parsed

    def parse_pagination(self, data: Mapping[str, Any]) -> dict[str, Any]:
        start_row = to_int(data.get("startRow"), 0)
        end_row = to_int(data.get("endRow"), start_row + self.default_page_size)
        page_size = self.constrain_page_size(end_row - start_row)
        page = start_row // page_size + 1 if page_size > 0 else 1
        return {
            "page": self.constrain_page_number(page),
            "pageSize": page_size,
            "offset": start_row,
            "limit": page_size,
            "startRow": start_row,
            "endRow": end_row,
        }

    def parse_sorting(self, data: Mapping[str, Any]) -> list[dict[str, Any]]:
        entries = indexed_items(data.get("sort"))
        sorting = []
        for _, entry in sorted(entries, key=lambda pair: pair[0]):
            if not isinstance(entry, Mapping) or not entry.get("colId"):
                continue
            sorting.append(self.create_sort_structure(entry["colId"], entry.get("sort", "asc")))
        return sorting

    def parse_filters(self, data: Mapping[str, Any]) -> list[dict[str, Any]]:
        raw = data.get("filters")
        if not isinstance(raw, Mapping):
            return []

        filters = []
        for field, spec in raw.items():
            if not isinstance(spec, Mapping) or "type" not in spec:
                continue
            operator = self.map_filter_type(spec["type"])
            value = spec.get("filter")
            if operator in _VALUELESS:
                filters.append(self.create_filter_structure(field, operator, None))
                continue
            if value is None or value == "":
                continue
            if operator == "between" and spec.get("filterTo") not in (None, ""):
                value = [value, spec["filterTo"]]
            filters.append(self.create_filter_structure(field, operator, value))
        return filters

    def parse_search(self, data: Mapping[str, Any]) -> dict[str, Any]:
        term = data.get("globalFilter") or data.get("search") or ""
        return self.search_structure(term)

    def map_filter_type(self, filter_type: Any) -> str:
        return FILTER_TYPE_MAP.get(str(filter_type), "equals")
