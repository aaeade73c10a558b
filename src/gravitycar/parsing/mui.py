"""MUI DataGrid server-side parameters.

Signature: a ``filterModel`` or ``sortModel`` parameter, each a JSON
string (or an already decoded value from a JSON body). Pages are
0-based on the wire and 1-based once normalized.
"""

import logging
from collections.abc import Mapping
from typing import Any

from gravitycar.parsing.base import FormatParser, to_int

logger = logging.getLogger("gravitycar.parsing")

OPERATOR_MAP: dict[str, str] = {
    # string
    "contains": "contains",
    "equals": "equals",
    "startsWith": "startsWith",
    "endsWith": "endsWith",
    "isEmpty": "isNull",
    "isNotEmpty": "isNotNull",
    "isAnyOf": "in",
    # number
    "=": "equals",
    "!=": "notEquals",
    ">": "greaterThan",
    ">=": "greaterThanOrEqual",
    "gte": "greaterThanOrEqual",
    "<": "lessThan",
    "<=": "lessThanOrEqual",
    "lte": "lessThanOrEqual",
    # date
    "is": "equals",
    "not": "notEquals",
    "after": "greaterThan",
    "onOrAfter": "greaterThanOrEqual",
    "before": "lessThan",
    "onOrBefore": "lessThanOrEqual",
    # boolean
    "true": "equals",
    "false": "equals",
}


class MuiDataGridRequestParser(FormatParser):
    name = "mui-datagrid"

    def can_handle(self, data: Mapping[str, Any]) -> bool:
        return "filterModel" in data or "sortModel" in data

    def parse(self, data: Mapping[str, Any]) -> dict[str, Any]:
        parsed = {
            "pagination": self.parse_pagination(data),
            "sorting": self.parse_sorting(data),
            "filters": self.parse_filters(data),
            "search": self.parse_search(data),
            "responseFormat": self.name,
        }
        logger.debug(
            "MUI DataGrid parse: page=%s, %d filters, %d sorts",
            parsed["pagination"]["page"],
            len(parsed["filters"]),
            len(parsed["sorting"]),
        )
        return parsed

    def parse_pagination(self, data: Mapping[str, Any]) -> dict[str, Any]:
        page = to_int(data.get("page"), 0) + 1
        page_size = to_int(data.get("pageSize"), self.default_page_size)
        return self.create_pagination_structure(page, page_size)

    def parse_sorting(self, data: Mapping[str, Any]) -> list[dict[str, Any]]:
        if "sortModel" not in data:
            return []
        sort_model = self.parse_json_parameter(data["sortModel"], [])
        if not isinstance(sort_model, list):
            return []
        return [
            self.create_sort_structure(item["field"], item["sort"])
            for item in sort_model
            if isinstance(item, Mapping) and item.get("field") and item.get("sort")
        ]

    def parse_filters(self, data: Mapping[str, Any]) -> list[dict[str, Any]]:
        if "filterModel" not in data:
            return []
        filter_model = self.parse_json_parameter(data["filterModel"], {})
        if not isinstance(filter_model, Mapping):
            return []

        filters = []
        items = filter_model.get("items")
        if isinstance(items, list):
            for item in items:
                if not isinstance(item, Mapping) or not item.get("field") or not item.get("operator"):
                    continue
                operator = self.map_operator(item["operator"])
                if operator in ("isNull", "isNotNull"):
                    filters.append(self.create_filter_structure(item["field"], operator, None))
                elif item.get("value") is not None:
                    filters.append(self.create_filter_structure(item["field"], operator, item["value"]))
            return filters

        # Alternative shape: {field: value} or {field: {op: value}}
        for field, value in filter_model.items():
            if not isinstance(field, str) or value in (None, "", [], {}):
                continue
            if isinstance(value, Mapping):
                for op, op_value in value.items():
                    filters.append(self.create_filter_structure(field, self.map_operator(op), op_value))
            else:
                filters.append(self.create_filter_structure(field, "equals", value))
        return filters

    def parse_search(self, data: Mapping[str, Any]) -> dict[str, Any]:
        return self.search_structure(data.get("search") or data.get("q") or "")

    def map_operator(self, operator: Any) -> str:
        return OPERATOR_MAP.get(str(operator), "equals")
