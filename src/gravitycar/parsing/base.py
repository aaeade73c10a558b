"""FormatParser base class and the helpers every strategy shares.

A strategy recognises one client library's query-parameter convention
(``can_handle``) and normalizes it into the unified envelope (``parse``)::

    {
        "pagination": {"page", "pageSize", "offset", "limit", ...},
        "sorting": [{"field", "direction"}, ...],
        "filters": [{"field", "operator", "value"}, ...],
        "search": {"term", "fields", "operator"},
        "responseFormat": "<format name>",
    }

Raw parameters arrive either flat (``filter[age][gte]=18`` straight from
the query string) or already nested (JSON bodies). ``nest_params`` turns
the former into the latter so strategies only handle one shape.
"""

import json
import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

logger = logging.getLogger("gravitycar.parsing")

MAX_PAGE_SIZE = 1000
DEFAULT_PAGE_SIZE = 20
DEFAULT_PAGE = 1

SORT_DIRECTIONS = ("asc", "desc")

# Standard filter operators, shared by the structured and advanced strategies.
VALID_OPERATORS = (
    "equals",
    "notEquals",
    "contains",
    "startsWith",
    "endsWith",
    "in",
    "notIn",
    "greaterThan",
    "greaterThanOrEqual",
    "lessThan",
    "lessThanOrEqual",
    "between",
    "isNull",
    "isNotNull",
    "overlap",
    "containsAll",
    "containsNone",
)

# Operators whose comma-separated string values are split into lists.
SPLIT_OPERATORS = frozenset({"in", "notIn", "between"})

_FIELD_NAME_RE = re.compile(r"[^a-zA-Z0-9_.]")
_BRACKET_KEY_RE = re.compile(r"^([^\[\]]+)((?:\[[^\[\]]*\])+)$")
_BRACKET_PART_RE = re.compile(r"\[([^\[\]]*)\]")
_TRUE_VALUES = ("true", "1", "yes", "on")


# ---------------------------------------------------------------------------
# Bracket-key nesting
# ---------------------------------------------------------------------------


def nest_params(data: Mapping[str, Any]) -> dict[str, Any]:
    """Nest flat bracket keys into dicts.

    ``{"filter[age][gte]": "18", "page": "2"}`` becomes
    ``{"filter": {"age": {"gte": "18"}}, "page": "2"}``. An empty trailing
    bracket (``ids[]=1&ids[]=2``) collects values into a list. Keys
    without brackets and already nested values pass through unchanged.
    """
    nested: dict[str, Any] = {}
    for key, value in data.items():
        match = _BRACKET_KEY_RE.match(key) if isinstance(key, str) else None
        if match is None:
            _merge(nested, key, value)
            continue
        parts = [match.group(1), *_BRACKET_PART_RE.findall(match.group(2))]
        if parts[-1] == "":
            _append(nested, parts[:-1], value)
        else:
            _merge(_container(nested, parts[:-1]), parts[-1], value)
    return nested


def _container(target: dict[str, Any], parts: list[str]) -> dict[str, Any]:
    node = target
    for part in parts:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    return node


def _merge(target: dict[str, Any], key: str, value: Any) -> None:
    if isinstance(value, Mapping):
        existing = target.get(key)
        if not isinstance(existing, dict):
            existing = {}
            target[key] = existing
        for sub_key, sub_value in value.items():
            _merge(existing, sub_key, sub_value)
    else:
        target[key] = value


def _append(target: dict[str, Any], parts: list[str], value: Any) -> None:
    parent = _container(target, parts[:-1])
    existing = parent.get(parts[-1])
    if not isinstance(existing, list):
        existing = []
        parent[parts[-1]] = existing
    if isinstance(value, list):
        existing.extend(value)
    else:
        existing.append(value)


# ---------------------------------------------------------------------------
# Scalar helpers
# ---------------------------------------------------------------------------


def to_int(value: Any, default: int = 0) -> int:
    """Integer value of *value*, or *default* when it is not numeric."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        try:
            return int(float(value.strip()))
        except (ValueError, OverflowError):
            return default
    return default


def to_bool(value: Any) -> bool:
    """``true``/``1``/``yes``/``on`` (any case) are true."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_VALUES
    return bool(value)


def split_list(value: Any) -> list[Any]:
    """Comma-split strings; lists pass through; anything else is wrapped."""
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, Mapping):
        return list(value.values())
    return [value]


def indexed_items(value: Any) -> list[tuple[int, Any]]:
    """``{"0": x, "1": y}`` or ``[x, y]`` as ``(index, item)`` pairs."""
    if isinstance(value, list):
        return list(enumerate(value))
    if isinstance(value, Mapping):
        return [(int(key), item) for key, item in value.items() if str(key).isdigit()]
    return []


def sanitize_field_name(name: Any) -> str:
    """Strip everything except letters, digits, underscore and dot."""
    return _FIELD_NAME_RE.sub("", str(name))


class FormatParser(ABC):
    """One client library's query-parameter convention."""

    name: str = ""

    def __init__(self, *, max_page_size: int = MAX_PAGE_SIZE, default_page_size: int = DEFAULT_PAGE_SIZE) -> None:
        self.max_page_size = max_page_size
        self.default_page_size = default_page_size

    @abstractmethod
    def can_handle(self, data: Mapping[str, Any]) -> bool:
        """True when *data* carries this format's signature."""

    @abstractmethod
    def parse(self, data: Mapping[str, Any]) -> dict[str, Any]:
        """Normalize *data* into the unified envelope."""

    def get_format_name(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"

    # -- Shared normalization --

    def sanitize_field_name(self, name: Any) -> str:
        return sanitize_field_name(name)

    def constrain_page_size(self, page_size: int) -> int:
        if page_size <= 0:
            return self.default_page_size
        if page_size > self.max_page_size:
            logger.warning(
                "Page size %d exceeds maximum %d, constraining",
                page_size,
                self.max_page_size,
            )
            return self.max_page_size
        return page_size

    def constrain_page_number(self, page: int) -> int:
        return max(DEFAULT_PAGE, page)

    def parse_sort_direction(self, direction: Any) -> str:
        direction = str(direction or "").strip().lower()
        return direction if direction in SORT_DIRECTIONS else "asc"

    def create_pagination_structure(self, page: int, page_size: int, offset: int | None = None) -> dict[str, Any]:
        page = self.constrain_page_number(page)
        page_size = self.constrain_page_size(page_size)
        return {
            "page": page,
            "pageSize": page_size,
            "offset": offset if offset is not None else (page - 1) * page_size,
            "limit": page_size,
        }

    def create_filter_structure(self, field: Any, operator: str, value: Any) -> dict[str, Any]:
        return {
            "field": self.sanitize_field_name(field),
            "operator": operator,
            "value": value,
        }

    def create_sort_structure(self, field: Any, direction: Any) -> dict[str, Any]:
        return {
            "field": self.sanitize_field_name(field),
            "direction": self.parse_sort_direction(direction),
        }

    def parse_json_parameter(self, raw: Any, fallback: Any = None) -> Any:
        """Decode a JSON-encoded parameter, returning *fallback* on any error.

        Already-decoded lists and dicts (JSON request bodies) pass through.
        """
        if fallback is None:
            fallback = []
        if isinstance(raw, (list, dict)):
            return raw
        if not isinstance(raw, (str, bytes)):
            return fallback
        try:
            decoded = json.loads(raw)
        except ValueError:
            logger.warning("Failed to parse JSON parameter: %.200s", raw)
            return fallback
        if isinstance(decoded, (list, dict)):
            return decoded
        return fallback

    def search_structure(self, term: Any, fields: Any = None, operator: str = "contains") -> dict[str, Any]:
        """``{term, fields, operator}`` with an empty field list when none given."""
        text = term.strip() if isinstance(term, str) else ""
        field_list: list[str] = []
        if fields:
            field_list = [self.sanitize_field_name(f) for f in split_list(fields)]
            field_list = [f for f in field_list if f]
        return {"term": text, "fields": field_list, "operator": operator}
