"""InMemoryRecordStore — dict-backed ``RecordStore`` for development and tests.

Applies the Request's validated envelope in Python: filters, then
search, then sorting, then pagination. Deletes are soft (``deleted_at``
is set) so ``list_deleted`` and ``restore`` have something to work on.
"""

from __future__ import annotations

import itertools
import logging
import threading
from collections.abc import Callable, Mapping, Sequence
from datetime import UTC, datetime
from typing import Any

logger = logging.getLogger("gravitycar.controllers")

DELETED_AT = "deleted_at"


def _compare(a: Any, b: Any, op: Callable[[Any, Any], bool]) -> bool:
    if a is None or b is None:
        return False
    try:
        return op(a, b)
    except TypeError:
        return op(str(a), str(b))


def _equals(a: Any, b: Any) -> bool:
    return a == b or (a is not None and b is not None and str(a) == str(b))


def _as_list(value: Any) -> list[Any]:
    return list(value) if isinstance(value, (list, tuple, set)) else [value]


def _between(a: Any, b: Any) -> bool:
    bounds = _as_list(b)
    if len(bounds) != 2:
        return False
    return _compare(a, bounds[0], lambda x, y: x >= y) and _compare(a, bounds[1], lambda x, y: x <= y)


def _text(a: Any) -> str:
    return "" if a is None else str(a).lower()


FILTER_OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "equals": _equals,
    "notEquals": lambda a, b: not _equals(a, b),
    "contains": lambda a, b: _text(b) in _text(a),
    "startsWith": lambda a, b: _text(a).startswith(_text(b)),
    "endsWith": lambda a, b: _text(a).endswith(_text(b)),
    "in": lambda a, b: any(_equals(a, v) for v in _as_list(b)),
    "notIn": lambda a, b: not any(_equals(a, v) for v in _as_list(b)),
    "greaterThan": lambda a, b: _compare(a, b, lambda x, y: x > y),
    "greaterThanOrEqual": lambda a, b: _compare(a, b, lambda x, y: x >= y),
    "lessThan": lambda a, b: _compare(a, b, lambda x, y: x < y),
    "lessThanOrEqual": lambda a, b: _compare(a, b, lambda x, y: x <= y),
    "between": _between,
    "isNull": lambda a, b: a is None or a == "",
    "isNotNull": lambda a, b: a is not None and a != "",
    "overlap": lambda a, b: bool(set(map(str, _as_list(a or []))) & set(map(str, _as_list(b)))),
    "containsAll": lambda a, b: set(map(str, _as_list(b))) <= set(map(str, _as_list(a or []))),
    "containsNone": lambda a, b: not set(map(str, _as_list(a or []))) & set(map(str, _as_list(b))),
}

SEARCH_OPERATORS: dict[str, Callable[[str, str], bool]] = {
    "contains": lambda text, term: term in text,
    "startsWith": lambda text, term: text.startswith(term),
    "endsWith": lambda text, term: text.endswith(term),
    "equals": lambda text, term: text == term,
    "fullText": lambda text, term: all(word in text for word in term.split()),
}


class InMemoryRecordStore:
    """Records per model, keyed by string id.

    Usage::

        store = InMemoryRecordStore({"Users": [{"id": "1", "username": "ada"}]})
        rows, total = store.list("Users", {"filters": [], "pagination": {"offset": 0, "limit": 20}})
    """

    def __init__(self, seed: Mapping[str, Sequence[Mapping[str, Any]]] | None = None) -> None:
        self._tables: dict[str, dict[str, dict[str, Any]]] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()
        for model, rows in (seed or {}).items():
            for row in rows:
                self.create(model, row)

    def _table(self, model: str) -> dict[str, dict[str, Any]]:
        return self._tables.setdefault(model.lower(), {})

    # -- Reads --

    def list(self, model: str, params: Mapping[str, Any]) -> tuple[list[dict[str, Any]], int]:
        rows = [row for row in self._table(model).values() if row.get(DELETED_AT) is None]
        return self._query(rows, params)

    def list_deleted(self, model: str, params: Mapping[str, Any]) -> tuple[list[dict[str, Any]], int]:
        rows = [row for row in self._table(model).values() if row.get(DELETED_AT) is not None]
        return self._query(rows, params)

    def get(self, model: str, record_id: str) -> dict[str, Any] | None:
        row = self._table(model).get(str(record_id))
        if row is None or row.get(DELETED_AT) is not None:
            return None
        return dict(row)

    # -- Writes --

    def create(self, model: str, data: Mapping[str, Any]) -> dict[str, Any]:
        with self._lock:
            table = self._table(model)
            row = dict(data)
            record_id = str(row.get("id") or "")
            if not record_id:
                record_id = next(str(i) for i in self._ids if str(i) not in table)
            row["id"] = record_id
            row.setdefault(DELETED_AT, None)
            table[record_id] = row
        return dict(row)

    def update(self, model: str, record_id: str, data: Mapping[str, Any]) -> dict[str, Any] | None:
        with self._lock:
            row = self._table(model).get(str(record_id))
            if row is None or row.get(DELETED_AT) is not None:
                return None
            row.update({k: v for k, v in data.items() if k != "id"})
            return dict(row)

    def delete(self, model: str, record_id: str) -> bool:
        with self._lock:
            row = self._table(model).get(str(record_id))
            if row is None or row.get(DELETED_AT) is not None:
                return False
            row[DELETED_AT] = datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S")
            return True

    def restore(self, model: str, record_id: str) -> dict[str, Any] | None:
        with self._lock:
            row = self._table(model).get(str(record_id))
            if row is None or row.get(DELETED_AT) is None:
                return None
            row[DELETED_AT] = None
            return dict(row)

    # -- Query evaluation --

    def _query(self, rows: list[dict[str, Any]], params: Mapping[str, Any]) -> tuple[list[dict[str, Any]], int]:
        for item in params.get("filters") or ():
            check = FILTER_OPERATORS.get(item.get("operator", ""))
            if check is None:
                logger.warning("Unknown filter operator %r ignored", item.get("operator"))
                continue
            rows = [row for row in rows if check(row.get(item["field"]), item.get("value"))]

        search = params.get("search") or {}
        if search.get("term") and search.get("fields"):
            rows = [row for row in rows if self._search_matches(row, search)]

        # Stable sorts applied last key first give multi-key ordering
        for entry in reversed(list(params.get("sorting") or ())):
            field = entry["field"]
            present = [row for row in rows if row.get(field) is not None]
            missing = [row for row in rows if row.get(field) is None]
            present.sort(key=lambda row: _sort_key(row[field]), reverse=entry.get("direction") == "desc")
            rows = present + missing

        total = len(rows)
        pagination = params.get("pagination") or {}
        offset = int(pagination.get("offset") or 0)
        limit = pagination.get("limit")
        page = rows[offset : offset + int(limit)] if limit else rows[offset:]
        return [dict(row) for row in page], total

    def _search_matches(self, row: Mapping[str, Any], search: Mapping[str, Any]) -> bool:
        term = str(search["term"]).lower()
        matches = SEARCH_OPERATORS.get(search.get("operator", "contains"), SEARCH_OPERATORS["contains"])
        return any(matches(_text(row.get(field)), term) for field in search["fields"])

    def __len__(self) -> int:
        return sum(len(table) for table in self._tables.values())


def _sort_key(value: Any) -> tuple[int, Any]:
    # Numbers before strings so mixed columns still sort
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (0, value)
    return (1, str(value).lower())
