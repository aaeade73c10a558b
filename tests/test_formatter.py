"""Tests for gravitycar.formatting — response envelopes per client library."""

from typing import Any

from gravitycar.formatting import ResponseFormatter

ROWS = [{"id": 1}, {"id": 2}]


def _meta(page: int = 1, page_size: int = 2, total: int = 5, **extra: Any) -> dict[str, Any]:
    params = {
        "pagination": {"page": page, "pageSize": page_size, "offset": (page - 1) * page_size, "limit": page_size},
        "filters": [{"field": "status", "operator": "equals", "value": "active"}],
        "sorting": [{"field": "id", "direction": "asc"}],
        "search": {"term": "ada", "fields": ["username"], "operator": "contains"},
    }
    meta = ResponseFormatter.build_meta(params, total, len(ROWS))
    meta.update(extra)
    return meta


class TestBuildMeta:
    def test_pagination_derived_from_total(self) -> None:
        pagination = _meta(page=2)["pagination"]
        assert pagination["pageCount"] == 3
        assert pagination["hasNextPage"] is True
        assert pagination["hasPreviousPage"] is True
        assert pagination["offset"] == 2
        assert pagination["nextCursor"] == "4"
        assert pagination["startCursor"] == "2"
        assert pagination["endCursor"] == "3"

    def test_last_page(self) -> None:
        pagination = _meta(page=3)["pagination"]
        assert pagination["hasNextPage"] is False
        assert pagination["nextCursor"] is None

    def test_applied_sections(self) -> None:
        meta = _meta()
        assert meta["filters"]["applied"][0]["field"] == "status"
        assert meta["sorting"]["applied"] == [{"field": "id", "direction": "asc"}]
        assert meta["search"]["applied"]["term"] == "ada"

    def test_empty_params(self) -> None:
        meta = ResponseFormatter.build_meta({}, 0)
        assert meta["pagination"]["page"] == 1
        assert meta["pagination"]["pageCount"] == 0
        assert meta["search"]["applied"] == {}
        assert "startCursor" not in meta["pagination"]


class TestFormats:
    def test_standard(self) -> None:
        body = ResponseFormatter().format(ROWS, _meta(), "standard")
        assert body["success"] is True
        assert body["data"] == ROWS
        assert body["pagination"]["total"] == 5
        assert body["meta"]["pagination"]["pageCount"] == 3
        assert body["meta"]["filters"]["applied"][0]["value"] == "active"

    def test_unknown_format_is_standard(self) -> None:
        formatter = ResponseFormatter()
        assert formatter.format(ROWS, _meta(), "xml") == formatter.format(ROWS, _meta(), "standard")

    def test_ag_grid_last_row_unknown_while_more_rows(self) -> None:
        body = ResponseFormatter().format(ROWS, _meta(page=1), "ag-grid")
        assert body["lastRow"] is None
        assert "meta" not in body

    def test_ag_grid_last_row_on_final_page(self) -> None:
        body = ResponseFormatter().format([{"id": 5}], _meta(page=3), "ag-grid")
        assert body["lastRow"] == 5

    def test_ag_grid_debug_meta(self) -> None:
        body = ResponseFormatter().format(ROWS, _meta(debug=True), "ag-grid")
        assert body["meta"]["pagination"]["total"] == 5

    def test_mui_zero_based_page(self) -> None:
        body = ResponseFormatter().format(ROWS, _meta(page=2), "mui")
        assert body["rowCount"] == 5
        assert body["meta"] == {
            "page": 1,
            "pageSize": 2,
            "total": 5,
            "hasNextPage": True,
            "hasPreviousPage": True,
        }

    def test_mui_datagrid_alias(self) -> None:
        body = ResponseFormatter().format(ROWS, _meta(), "mui-datagrid")
        assert "rowCount" in body

    def test_tanstack_query_links(self) -> None:
        body = ResponseFormatter().format(ROWS, _meta(page=2), "tanstack-query")
        assert body["links"] == {
            "first": "?page=1&pageSize=2",
            "prev": "?page=1&pageSize=2",
            "next": "?page=3&pageSize=2",
            "last": "?page=3&pageSize=2",
            "self": "?page=2&pageSize=2",
        }
        assert "T" in body["timestamp"]

    def test_react_query_alias(self) -> None:
        body = ResponseFormatter().format(ROWS, _meta(), "react-query")
        assert "links" in body

    def test_swr(self) -> None:
        body = ResponseFormatter().format(ROWS, _meta(), "swr")
        assert body["pagination"] == {"current": 1, "size": 2, "total": 5, "pages": 3, "hasMore": True}
        assert len(body["cache_key"]) == 32
        assert isinstance(body["timestamp"], int)

    def test_swr_cache_key_is_stable(self) -> None:
        formatter = ResponseFormatter()
        assert formatter.generate_cache_key(_meta()) == formatter.generate_cache_key(_meta())
        assert formatter.generate_cache_key(_meta(page=1)) != formatter.generate_cache_key(_meta(page=2))

    def test_infinite_scroll(self) -> None:
        body = ResponseFormatter().format(ROWS, _meta(), "infinite-scroll")
        assert body["pagination"] == {"hasNextPage": True, "nextCursor": "2", "pageSize": 2}
        assert body["meta"]["total"] == 5

    def test_cursor(self) -> None:
        body = ResponseFormatter().format(ROWS, _meta(), "cursor")
        assert body["pageInfo"] == {
            "hasNextPage": True,
            "hasPreviousPage": False,
            "startCursor": "0",
            "endCursor": "1",
        }

    def test_performance_section(self) -> None:
        body = ResponseFormatter().format(ROWS, _meta(query_time=1.5), "standard")
        assert body["meta"]["performance"] == {"query_time_ms": 1.5, "total_records": 5}


class TestFormatCatalogue:
    def test_available_formats(self) -> None:
        formats = ResponseFormatter.available_formats()
        assert set(formats) == {"standard", "ag-grid", "mui", "tanstack-query", "swr", "infinite-scroll", "cursor"}

    def test_is_valid_format(self) -> None:
        assert ResponseFormatter.is_valid_format("swr")
        assert ResponseFormatter.is_valid_format("mui-datagrid")
        assert not ResponseFormatter.is_valid_format("xml")

    def test_format_description(self) -> None:
        assert ResponseFormatter.format_description("react-query") == "TanStack Query (React Query)"
        assert ResponseFormatter.format_description("xml") is None
