"""RequestParameterParser — format detection and delegation.

Strategies are tried in a declared priority order, most distinctive
signature first. Signatures overlap (a request can carry both
``startRow``/``endRow`` and ``filterModel``), so the first strategy whose
``can_handle`` succeeds wins. The simple strategy accepts everything and
sits last.
"""

import logging
from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from typing import Any

from gravitycar.formatting import ResponseFormatter
from gravitycar.parsing.advanced import AdvancedRequestParser
from gravitycar.parsing.ag_grid import AgGridRequestParser
from gravitycar.parsing.base import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, FormatParser
from gravitycar.parsing.mui import MuiDataGridRequestParser
from gravitycar.parsing.simple import SimpleRequestParser
from gravitycar.parsing.structured import StructuredRequestParser

logger = logging.getLogger("gravitycar.parsing")

FALLBACK_FORMAT = "simple"

# Strategy classes in priority order.
DEFAULT_PRIORITY: tuple[type[FormatParser], ...] = (
    AgGridRequestParser,
    MuiDataGridRequestParser,
    AdvancedRequestParser,
    StructuredRequestParser,
    SimpleRequestParser,
)


class RequestParameterParser:
    """Detects the request format and normalizes parameters with it.

    Usage::

        parser = RequestParameterParser()
        parsed = parser.parse_unified({"startRow": "0", "endRow": "100"})
        parsed["meta"]["detectedFormat"]   # "ag-grid"
    """

    def __init__(
        self,
        parsers: Sequence[FormatParser] | None = None,
        *,
        max_page_size: int = MAX_PAGE_SIZE,
        default_page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        if parsers is None:
            parsers = [
                cls(max_page_size=max_page_size, default_page_size=default_page_size) for cls in DEFAULT_PRIORITY
            ]
        self.parsers: list[FormatParser] = list(parsers)
        self._fallback = next(
            (p for p in self.parsers if p.get_format_name() == FALLBACK_FORMAT),
            SimpleRequestParser(max_page_size=max_page_size, default_page_size=default_page_size),
        )

    def detect_format(self, data: Mapping[str, Any]) -> str:
        for parser in self.parsers:
            if parser.can_handle(data):
                logger.debug("Format detected: %s (%s)", parser.get_format_name(), type(parser).__name__)
                return parser.get_format_name()
        return FALLBACK_FORMAT

    def get_parser_for_format(self, fmt: str) -> FormatParser:
        for parser in self.parsers:
            if parser.get_format_name() == fmt:
                return parser
        return self._fallback

    def parse_unified(self, data: Mapping[str, Any]) -> dict[str, Any]:
        """Parse with the detected strategy and attach detection metadata."""
        fmt = self.detect_format(data)
        parser = self.get_parser_for_format(fmt)
        result = parser.parse(data)

        requested = data.get("responseFormat") or data.get("format")
        if isinstance(requested, str) and ResponseFormatter.is_valid_format(requested):
            result["responseFormat"] = requested

        result["meta"] = {
            "detectedFormat": fmt,
            "parserClass": type(parser).__name__,
            "originalParamCount": len(data),
            "parsedAt": datetime.now(UTC).isoformat(),
        }
        logger.info(
            "Parsed %s request: %d filters, %d sorts, search=%s, page=%s",
            fmt,
            len(result.get("filters", [])),
            len(result.get("sorting", [])),
            bool(result.get("search", {}).get("term")),
            result.get("pagination", {}).get("page"),
        )
        return result

    def parse_filters(self, data: Mapping[str, Any], fmt: str) -> list[dict[str, Any]]:
        return self.get_parser_for_format(fmt).parse(data).get("filters", [])

    def parse_pagination(self, data: Mapping[str, Any], fmt: str) -> dict[str, Any]:
        return self.get_parser_for_format(fmt).parse(data).get("pagination", {})

    def parse_sorting(self, data: Mapping[str, Any], fmt: str) -> list[dict[str, Any]]:
        return self.get_parser_for_format(fmt).parse(data).get("sorting", [])

    def parse_search(self, data: Mapping[str, Any], fmt: str) -> dict[str, Any]:
        return self.get_parser_for_format(fmt).parse(data).get("search", {})

    def available_formats(self) -> list[str]:
        """Strategy names in priority order."""
        return [p.get_format_name() for p in self.parsers]
