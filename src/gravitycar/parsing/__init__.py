"""Request parameter parsing — one strategy per client library.

Usage::

    from gravitycar.parsing import RequestParameterParser

    parsed = RequestParameterParser().parse_unified(request_data)
    parsed["pagination"], parsed["filters"], parsed["sorting"], parsed["search"]
"""

from gravitycar.parsing.advanced import AdvancedRequestParser
from gravitycar.parsing.ag_grid import AgGridRequestParser
from gravitycar.parsing.base import FormatParser, nest_params, sanitize_field_name
from gravitycar.parsing.coordinator import RequestParameterParser
from gravitycar.parsing.mui import MuiDataGridRequestParser
from gravitycar.parsing.simple import SimpleRequestParser
from gravitycar.parsing.structured import StructuredRequestParser

__all__ = [
    "AdvancedRequestParser",
    "AgGridRequestParser",
    "FormatParser",
    "MuiDataGridRequestParser",
    "RequestParameterParser",
    "SimpleRequestParser",
    "StructuredRequestParser",
    "nest_params",
    "sanitize_field_name",
]
