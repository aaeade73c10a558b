"""Model-aware validation — filters, search, aggregate results.

Usage::

    from gravitycar.validation import FilterCriteria, SearchEngine

    filters = FilterCriteria().validate_and_filter_for_model(parsed["filters"], model)
    search = SearchEngine().validate_search_for_model(parsed["search"], model)

Invalid entries are dropped and logged; nothing is substituted for them.
"""

from gravitycar.validation.fields import FieldKind
from gravitycar.validation.filters import FilterCriteria
from gravitycar.validation.result import ParameterValidationResult
from gravitycar.validation.search import SearchEngine

__all__ = [
    "FieldKind",
    "FilterCriteria",
    "ParameterValidationResult",
    "SearchEngine",
]
