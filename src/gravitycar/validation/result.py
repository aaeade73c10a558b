"""Validation result — mutable builder for aggregate parameter errors."""

from datetime import UTC, datetime
from typing import Any

from gravitycar.errors import ParameterValidationError


class ParameterValidationResult:
    """Accumulates every parameter problem found in one request.

    Passed through each validation step instead of raising on the first
    problem; the caller checks ``has_errors`` at the end::

        result = ParameterValidationResult()
        validate_filters(params, model, result)
        validate_sorting(params, model, result)
        result.raise_if_errors()

    The result is falsy when it holds errors, so ``if not result:`` reads
    the same way it does for a passing check.
    """

    __slots__ = ("_errors", "_suggestions")

    def __init__(self) -> None:
        self._errors: list[dict[str, Any]] = []
        self._suggestions: list[str] = []

    def add_error(self, field: str, error: str, value: Any = None) -> None:
        self._errors.append(
            {
                "field": field,
                "error": error,
                "value": value,
                "timestamp": datetime.now(UTC).isoformat(),
            }
        )

    def add_suggestion(self, suggestion: str) -> None:
        if suggestion not in self._suggestions:
            self._suggestions.append(suggestion)

    @property
    def errors(self) -> list[dict[str, Any]]:
        return list(self._errors)

    @property
    def suggestions(self) -> list[str]:
        return list(self._suggestions)

    @property
    def has_errors(self) -> bool:
        return bool(self._errors)

    @property
    def error_count(self) -> int:
        return len(self._errors)

    def errors_for(self, field: str) -> list[dict[str, Any]]:
        return [e for e in self._errors if e["field"] == field]

    def __bool__(self) -> bool:
        """Falsy when errors were recorded."""
        return not self._errors

    def to_error(self, detail: str = "Parameter validation failed") -> ParameterValidationError:
        """Convert the accumulated problems into one raisable error."""
        return ParameterValidationError(detail, errors=self.errors, suggestions=self.suggestions)

    def raise_if_errors(self, detail: str = "Parameter validation failed") -> None:
        if self._errors:
            raise self.to_error(detail)
