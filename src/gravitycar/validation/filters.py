"""Model-aware filter validation.

``FilterCriteria.validate_and_filter_for_model`` checks each normalized
filter against the target model: the field must exist, be persisted and
support the operator, and the value must coerce to the field's kind.
Filters that fail any check are dropped with a warning; the caller gets
only the subset that passed.
"""

import logging
import math
import re
from collections.abc import Callable, Mapping, Sequence
from datetime import UTC, datetime, timedelta
from typing import Any

from gravitycar.contracts import FieldCapabilities, Model
from gravitycar.validation.fields import (
    ARRAY_OPERATORS,
    FIELD_KIND_DESCRIPTIONS,
    LIST_OPERATORS,
    NULL_OPERATORS,
    OPERATOR_DESCRIPTIONS,
    FieldKind,
)

logger = logging.getLogger("gravitycar.validation")

_TRUE_STRINGS = ("true", "1", "yes", "on")
_FALSE_STRINGS = ("false", "0", "no", "off")

_NUMERIC_RE = re.compile(r"^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?\s*$")

_DATE_FORMATS = (
    "%Y/%m/%d",
    "%Y/%m/%d %H:%M:%S",
    "%m/%d/%Y",
    "%m/%d/%Y %H:%M:%S",
    "%d-%m-%Y",
    "%B %d, %Y",
    "%B %d %Y",
    "%b %d, %Y",
    "%b %d %Y",
    "%d %B %Y",
    "%d %b %Y",
)

_RELATIVE_DAYS = {"today": 0, "yesterday": -1, "tomorrow": 1}

CANONICAL_DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"


# ---------------------------------------------------------------------------
# Value coercion helpers
# ---------------------------------------------------------------------------


def is_numeric(value: Any) -> bool:
    """True for ints, finite floats and numeric strings (bools excluded)."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    if isinstance(value, float):
        return math.isfinite(value)
    return isinstance(value, str) and bool(_NUMERIC_RE.match(value)) and math.isfinite(float(value))


def to_integer(value: Any) -> int:
    """Truncate a value already accepted by :func:`is_numeric`."""
    return value if isinstance(value, int) else int(float(value))


def parse_datetime(value: Any) -> datetime | None:
    """Parse a date string in any of the common formats, or None."""
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None

    lowered = text.lower()
    if lowered == "now":
        return datetime.now().replace(microsecond=0)
    if lowered in _RELATIVE_DAYS:
        midnight = datetime.now().replace(hour=0, minute=0, second=0, microsecond=0)
        return midnight + timedelta(days=_RELATIVE_DAYS[lowered])

    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        parsed = None
    if parsed is None:
        for fmt in _DATE_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue
    if parsed is None:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(UTC).replace(tzinfo=None)
    return parsed


def option_matches(value: Any, options: Mapping[str, str]) -> bool:
    """True when *value* is one of the option keys or labels."""
    if isinstance(value, (list, dict)):
        return False
    text = str(value)
    return text in options or text in (str(v) for v in options.values())


class FilterCriteria:
    """Validates normalized filters against a model's fields."""

    def __init__(self) -> None:
        self._validators: dict[FieldKind, Callable[[Any, str, FieldCapabilities], Any]] = {
            FieldKind.INTEGER: self._validate_integer,
            FieldKind.ID: self._validate_integer,
            FieldKind.FLOAT: self._validate_float,
            FieldKind.BOOLEAN: self._validate_boolean,
            FieldKind.DATE: self._validate_date,
            FieldKind.DATETIME: self._validate_date,
            FieldKind.ENUM: self._validate_enum,
            FieldKind.RADIO: self._validate_enum,
            FieldKind.MULTI_ENUM: self._validate_multi_enum,
        }

    def validate_and_filter_for_model(self, filters: Sequence[Mapping[str, Any]], model: Model) -> list[dict[str, Any]]:
        """Return the filters that pass every check, each with its ``fieldType``."""
        validated: list[dict[str, Any]] = []
        logger.debug("validating %d filters for %s", len(filters), model.name)

        for item in filters:
            if not isinstance(item, Mapping) or not item.get("field") or not item.get("operator"):
                logger.warning("Invalid filter structure, skipping: %r", item)
                continue

            field_name = item["field"]
            operator = item["operator"]
            value = item.get("value")

            field = model.get_field(field_name)
            if field is None:
                logger.warning("Filter field %r does not exist on %s, skipping", field_name, model.name)
                continue
            if not field.is_db_field:
                logger.warning("Filter field %r is not a database field, skipping", field_name)
                continue
            if not field.supports_operator(operator):
                logger.warning(
                    "Operator %r not supported by %s field %r (supported: %s), skipping",
                    operator,
                    field.kind.value,
                    field_name,
                    ", ".join(field.supported_operators()),
                )
                continue

            clean = self.validate_value_for_field(value, operator, field)
            if clean is None and operator not in NULL_OPERATORS:
                logger.warning(
                    "Value %r failed validation for %s field %r, skipping",
                    value,
                    field.kind.value,
                    field_name,
                )
                continue

            validated.append(
                {
                    "field": field_name,
                    "operator": operator,
                    "value": clean,
                    "fieldType": field.kind.value,
                }
            )

        logger.info(
            "Filter validation for %s: %d of %d filters kept",
            model.name,
            len(validated),
            len(filters),
        )
        return validated

    def get_supported_filters(self, model: Model) -> dict[str, dict[str, Any]]:
        """Filterable (database) fields with their operators and descriptions."""
        supported: dict[str, dict[str, Any]] = {}
        for field in model.fields:
            if not field.is_db_field:
                continue
            operators = field.supported_operators()
            supported[field.name] = {
                "fieldType": field.kind.value,
                "operators": list(operators),
                "operatorDescriptions": {op: OPERATOR_DESCRIPTIONS.get(op, "Custom operator") for op in operators},
                "fieldDescription": FIELD_KIND_DESCRIPTIONS.get(field.kind, "Custom field"),
            }
        return supported

    def validate_value_for_field(self, value: Any, operator: str, field: FieldCapabilities) -> Any:
        """Coerce *value* for *field*; None means the value is unusable."""
        if operator in NULL_OPERATORS:
            return None
        validator = self._validators.get(field.kind, self._validate_string)
        return validator(value, operator, field)

    # -- Per-kind validators --

    def _validate_integer(self, value: Any, operator: str, field: FieldCapabilities) -> Any:
        if operator in LIST_OPERATORS:
            if not isinstance(value, list):
                return None
            return [to_integer(v) for v in value if is_numeric(v)] or None
        return to_integer(value) if is_numeric(value) else None

    def _validate_float(self, value: Any, operator: str, field: FieldCapabilities) -> Any:
        if operator in LIST_OPERATORS:
            if not isinstance(value, list):
                return None
            return [float(v) for v in value if is_numeric(v)] or None
        return float(value) if is_numeric(value) else None

    def _validate_boolean(self, value: Any, operator: str, field: FieldCapabilities) -> Any:
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in _TRUE_STRINGS:
                return True
            if lowered in _FALSE_STRINGS:
                return False
        return bool(float(value)) if is_numeric(value) else None

    def _validate_date(self, value: Any, operator: str, field: FieldCapabilities) -> Any:
        if operator in LIST_OPERATORS:
            if not isinstance(value, list):
                return None
            parsed = [self._single_date(v) for v in value]
            return [p for p in parsed if p is not None] or None
        return self._single_date(value)

    def _single_date(self, value: Any) -> str | None:
        parsed = parse_datetime(value)
        return parsed.strftime(CANONICAL_DATETIME_FORMAT) if parsed else None

    def _validate_enum(self, value: Any, operator: str, field: FieldCapabilities) -> Any:
        options = field.options
        if operator in ("in", "notIn"):
            if not isinstance(value, list):
                return None
            return [v for v in value if option_matches(v, options)] or None
        return value if option_matches(value, options) else None

    def _validate_multi_enum(self, value: Any, operator: str, field: FieldCapabilities) -> Any:
        if operator in ARRAY_OPERATORS:
            if not isinstance(value, list):
                return None
            return [v for v in value if option_matches(v, field.options)] or None
        return self._validate_enum(value, operator, field)

    def _validate_string(self, value: Any, operator: str, field: FieldCapabilities) -> Any:
        if operator in ("in", "notIn"):
            if not isinstance(value, list):
                return None
            return [str(v) for v in value]
        if isinstance(value, bool):
            return "1" if value else ""
        if isinstance(value, (str, int, float)):
            return str(value)
        return None
