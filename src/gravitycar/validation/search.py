"""Model-aware global search validation.

A search needs a non-blank term and at least one searchable target
field. Anything less yields an empty dict: the search is dropped, the
same way ``FilterCriteria`` drops invalid filters.
"""

import logging
import re
from collections.abc import Mapping
from typing import Any

from gravitycar.contracts import FieldCapabilities, Model
from gravitycar.validation.fields import (
    FIELD_KIND_DESCRIPTIONS,
    SEARCH_OPERATORS,
    SEARCHABLE_KINDS,
    UNSEARCHABLE_KINDS,
    FieldKind,
    search_operators_for,
)

logger = logging.getLogger("gravitycar.validation")

DEFAULT_SEARCH_OPERATOR = "contains"

# Field names that are good default search targets.
DEFAULT_SEARCHABLE_NAMES = frozenset(
    {
        "name",
        "title",
        "label",
        "description",
        "email",
        "first_name",
        "last_name",
        "username",
        "display_name",
    }
)

# Substrings that mark a text field as a default search target.
DEFAULT_SEARCHABLE_PATTERNS = ("name", "title", "label", "code", "identifier")

_QUOTED_RE = re.compile(r'"([^"]*)"')


class SearchEngine:
    """Validates a normalized search spec against a model."""

    def validate_search_for_model(self, search_params: Mapping[str, Any], model: Model) -> dict[str, Any]:
        """Return ``{term, fields, operator}``, or ``{}`` when there is nothing to search."""
        term = search_params.get("term")
        if not isinstance(term, str) or not term.strip():
            logger.debug("No search term provided for %s", model.name)
            return {}
        term = term.strip()

        requested = list(search_params.get("fields") or ())
        if not requested:
            requested = list(model.searchable_fields) or self.default_searchable_fields(model)

        fields: list[str] = []
        for name in requested:
            field = model.get_field(name)
            if field is None:
                logger.warning("Search field %r does not exist on %s, skipping", name, model.name)
                continue
            if not field.is_db_field:
                logger.warning("Search field %r is not a database field, skipping", name)
                continue
            if not self.is_field_searchable(field):
                logger.warning("Search field %r (%s) is not searchable, skipping", name, field.kind.value)
                continue
            fields.append(name)

        if not fields:
            logger.warning("No valid search fields for %s (requested: %s)", model.name, requested)
            return {}

        operator = search_params.get("operator") or DEFAULT_SEARCH_OPERATOR
        if operator not in SEARCH_OPERATORS:
            logger.warning(
                "Invalid search operator %r, using %r (valid: %s)",
                operator,
                DEFAULT_SEARCH_OPERATOR,
                ", ".join(SEARCH_OPERATORS),
            )
            operator = DEFAULT_SEARCH_OPERATOR

        logger.info("Search on %s: %r in %s using %s", model.name, term, fields, operator)
        return {"term": term, "fields": fields, "operator": operator}

    def get_searchable_fields(self, model: Model) -> dict[str, dict[str, Any]]:
        """Searchable database fields with their search operators."""
        result: dict[str, dict[str, Any]] = {}
        for field in model.fields:
            if not field.is_db_field or not self.is_field_searchable(field):
                continue
            result[field.name] = {
                "fieldType": field.kind.value,
                "searchOperators": list(search_operators_for(field.kind)),
                "fieldDescription": FIELD_KIND_DESCRIPTIONS.get(field.kind, "Custom field type"),
                "isDefaultSearchable": self.is_default_searchable(field),
            }
        return result

    def default_searchable_fields(self, model: Model) -> list[str]:
        """Fields to search when the caller names none.

        Explicitly flagged or conventionally named fields first; failing
        that, the first three searchable database fields.
        """
        defaults = [f.name for f in model.fields if f.is_db_field and self.is_default_searchable(f)]
        if not defaults:
            for field in model.fields:
                if field.is_db_field and self.is_field_searchable(field):
                    defaults.append(field.name)
                    if len(defaults) >= 3:
                        break
        logger.debug("Default search fields for %s: %s", model.name, defaults)
        return defaults

    def is_field_searchable(self, field: FieldCapabilities) -> bool:
        if field.kind in UNSEARCHABLE_KINDS:
            return False
        if field.kind is FieldKind.BIG_TEXT:
            return bool(field.is_searchable)
        if field.kind in SEARCHABLE_KINDS:
            return True
        return bool(field.is_searchable)

    def is_default_searchable(self, field: FieldCapabilities) -> bool:
        if not self.is_field_searchable(field):
            return False
        if field.is_default_searchable is not None:
            return bool(field.is_default_searchable)
        if field.name in DEFAULT_SEARCHABLE_NAMES:
            return True
        if field.kind is FieldKind.TEXT:
            lowered = field.name.lower()
            return any(pattern in lowered for pattern in DEFAULT_SEARCHABLE_PATTERNS)
        return False

    def parse_search_term(self, term: str) -> dict[str, Any]:
        """Split a term into quoted phrases and words longer than one character."""
        phrases = _QUOTED_RE.findall(term)
        remainder = _QUOTED_RE.sub("", term)
        words = [w for w in remainder.split() if len(w) > 1]
        parsed = {
            "original": term,
            "cleaned": term.strip(),
            "words": words,
            "quoted_phrases": phrases,
            "operators": [],
        }
        logger.debug("Parsed search term %r: %s", term, parsed)
        return parsed
