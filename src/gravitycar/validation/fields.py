"""Field kinds and their filter/search capabilities.

Capabilities are a lookup table keyed by ``FieldKind`` rather than
behaviour discovered on field objects. A field may still override its
operator set (see ``ModelField.operators``).
"""

from __future__ import annotations

from enum import Enum


class FieldKind(Enum):
    """Storage/presentation kind of a model field."""

    TEXT = "text"
    EMAIL = "email"
    BIG_TEXT = "big_text"
    PASSWORD = "password"
    IMAGE = "image"
    INTEGER = "integer"
    FLOAT = "float"
    ID = "id"
    BOOLEAN = "boolean"
    DATE = "date"
    DATETIME = "datetime"
    ENUM = "enum"
    RADIO = "radio"
    MULTI_ENUM = "multi_enum"
    RELATED_RECORD = "related_record"

    @classmethod
    def from_type_name(cls, type_name: str) -> FieldKind:
        """Map a metadata type name (``"Integer"``, ``"DateTimeField"``) to a kind.

        Unknown names map to ``TEXT``.
        """
        key = type_name.removesuffix("Field").lower()
        return _TYPE_NAME_ALIASES.get(key, cls.TEXT)


_TYPE_NAME_ALIASES: dict[str, FieldKind] = {
    "text": FieldKind.TEXT,
    "email": FieldKind.EMAIL,
    "bigtext": FieldKind.BIG_TEXT,
    "big_text": FieldKind.BIG_TEXT,
    "password": FieldKind.PASSWORD,
    "image": FieldKind.IMAGE,
    "integer": FieldKind.INTEGER,
    "int": FieldKind.INTEGER,
    "float": FieldKind.FLOAT,
    "id": FieldKind.ID,
    "boolean": FieldKind.BOOLEAN,
    "bool": FieldKind.BOOLEAN,
    "date": FieldKind.DATE,
    "datetime": FieldKind.DATETIME,
    "enum": FieldKind.ENUM,
    "radiobuttonset": FieldKind.RADIO,
    "radio": FieldKind.RADIO,
    "multienum": FieldKind.MULTI_ENUM,
    "multi_enum": FieldKind.MULTI_ENUM,
    "relatedrecord": FieldKind.RELATED_RECORD,
    "related_record": FieldKind.RELATED_RECORD,
}

# ---------------------------------------------------------------------------
# Operators
# ---------------------------------------------------------------------------

TEXT_OPERATORS = (
    "equals",
    "notEquals",
    "contains",
    "startsWith",
    "endsWith",
    "in",
    "notIn",
    "isNull",
    "isNotNull",
)

NUMERIC_OPERATORS = (
    "equals",
    "notEquals",
    "greaterThan",
    "greaterThanOrEqual",
    "lessThan",
    "lessThanOrEqual",
    "between",
    "in",
    "notIn",
    "isNull",
    "isNotNull",
)

DATE_OPERATORS = (
    "equals",
    "notEquals",
    "greaterThan",
    "greaterThanOrEqual",
    "lessThan",
    "lessThanOrEqual",
    "between",
    "isNull",
    "isNotNull",
)

CHOICE_OPERATORS = ("equals", "notEquals", "in", "notIn", "isNull", "isNotNull")

OPERATORS_BY_KIND: dict[FieldKind, tuple[str, ...]] = {
    FieldKind.TEXT: TEXT_OPERATORS,
    FieldKind.EMAIL: TEXT_OPERATORS,
    FieldKind.BIG_TEXT: TEXT_OPERATORS,
    FieldKind.PASSWORD: TEXT_OPERATORS,
    FieldKind.IMAGE: TEXT_OPERATORS,
    FieldKind.INTEGER: NUMERIC_OPERATORS,
    FieldKind.FLOAT: NUMERIC_OPERATORS,
    FieldKind.ID: NUMERIC_OPERATORS,
    FieldKind.BOOLEAN: ("equals", "notEquals", "isNull", "isNotNull"),
    FieldKind.DATE: DATE_OPERATORS,
    FieldKind.DATETIME: DATE_OPERATORS,
    FieldKind.ENUM: CHOICE_OPERATORS,
    FieldKind.RADIO: CHOICE_OPERATORS,
    FieldKind.MULTI_ENUM: ("overlap", "containsAll", "containsNone", "isNull", "isNotNull"),
    FieldKind.RELATED_RECORD: CHOICE_OPERATORS,
}

OPERATOR_DESCRIPTIONS: dict[str, str] = {
    "equals": "Exact match",
    "notEquals": "Not equal to",
    "contains": "Text contains value",
    "startsWith": "Text starts with value",
    "endsWith": "Text ends with value",
    "in": "Value is in list",
    "notIn": "Value is not in list",
    "greaterThan": "Greater than",
    "greaterThanOrEqual": "Greater than or equal to",
    "lessThan": "Less than",
    "lessThanOrEqual": "Less than or equal to",
    "between": "Between two values",
    "isNull": "Field is empty/null",
    "isNotNull": "Field is not empty/null",
    "overlap": "Array values overlap",
    "containsAll": "Array contains all values",
    "containsNone": "Array contains none of the values",
}

# Every operator any kind supports, in a stable order.
ALL_OPERATORS: tuple[str, ...] = tuple(OPERATOR_DESCRIPTIONS)

# Operators whose value is ignored.
NULL_OPERATORS = frozenset({"isNull", "isNotNull"})

# Operators whose value is a list.
LIST_OPERATORS = frozenset({"in", "notIn", "between"})
ARRAY_OPERATORS = frozenset({"overlap", "containsAll", "containsNone"})

FIELD_KIND_DESCRIPTIONS: dict[FieldKind, str] = {
    FieldKind.TEXT: "Text field supporting string operations",
    FieldKind.EMAIL: "Email address field",
    FieldKind.BIG_TEXT: "Long text field",
    FieldKind.PASSWORD: "Password field (never searchable)",
    FieldKind.IMAGE: "Image reference field (never searchable)",
    FieldKind.INTEGER: "Integer field supporting numeric comparisons",
    FieldKind.FLOAT: "Decimal field supporting numeric comparisons",
    FieldKind.ID: "Identifier field",
    FieldKind.BOOLEAN: "True/false field",
    FieldKind.DATE: "Date field supporting range comparisons",
    FieldKind.DATETIME: "Date and time field supporting range comparisons",
    FieldKind.ENUM: "Single choice from a fixed option list",
    FieldKind.RADIO: "Single choice from a fixed option list",
    FieldKind.MULTI_ENUM: "Multiple choices from a fixed option list",
    FieldKind.RELATED_RECORD: "Reference to a record of another model",
}

# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------

SEARCH_OPERATORS = ("contains", "startsWith", "endsWith", "equals", "fullText")

# Searchable by kind alone.
SEARCHABLE_KINDS = frozenset({FieldKind.TEXT, FieldKind.EMAIL, FieldKind.ENUM, FieldKind.RADIO})

# Never searchable, even when flagged.
UNSEARCHABLE_KINDS = frozenset({FieldKind.PASSWORD, FieldKind.IMAGE})

SEARCH_OPERATORS_BY_KIND: dict[FieldKind, tuple[str, ...]] = {
    FieldKind.TEXT: ("contains", "startsWith", "endsWith", "equals"),
    FieldKind.EMAIL: ("contains", "startsWith", "endsWith", "equals"),
    FieldKind.BIG_TEXT: ("contains", "startsWith", "endsWith", "equals"),
    FieldKind.ENUM: ("equals",),
    FieldKind.RADIO: ("equals",),
    FieldKind.INTEGER: ("equals",),
    FieldKind.FLOAT: ("equals",),
    FieldKind.ID: ("equals",),
}


def supported_operators(kind: FieldKind) -> tuple[str, ...]:
    return OPERATORS_BY_KIND.get(kind, ("equals", "notEquals", "isNull", "isNotNull"))


def search_operators_for(kind: FieldKind) -> tuple[str, ...]:
    return SEARCH_OPERATORS_BY_KIND.get(kind, ("contains", "equals"))
