"""Model and field definitions consumed by validation and routing.

The ORM itself lives outside gravitycar. What the request pipeline needs
from a model is its name and its field set, plus per-field capabilities:
kind, whether the field is persisted, whether it is searchable, and its
option list. ``ModelDefinition`` carries exactly that; ``ModelCatalog`` is
the in-memory ``ModelFactory`` used by the app and the tests.

Models can be declared in code::

    users = ModelDefinition(
        "Users",
        fields=(
            ModelField("id", FieldKind.ID),
            ModelField("username", FieldKind.TEXT, is_searchable=True),
        ),
    )

or from metadata dicts in the shape the metadata files use::

    ModelDefinition.from_metadata({
        "name": "Users",
        "fields": {"username": {"type": "Text", "isSearchable": True}},
    })
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

from gravitycar.validation.fields import (
    FIELD_KIND_DESCRIPTIONS,
    OPERATOR_DESCRIPTIONS,
    FieldKind,
    search_operators_for,
    supported_operators,
)


@dataclass(frozen=True, slots=True)
class ModelField:
    """One field of a model and its filter/search capabilities."""

    name: str
    kind: FieldKind = FieldKind.TEXT
    label: str = ""
    is_db_field: bool = True
    is_searchable: bool = False
    is_default_searchable: bool | None = None
    required: bool = False
    options: Mapping[str, str] = field(default_factory=dict)
    operators: tuple[str, ...] | None = None
    description: str = ""
    related_model: str | None = None

    def supported_operators(self) -> tuple[str, ...]:
        """The kind's operator set, unless this field overrides it."""
        if self.operators is not None:
            return self.operators
        return supported_operators(self.kind)

    def supports_operator(self, operator: str) -> bool:
        return operator in self.supported_operators()

    def operator_descriptions(self) -> dict[str, str]:
        return {op: OPERATOR_DESCRIPTIONS.get(op, "Custom operator") for op in self.supported_operators()}

    def search_operators(self) -> tuple[str, ...]:
        return search_operators_for(self.kind)

    @property
    def kind_description(self) -> str:
        return self.description or FIELD_KIND_DESCRIPTIONS.get(self.kind, "")

    @classmethod
    def from_metadata(cls, name: str, meta: Mapping[str, Any]) -> ModelField:
        kind = meta.get("kind")
        if isinstance(kind, str):
            kind = FieldKind(kind)
        elif kind is None:
            kind = FieldKind.from_type_name(str(meta.get("type", "Text")))
        operators = meta.get("operators")
        return cls(
            name=name,
            kind=kind,
            label=meta.get("label", ""),
            is_db_field=bool(meta.get("isDBField", True)),
            is_searchable=bool(meta.get("isSearchable", False)),
            is_default_searchable=meta.get("isDefaultSearchable"),
            required=bool(meta.get("required", False)),
            options=dict(meta.get("options") or {}),
            operators=tuple(operators) if operators is not None else None,
            description=meta.get("description", ""),
            related_model=meta.get("relatedModel"),
        )


@dataclass(frozen=True, slots=True)
class ModelDefinition:
    """A model's name and fields.

    ``searchable_fields`` is the model's declared default search target
    list; when empty, ``SearchEngine`` derives one from the fields.
    """

    name: str
    fields: tuple[ModelField, ...] = ()
    searchable_fields: tuple[str, ...] = ()
    table: str = ""

    @property
    def field_map(self) -> dict[str, ModelField]:
        return {f.name: f for f in self.fields}

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    def get_field(self, name: str) -> ModelField | None:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def has_field(self, name: str) -> bool:
        return self.get_field(name) is not None

    def db_fields(self) -> list[ModelField]:
        return [f for f in self.fields if f.is_db_field]

    @classmethod
    def from_metadata(cls, meta: Mapping[str, Any]) -> ModelDefinition:
        raw_fields = meta.get("fields") or {}
        return cls(
            name=meta["name"],
            fields=tuple(ModelField.from_metadata(name, spec) for name, spec in raw_fields.items()),
            searchable_fields=tuple(meta.get("searchableFields") or ()),
            table=meta.get("table", ""),
        )


class ModelCatalog:
    """In-memory model factory.

    Satisfies the ``ModelFactory`` protocol: ``get(name)`` returns the
    model or None, ``available_models()`` lists the registered names.
    """

    def __init__(self, models: list[ModelDefinition] | None = None) -> None:
        self._models: dict[str, ModelDefinition] = {}
        for model in models or ():
            self.register(model)

    def register(self, model: ModelDefinition) -> None:
        self._models[model.name] = model

    def get(self, name: str) -> ModelDefinition | None:
        model = self._models.get(name)
        if model is not None:
            return model
        # Clients often send lower-cased model names in the path
        lowered = name.lower()
        for key, candidate in self._models.items():
            if key.lower() == lowered:
                return candidate
        return None

    def available_models(self) -> list[str]:
        return sorted(self._models)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.get(name) is not None

    def __iter__(self) -> Iterator[ModelDefinition]:
        return iter(self._models.values())

    def __len__(self) -> int:
        return len(self._models)
