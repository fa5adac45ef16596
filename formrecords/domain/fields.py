from __future__ import annotations

from collections.abc import Mapping, Sequence

from formrecords.domain.models import ChoiceTable, FieldMeta

CHOICE_FIELD_TYPES: frozenset[str] = frozenset({"multiple_choice", "dropdown"})


def resolve_fields(fields: Sequence[object]) -> dict[str, FieldMeta]:
    """Index a form's field definitions by field id.

    Choice-bearing fields get a ChoiceTable built from ``properties.choices``;
    every other field, including unknown types, keeps only id, title and type.
    """
    resolved: dict[str, FieldMeta] = {}
    for definition in fields:
        if not isinstance(definition, Mapping):
            continue
        field_id = definition.get("id")
        if not isinstance(field_id, str) or not field_id:
            continue
        field_type = _str_or_none(definition.get("type"))
        choices = None
        if field_type in CHOICE_FIELD_TYPES:
            choices = _choice_table(definition.get("properties"))
        resolved[field_id] = FieldMeta(
            field_id=field_id,
            title=_str_or_none(definition.get("title")),
            type=field_type,
            choices=choices,
        )
    return resolved


def _choice_table(properties: object) -> ChoiceTable | None:
    if not isinstance(properties, Mapping):
        return None
    options = properties.get("choices")
    if not isinstance(options, list):
        return None

    by_id: dict[str, str] = {}
    by_label: dict[str, str] = {}
    for option in options:
        if not isinstance(option, Mapping):
            continue
        label = _str_or_none(option.get("label"))
        if not label:
            continue
        option_id = _str_or_none(option.get("id"))
        if option_id:
            by_id[option_id] = label
        by_label[label] = label
    return ChoiceTable(by_id=by_id, by_label=by_label)


def _str_or_none(value: object) -> str | None:
    return value if isinstance(value, str) else None
