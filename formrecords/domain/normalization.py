from __future__ import annotations

from formrecords.domain.answers import (
    BooleanValue,
    ChoicesValue,
    ChoiceValue,
    DateValue,
    EmailValue,
    FileValue,
    NumberValue,
    RawAnswer,
    TextValue,
    UrlValue,
)
from formrecords.domain.models import ById, ByLabel, ChoiceTable, FieldMeta

MULTI_CHOICE_SEPARATOR = ", "


def stringify_number(number: int | float) -> str:
    return str(number)


def stringify_boolean(value: bool) -> str:
    return "true" if value else "false"


def normalize_answer(answer: RawAnswer, field_meta: FieldMeta | None) -> str | None:
    """Render one answer as a single display string, or None when nothing usable is present."""
    value = answer.value
    if isinstance(value, TextValue):
        return value.text
    if isinstance(value, EmailValue):
        return value.email
    if isinstance(value, NumberValue):
        return stringify_number(value.number)
    if isinstance(value, DateValue):
        return value.date
    if isinstance(value, BooleanValue):
        return stringify_boolean(value.boolean)
    if isinstance(value, UrlValue):
        return value.url
    table = field_meta.choices if field_meta is not None else None
    if isinstance(value, ChoiceValue):
        return _choice_label(value, table)
    if isinstance(value, ChoicesValue):
        return _choices_label(value, table)
    if isinstance(value, FileValue):
        return value.file_url
    return None


def _choice_label(value: ChoiceValue, table: ChoiceTable | None) -> str | None:
    if value.label:
        return value.label
    if table is not None and value.choice_id:
        # Some payloads carry the label where the option id is expected.
        label = table.resolve(ById(value.choice_id)) or table.resolve(ByLabel(value.choice_id))
        if label:
            return label
    return value.other or None


def _choices_label(value: ChoicesValue, table: ChoiceTable | None) -> str | None:
    labels = list(value.labels)
    if not labels and table is not None:
        for choice_id in value.choice_ids:
            label = table.resolve(ById(choice_id))
            if label:
                labels.append(label)
    if not labels:
        return None
    return MULTI_CHOICE_SEPARATOR.join(labels)
