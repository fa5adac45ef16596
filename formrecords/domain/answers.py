from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass


@dataclass(frozen=True)
class TextValue:
    text: str


@dataclass(frozen=True)
class EmailValue:
    email: str


@dataclass(frozen=True)
class NumberValue:
    number: int | float


@dataclass(frozen=True)
class DateValue:
    date: str


@dataclass(frozen=True)
class BooleanValue:
    boolean: bool


@dataclass(frozen=True)
class UrlValue:
    url: str


@dataclass(frozen=True)
class ChoiceValue:
    label: str | None = None
    choice_id: str | None = None
    other: str | None = None


@dataclass(frozen=True)
class ChoicesValue:
    labels: tuple[str, ...] = ()
    choice_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class FileValue:
    file_url: str


@dataclass(frozen=True)
class UnrecognizedValue:
    payload: object


AnswerValue = (
    TextValue
    | EmailValue
    | NumberValue
    | DateValue
    | BooleanValue
    | UrlValue
    | ChoiceValue
    | ChoicesValue
    | FileValue
    | UnrecognizedValue
)


@dataclass(frozen=True)
class RawAnswer:
    field_id: str | None
    type: str | None
    value: AnswerValue
    # Every shape the payload carries, in precedence order; ``value`` is the first.
    shapes: tuple[AnswerValue, ...] = ()

    def all_shapes(self) -> tuple[AnswerValue, ...]:
        return self.shapes or (self.value,)


ShapeRule = Callable[[Mapping[str, object]], AnswerValue | None]


def _text(payload: Mapping[str, object]) -> AnswerValue | None:
    value = payload.get("text")
    return TextValue(value) if isinstance(value, str) else None


def _email(payload: Mapping[str, object]) -> AnswerValue | None:
    value = payload.get("email")
    return EmailValue(value) if isinstance(value, str) else None


def _number(payload: Mapping[str, object]) -> AnswerValue | None:
    value = payload.get("number")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return NumberValue(value)


def _date(payload: Mapping[str, object]) -> AnswerValue | None:
    value = payload.get("date")
    return DateValue(value) if isinstance(value, str) else None


def _boolean(payload: Mapping[str, object]) -> AnswerValue | None:
    value = payload.get("boolean")
    return BooleanValue(value) if isinstance(value, bool) else None


def _url(payload: Mapping[str, object]) -> AnswerValue | None:
    value = payload.get("url")
    return UrlValue(value) if isinstance(value, str) else None


def _choice(payload: Mapping[str, object]) -> AnswerValue | None:
    choice = payload.get("choice")
    if not isinstance(choice, Mapping):
        return None
    return ChoiceValue(
        label=_str_or_none(choice.get("label")),
        choice_id=_str_or_none(choice.get("id")),
        other=_str_or_none(choice.get("other")),
    )


def _choices(payload: Mapping[str, object]) -> AnswerValue | None:
    choices = payload.get("choices")
    if not isinstance(choices, Mapping):
        return None
    labels = choices.get("labels")
    ids = choices.get("ids")
    if not isinstance(labels, list) and not isinstance(ids, list):
        return None
    return ChoicesValue(
        labels=tuple(item for item in labels or () if isinstance(item, str)),
        choice_ids=tuple(item for item in ids or () if isinstance(item, str)),
    )


def _file(payload: Mapping[str, object]) -> AnswerValue | None:
    value = payload.get("file_url")
    return FileValue(value) if isinstance(value, str) and value else None


# Evaluated in order; the first rule that recognizes the payload decides the
# variant. This order is also the normalization precedence.
ANSWER_SHAPES: tuple[tuple[str, ShapeRule], ...] = (
    ("text", _text),
    ("email", _email),
    ("number", _number),
    ("date", _date),
    ("boolean", _boolean),
    ("url", _url),
    ("choice", _choice),
    ("choices", _choices),
    ("file_url", _file),
)


def parse_answer(payload: object) -> RawAnswer:
    if not isinstance(payload, Mapping):
        return RawAnswer(field_id=None, type=None, value=UnrecognizedValue(payload))

    shapes = tuple(value for value in (rule(payload) for _, rule in ANSWER_SHAPES) if value is not None)

    return RawAnswer(
        field_id=resolve_field_id(payload),
        type=_str_or_none(payload.get("type")),
        value=shapes[0] if shapes else UnrecognizedValue(dict(payload)),
        shapes=shapes,
    )


def resolve_field_id(payload: Mapping[str, object]) -> str | None:
    """Find the field reference of an answer across the payload shapes seen in the wild.

    Tried in order: ``field.id`` of an object reference, a ``field_id`` string,
    then ``field`` given as a bare identifier string.
    """
    field = payload.get("field")
    if isinstance(field, Mapping):
        field_id = field.get("id")
        if isinstance(field_id, str) and field_id:
            return field_id

    field_id = payload.get("field_id")
    if isinstance(field_id, str) and field_id:
        return field_id

    if isinstance(field, str) and field:
        return field
    return None


def _str_or_none(value: object) -> str | None:
    return value if isinstance(value, str) else None
