from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from enum import StrEnum


@dataclass(frozen=True)
class ById:
    choice_id: str


@dataclass(frozen=True)
class ByLabel:
    label: str


ChoiceKey = ById | ByLabel


@dataclass(frozen=True)
class ChoiceTable:
    """Display labels of one choice-bearing field, addressable by option id or label."""

    by_id: Mapping[str, str] = field(default_factory=dict)
    by_label: Mapping[str, str] = field(default_factory=dict)

    def resolve(self, key: ChoiceKey) -> str | None:
        if isinstance(key, ById):
            return self.by_id.get(key.choice_id)
        return self.by_label.get(key.label)


@dataclass(frozen=True)
class FieldMeta:
    field_id: str
    title: str | None
    type: str | None
    choices: ChoiceTable | None = None


@dataclass(frozen=True)
class FormSummary:
    form_id: str
    title: str | None = None


@dataclass(frozen=True)
class FormDefinition:
    form_id: str
    title: str | None
    fields: list[dict[str, object]]


@dataclass(frozen=True)
class IdentitySignals:
    email: str | None = None
    chiffre: str | None = None


@dataclass(frozen=True)
class Record:
    identity: str
    index: int
    value: str | None
    chiffre: str | None
    email: str | None
    date: date | None
    field_id: str | None
    form_id: str
    question: str | None
    response_id: str | None


@dataclass(frozen=True)
class UpsertCounts:
    created: int = 0
    unchanged: int = 0
    changed: int = 0

    @property
    def matched(self) -> int:
        return self.unchanged + self.changed

    def __add__(self, other: UpsertCounts) -> UpsertCounts:
        return UpsertCounts(
            created=self.created + other.created,
            unchanged=self.unchanged + other.unchanged,
            changed=self.changed + other.changed,
        )


class WriteMode(StrEnum):
    BATCHED = "batched"
    SEQUENTIAL = "sequential"


# Aliases accepted from WRITE_MODE / --write-mode.
WRITE_MODE_ALIASES: Mapping[str, WriteMode] = {
    "batched": WriteMode.BATCHED,
    "bulk": WriteMode.BATCHED,
    "sequential": WriteMode.SEQUENTIAL,
    "single": WriteMode.SEQUENTIAL,
}


# Read-side projections over persisted records.


@dataclass(frozen=True)
class ResponseGroup:
    response_id: str | None
    count: int
    email: str | None
    chiffre: str | None
    date: date | None


@dataclass(frozen=True)
class ResponseRef:
    form_id: str
    response_id: str | None
    email: str | None
    chiffre: str | None
    date: date | None


@dataclass(frozen=True)
class ChiffreOverview:
    chiffre: str
    responses_count: int
    forms_count: int
    latest: date | None
    earliest: date | None


@dataclass(frozen=True)
class ValueFrequency:
    value: str | None
    count: int
