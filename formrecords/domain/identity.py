from __future__ import annotations

from collections.abc import Sequence
import re

from formrecords.domain.answers import (
    ChoiceValue,
    ChoicesValue,
    DateValue,
    EmailValue,
    NumberValue,
    RawAnswer,
    TextValue,
)
from formrecords.domain.models import IdentitySignals
from formrecords.domain.normalization import stringify_number

# Five digits, one letter, eight digits.
CHIFFRE_PATTERN = re.compile(r"\d{5}[A-Za-z]\d{8}", re.ASCII)

# Stands in for a missing identity slot. Records written by earlier importer
# runs carry this literal, so it must stay stable. It cannot be mistaken for a
# chiffre or a real email address (no "@").
ABSENT_SLOT = "undefined"


def is_chiffre(candidate: str) -> bool:
    return CHIFFRE_PATTERN.fullmatch(candidate) is not None


def textual_candidates(answer: RawAnswer) -> tuple[str, ...]:
    """Strings of every populated shape of one answer, in precedence order."""
    candidates: list[str] = []
    for value in answer.all_shapes():
        if isinstance(value, TextValue):
            candidates.append(value.text)
        elif isinstance(value, EmailValue):
            candidates.append(value.email)
        elif isinstance(value, NumberValue):
            candidates.append(stringify_number(value.number))
        elif isinstance(value, DateValue):
            candidates.append(value.date)
        elif isinstance(value, ChoiceValue):
            if value.label:
                candidates.append(value.label)
        elif isinstance(value, ChoicesValue):
            candidates.extend(value.labels)
    return tuple(candidates)


def extract_identity(answers: Sequence[RawAnswer]) -> IdentitySignals:
    """Recover the respondent's email and chiffre from one response.

    Both scans walk the answers in payload order and keep the first hit; they
    are independent of each other, so one answer may feed both signals.
    """
    return IdentitySignals(email=_first_email(answers), chiffre=_first_chiffre(answers))


def compose_identity(*, form_id: str, signals: IdentitySignals, response_id: str | None) -> str:
    primary = signals.chiffre or signals.email or ABSENT_SLOT
    return "_".join(
        (
            form_id,
            primary,
            response_id or ABSENT_SLOT,
            signals.email or ABSENT_SLOT,
        )
    )


def _first_email(answers: Sequence[RawAnswer]) -> str | None:
    for answer in answers:
        if answer.type != "email":
            continue
        for value in answer.all_shapes():
            if isinstance(value, EmailValue) and value.email:
                return value.email
    return None


def _first_chiffre(answers: Sequence[RawAnswer]) -> str | None:
    for answer in answers:
        for candidate in textual_candidates(answer):
            if is_chiffre(candidate):
                return candidate
    return None
