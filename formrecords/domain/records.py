from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, date, datetime
import logging

from formrecords.domain.answers import UnrecognizedValue, parse_answer
from formrecords.domain.identity import compose_identity, extract_identity
from formrecords.domain.models import FieldMeta, Record
from formrecords.domain.normalization import normalize_answer

logger = logging.getLogger("importer")


def response_id_of(response: Mapping[str, object]) -> str | None:
    return _first_str(response, "response_id", "token")


def submission_date(timestamp: object) -> date | None:
    """Calendar date (UTC) of a submission timestamp; None when it cannot be parsed."""
    if not isinstance(timestamp, str) or not timestamp:
        return None
    try:
        parsed = datetime.fromisoformat(timestamp)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC).date()


def build_records(
    *,
    form_id: str,
    fields: Mapping[str, FieldMeta],
    response: Mapping[str, object],
) -> list[Record]:
    """Flatten one raw response into one record per answer, in answer order.

    An empty list means the response carried no answers; callers treat that
    as a skip, not a failure.
    """
    payloads = response.get("answers")
    if not isinstance(payloads, list) or not payloads:
        return []

    answers = [parse_answer(payload) for payload in payloads]
    signals = extract_identity(answers)
    response_id = response_id_of(response)
    identity = compose_identity(form_id=form_id, signals=signals, response_id=response_id)
    record_date = submission_date(_first_str(response, "submitted_at", "landed_at"))

    records: list[Record] = []
    for index, answer in enumerate(answers):
        field_meta = fields.get(answer.field_id) if answer.field_id else None
        if isinstance(answer.value, UnrecognizedValue):
            logger.warning(
                "answer has no recognizable value; storing null",
                extra={
                    "form_id": form_id,
                    "response_id": response_id,
                    "index": index,
                    "error_code": "malformed_answer",
                },
            )
        records.append(
            Record(
                identity=identity,
                index=index,
                value=normalize_answer(answer, field_meta),
                chiffre=signals.chiffre,
                email=signals.email,
                date=record_date,
                field_id=answer.field_id,
                form_id=form_id,
                question=field_meta.title if field_meta is not None else None,
                response_id=response_id,
            )
        )
    return records


def _first_str(payload: Mapping[str, object], *keys: str) -> str | None:
    for key in keys:
        value = payload.get(key)
        if isinstance(value, str):
            return value
    return None
