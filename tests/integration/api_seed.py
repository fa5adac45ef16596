from __future__ import annotations

import asyncio

from formrecords.domain.fields import resolve_fields
from formrecords.domain.records import build_records
from formrecords.repositories.stub import InMemoryRecordRepository
from tests.form_payloads import CHIFFRE, FORM_ID, HOBBY_FIELDS, hobby_response, hobby_summary


def seed_hobby_form(*, repository: InMemoryRecordRepository) -> None:
    """Two responses to the hobby form: one with a chiffre (March), one without (April)."""
    fields = resolve_fields(HOBBY_FIELDS)
    responses = [
        hobby_response(chiffre=CHIFFRE, submitted_at="2024-03-05T10:00:00Z"),
        hobby_response(response_id="R2", email="other@example.org", submitted_at="2024-04-01T10:00:00Z"),
    ]

    async def _seed() -> None:
        await repository.upsert_forms([hobby_summary()])
        for response in responses:
            await repository.upsert_records(build_records(form_id=FORM_ID, fields=fields, response=response))

    asyncio.run(_seed())
