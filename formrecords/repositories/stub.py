from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace
from datetime import date

from formrecords.domain.errors import StoreWriteError
from formrecords.domain.models import (
    ChiffreOverview,
    FormSummary,
    Record,
    ResponseGroup,
    ResponseRef,
    UpsertCounts,
    ValueFrequency,
    WriteMode,
)


@dataclass
class InMemoryRecordRepository:
    """Non-network store with the same upsert and query semantics as the Postgres repository."""

    records: dict[tuple[str, int], Record] = field(default_factory=dict)
    forms: dict[str, FormSummary] = field(default_factory=dict)
    writes: list[tuple[str, int]] = field(default_factory=list)
    batches: list[tuple[str, WriteMode, int]] = field(default_factory=list)
    indexes_ensured: int = 0
    # Set to make the next record upsert fail as a whole.
    write_error: str | None = None
    # Keys the store refuses; the rest of their batch is still written.
    rejected_keys: set[tuple[str, int]] = field(default_factory=set)

    async def ensure_indexes(self) -> None:
        self.indexes_ensured += 1

    async def upsert_records(self, records: Sequence[Record], *, mode: WriteMode = WriteMode.BATCHED) -> UpsertCounts:
        if not records:
            return UpsertCounts()
        if self.write_error is not None:
            message, self.write_error = self.write_error, None
            raise StoreWriteError(message)

        self.batches.append(("records", mode, len(records)))
        counts = UpsertCounts()
        failed: list[tuple[str, int]] = []
        for record in records:
            key = (record.identity, record.index)
            if key in self.rejected_keys:
                failed.append(key)
                continue
            self.writes.append(key)
            counts += _count(self.records.get(key), record)
            self.records[key] = record
        if failed:
            identity, index = failed[0]
            raise StoreWriteError(
                f"{len(failed)} of {len(records)} records failed to upsert (first: identity={identity} idx={index})"
            )
        return counts

    async def upsert_forms(self, forms: Sequence[FormSummary], *, mode: WriteMode = WriteMode.BATCHED) -> UpsertCounts:
        if not forms:
            return UpsertCounts()

        self.batches.append(("forms", mode, len(forms)))
        counts = UpsertCounts()
        for summary in forms:
            existing = self.forms.get(summary.form_id)
            if existing is not None and summary.title is None:
                summary = replace(summary, title=existing.title)
            counts += _count(existing, summary)
            self.forms[summary.form_id] = summary
        return counts

    async def find_record(self, *, identity: str, index: int) -> Record | None:
        return self.records.get((identity, index))

    async def count_records(self, *, form_id: str) -> int:
        return sum(1 for record in self.records.values() if record.form_id == form_id)

    async def search_forms(self, *, query: str, limit: int = 100) -> list[FormSummary]:
        items = [
            summary
            for summary in self.forms.values()
            if not query or _contains(summary.form_id, query) or _contains(summary.title, query)
        ]
        return items[:limit]

    async def list_form_responses(self, *, form_id: str, limit: int = 200) -> list[ResponseGroup]:
        groups: dict[str | None, list[Record]] = {}
        for record in self.records.values():
            if record.form_id == form_id:
                groups.setdefault(record.response_id, []).append(record)
        items = [
            ResponseGroup(
                response_id=response_id,
                count=len(members),
                email=members[0].email,
                chiffre=members[0].chiffre,
                date=members[0].date,
            )
            for response_id, members in groups.items()
        ]
        return _newest_first(items)[:limit]

    async def get_response_records(self, *, response_id: str) -> list[Record]:
        items = [record for record in self.records.values() if record.response_id == response_id]
        return sorted(items, key=lambda record: record.index)

    async def list_chiffre_responses(self, *, chiffre: str, limit: int = 200) -> list[ResponseRef]:
        matches = (record for record in self.records.values() if record.chiffre == chiffre)
        return _newest_first(_response_refs(matches))[:limit]

    async def search_responses(self, *, query: str, limit: int = 200) -> list[ResponseRef]:
        if not query:
            return []
        matches = (
            record
            for record in self.records.values()
            if _contains(record.form_id, query) or _contains(record.chiffre, query) or _contains(record.email, query)
        )
        return _newest_first(_response_refs(matches))[:limit]

    async def list_chiffres(self, *, limit: int = 200) -> list[ChiffreOverview]:
        groups: dict[str, list[Record]] = {}
        for record in self.records.values():
            if record.chiffre:
                groups.setdefault(record.chiffre, []).append(record)
        items: list[ChiffreOverview] = []
        for chiffre, members in groups.items():
            dates = [record.date for record in members if record.date is not None]
            items.append(
                ChiffreOverview(
                    chiffre=chiffre,
                    responses_count=len({record.response_id for record in members}),
                    forms_count=len({record.form_id for record in members}),
                    latest=max(dates) if dates else None,
                    earliest=min(dates) if dates else None,
                )
            )
        items.sort(key=lambda item: _date_sort_key(item.latest), reverse=True)
        return items[:limit]

    async def related_values(
        self,
        *,
        form_id: str,
        field_id: str,
        exclude_response_id: str | None = None,
        limit: int = 50,
    ) -> list[ValueFrequency]:
        counts: dict[str | None, int] = {}
        for record in self.records.values():
            if record.form_id != form_id or record.field_id != field_id:
                continue
            if exclude_response_id and record.response_id == exclude_response_id:
                continue
            counts[record.value] = counts.get(record.value, 0) + 1
        items = [ValueFrequency(value=value, count=count) for value, count in counts.items()]
        items.sort(key=lambda item: item.count, reverse=True)
        return items[:limit]


def _count(existing: object | None, incoming: object) -> UpsertCounts:
    if existing is None:
        return UpsertCounts(created=1)
    if existing == incoming:
        return UpsertCounts(unchanged=1)
    return UpsertCounts(changed=1)


def _contains(value: str | None, query: str) -> bool:
    return value is not None and query.lower() in value.lower()


def _response_refs(records: Iterable[Record]) -> list[ResponseRef]:
    refs: dict[tuple[str, str | None], ResponseRef] = {}
    for record in records:
        key = (record.form_id, record.response_id)
        if key not in refs:
            refs[key] = ResponseRef(
                form_id=record.form_id,
                response_id=record.response_id,
                email=record.email,
                chiffre=record.chiffre,
                date=record.date,
            )
    return list(refs.values())


def _date_sort_key(value: date | None) -> tuple[bool, date]:
    return (value is not None, value or date.min)


def _newest_first(items: list) -> list:
    return sorted(items, key=lambda item: _date_sort_key(item.date), reverse=True)
