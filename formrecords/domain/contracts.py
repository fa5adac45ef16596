from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from formrecords.domain.models import (
    ChiffreOverview,
    FormDefinition,
    FormSummary,
    Record,
    ResponseGroup,
    ResponseRef,
    UpsertCounts,
    ValueFrequency,
    WriteMode,
)

# Uniqueness keys enforced by the store.
RECORD_UNIQUE_KEY = ("identity", "idx")
FORM_UNIQUE_KEY = ("form_id",)


@runtime_checkable
class FormsClient(Protocol):
    """Paginated forms API boundary (`page` / `page_count` convention)."""

    async def list_forms(self, *, limit: int | None = None) -> list[FormSummary]: ...

    async def get_form(self, *, form_id: str) -> FormDefinition: ...

    async def list_responses(self, *, form_id: str, limit: int | None = None) -> list[dict[str, object]]: ...


@runtime_checkable
class RecordWriter(Protocol):
    """Idempotent write surface keyed by (identity, index) for records and form_id for summaries.

    Both upserts report created / unchanged / changed counts for the batch and
    raise StoreWriteError when the batch cannot be written.
    """

    async def ensure_indexes(self) -> None: ...

    async def upsert_records(self, records: Sequence[Record], *, mode: WriteMode = WriteMode.BATCHED) -> UpsertCounts: ...

    async def upsert_forms(self, forms: Sequence[FormSummary], *, mode: WriteMode = WriteMode.BATCHED) -> UpsertCounts: ...

    async def find_record(self, *, identity: str, index: int) -> Record | None: ...

    async def count_records(self, *, form_id: str) -> int: ...


@runtime_checkable
class RecordReader(Protocol):
    """Query shapes served by the read API."""

    async def search_forms(self, *, query: str, limit: int = 100) -> list[FormSummary]: ...

    async def list_form_responses(self, *, form_id: str, limit: int = 200) -> list[ResponseGroup]: ...

    async def get_response_records(self, *, response_id: str) -> list[Record]: ...

    async def list_chiffre_responses(self, *, chiffre: str, limit: int = 200) -> list[ResponseRef]: ...

    async def search_responses(self, *, query: str, limit: int = 200) -> list[ResponseRef]: ...

    async def list_chiffres(self, *, limit: int = 200) -> list[ChiffreOverview]: ...

    async def related_values(
        self,
        *,
        form_id: str,
        field_id: str,
        exclude_response_id: str | None = None,
        limit: int = 50,
    ) -> list[ValueFrequency]: ...
