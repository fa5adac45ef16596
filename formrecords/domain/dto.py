from __future__ import annotations

from dataclasses import dataclass, field

from formrecords.domain.models import UpsertCounts, WriteMode


@dataclass(frozen=True)
class ImportFormsCommand:
    forms_limit: int | None = None
    responses_limit: int | None = None
    form_ids: tuple[str, ...] | None = None
    dry_run: bool = False
    dry_run_all: bool = False
    dry_run_preview: int = 3
    write_mode: WriteMode = WriteMode.BATCHED


@dataclass
class FormImportResult:
    form_id: str
    responses: int = 0
    skipped_responses: int = 0
    records_built: int = 0
    counts: UpsertCounts = field(default_factory=UpsertCounts)
    # Stored records for the form after the import; None on dry runs.
    stored_total: int | None = None


@dataclass
class ImportFormsResult:
    forms: list[FormImportResult] = field(default_factory=list)
    form_summaries: UpsertCounts | None = None

    @property
    def records_built(self) -> int:
        return sum(item.records_built for item in self.forms)

    @property
    def counts(self) -> UpsertCounts:
        total = UpsertCounts()
        for item in self.forms:
            total += item.counts
        return total
