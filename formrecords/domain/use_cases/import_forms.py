from __future__ import annotations

from collections.abc import Sequence
import json
import logging

from formrecords.domain.contracts import FormsClient, RecordWriter
from formrecords.domain.dto import FormImportResult, ImportFormsCommand, ImportFormsResult
from formrecords.domain.error_taxonomy import classify_error
from formrecords.domain.errors import DomainInvariantError, StoreWriteError
from formrecords.domain.fields import resolve_fields
from formrecords.domain.models import FormSummary, Record, UpsertCounts
from formrecords.domain.records import build_records, response_id_of

COMPONENT_ID = "domain.import.forms"

logger = logging.getLogger("importer")


async def import_forms(
    cmd: ImportFormsCommand,
    *,
    forms_client: FormsClient,
    writer: RecordWriter | None,
) -> ImportFormsResult:
    """Import every selected form: one form at a time, one response at a time.

    ``writer`` may be None only for dry runs. Upstream and record-write
    failures propagate and end the run.
    """
    if writer is None and not cmd.dry_run:
        raise DomainInvariantError("a record writer is required unless running dry")

    if cmd.form_ids:
        forms = [FormSummary(form_id=form_id) for form_id in cmd.form_ids]
    else:
        forms = await forms_client.list_forms(limit=cmd.forms_limit)
    logger.info("forms selected: %d", len(forms))

    result = ImportFormsResult()
    result.form_summaries = await _write_form_summaries(cmd, forms=forms, writer=writer)

    for summary in forms:
        form_result = await _import_form(cmd, form_id=summary.form_id, forms_client=forms_client, writer=writer)
        result.forms.append(form_result)

    counts = result.counts
    logger.info(
        "import finished: built %d records, created %d, changed %d, unchanged %d",
        result.records_built,
        counts.created,
        counts.changed,
        counts.unchanged,
    )
    return result


async def _write_form_summaries(
    cmd: ImportFormsCommand,
    *,
    forms: Sequence[FormSummary],
    writer: RecordWriter | None,
) -> UpsertCounts | None:
    if cmd.dry_run or writer is None:
        _preview(
            cmd,
            [{"filter": {"form_id": form.form_id}, "update": _form_document(form), "upsert": True} for form in forms],
            label="form",
        )
        return None
    try:
        counts = await writer.upsert_forms(forms, mode=cmd.write_mode)
    except StoreWriteError as exc:
        # Summaries are rebuilt on every run; answer records still get imported.
        logger.warning(
            "form summary upsert failed (%s): %s",
            classify_error("store_write_failed"),
            exc,
            extra={"error_code": "store_write_failed"},
        )
        return None
    logger.info(
        "form summaries upserted: created %d, changed %d, unchanged %d",
        counts.created,
        counts.changed,
        counts.unchanged,
    )
    return counts


async def _import_form(
    cmd: ImportFormsCommand,
    *,
    form_id: str,
    forms_client: FormsClient,
    writer: RecordWriter | None,
) -> FormImportResult:
    extra = {"form_id": form_id}
    logger.info("processing form", extra=extra)
    definition = await forms_client.get_form(form_id=form_id)
    fields = resolve_fields(definition.fields)
    responses = await forms_client.list_responses(form_id=form_id, limit=cmd.responses_limit)
    logger.info("responses fetched: %d", len(responses), extra=extra)

    form_result = FormImportResult(form_id=form_id, responses=len(responses))
    for response in responses:
        records = build_records(form_id=form_id, fields=fields, response=response)
        if not records:
            form_result.skipped_responses += 1
            logger.warning(
                "response has no answers; skipping (%s)",
                classify_error("empty_response"),
                extra={
                    "form_id": form_id,
                    "response_id": response_id_of(response) or "unknown",
                    "error_code": "empty_response",
                },
            )
            continue

        form_result.records_built += len(records)
        if cmd.dry_run or writer is None:
            operations = [
                {
                    "filter": {"identity": record.identity, "idx": record.index},
                    "update": record_document(record),
                    "upsert": True,
                }
                for record in records
            ]
            _preview(cmd, operations, label="record")
            continue

        form_result.counts += await writer.upsert_records(records, mode=cmd.write_mode)
        await _verify_first(writer, records)

    if writer is not None and not cmd.dry_run:
        form_result.stored_total = await writer.count_records(form_id=form_id)

    counts = form_result.counts
    logger.info(
        "form done: built %d records, created %d, changed %d, unchanged %d, skipped %d responses, stored %s",
        form_result.records_built,
        counts.created,
        counts.changed,
        counts.unchanged,
        form_result.skipped_responses,
        "n/a" if form_result.stored_total is None else form_result.stored_total,
        extra=extra,
    )
    return form_result


async def _verify_first(writer: RecordWriter, records: Sequence[Record]) -> None:
    sample = records[0]
    stored = await writer.find_record(identity=sample.identity, index=sample.index)
    if stored is None:
        logger.warning(
            "post-write verification failed for identity=%s idx=%d",
            sample.identity,
            sample.index,
            extra={"form_id": sample.form_id, "response_id": sample.response_id},
        )


def record_document(record: Record) -> dict[str, object]:
    return {
        "identity": record.identity,
        "idx": record.index,
        "value": record.value,
        "chiffre": record.chiffre,
        "email": record.email,
        "date": record.date.isoformat() if record.date is not None else None,
        "field_id": record.field_id,
        "form_id": record.form_id,
        "question": record.question,
        "response_id": record.response_id,
    }


def _form_document(form: FormSummary) -> dict[str, object]:
    return {"form_id": form.form_id, "title": form.title}


def _preview(cmd: ImportFormsCommand, operations: list[dict[str, object]], *, label: str) -> None:
    shown = operations if cmd.dry_run_all else operations[: cmd.dry_run_preview]
    for operation in shown:
        logger.info("dry-run upsert %s: %s", label, json.dumps(operation, ensure_ascii=False))
    suppressed = len(operations) - len(shown)
    if suppressed > 0:
        logger.info(
            "dry-run: %d more %s operations suppressed (use --dry-run-all or raise --dry-run-preview)",
            suppressed,
            label,
        )
