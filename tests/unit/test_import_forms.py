import asyncio
import logging

import pytest

from formrecords.clients.stub import StubFormsClient
from formrecords.domain.dto import ImportFormsCommand
from formrecords.domain.errors import DomainInvariantError, StoreWriteError, UpstreamFetchError
from formrecords.domain.models import FormDefinition, FormSummary, UpsertCounts, WriteMode
from formrecords.domain.use_cases.import_forms import import_forms
from formrecords.repositories.stub import InMemoryRecordRepository
from tests.form_payloads import CHIFFRE, FORM_ID, hobby_definition, hobby_response, hobby_summary


def _client() -> StubFormsClient:
    return StubFormsClient(
        forms=[hobby_summary()],
        definitions={FORM_ID: hobby_definition()},
        responses={
            FORM_ID: [
                hobby_response(chiffre=CHIFFRE),
                {"response_id": "empty", "answers": []},
                hobby_response(response_id="R2", email="other@example.org"),
            ]
        },
    )


@pytest.mark.unit
def test_import_writes_records_and_reports_counts() -> None:
    client = _client()
    repo = InMemoryRecordRepository()

    result = asyncio.run(import_forms(ImportFormsCommand(), forms_client=client, writer=repo))

    assert len(result.forms) == 1
    form_result = result.forms[0]
    assert form_result.responses == 3
    assert form_result.skipped_responses == 1
    assert form_result.records_built == 13
    assert form_result.counts == UpsertCounts(created=13)
    assert form_result.stored_total == 13
    assert result.form_summaries == UpsertCounts(created=1)
    assert repo.forms[FORM_ID].title == "Hobbys 2024"
    assert ("list_forms", None) in client.calls


@pytest.mark.unit
def test_rerun_is_idempotent() -> None:
    client = _client()
    repo = InMemoryRecordRepository()

    asyncio.run(import_forms(ImportFormsCommand(), forms_client=client, writer=repo))
    second = asyncio.run(
        import_forms(ImportFormsCommand(write_mode=WriteMode.SEQUENTIAL), forms_client=client, writer=repo)
    )

    assert second.counts == UpsertCounts(unchanged=13)
    assert second.form_summaries == UpsertCounts(unchanged=1)
    assert len(repo.records) == 13
    assert repo.batches[-1] == ("records", WriteMode.SEQUENTIAL, 6)


@pytest.mark.unit
def test_dry_run_writes_nothing_and_logs_preview(caplog: pytest.LogCaptureFixture) -> None:
    client = _client()
    caplog.set_level(logging.INFO, logger="importer")

    result = asyncio.run(
        import_forms(ImportFormsCommand(dry_run=True, dry_run_preview=2), forms_client=client, writer=None)
    )

    assert result.records_built == 13
    assert result.counts == UpsertCounts()
    assert result.form_summaries is None
    assert result.forms[0].stored_total is None
    previews = [message for message in caplog.messages if message.startswith("dry-run upsert record")]
    assert len(previews) == 4
    assert any("5 more record operations suppressed" in message for message in caplog.messages)


@pytest.mark.unit
def test_dry_run_all_logs_every_operation(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger="importer")

    asyncio.run(
        import_forms(ImportFormsCommand(dry_run=True, dry_run_all=True), forms_client=_client(), writer=None)
    )

    previews = [message for message in caplog.messages if message.startswith("dry-run upsert record")]
    assert len(previews) == 13
    assert not any("suppressed" in message for message in caplog.messages)


@pytest.mark.unit
def test_explicit_form_ids_skip_listing_and_limit_responses() -> None:
    client = _client()
    repo = InMemoryRecordRepository()
    asyncio.run(repo.upsert_forms([hobby_summary()]))

    result = asyncio.run(
        import_forms(
            ImportFormsCommand(form_ids=(FORM_ID,), responses_limit=1),
            forms_client=client,
            writer=repo,
        )
    )

    assert ("list_forms", None) not in client.calls
    assert result.forms[0].responses == 1
    assert result.records_built == 7
    assert repo.forms[FORM_ID].title == "Hobbys 2024"


@pytest.mark.unit
def test_forms_limit_is_applied_to_listing() -> None:
    client = _client()
    client.forms.append(FormSummary(form_id="second", title="Zweites"))
    client.definitions["second"] = FormDefinition(form_id="second", title="Zweites", fields=[])

    result = asyncio.run(
        import_forms(ImportFormsCommand(forms_limit=1), forms_client=client, writer=InMemoryRecordRepository())
    )

    assert [item.form_id for item in result.forms] == [FORM_ID]


@pytest.mark.unit
def test_upstream_failure_aborts_the_run() -> None:
    client = _client()
    client.failing_forms.add(FORM_ID)
    repo = InMemoryRecordRepository()

    with pytest.raises(UpstreamFetchError) as exc_info:
        asyncio.run(import_forms(ImportFormsCommand(), forms_client=client, writer=repo))

    assert exc_info.value.status_code == 503
    assert repo.records == {}


@pytest.mark.unit
def test_record_write_failure_aborts_the_run() -> None:
    repo = InMemoryRecordRepository(write_error="disk full")

    with pytest.raises(StoreWriteError, match="disk full"):
        asyncio.run(import_forms(ImportFormsCommand(), forms_client=_client(), writer=repo))


@pytest.mark.unit
def test_form_summary_failure_is_only_a_warning(caplog: pytest.LogCaptureFixture) -> None:
    class FailingSummaries(InMemoryRecordRepository):
        async def upsert_forms(self, forms, *, mode=WriteMode.BATCHED):
            raise StoreWriteError("summary table locked")

    repo = FailingSummaries()
    caplog.set_level(logging.WARNING, logger="importer")

    result = asyncio.run(import_forms(ImportFormsCommand(), forms_client=_client(), writer=repo))

    assert result.form_summaries is None
    assert result.counts.created == 13
    assert any("form summary upsert failed" in message for message in caplog.messages)


@pytest.mark.unit
def test_writer_is_required_unless_dry() -> None:
    with pytest.raises(DomainInvariantError):
        asyncio.run(import_forms(ImportFormsCommand(), forms_client=_client(), writer=None))
