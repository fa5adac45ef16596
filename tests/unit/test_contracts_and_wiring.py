import asyncio

import pytest

from formrecords.clients.stub import StubFormsClient
from formrecords.clients.typeform import TypeformClient
from formrecords.domain.contracts import (
    FORM_UNIQUE_KEY,
    RECORD_UNIQUE_KEY,
    FormsClient,
    RecordReader,
    RecordWriter,
)
from formrecords.domain.errors import ConfigurationError
from formrecords.repositories.postgres import UNIQUE_INDEXES
from formrecords.repositories.sql_loader import load_sql
from formrecords.repositories.stub import InMemoryRecordRepository
from formrecords.services.bootstrap import (
    build_runtime_container,
    import_command_from_settings,
    open_import_runtime,
)
from formrecords.settings import ImportSettings


@pytest.mark.unit
def test_unique_index_statements_match_store_keys() -> None:
    statements = dict(UNIQUE_INDEXES)

    assert f"({', '.join(RECORD_UNIQUE_KEY)})" in statements["uniq_identity_idx"]
    assert f"({', '.join(FORM_UNIQUE_KEY)})" in statements["uniq_form_id"]
    assert "ON CONFLICT (identity, idx)" in load_sql("upsert_records_batch.sql")


@pytest.mark.unit
def test_sql_loader_rejects_other_files() -> None:
    with pytest.raises(ValueError):
        load_sql("upsert_record.txt")
    assert not load_sql("count_records.sql").endswith(";")


@pytest.mark.unit
def test_adapters_satisfy_contracts() -> None:
    repository = InMemoryRecordRepository()

    assert isinstance(repository, RecordWriter)
    assert isinstance(repository, RecordReader)
    assert isinstance(StubFormsClient(), FormsClient)
    assert isinstance(TypeformClient(token="t"), FormsClient)


@pytest.mark.unit
def test_api_container_falls_back_to_memory(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("DATABASE_URL", raising=False)

    container = build_runtime_container()

    assert isinstance(container.repository, InMemoryRecordRepository)
    assert container.api_deps.reader is container.repository
    assert container.on_startup is None


@pytest.mark.unit
def test_import_command_mirrors_settings() -> None:
    settings = ImportSettings(typeform_token="t", forms_limit=2, form_ids=("a",), dry_run=True, dry_run_preview=5)

    cmd = import_command_from_settings(settings)

    assert (cmd.forms_limit, cmd.form_ids, cmd.dry_run, cmd.dry_run_preview) == (2, ("a",), True, 5)


@pytest.mark.unit
def test_dry_run_runtime_has_no_writer() -> None:
    async def _open() -> None:
        async with open_import_runtime(ImportSettings(typeform_token="t", dry_run=True)) as runtime:
            assert runtime.writer is None
            assert isinstance(runtime.forms_client, TypeformClient)

    asyncio.run(_open())


@pytest.mark.unit
def test_write_runtime_requires_database_url() -> None:
    async def _open() -> None:
        async with open_import_runtime(ImportSettings(typeform_token="t")):
            pass

    with pytest.raises(ConfigurationError):
        asyncio.run(_open())
