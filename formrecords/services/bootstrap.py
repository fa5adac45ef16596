from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
import os

from formrecords.api.handlers.deps import ApiDeps
from formrecords.clients.typeform import TypeformClient
from formrecords.domain.contracts import FormsClient, RecordReader, RecordWriter
from formrecords.domain.dto import ImportFormsCommand
from formrecords.domain.errors import ConfigurationError
from formrecords.repositories.postgres import PostgresRecordRepository, StoreSession
from formrecords.repositories.stub import InMemoryRecordRepository
from formrecords.settings import ImportSettings


@dataclass
class RuntimeContainer:
    repository: RecordReader
    api_deps: ApiDeps
    on_startup: Callable[[], Awaitable[None]] | None
    on_shutdown: Callable[[], Awaitable[None]] | None


@dataclass(frozen=True)
class ImportRuntime:
    forms_client: FormsClient
    # None on dry runs: nothing is written.
    writer: RecordWriter | None


def build_runtime_container() -> RuntimeContainer:
    database_url = os.getenv("DATABASE_URL")
    on_startup: Callable[[], Awaitable[None]] | None = None
    on_shutdown: Callable[[], Awaitable[None]] | None = None
    repository: PostgresRecordRepository | InMemoryRecordRepository
    if database_url:
        session = StoreSession(dsn=database_url)
        repository = PostgresRecordRepository(session=session)
        on_startup = session.startup
        on_shutdown = session.shutdown
    else:
        repository = InMemoryRecordRepository()

    return RuntimeContainer(
        repository=repository,
        api_deps=ApiDeps(reader=repository),
        on_startup=on_startup,
        on_shutdown=on_shutdown,
    )


def import_command_from_settings(settings: ImportSettings) -> ImportFormsCommand:
    return ImportFormsCommand(
        forms_limit=settings.forms_limit,
        responses_limit=settings.responses_limit,
        form_ids=settings.form_ids,
        dry_run=settings.dry_run,
        dry_run_all=settings.dry_run_all,
        dry_run_preview=settings.dry_run_preview,
        write_mode=settings.write_mode,
    )


@asynccontextmanager
async def open_import_runtime(settings: ImportSettings) -> AsyncIterator[ImportRuntime]:
    """Open the forms client and (unless dry) the store session; both are closed on every exit path."""
    async with TypeformClient(token=settings.typeform_token or "", base_url=settings.typeform_base_url) as forms_client:
        if settings.dry_run:
            yield ImportRuntime(forms_client=forms_client, writer=None)
            return
        if not settings.database_url:
            raise ConfigurationError("missing DATABASE_URL")

        # The importer writes sequentially; one connection is enough.
        async with StoreSession(dsn=settings.database_url, max_size=1) as session:
            repository = PostgresRecordRepository(session=session)
            await repository.ensure_indexes()
            yield ImportRuntime(forms_client=forms_client, writer=repository)
