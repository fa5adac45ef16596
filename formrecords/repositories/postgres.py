from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
import logging
from types import TracebackType
from typing import Any

import asyncpg

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
from formrecords.repositories.sql_loader import load_sql

logger = logging.getLogger("store")

SQL_ENSURE_RECORD_INDEX = load_sql("ensure_record_index.sql")
SQL_ENSURE_FORM_INDEX = load_sql("ensure_form_index.sql")
SQL_UPSERT_RECORDS_BATCH = load_sql("upsert_records_batch.sql")
SQL_UPSERT_RECORD = load_sql("upsert_record.sql")
SQL_UPSERT_FORMS_BATCH = load_sql("upsert_forms_batch.sql")
SQL_UPSERT_FORM = load_sql("upsert_form.sql")
SQL_FIND_RECORD = load_sql("find_record.sql")
SQL_COUNT_RECORDS = load_sql("count_records.sql")
SQL_SEARCH_FORMS = load_sql("search_forms.sql")
SQL_LIST_FORM_RESPONSES = load_sql("list_form_responses.sql")
SQL_GET_RESPONSE_RECORDS = load_sql("get_response_records.sql")
SQL_LIST_CHIFFRE_RESPONSES = load_sql("list_chiffre_responses.sql")
SQL_SEARCH_RESPONSES = load_sql("search_responses.sql")
SQL_LIST_CHIFFRES = load_sql("list_chiffres.sql")
SQL_RELATED_VALUES = load_sql("related_values.sql")

# (name, statement) pairs executed once at startup.
UNIQUE_INDEXES: tuple[tuple[str, str], ...] = (
    ("uniq_identity_idx", SQL_ENSURE_RECORD_INDEX),
    ("uniq_form_id", SQL_ENSURE_FORM_INDEX),
)

_STORE_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)


def _already_exists(exc: Exception) -> bool:
    # duplicate_table is raised for an existing index relation.
    return getattr(exc, "sqlstate", None) in {"42P07", "42710"}


@dataclass
class StoreSession:
    """Explicitly opened and closed handle on the store, shared by every component of a run."""

    dsn: str
    min_size: int = 1
    max_size: int = 5
    pool: Any | None = None

    async def startup(self) -> None:
        self.pool = await asyncpg.create_pool(
            dsn=self.dsn,
            min_size=self.min_size,
            max_size=self.max_size,
        )

    async def shutdown(self) -> None:
        if self.pool is None:
            return
        await self.pool.close()
        self.pool = None

    async def __aenter__(self) -> StoreSession:
        await self.startup()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.shutdown()


@dataclass
class PostgresRecordRepository:
    session: StoreSession

    def _pool(self) -> Any:
        if self.session.pool is None:
            raise RuntimeError("store session is not open")
        return self.session.pool

    async def ensure_indexes(self) -> None:
        pool = self._pool()
        async with pool.acquire() as conn:
            for name, statement in UNIQUE_INDEXES:
                try:
                    await conn.execute(statement)
                    logger.info("unique index created", extra={"index": name})
                except Exception as exc:
                    if _already_exists(exc):
                        continue
                    logger.warning(
                        "unique index setup failed: %s",
                        exc,
                        extra={"index": name, "error_code": "index_setup_failed"},
                    )

    async def upsert_records(self, records: Sequence[Record], *, mode: WriteMode = WriteMode.BATCHED) -> UpsertCounts:
        if not records:
            return UpsertCounts()
        pool = self._pool()
        try:
            async with pool.acquire() as conn:
                if mode is WriteMode.SEQUENTIAL:
                    return await _upsert_each(conn, records)
                try:
                    rows = await conn.fetch(SQL_UPSERT_RECORDS_BATCH, *_record_columns(records))
                except asyncpg.PostgresError as exc:
                    # One rejected row fails the whole statement; retry per key so the rest still land.
                    logger.warning(
                        "batched record upsert rejected, retrying per record: %s",
                        exc,
                        extra={"form_id": records[0].form_id, "response_id": records[0].response_id},
                    )
                    return await _upsert_each(conn, records)
        except _STORE_ERRORS as exc:
            raise StoreWriteError(f"record upsert failed: {exc}") from exc
        return _counts(total=len(records), created_flags=[row["created"] for row in rows])

    async def upsert_forms(self, forms: Sequence[FormSummary], *, mode: WriteMode = WriteMode.BATCHED) -> UpsertCounts:
        # One statement cannot touch the same key twice; the last summary wins.
        unique = list({summary.form_id: summary for summary in forms}.values())
        if not unique:
            return UpsertCounts()
        pool = self._pool()
        try:
            async with pool.acquire() as conn:
                if mode is WriteMode.SEQUENTIAL:
                    flags: list[bool] = []
                    for summary in unique:
                        row = await conn.fetchrow(SQL_UPSERT_FORM, summary.form_id, summary.title)
                        if row is not None:
                            flags.append(row["created"])
                else:
                    rows = await conn.fetch(
                        SQL_UPSERT_FORMS_BATCH,
                        [summary.form_id for summary in unique],
                        [summary.title for summary in unique],
                    )
                    flags = [row["created"] for row in rows]
        except _STORE_ERRORS as exc:
            raise StoreWriteError(f"form summary upsert failed: {exc}") from exc
        return _counts(total=len(unique), created_flags=flags)

    async def find_record(self, *, identity: str, index: int) -> Record | None:
        pool = self._pool()
        async with pool.acquire() as conn:
            row = await conn.fetchrow(SQL_FIND_RECORD, identity, index)
        return _record_from_row(row) if row is not None else None

    async def count_records(self, *, form_id: str) -> int:
        pool = self._pool()
        async with pool.acquire() as conn:
            return int(await conn.fetchval(SQL_COUNT_RECORDS, form_id))

    async def search_forms(self, *, query: str, limit: int = 100) -> list[FormSummary]:
        pool = self._pool()
        async with pool.acquire() as conn:
            rows = await conn.fetch(SQL_SEARCH_FORMS, query, limit)
        return [FormSummary(form_id=row["form_id"], title=row["title"]) for row in rows]

    async def list_form_responses(self, *, form_id: str, limit: int = 200) -> list[ResponseGroup]:
        pool = self._pool()
        async with pool.acquire() as conn:
            rows = await conn.fetch(SQL_LIST_FORM_RESPONSES, form_id, limit)
        return [
            ResponseGroup(
                response_id=row["response_id"],
                count=row["count"],
                email=row["email"],
                chiffre=row["chiffre"],
                date=row["date"],
            )
            for row in rows
        ]

    async def get_response_records(self, *, response_id: str) -> list[Record]:
        pool = self._pool()
        async with pool.acquire() as conn:
            rows = await conn.fetch(SQL_GET_RESPONSE_RECORDS, response_id)
        return [_record_from_row(row) for row in rows]

    async def list_chiffre_responses(self, *, chiffre: str, limit: int = 200) -> list[ResponseRef]:
        pool = self._pool()
        async with pool.acquire() as conn:
            rows = await conn.fetch(SQL_LIST_CHIFFRE_RESPONSES, chiffre, limit)
        return [_response_ref_from_row(row) for row in rows]

    async def search_responses(self, *, query: str, limit: int = 200) -> list[ResponseRef]:
        if not query:
            return []
        pool = self._pool()
        async with pool.acquire() as conn:
            rows = await conn.fetch(SQL_SEARCH_RESPONSES, query, limit)
        return [_response_ref_from_row(row) for row in rows]

    async def list_chiffres(self, *, limit: int = 200) -> list[ChiffreOverview]:
        pool = self._pool()
        async with pool.acquire() as conn:
            rows = await conn.fetch(SQL_LIST_CHIFFRES, limit)
        return [
            ChiffreOverview(
                chiffre=row["chiffre"],
                responses_count=row["responses_count"],
                forms_count=row["forms_count"],
                latest=row["latest"],
                earliest=row["earliest"],
            )
            for row in rows
        ]

    async def related_values(
        self,
        *,
        form_id: str,
        field_id: str,
        exclude_response_id: str | None = None,
        limit: int = 50,
    ) -> list[ValueFrequency]:
        pool = self._pool()
        async with pool.acquire() as conn:
            rows = await conn.fetch(SQL_RELATED_VALUES, form_id, field_id, exclude_response_id or None, limit)
        return [ValueFrequency(value=row["value"], count=row["count"]) for row in rows]


async def _upsert_each(conn: Any, records: Sequence[Record]) -> UpsertCounts:
    """Write records one statement each; every key is attempted before a failure is raised."""
    flags: list[bool] = []
    failed: list[tuple[Record, Exception]] = []
    for record in records:
        try:
            row = await conn.fetchrow(SQL_UPSERT_RECORD, *_record_args(record))
        except asyncpg.PostgresError as exc:
            logger.error(
                "record upsert failed for identity=%s idx=%d: %s",
                record.identity,
                record.index,
                exc,
                extra={"form_id": record.form_id, "response_id": record.response_id, "error_code": "store_write_failed"},
            )
            failed.append((record, exc))
            continue
        if row is not None:
            flags.append(row["created"])

    if failed:
        record, exc = failed[0]
        raise StoreWriteError(
            f"{len(failed)} of {len(records)} records failed to upsert "
            f"(first: identity={record.identity} idx={record.index}: {exc})"
        )
    return _counts(total=len(records), created_flags=flags)


def _counts(*, total: int, created_flags: list[bool]) -> UpsertCounts:
    # Rows left out of RETURNING matched an identical stored row.
    created = sum(1 for flag in created_flags if flag)
    return UpsertCounts(
        created=created,
        changed=len(created_flags) - created,
        unchanged=total - len(created_flags),
    )


def _record_args(record: Record) -> tuple[object, ...]:
    return (
        record.identity,
        record.index,
        record.value,
        record.chiffre,
        record.email,
        record.date,
        record.field_id,
        record.form_id,
        record.question,
        record.response_id,
    )


def _record_columns(records: Sequence[Record]) -> list[list[object]]:
    return [list(column) for column in zip(*(_record_args(record) for record in records))]


def _record_from_row(row: Any) -> Record:
    return Record(
        identity=row["identity"],
        index=row["idx"],
        value=row["value"],
        chiffre=row["chiffre"],
        email=row["email"],
        date=row["date"],
        field_id=row["field_id"],
        form_id=row["form_id"],
        question=row["question"],
        response_id=row["response_id"],
    )


def _response_ref_from_row(row: Any) -> ResponseRef:
    return ResponseRef(
        form_id=row["form_id"],
        response_id=row["response_id"],
        email=row["email"],
        chiffre=row["chiffre"],
        date=row["date"],
    )
