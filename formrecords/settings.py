from __future__ import annotations

from dataclasses import dataclass
import os

from formrecords.clients.typeform import DEFAULT_BASE_URL
from formrecords.domain.errors import ConfigurationError
from formrecords.domain.models import WRITE_MODE_ALIASES, WriteMode

TRUTHY = frozenset({"1", "true", "yes", "on"})


@dataclass(frozen=True)
class ImportSettings:
    typeform_token: str | None = None
    typeform_base_url: str = DEFAULT_BASE_URL
    database_url: str | None = None
    forms_limit: int | None = None
    responses_limit: int | None = None
    form_ids: tuple[str, ...] | None = None
    dry_run: bool = False
    dry_run_all: bool = False
    dry_run_preview: int = 3
    write_mode: WriteMode = WriteMode.BATCHED


def import_settings_from_env() -> ImportSettings:
    return ImportSettings(
        typeform_token=os.getenv("TYPEFORM_TOKEN") or None,
        typeform_base_url=os.getenv("TYPEFORM_BASE_URL") or DEFAULT_BASE_URL,
        database_url=os.getenv("DATABASE_URL") or None,
        forms_limit=parse_limit(os.getenv("FORMS_LIMIT")),
        responses_limit=parse_limit(os.getenv("RESPONSES_LIMIT")),
        form_ids=parse_form_ids(os.getenv("FORM_IDS")),
        dry_run=parse_flag(os.getenv("DRY_RUN")),
        dry_run_all=parse_flag(os.getenv("DRY_RUN_ALL")),
        dry_run_preview=_env_int("DRY_RUN_PREVIEW", 3),
        write_mode=parse_write_mode(os.getenv("WRITE_MODE")),
    )


def validate_import_settings(settings: ImportSettings) -> None:
    if not settings.typeform_token:
        raise ConfigurationError("missing TYPEFORM_TOKEN")
    if not settings.dry_run and not settings.database_url:
        raise ConfigurationError("missing DATABASE_URL (or run with --dry-run)")


def parse_limit(value: str | None) -> int | None:
    """Positive integer limit, or None (unlimited) for missing or invalid input."""
    if value is None:
        return None
    try:
        parsed = int(value)
    except ValueError:
        return None
    return parsed if parsed > 0 else None


def parse_form_ids(value: str | None) -> tuple[str, ...] | None:
    if not value:
        return None
    ids = tuple(part.strip() for part in value.split(",") if part.strip())
    return ids or None


def parse_flag(value: str | None) -> bool:
    if value is None:
        return False
    return value.strip().lower() in TRUTHY


def parse_write_mode(value: str | None) -> WriteMode:
    if not value:
        return WriteMode.BATCHED
    return WRITE_MODE_ALIASES.get(value.strip().lower(), WriteMode.BATCHED)


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default

    try:
        parsed = int(value)
    except ValueError:
        return default

    return parsed if parsed >= 0 else default
