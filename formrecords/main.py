from __future__ import annotations

import argparse
import asyncio
import dataclasses
import logging
import os
import sys
import uuid

import uvicorn

from formrecords.api.http_app import build_app
from formrecords.domain.errors import ConfigurationError
from formrecords.domain.error_taxonomy import classify_error, error_code_for
from formrecords.domain.use_cases.import_forms import import_forms
from formrecords.logging_setup import configure_logging, log_level_from_env
from formrecords.roles import SUPPORTED_ROLES, RuntimeRole, validate_role
from formrecords.services.bootstrap import (
    build_runtime_container,
    import_command_from_settings,
    open_import_runtime,
)
from formrecords.settings import (
    ImportSettings,
    import_settings_from_env,
    parse_form_ids,
    parse_limit,
    parse_write_mode,
    validate_import_settings,
)

DEFAULT_API_PORT = 8000


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Typeform answer records runtime")
    parser.add_argument("--role", required=True, help="Runtime role")
    parser.add_argument("--host", default=os.getenv("APP_HOST", "0.0.0.0"))
    parser.add_argument("--port", type=int, default=None)
    parser.add_argument(
        "--dry-run-startup",
        action="store_true",
        help="Validate startup and exit",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable code reload (dev mode)",
    )

    importer = parser.add_argument_group("importer")
    importer.add_argument("--max-forms", default=None, help="Import at most N forms")
    importer.add_argument("--max-responses", default=None, help="Fetch at most N responses per form")
    importer.add_argument("--form-ids", default=None, help="Comma-separated form ids; skips form listing")
    importer.add_argument("--dry-run", action="store_true", help="Build records and log them, write nothing")
    importer.add_argument("--dry-run-all", action="store_true", help="Log every dry-run operation")
    importer.add_argument("--dry-run-preview", type=int, default=None, help="Dry-run operations logged per batch")
    importer.add_argument("--write-mode", default=None, help="batched (bulk) or sequential (single)")
    return parser.parse_args(argv)


def apply_cli_overrides(settings: ImportSettings, args: argparse.Namespace) -> ImportSettings:
    overrides: dict[str, object] = {}
    if args.max_forms is not None:
        overrides["forms_limit"] = parse_limit(args.max_forms)
    if args.max_responses is not None:
        overrides["responses_limit"] = parse_limit(args.max_responses)
    if args.form_ids is not None:
        overrides["form_ids"] = parse_form_ids(args.form_ids)
    if args.dry_run:
        overrides["dry_run"] = True
    if args.dry_run_all:
        overrides["dry_run_all"] = True
    if args.dry_run_preview is not None and args.dry_run_preview >= 0:
        overrides["dry_run_preview"] = args.dry_run_preview
    if args.write_mode is not None:
        overrides["write_mode"] = parse_write_mode(args.write_mode)
    return dataclasses.replace(settings, **overrides)


def create_runtime_app() -> object:
    role_name = os.getenv("APP_ROLE", "api")
    role = validate_role(role_name)
    run_id = str(uuid.uuid4())
    configure_logging(log_level_from_env())
    container = build_runtime_container()
    return build_app(
        role=role.name,
        run_id=run_id,
        api_deps=container.api_deps,
        on_startup=container.on_startup,
        on_shutdown=container.on_shutdown,
    )


async def _run_import(settings: ImportSettings) -> None:
    cmd = import_command_from_settings(settings)
    async with open_import_runtime(settings) as runtime:
        await import_forms(cmd, forms_client=runtime.forms_client, writer=runtime.writer)


def run_importer(args: argparse.Namespace, *, role: RuntimeRole, run_id: str) -> int:
    logger = logging.getLogger("runtime")
    extra = {"role": role.name, "service": role.name, "run_id": run_id}

    try:
        settings = apply_cli_overrides(import_settings_from_env(), args)
        validate_import_settings(settings)
    except ConfigurationError as exc:
        sys.stderr.write(f"ERROR: {exc}\n")
        logger.error("configuration rejected: %s", exc, extra={**extra, "error_code": "configuration_error"})
        return 2

    logger.info(
        "import started (dry_run=%s, write_mode=%s)",
        settings.dry_run,
        settings.write_mode,
        extra=extra,
    )
    try:
        asyncio.run(_run_import(settings))
    except ConfigurationError as exc:
        sys.stderr.write(f"ERROR: {exc}\n")
        logger.error("configuration rejected: %s", exc, extra={**extra, "error_code": "configuration_error"})
        return 2
    except Exception as exc:
        code = error_code_for(exc)
        logger.exception(
            "import failed (%s): %s",
            classify_error(code),
            exc,
            extra={**extra, "error_code": code},
        )
        return 1

    logger.info("import complete", extra=extra)
    return 0


def run(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    try:
        role = validate_role(args.role)
    except ValueError as exc:
        supported = ", ".join(SUPPORTED_ROLES)
        sys.stderr.write(f"ERROR: {exc}\n")
        sys.stderr.write(f"Try one of: {supported}\n")
        return 2

    configure_logging(log_level_from_env())
    run_id = str(uuid.uuid4())
    logger = logging.getLogger("runtime")

    logger.info(
        "runtime initialized",
        extra={"role": role.name, "service": role.name, "run_id": run_id},
    )

    if args.dry_run_startup:
        logger.info(
            "dry-run startup complete",
            extra={"role": role.name, "service": role.name, "run_id": run_id},
        )
        return 0

    if role.one_shot:
        return run_importer(args, role=role, run_id=run_id)

    container = build_runtime_container()
    port = args.port if args.port is not None else DEFAULT_API_PORT
    if args.reload:
        os.environ["APP_ROLE"] = role.name
        uvicorn.run(
            "formrecords.main:create_runtime_app",
            host=args.host,
            port=port,
            log_level="warning",
            reload=True,
            factory=True,
        )
    else:
        app = build_app(
            role=role.name,
            run_id=run_id,
            api_deps=container.api_deps,
            on_startup=container.on_startup,
            on_shutdown=container.on_shutdown,
        )
        uvicorn.run(app, host=args.host, port=port, log_level="warning")
    return 0


if __name__ == "__main__":
    raise SystemExit(run())
