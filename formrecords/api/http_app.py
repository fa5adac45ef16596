from __future__ import annotations

from contextlib import asynccontextmanager
from collections.abc import Awaitable, Callable
import logging

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from formrecords.api.handlers.answers import related_answers_handler
from formrecords.api.handlers.chiffres import list_chiffre_responses_handler, list_chiffres_handler
from formrecords.api.handlers.deps import ApiDeps
from formrecords.api.handlers.forms import list_form_responses_handler, search_forms_handler
from formrecords.api.handlers.responses import get_response_records_handler
from formrecords.api.handlers.search import search_responses_handler
from formrecords.api.schemas import (
    ChiffreOverviewListResponse,
    ErrorResponse,
    FormListResponse,
    HealthResponse,
    ReadyResponse,
    RecordListResponse,
    ResponseGroupListResponse,
    ResponseRefListResponse,
    ValueFrequencyListResponse,
)


def build_app(
    role: str,
    run_id: str,
    api_deps: ApiDeps | None = None,
    on_startup: Callable[[], Awaitable[None]] | None = None,
    on_shutdown: Callable[[], Awaitable[None]] | None = None,
) -> FastAPI:
    """Read-only API over persisted answer records; there are no write routes."""
    logger = logging.getLogger("runtime")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        del app
        logger.info(
            "role started",
            extra={"role": role, "service": role, "run_id": run_id},
        )

        if on_startup is not None:
            await on_startup()

        try:
            yield
        finally:
            if on_shutdown is not None:
                await on_shutdown()

            logger.info(
                "role stopped",
                extra={"role": role, "service": role, "run_id": run_id},
            )

    app = FastAPI(title="formrecords", version="0.1.0", lifespan=lifespan)

    @app.exception_handler(Exception)
    async def store_failure(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(
            "request failed: %s %s",
            request.method,
            request.url.path,
            extra={"role": role, "service": role, "run_id": run_id},
        )
        return JSONResponse(status_code=500, content={"detail": str(exc) or exc.__class__.__name__})

    def _deps() -> ApiDeps:
        if api_deps is None:
            raise HTTPException(status_code=503, detail="api dependencies are not available")
        return api_deps

    @app.get("/health", response_model=HealthResponse, tags=["System"])
    async def health() -> HealthResponse:
        return HealthResponse(status="ok", role=role)

    @app.get("/ready", response_model=ReadyResponse, tags=["System"])
    async def ready() -> ReadyResponse:
        store = "unavailable" if api_deps is None else type(api_deps.reader).__name__
        return ReadyResponse(status="ready", role=role, store=store)

    @app.get(
        "/api/forms",
        response_model=FormListResponse,
        responses={500: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
        tags=["Forms"],
    )
    async def search_forms(q: str = Query(default="")) -> FormListResponse:
        return await search_forms_handler(query=q, api_deps=_deps())

    @app.get(
        "/api/forms/{form_id}/responses",
        response_model=ResponseGroupListResponse,
        responses={500: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
        tags=["Forms"],
    )
    async def list_form_responses(form_id: str) -> ResponseGroupListResponse:
        return await list_form_responses_handler(form_id=form_id, api_deps=_deps())

    @app.get(
        "/api/responses/{response_id}",
        response_model=RecordListResponse,
        responses={500: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
        tags=["Responses"],
    )
    async def get_response(response_id: str) -> RecordListResponse:
        return await get_response_records_handler(response_id=response_id, api_deps=_deps())

    @app.get(
        "/api/chiffre/{chiffre}",
        response_model=ResponseRefListResponse,
        responses={500: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
        tags=["Chiffres"],
    )
    async def list_chiffre_responses(chiffre: str) -> ResponseRefListResponse:
        return await list_chiffre_responses_handler(chiffre=chiffre, api_deps=_deps())

    @app.get(
        "/api/chiffres",
        response_model=ChiffreOverviewListResponse,
        responses={500: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
        tags=["Chiffres"],
    )
    async def list_chiffres(limit: int | None = Query(default=None)) -> ChiffreOverviewListResponse:
        return await list_chiffres_handler(limit=limit, api_deps=_deps())

    @app.get(
        "/api/search",
        response_model=ResponseRefListResponse,
        responses={500: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
        tags=["Responses"],
    )
    async def search(q: str = Query(default="")) -> ResponseRefListResponse:
        return await search_responses_handler(query=q, api_deps=_deps())

    @app.get(
        "/api/answers/related",
        response_model=ValueFrequencyListResponse,
        responses={500: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
        tags=["Responses"],
    )
    async def related_answers(
        form_id: str | None = Query(default=None),
        field_id: str | None = Query(default=None),
        exclude_response_id: str | None = Query(default=None),
    ) -> ValueFrequencyListResponse:
        return await related_answers_handler(
            form_id=form_id,
            field_id=field_id,
            exclude_response_id=exclude_response_id,
            api_deps=_deps(),
        )

    return app
