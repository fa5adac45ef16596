from __future__ import annotations

from dataclasses import dataclass, field
import logging
from types import TracebackType
from typing import Any

import httpx

from formrecords.domain.errors import UpstreamFetchError
from formrecords.domain.models import FormDefinition, FormSummary

DEFAULT_BASE_URL = "https://api.typeform.com"
DEFAULT_TIMEOUT_SECONDS = 30.0

logger = logging.getLogger("forms_api")


@dataclass
class TypeformClient:
    """Forms API client over httpx; open it as an async context manager."""

    token: str
    base_url: str = DEFAULT_BASE_URL
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    transport: httpx.AsyncBaseTransport | None = None
    _http: httpx.AsyncClient | None = field(default=None, init=False, repr=False)

    async def __aenter__(self) -> TypeformClient:
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "Authorization": f"Bearer {self.token}",
                "Content-Type": "application/json",
            },
            timeout=self.timeout_seconds,
            transport=self.transport,
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._http is None:
            return
        await self._http.aclose()
        self._http = None

    async def list_forms(self, *, limit: int | None = None) -> list[FormSummary]:
        items = await self._paginate("/forms", limit=limit)
        return [
            FormSummary(form_id=str(item.get("id")), title=_str_or_none(item.get("title")))
            for item in items
            if item.get("id")
        ]

    async def get_form(self, *, form_id: str) -> FormDefinition:
        data = await self._get(f"/forms/{form_id}")
        fields = data.get("fields")
        return FormDefinition(
            form_id=form_id,
            title=_str_or_none(data.get("title")),
            fields=fields if isinstance(fields, list) else [],
        )

    async def list_responses(self, *, form_id: str, limit: int | None = None) -> list[dict[str, object]]:
        return await self._paginate(f"/forms/{form_id}/responses", limit=limit)

    async def _paginate(self, path: str, *, limit: int | None) -> list[dict[str, Any]]:
        collected: list[dict[str, Any]] = []
        page = 1
        while True:
            data = await self._get(path, params={"page": page})
            items = data.get("items")
            if isinstance(items, list):
                collected.extend(item for item in items if isinstance(item, dict))
            if limit is not None and len(collected) >= limit:
                return collected[:limit]
            page_count = data.get("page_count") or 1
            if not isinstance(page_count, int) or page >= page_count:
                return collected
            page += 1

    async def _get(self, path: str, *, params: dict[str, object] | None = None) -> dict[str, Any]:
        if self._http is None:
            raise RuntimeError("forms client is not open")
        try:
            response = await self._http.get(path, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise UpstreamFetchError(
                f"GET {path} returned {exc.response.status_code}",
                status_code=exc.response.status_code,
                detail=_response_detail(exc.response),
            ) from exc
        except httpx.HTTPError as exc:
            raise UpstreamFetchError(f"GET {path} failed: {exc}") from exc

        logger.debug("forms api page fetched", extra={"path": path})
        try:
            data = response.json()
        except ValueError as exc:
            raise UpstreamFetchError(f"GET {path} returned a non-JSON body") from exc
        return data if isinstance(data, dict) else {}


def _response_detail(response: httpx.Response) -> object:
    try:
        return response.json()
    except ValueError:
        return response.text


def _str_or_none(value: object) -> str | None:
    return value if isinstance(value, str) else None
