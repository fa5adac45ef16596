from __future__ import annotations

from formrecords.api.handlers.deps import ApiDeps
from formrecords.api.schemas import ResponseRefItem, ResponseRefListResponse

COMPONENT_ID = "api.search"

SEARCH_LIMIT = 200


async def search_responses_handler(*, query: str, api_deps: ApiDeps) -> ResponseRefListResponse:
    query = query.strip()
    if not query:
        return ResponseRefListResponse(items=[])
    refs = await api_deps.reader.search_responses(query=query, limit=SEARCH_LIMIT)
    return ResponseRefListResponse(items=[ResponseRefItem.model_validate(ref, from_attributes=True) for ref in refs])
