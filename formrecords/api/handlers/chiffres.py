from __future__ import annotations

from formrecords.api.handlers.deps import ApiDeps
from formrecords.api.schemas import (
    CHIFFRES_DEFAULT_LIMIT,
    CHIFFRES_MAX_LIMIT,
    ChiffreOverviewItem,
    ChiffreOverviewListResponse,
    ResponseRefItem,
    ResponseRefListResponse,
)

COMPONENT_ID = "api.chiffres"

CHIFFRE_RESPONSES_LIMIT = 200


def clamp_limit(limit: int | None) -> int:
    if not limit:
        return CHIFFRES_DEFAULT_LIMIT
    return max(1, min(limit, CHIFFRES_MAX_LIMIT))


async def list_chiffre_responses_handler(*, chiffre: str, api_deps: ApiDeps) -> ResponseRefListResponse:
    refs = await api_deps.reader.list_chiffre_responses(chiffre=chiffre, limit=CHIFFRE_RESPONSES_LIMIT)
    return ResponseRefListResponse(items=[ResponseRefItem.model_validate(ref, from_attributes=True) for ref in refs])


async def list_chiffres_handler(*, limit: int | None, api_deps: ApiDeps) -> ChiffreOverviewListResponse:
    overview = await api_deps.reader.list_chiffres(limit=clamp_limit(limit))
    return ChiffreOverviewListResponse(
        items=[ChiffreOverviewItem.model_validate(item, from_attributes=True) for item in overview]
    )
