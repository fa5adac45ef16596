from __future__ import annotations

from formrecords.api.handlers.deps import ApiDeps
from formrecords.api.schemas import ValueFrequencyItem, ValueFrequencyListResponse

COMPONENT_ID = "api.answers.related"

RELATED_LIMIT = 50


async def related_answers_handler(
    *,
    form_id: str | None,
    field_id: str | None,
    exclude_response_id: str | None,
    api_deps: ApiDeps,
) -> ValueFrequencyListResponse:
    """Show what other respondents answered to the same question of the same form."""
    if not form_id or not field_id:
        return ValueFrequencyListResponse(items=[])
    frequencies = await api_deps.reader.related_values(
        form_id=form_id,
        field_id=field_id,
        exclude_response_id=exclude_response_id or None,
        limit=RELATED_LIMIT,
    )
    return ValueFrequencyListResponse(
        items=[ValueFrequencyItem.model_validate(item, from_attributes=True) for item in frequencies]
    )
