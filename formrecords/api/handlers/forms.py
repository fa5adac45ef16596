from __future__ import annotations

from formrecords.api.handlers.deps import ApiDeps
from formrecords.api.schemas import FormItem, FormListResponse, ResponseGroupItem, ResponseGroupListResponse

COMPONENT_ID = "api.forms"

FORMS_LIMIT = 100
FORM_RESPONSES_LIMIT = 200


async def search_forms_handler(*, query: str, api_deps: ApiDeps) -> FormListResponse:
    forms = await api_deps.reader.search_forms(query=query.strip(), limit=FORMS_LIMIT)
    return FormListResponse(items=[FormItem.model_validate(form, from_attributes=True) for form in forms])


async def list_form_responses_handler(*, form_id: str, api_deps: ApiDeps) -> ResponseGroupListResponse:
    groups = await api_deps.reader.list_form_responses(form_id=form_id, limit=FORM_RESPONSES_LIMIT)
    return ResponseGroupListResponse(
        items=[ResponseGroupItem.model_validate(group, from_attributes=True) for group in groups]
    )
