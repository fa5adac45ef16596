from __future__ import annotations

from formrecords.api.handlers.deps import ApiDeps
from formrecords.api.schemas import RecordItem, RecordListResponse

COMPONENT_ID = "api.responses.get"


async def get_response_records_handler(*, response_id: str, api_deps: ApiDeps) -> RecordListResponse:
    records = await api_deps.reader.get_response_records(response_id=response_id)
    return RecordListResponse(items=[RecordItem.model_validate(record, from_attributes=True) for record in records])
