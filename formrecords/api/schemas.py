from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, Field

CHIFFRES_DEFAULT_LIMIT = 200
CHIFFRES_MAX_LIMIT = 2000


class ErrorResponse(BaseModel):
    detail: str


class HealthResponse(BaseModel):
    status: str
    role: str


class ReadyResponse(BaseModel):
    status: str
    role: str
    store: str


class FormItem(BaseModel):
    form_id: str
    title: str | None = None


class FormListResponse(BaseModel):
    items: list[FormItem]


class ResponseGroupItem(BaseModel):
    response_id: str | None
    count: int = Field(ge=0)
    email: str | None = None
    chiffre: str | None = None
    date: dt.date | None = None


class ResponseGroupListResponse(BaseModel):
    items: list[ResponseGroupItem]


class RecordItem(BaseModel):
    identity: str
    index: int = Field(ge=0)
    value: str | None = None
    chiffre: str | None = None
    email: str | None = None
    date: dt.date | None = None
    field_id: str | None = None
    form_id: str
    question: str | None = None
    response_id: str | None = None


class RecordListResponse(BaseModel):
    items: list[RecordItem]


class ResponseRefItem(BaseModel):
    form_id: str
    response_id: str | None
    email: str | None = None
    chiffre: str | None = None
    date: dt.date | None = None


class ResponseRefListResponse(BaseModel):
    items: list[ResponseRefItem]


class ChiffreOverviewItem(BaseModel):
    chiffre: str
    responses_count: int = Field(ge=0)
    forms_count: int = Field(ge=0)
    latest: dt.date | None = None
    earliest: dt.date | None = None


class ChiffreOverviewListResponse(BaseModel):
    items: list[ChiffreOverviewItem]


class ValueFrequencyItem(BaseModel):
    value: str | None
    count: int = Field(ge=0)


class ValueFrequencyListResponse(BaseModel):
    items: list[ValueFrequencyItem]
