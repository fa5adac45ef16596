from __future__ import annotations

from dataclasses import dataclass, field

from formrecords.domain.errors import UpstreamFetchError
from formrecords.domain.models import FormDefinition, FormSummary


@dataclass
class StubFormsClient:
    forms: list[FormSummary] = field(default_factory=list)
    definitions: dict[str, FormDefinition] = field(default_factory=dict)
    responses: dict[str, list[dict[str, object]]] = field(default_factory=dict)
    calls: list[tuple[str, str | None]] = field(default_factory=list)
    # Form ids whose definition fetch fails like an upstream 5xx.
    failing_forms: set[str] = field(default_factory=set)

    async def list_forms(self, *, limit: int | None = None) -> list[FormSummary]:
        self.calls.append(("list_forms", None))
        items = list(self.forms)
        return items[:limit] if limit is not None else items

    async def get_form(self, *, form_id: str) -> FormDefinition:
        self.calls.append(("get_form", form_id))
        if form_id in self.failing_forms:
            raise UpstreamFetchError(f"GET /forms/{form_id} returned 503", status_code=503)
        definition = self.definitions.get(form_id)
        if definition is None:
            raise UpstreamFetchError(f"GET /forms/{form_id} returned 404", status_code=404)
        return definition

    async def list_responses(self, *, form_id: str, limit: int | None = None) -> list[dict[str, object]]:
        self.calls.append(("list_responses", form_id))
        items = list(self.responses.get(form_id, []))
        return items[:limit] if limit is not None else items
