from fastapi.testclient import TestClient
import pytest

from formrecords.api.handlers.chiffres import clamp_limit
from formrecords.api.handlers.deps import ApiDeps
from formrecords.api.http_app import build_app
from formrecords.repositories.stub import InMemoryRecordRepository
from formrecords.services.bootstrap import build_runtime_container
from tests.form_payloads import CHIFFRE, FORM_ID
from tests.integration.api_seed import seed_hobby_form

FIRST_RESPONSE = "zw8pa2cuz2tb2nrzw8pa2cefpq7b8ku9"


@pytest.fixture
def client(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    container = build_runtime_container()
    assert isinstance(container.repository, InMemoryRecordRepository)
    seed_hobby_form(repository=container.repository)
    app = build_app(
        role="api",
        run_id="integration-api",
        api_deps=container.api_deps,
        on_startup=container.on_startup,
        on_shutdown=container.on_shutdown,
    )
    with TestClient(app) as test_client:
        yield test_client


@pytest.mark.integration
def test_system_probes(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "ok", "role": "api"}
    ready = client.get("/ready").json()
    assert ready["status"] == "ready"
    assert ready["store"] == "InMemoryRecordRepository"


@pytest.mark.integration
def test_form_search_and_response_groups(client: TestClient) -> None:
    forms = client.get("/api/forms", params={"q": "HOBBY"})
    assert forms.status_code == 200
    assert forms.json() == {"items": [{"form_id": FORM_ID, "title": "Hobbys 2024"}]}
    assert client.get("/api/forms").json()["items"][0]["form_id"] == FORM_ID
    assert client.get("/api/forms", params={"q": "zzz"}).json() == {"items": []}

    groups = client.get(f"/api/forms/{FORM_ID}/responses").json()["items"]
    assert [(item["response_id"], item["count"]) for item in groups] == [("R2", 6), (FIRST_RESPONSE, 7)]
    assert groups[0]["date"] == "2024-04-01"
    assert groups[1]["chiffre"] == CHIFFRE


@pytest.mark.integration
def test_response_records_are_ordered_by_index(client: TestClient) -> None:
    items = client.get(f"/api/responses/{FIRST_RESPONSE}").json()["items"]

    assert [item["index"] for item in items] == list(range(7))
    assert items[3]["value"] == "Malen, Karate"
    assert items[3]["question"] == "Hobbys"
    assert client.get("/api/responses/unknown").json() == {"items": []}


@pytest.mark.integration
def test_chiffre_views(client: TestClient) -> None:
    refs = client.get(f"/api/chiffre/{CHIFFRE}").json()["items"]
    assert refs == [
        {
            "form_id": FORM_ID,
            "response_id": FIRST_RESPONSE,
            "email": "minjana@web.de",
            "chiffre": CHIFFRE,
            "date": "2024-03-05",
        }
    ]

    overview = client.get("/api/chiffres", params={"limit": 0}).json()["items"]
    assert overview == [
        {
            "chiffre": CHIFFRE,
            "responses_count": 1,
            "forms_count": 1,
            "latest": "2024-03-05",
            "earliest": "2024-03-05",
        }
    ]


@pytest.mark.integration
@pytest.mark.parametrize(("limit", "expected"), [(None, 200), (0, 200), (-5, 1), (50, 50), (99999, 2000)])
def test_chiffre_overview_limit_is_clamped(limit: int | None, expected: int) -> None:
    assert clamp_limit(limit) == expected


@pytest.mark.integration
def test_search_matches_email_and_ignores_empty_query(client: TestClient) -> None:
    assert client.get("/api/search", params={"q": "  "}).json() == {"items": []}

    items = client.get("/api/search", params={"q": "other@"}).json()["items"]
    assert [item["response_id"] for item in items] == ["R2"]

    by_form = client.get("/api/search", params={"q": FORM_ID.lower()}).json()["items"]
    assert [item["response_id"] for item in by_form] == ["R2", FIRST_RESPONSE]


@pytest.mark.integration
def test_related_answers(client: TestClient) -> None:
    related = client.get(
        "/api/answers/related",
        params={"form_id": FORM_ID, "field_id": "f_hobbies", "exclude_response_id": "R2"},
    ).json()["items"]
    assert related == [{"value": "Malen, Karate", "count": 1}]

    everything = client.get("/api/answers/related", params={"form_id": FORM_ID, "field_id": "f_city"}).json()
    assert everything == {"items": [{"value": "Berlin", "count": 2}]}

    assert client.get("/api/answers/related", params={"form_id": FORM_ID}).json() == {"items": []}


@pytest.mark.integration
def test_store_failure_surfaces_as_500() -> None:
    class BrokenReader(InMemoryRecordRepository):
        async def search_forms(self, *, query: str, limit: int = 100):
            raise RuntimeError("store unavailable")

    app = build_app(role="api", run_id="integration-api", api_deps=ApiDeps(reader=BrokenReader()))

    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.get("/api/forms")

    assert response.status_code == 500
    assert response.json() == {"detail": "store unavailable"}


@pytest.mark.integration
def test_missing_dependencies_return_503() -> None:
    app = build_app(role="api", run_id="integration-api")

    with TestClient(app) as client:
        response = client.get("/api/chiffres")

    assert response.status_code == 503
