from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from datastore.document_store import MockDocumentStore, build_default_store
from datastore.errors import StoreUnavailableError
from models.records import DateRange
from services.aggregator import StatisticsAggregator
from services.pipeline import SensorDataService, build_default_service
from services.session import DisplaySession
from settings import get_settings

DOCUMENTS = [
    {
        "doc_id": "A-2025-01-10",
        "day": "2025-01-10",
        "tag_id": "A",
        "measurements": [
            {"ts": "08:00:00", "t": "21.5", "h": "40.0"},
            {"ts": "09:00:00", "t": "invalid", "h": "41.0"},
        ],
        "battery_level": "80",
    },
    {
        "doc_id": "A-2025-01-11",
        "day": "2025-01-11",
        "tag_id": "A",
        "measurements": [{"ts": "10:00:00", "t": "23.5", "h": "42.0"}],
        "battery_voltage": "3600",
    },
    {
        "doc_id": "B-2025-01-11",
        "day": "2025-01-11",
        "tag_id": "B",
        "measurements": [],
    },
]


@pytest.fixture
def store() -> MockDocumentStore:
    return MockDocumentStore(name="test")


@pytest.fixture
def api_client(store: MockDocumentStore, monkeypatch) -> Iterator[TestClient]:
    service = SensorDataService(store=store, aggregator=StatisticsAggregator(), page_size=2)
    session = DisplaySession(
        service=service, default_range=DateRange(start="2025-01-01", end="2025-12-31")
    )

    def build_test_service(page_size=None) -> SensorDataService:
        return service

    def build_test_session() -> DisplaySession:
        return session

    build_test_service.cache_clear = lambda: None  # type: ignore[attr-defined]
    build_test_session.cache_clear = lambda: None  # type: ignore[attr-defined]

    monkeypatch.setattr("app.main.build_default_service", build_test_service)
    monkeypatch.setattr("app.main.build_default_session", build_test_session)
    monkeypatch.setattr("app.api.build_default_service", build_test_service)
    monkeypatch.setattr("app.api.build_default_session", build_test_session)
    monkeypatch.setattr("app.api.build_default_store", lambda: store)

    app = create_app()
    with TestClient(app) as client:
        yield client


def _ingest(client: TestClient) -> None:
    response = client.post("/documents", json=DOCUMENTS)
    assert response.status_code == 201
    assert response.json()["document_count"] == 3


def test_lifespan_clears_cached_service(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("SENSOR_STORE_PERSISTENCE_PATH", str(tmp_path / "documents.json"))
    get_settings.cache_clear()
    build_default_store.cache_clear()
    app = create_app()

    try:
        with TestClient(app):
            service_during = build_default_service()

        service_after = build_default_service()
        assert service_after is not service_during
        assert service_after.store is service_during.store
    finally:
        build_default_service.cache_clear()
        build_default_store.cache_clear()
        get_settings.cache_clear()


def test_health(api_client: TestClient) -> None:
    assert api_client.get("/health").json() == {"status": "ok"}


def test_tags_listed_after_ingest(api_client: TestClient) -> None:
    _ingest(api_client)

    response = api_client.get("/tags")

    assert response.status_code == 200
    assert response.json() == {"tag_ids": ["A", "B"]}


def test_ingest_rejects_empty_list(api_client: TestClient) -> None:
    response = api_client.post("/documents", json=[])

    assert response.status_code == 400
    assert response.json()["detail"] == "No documents supplied."


def test_series_endpoint_returns_sorted_readings_and_statistics(api_client: TestClient) -> None:
    _ingest(api_client)

    response = api_client.get("/tags/A/series", params={"start": "2025-01-10", "end": "2025-01-11"})

    assert response.status_code == 200
    payload = response.json()
    assert [reading["temperature"] for reading in payload["readings"]] == [21.5, 23.5]
    assert payload["readings"][1]["battery_level"] == 80
    assert payload["readings"][1]["battery_voltage"] == 3600
    assert payload["statistics"]["temperature"] == {
        "min": 21.5,
        "max": 23.5,
        "avg": 22.5,
        "latest": 23.5,
    }
    assert payload["statistics"]["battery_voltage"]["latest"] == 3600
    assert payload["skipped_count"] == 1
    assert payload["document_count"] == 2
    assert payload["battery"]["level_health"] == "Good"


def test_series_rejects_malformed_day(api_client: TestClient) -> None:
    response = api_client.get("/tags/A/series", params={"start": "2025-1-1"})

    assert response.status_code == 400


def test_statistics_for_unknown_tag_are_empty(api_client: TestClient) -> None:
    response = api_client.get("/tags/missing/statistics")

    assert response.status_code == 200
    payload = response.json()
    assert payload["temperature"] == {"min": 0.0, "max": 0.0, "avg": 0.0, "latest": 0.0}
    assert payload["battery_level"] is None
    assert payload["first"] == 0


def test_battery_endpoint(api_client: TestClient) -> None:
    _ingest(api_client)

    payload = api_client.get("/tags/A/battery").json()

    assert payload["level"] == 80
    assert payload["voltage"] == 3600
    assert payload["voltage_health"] == "Medium"


def test_document_pages_follow_cursor(api_client: TestClient) -> None:
    _ingest(api_client)

    first = api_client.get("/documents", params={"page_size": 2}).json()
    second = api_client.get(
        "/documents", params={"page_size": 2, "cursor": first["next_cursor"]}
    ).json()

    assert [doc["doc_id"] for doc in first["documents"]] == ["B-2025-01-11", "A-2025-01-11"]
    assert first["has_more"] is True
    assert [doc["doc_id"] for doc in second["documents"]] == ["A-2025-01-10"]
    assert second["has_more"] is False


def test_document_pages_carry_recent_readings(api_client: TestClient) -> None:
    _ingest(api_client)

    first = api_client.get("/documents", params={"page_size": 2}).json()
    second = api_client.get(
        "/documents", params={"page_size": 2, "cursor": first["next_cursor"]}
    ).json()

    assert [reading["temperature"] for reading in first["readings"]] == [23.5]
    assert first["readings"][0]["battery_voltage"] == 3600
    assert [reading["temperature"] for reading in second["readings"]] == [21.5]
    assert second["readings"][0]["battery_level"] == 80


def test_document_pages_reject_garbage_cursor(api_client: TestClient) -> None:
    response = api_client.get("/documents", params={"cursor": "garbage"})

    assert response.status_code == 400


def test_tag_export_returns_csv(api_client: TestClient) -> None:
    _ingest(api_client)

    response = api_client.get("/tags/A/export")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert 'filename="sensor-data-A.csv"' in response.headers["content-disposition"]
    lines = response.text.splitlines()
    assert lines[0] == "timestamp,temperature,humidity,tag_id,battery_level,battery_voltage"
    assert len(lines) == 3


def test_export_without_rows_is_not_found(api_client: TestClient) -> None:
    response = api_client.get("/export")

    assert response.status_code == 404
    assert response.json()["detail"] == "No data to export."


def test_session_select_and_manual_range(api_client: TestClient) -> None:
    _ingest(api_client)

    selected = api_client.put("/session/tag", json={"tag_id": "A"}).json()
    narrowed = api_client.put(
        "/session/range", json={"start": "2025-01-11", "end": "2025-01-11"}
    ).json()

    assert selected["calibrated"] is True
    assert selected["window"]["start_day"] == "2025-01-10"
    assert selected["window"]["end_day"] == "2025-01-11"
    assert selected["reading_count"] == 2
    assert narrowed["reading_count"] == 1
    assert narrowed["window"]["start_day"] == "2025-01-11"


def test_session_store_failure_returns_service_unavailable(
    api_client: TestClient, store: MockDocumentStore, monkeypatch
) -> None:
    def broken(*_args, **_kwargs):
        raise StoreUnavailableError("store offline")

    monkeypatch.setattr(store, "list_tag_ids", broken)

    response = api_client.post("/session/refresh")

    assert response.status_code == 503
    state = api_client.get("/session").json()
    assert state["last_error"] == "Error fetching data: store offline"
