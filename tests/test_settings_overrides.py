from __future__ import annotations

from typing import Iterable

from datastore.document_store import build_default_store
from services.pipeline import build_default_service
from services.session import build_default_session
from settings import get_settings


def _clear_caches(caches: Iterable) -> None:
    for cache in caches:
        cache.cache_clear()


CACHES = (
    get_settings,
    build_default_store,
    build_default_service,
    build_default_session,
)


def test_environment_overrides_apply(monkeypatch, tmp_path) -> None:
    store_path = tmp_path / "documents.json"

    monkeypatch.setenv("SENSOR_COLLECTION_NAME", "custom-collection")
    monkeypatch.setenv("SENSOR_STORE_PERSISTENCE_PATH", str(store_path))
    monkeypatch.setenv("SENSOR_PAGE_SIZE", "7")
    monkeypatch.setenv("SENSOR_DEFAULT_START_DAY", "2024-03-01")
    monkeypatch.setenv("SENSOR_DEFAULT_END_DAY", "2024-03-31")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    _clear_caches(CACHES)

    try:
        store = build_default_store()
        service = build_default_service()
        session = build_default_session()

        assert store.name == "custom-collection"
        assert store.persistence_path == store_path
        assert service.walker.page_size == 7
        assert session.calibrator.window.date_range.start == "2024-03-01"
        assert session.calibrator.window.date_range.end == "2024-03-31"
        assert get_settings().log_level == "DEBUG"
    finally:
        _clear_caches(CACHES)


def test_invalid_page_size_falls_back_to_default(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("SENSOR_STORE_PERSISTENCE_PATH", str(tmp_path / "documents.json"))
    monkeypatch.setenv("SENSOR_PAGE_SIZE", "zero")
    _clear_caches(CACHES)

    try:
        assert get_settings().page_size == 5
        assert get_settings().store_persistence_path == str(tmp_path / "documents.json")
    finally:
        _clear_caches(CACHES)


def test_blank_persistence_path_disables_persistence(monkeypatch) -> None:
    monkeypatch.setenv("SENSOR_STORE_PERSISTENCE_PATH", "  ")
    _clear_caches(CACHES)

    try:
        assert build_default_store().persistence_path is None
    finally:
        _clear_caches(CACHES)
