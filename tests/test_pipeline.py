from __future__ import annotations

from datetime import datetime

import pytest

from datastore.document_store import MockDocumentStore
from datastore.errors import StoreUnavailableError
from models.documents import DailyDocument
from models.records import DateRange
from services.aggregator import StatisticsAggregator
from services.battery import BatteryStatus
from services.pipeline import SensorDataService


def _local(*parts: int) -> int:
    return int(datetime(*parts).timestamp())


def _service(*documents: DailyDocument, page_size: int = 2) -> SensorDataService:
    store = MockDocumentStore(name="daily_measurements")
    store.put_documents(documents)
    return SensorDataService(store=store, aggregator=StatisticsAggregator(), page_size=page_size)


def _document(day: str, tag_id: str, *times: str, **battery: str) -> DailyDocument:
    return DailyDocument(
        doc_id=f"{tag_id}-{day}",
        day=day,
        tag_id=tag_id,
        measurements=[
            {"ts": ts, "t": str(20 + index), "h": str(40 + index)} for index, ts in enumerate(times)
        ],
        **battery,
    )


def test_series_is_sorted_regardless_of_document_and_measurement_order() -> None:
    service = _service(
        _document("2025-01-12", "A", "10:00:00", "08:00:00"),
        _document("2025-01-10", "A", "23:00:00", "01:00:00"),
        _document("2025-01-11", "A", "12:00:00"),
        _document("2025-01-11", "B", "12:00:00"),
    )

    series = service.get_series("A")

    timestamps = [reading.timestamp for reading in series]
    assert timestamps == sorted(timestamps)
    assert len(series) == 5
    assert {reading.tag_id for reading in series} == {"A"}


def test_battery_voltage_carries_forward_between_days() -> None:
    service = _service(
        _document("2025-01-01", "B", "08:00:00", "09:00:00", battery_voltage="3600"),
        _document("2025-01-02", "B", "08:00:00"),
    )

    series = service.get_series("B")

    assert [reading.battery_voltage for reading in series] == [3600, 3600, 3600]
    assert all(reading.battery_level is None for reading in series)


def test_date_range_filters_documents_but_battery_still_tracks_them() -> None:
    service = _service(
        _document("2025-01-01", "A", "08:00:00", battery_level="90"),
        _document("2025-01-02", "A", "08:00:00"),
        _document("2025-01-03", "A", "08:00:00", battery_level="70"),
    )

    loaded = service.load_series("A", DateRange(start="2025-01-02", end="2025-01-02"))

    assert [reading.timestamp for reading in loaded.readings] == [_local(2025, 1, 2, 8, 0, 0)]
    assert loaded.readings[0].battery_level == 90
    assert loaded.battery == BatteryStatus(level=70)
    assert loaded.document_count == 3


def test_document_day_and_measurement_time_combine_locally() -> None:
    service = _service(_document("2025-01-10", "A", "08:00:00", battery_level="80"))

    series = service.get_series("A", DateRange(start="2025-01-10", end="2025-01-10"))

    assert len(series) == 1
    assert series[0].timestamp == _local(2025, 1, 10, 8, 0, 0)
    assert series[0].battery_level == 80


def test_skipped_measurements_are_reported() -> None:
    document = DailyDocument(
        day="2025-01-10",
        tag_id="A",
        measurements=[
            {"ts": "08:00:00", "t": "21.5", "h": "40.0"},
            {"ts": "09:00:00", "t": "invalid", "h": "41.0"},
        ],
    )
    service = _service(document)

    loaded = service.load_series("A")

    assert len(loaded.readings) == 1
    assert [issue.reason for issue in loaded.issues] == ["invalid numeric value"]


def test_statistics_and_latest_battery() -> None:
    service = _service(
        _document("2025-01-01", "A", "08:00:00", "09:00:00", battery_level="80", battery_voltage="3700"),
        _document("2025-01-02", "A", "08:00:00", battery_level="75"),
    )

    statistics = service.get_statistics(service.get_series("A"))

    assert statistics.temperature.min == 20.0
    assert statistics.temperature.max == 21.0
    assert statistics.temperature.latest == 20.0
    assert statistics.battery_level is not None
    assert statistics.battery_level.latest == 75
    assert statistics.first == _local(2025, 1, 1, 8, 0, 0)
    assert statistics.last == _local(2025, 1, 2, 8, 0, 0)
    assert service.get_latest_battery_status("A") == BatteryStatus(level=75, voltage=3700)


def test_unknown_tag_yields_empty_series() -> None:
    service = _service(_document("2025-01-01", "A", "08:00:00"))

    assert service.get_series("missing") == []
    assert service.get_latest_battery_status("missing") == BatteryStatus()


def test_list_tag_ids_is_sorted() -> None:
    service = _service(
        _document("2025-01-01", "C", "08:00:00"),
        _document("2025-01-01", "A", "08:00:00"),
    )

    assert service.list_tag_ids() == ["A", "C"]


def test_store_failures_propagate() -> None:
    class BrokenStore(MockDocumentStore):
        def fetch_documents(self, *args, **kwargs):
            raise StoreUnavailableError("store offline")

    service = SensorDataService(store=BrokenStore(name="broken"), aggregator=StatisticsAggregator())

    with pytest.raises(StoreUnavailableError):
        service.get_series("A")
