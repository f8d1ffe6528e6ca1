"""Fetch, parse, filter and summarize a tag's readings."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List, Optional

from datastore.document_store import DocumentFilter, DocumentStore, build_default_store
from datastore.errors import StoreUnavailableError
from models.records import DateRange, MeasurementIssue, NormalizedReading, Statistics
from services.aggregator import StatisticsAggregator
from services.battery import BatteryStatus, carry_forward
from services.pagination import CursorWalker
from services.parser import parse_document
from services.range_filter import document_in_range, filter_readings, sort_readings
from settings import get_settings

logger = logging.getLogger(__name__)


@dataclass
class LoadedSeries:
    """Readings for one tag plus what was learned while loading them."""

    tag_id: str
    readings: List[NormalizedReading] = field(default_factory=list)
    battery: BatteryStatus = field(default_factory=BatteryStatus)
    issues: List[MeasurementIssue] = field(default_factory=list)
    document_count: int = 0


class SensorDataService:
    """Coordinates the document store, parsing and aggregation for one tag at a time."""

    def __init__(
        self,
        store: DocumentStore,
        aggregator: StatisticsAggregator,
        page_size: int = 5,
    ) -> None:
        self.store = store
        self.aggregator = aggregator
        self.walker = CursorWalker(store, page_size=page_size)

    def list_tag_ids(self) -> List[str]:
        try:
            return sorted(self.store.list_tag_ids())
        except OSError as exc:
            raise StoreUnavailableError(f"Could not list tag ids: {exc}") from exc

    def load_series(self, tag_id: str, date_range: Optional[DateRange] = None) -> LoadedSeries:
        """Load ``tag_id``'s readings, optionally restricted to ``date_range``.

        Documents are walked oldest first so battery reports carry forward in
        time. Documents outside the range still update the battery status but
        are not parsed.
        """
        series = LoadedSeries(tag_id=tag_id)
        documents = self.walker.iter_documents(DocumentFilter(tag_id=tag_id), descending=False)

        try:
            for document, battery in carry_forward(documents):
                series.document_count += 1
                series.battery = battery
                if date_range is not None and not document_in_range(document, date_range):
                    continue
                parsed = parse_document(document, battery)
                series.readings.extend(parsed.readings)
                series.issues.extend(parsed.issues)
        except OSError as exc:
            raise StoreUnavailableError(f"Could not fetch documents for tag {tag_id!r}: {exc}") from exc

        if date_range is not None:
            series.readings = filter_readings(series.readings, date_range)
        series.readings = sort_readings(series.readings)

        logger.info(
            "Loaded reading series",
            extra={
                "tag_id": tag_id,
                "document_count": series.document_count,
                "reading_count": len(series.readings),
                "skipped_count": len(series.issues),
            },
        )
        return series

    def get_series(self, tag_id: str, date_range: Optional[DateRange] = None) -> List[NormalizedReading]:
        return self.load_series(tag_id, date_range).readings

    def get_statistics(self, series: List[NormalizedReading]) -> Statistics:
        return self.aggregator.aggregate(series)

    def get_latest_battery_status(self, tag_id: str) -> BatteryStatus:
        status = BatteryStatus()
        documents = self.walker.iter_documents(DocumentFilter(tag_id=tag_id), descending=False)
        try:
            for _document, status in carry_forward(documents):
                pass
        except OSError as exc:
            raise StoreUnavailableError(f"Could not fetch documents for tag {tag_id!r}: {exc}") from exc
        return status


@lru_cache
def build_default_service(page_size: Optional[int] = None) -> SensorDataService:
    """Factory that wires the service with the default document store."""
    settings = get_settings()
    return SensorDataService(
        store=build_default_store(),
        aggregator=StatisticsAggregator(),
        page_size=page_size or settings.page_size,
    )
