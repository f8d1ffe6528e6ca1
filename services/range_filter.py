"""Inclusive calendar-day filtering and ordering of reading series."""

from __future__ import annotations

from typing import Iterable, List

from models.documents import DailyDocument
from models.records import DateRange, NormalizedReading


def document_in_range(document: DailyDocument, date_range: DateRange) -> bool:
    """Cheap pre-parse check on the document's ``day``."""
    return bool(document.day) and date_range.contains(document.day)


def reading_in_range(reading: NormalizedReading, date_range: DateRange) -> bool:
    return date_range.contains(reading.day)


def filter_readings(
    readings: Iterable[NormalizedReading],
    date_range: DateRange,
) -> List[NormalizedReading]:
    return [reading for reading in readings if reading_in_range(reading, date_range)]


def sort_readings(readings: Iterable[NormalizedReading]) -> List[NormalizedReading]:
    # sorted() is stable, so equal timestamps keep their input order.
    return sorted(readings, key=lambda reading: reading.timestamp)
