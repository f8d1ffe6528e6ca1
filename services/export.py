"""Row-oriented projection of reading series for export collaborators."""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Iterable, List, Union

from models.documents import DailyDocument
from models.records import NormalizedReading
from services.battery import BatteryStatus
from services.parser import parse_document
from services.range_filter import sort_readings

logger = logging.getLogger(__name__)

EXPORT_TIMESTAMP_FORMAT = "%d/%m/%Y %H:%M:%S"
MISSING_VALUE = "N/A"
EXPORT_COLUMNS = (
    "timestamp",
    "temperature",
    "humidity",
    "tag_id",
    "battery_level",
    "battery_voltage",
)


class EmptyExportError(ValueError):
    """Raised instead of producing an export without rows."""


@dataclass(frozen=True)
class ExportRow:
    timestamp: str
    temperature: float
    humidity: float
    tag_id: str
    battery_level: Union[int, str]
    battery_voltage: Union[int, str]


def format_export_timestamp(timestamp: int) -> str:
    return datetime.fromtimestamp(timestamp).strftime(EXPORT_TIMESTAMP_FORMAT)


def _to_row(reading: NormalizedReading) -> ExportRow:
    return ExportRow(
        timestamp=format_export_timestamp(reading.timestamp),
        temperature=reading.temperature,
        humidity=reading.humidity,
        tag_id=reading.tag_id,
        battery_level=MISSING_VALUE if reading.battery_level is None else reading.battery_level,
        battery_voltage=(
            MISSING_VALUE if reading.battery_voltage is None else reading.battery_voltage
        ),
    )


def export_series_rows(readings: Iterable[NormalizedReading]) -> List[ExportRow]:
    return [_to_row(reading) for reading in readings]


def export_all_rows(documents: Iterable[DailyDocument]) -> List[ExportRow]:
    """Project every document without carry-forward; rows ordered by tag, then time."""
    readings: List[NormalizedReading] = []
    for document in documents:
        parsed = parse_document(document, BatteryStatus.from_document(document))
        readings.extend(parsed.readings)
    ordered = sorted(sort_readings(readings), key=lambda reading: reading.tag_id)
    return export_series_rows(ordered)


def rows_to_csv(rows: List[ExportRow]) -> str:
    """Serialize rows; strings are quoted, numbers are written bare."""
    if not rows:
        logger.warning("No data to export", extra={"reading_count": 0})
        raise EmptyExportError("No data to export.")

    buffer = io.StringIO()
    writer = csv.DictWriter(
        buffer,
        fieldnames=EXPORT_COLUMNS,
        quoting=csv.QUOTE_NONNUMERIC,
        lineterminator="\n",
    )
    buffer.write(",".join(EXPORT_COLUMNS) + "\n")
    for row in rows:
        writer.writerow(asdict(row))
    return buffer.getvalue()
