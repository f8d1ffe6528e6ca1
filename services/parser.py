"""Turn daily documents into normalized readings.

Timestamps are built from the document's ``day`` and the measurement's ``ts``
as a *local* wall-clock instant: the naive ``datetime`` is converted with the
host's time zone, never parsed as UTC.

Malformed measurements are dropped and reported as ``MeasurementIssue``; the
single-record helper follows the same policy and returns ``None`` instead of
fabricating a reading stamped with the current time.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from models.documents import DailyDocument, RawMeasurement
from models.records import MeasurementIssue, NormalizedReading, validate_day
from services.battery import BatteryStatus

logger = logging.getLogger(__name__)

_TIME_PATTERN = re.compile(r"\d{2}:\d{2}:\d{2}")
_DECIMAL_PATTERN = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")


@dataclass
class ParsedDocument:
    readings: List[NormalizedReading] = field(default_factory=list)
    issues: List[MeasurementIssue] = field(default_factory=list)


def combine_local_timestamp(day: Optional[str], ts: Optional[str]) -> int:
    """Epoch seconds for ``day`` (YYYY-MM-DD) at ``ts`` (HH:MM:SS), local time."""
    if day is None or ts is None:
        raise ValueError("Both day and time of day are required.")
    validate_day(day)
    candidate = ts.strip()
    if not _TIME_PATTERN.fullmatch(candidate):
        raise ValueError(f"Invalid time of day {ts!r}; expected HH:MM:SS.")
    try:
        moment = datetime.strptime(f"{day} {candidate}", "%Y-%m-%d %H:%M:%S")
    except ValueError as exc:
        raise ValueError(f"Invalid time of day {ts!r}.") from exc
    return int(moment.timestamp())


def parse_number(raw: Optional[str]) -> float:
    if raw is None or not raw.strip():
        raise ValueError("Value is missing.")
    candidate = raw.strip()
    if not _DECIMAL_PATTERN.fullmatch(candidate):
        raise ValueError(f"Value {raw!r} is not a decimal number.")
    value = float(candidate)
    if not math.isfinite(value):
        raise ValueError(f"Value {raw!r} is not a finite number.")
    return value


def _measurement_problem(measurement: RawMeasurement) -> Optional[str]:
    for name in ("ts", "t", "h"):
        value = getattr(measurement, name)
        if value is None or not value.strip():
            return f"missing {name}"
    return None


def _build_reading(
    document: DailyDocument,
    measurement: RawMeasurement,
    battery: BatteryStatus,
) -> NormalizedReading:
    problem = _measurement_problem(measurement)
    if problem is not None:
        raise ValueError(problem)
    if not document.tag_id:
        raise ValueError("missing tag_id")

    try:
        timestamp = combine_local_timestamp(document.day, measurement.ts)
    except ValueError as exc:
        raise ValueError("invalid timestamp") from exc

    try:
        temperature = parse_number(measurement.t)
        humidity = parse_number(measurement.h)
    except ValueError as exc:
        raise ValueError("invalid numeric value") from exc

    return NormalizedReading(
        tag_id=document.tag_id,
        timestamp=timestamp,
        temperature=temperature,
        humidity=humidity,
        battery_level=battery.level,
        battery_voltage=battery.voltage,
    )


def parse_document(
    document: DailyDocument,
    battery: BatteryStatus = BatteryStatus(),
) -> ParsedDocument:
    """Parse every measurement of ``document``, tagging readings with ``battery``."""
    parsed = ParsedDocument()
    for index, measurement in enumerate(document.measurements):
        try:
            parsed.readings.append(_build_reading(document, measurement, battery))
        except ValueError as exc:
            issue = MeasurementIssue(
                tag_id=document.tag_id,
                day=document.day,
                index=index,
                reason=str(exc),
            )
            parsed.issues.append(issue)
            logger.warning(
                "Skipping measurement",
                extra={
                    "tag_id": issue.tag_id,
                    "day": issue.day,
                    "measurement_index": index,
                    "reason": issue.reason,
                },
            )
    return parsed


def convert_measurement(
    document: DailyDocument,
    index: int,
    battery: Optional[BatteryStatus] = None,
) -> Optional[NormalizedReading]:
    """Convert one measurement of ``document``; ``None`` if it is malformed.

    Without an explicit ``battery`` the document's own battery fields are used.
    """
    if not 0 <= index < len(document.measurements):
        raise IndexError(f"Measurement index {index} out of range for document {document.doc_id}.")
    status = battery if battery is not None else BatteryStatus.from_document(document)
    try:
        return _build_reading(document, document.measurements[index], status)
    except ValueError as exc:
        logger.warning(
            "Could not convert measurement",
            extra={
                "tag_id": document.tag_id,
                "day": document.day,
                "measurement_index": index,
                "reason": str(exc),
            },
        )
        return None


RECENT_READING_LIMIT = 5


def recent_readings(document: DailyDocument, limit: int = RECENT_READING_LIMIT) -> List[NormalizedReading]:
    """The last ``limit`` measurements of ``document`` as readings, newest first."""
    readings: List[NormalizedReading] = []
    count = len(document.measurements)
    for index in range(count - 1, max(count - limit, 0) - 1, -1):
        reading = convert_measurement(document, index)
        if reading is not None:
            readings.append(reading)
    return readings
