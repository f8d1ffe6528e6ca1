"""Domain models shared across services."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional

_DAY_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}")


def validate_day(value: str) -> str:
    """Return ``value`` if it is a real, zero-padded ``YYYY-MM-DD`` calendar day."""

    if not isinstance(value, str) or not _DAY_PATTERN.fullmatch(value):
        raise ValueError(f"Invalid day {value!r}; expected YYYY-MM-DD.")
    try:
        date.fromisoformat(value)
    except ValueError as exc:
        raise ValueError(f"Invalid day {value!r}; not a calendar date.") from exc
    return value


def local_day(timestamp: int) -> str:
    """Calendar day of an epoch timestamp in the host's local time zone."""

    return datetime.fromtimestamp(timestamp).strftime("%Y-%m-%d")


@dataclass(slots=True)
class NormalizedReading:
    """One point of a tag's reading series."""

    tag_id: str
    timestamp: int
    temperature: float
    humidity: float
    battery_level: Optional[int] = None
    battery_voltage: Optional[int] = None

    @property
    def day(self) -> str:
        return local_day(self.timestamp)


@dataclass(frozen=True, slots=True)
class MeasurementIssue:
    """A measurement that was dropped while parsing a daily document."""

    tag_id: Optional[str]
    day: Optional[str]
    index: int
    reason: str


@dataclass(frozen=True, slots=True)
class MetricSummary:
    min: float = 0.0
    max: float = 0.0
    avg: float = 0.0
    latest: float = 0.0


@dataclass(frozen=True, slots=True)
class Statistics:
    """Summary of a reading series.

    Battery summaries are ``None`` unless at least one reading carried the field.
    ``first`` and ``last`` are the earliest and latest epoch timestamps.
    """

    temperature: MetricSummary = MetricSummary()
    humidity: MetricSummary = MetricSummary()
    battery_level: Optional[MetricSummary] = None
    battery_voltage: Optional[MetricSummary] = None
    first: int = 0
    last: int = 0


EMPTY_STATISTICS = Statistics()


@dataclass(frozen=True, slots=True)
class DateRange:
    """Inclusive window of calendar days in ``YYYY-MM-DD`` form.

    Bounds are compared as strings, which only orders correctly because the
    format is fixed-width and zero-padded; ``validate_day`` enforces that.
    """

    start: str
    end: str

    def __post_init__(self) -> None:
        validate_day(self.start)
        validate_day(self.end)
        if self.start > self.end:
            raise ValueError(
                f"Start day {self.start} must not be after end day {self.end}."
            )

    def contains(self, day: str) -> bool:
        return self.start <= day <= self.end

    def to_window(self) -> "DisplayWindow":
        start = datetime.combine(date.fromisoformat(self.start), time.min)
        end = datetime.combine(date.fromisoformat(self.end), time(23, 59, 59))
        return DisplayWindow(start=int(start.timestamp()), end=int(end.timestamp()))


@dataclass(frozen=True, slots=True)
class DisplayWindow:
    """Active display window in epoch seconds, as held by the calibrator."""

    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError("Window start must not be after window end.")

    @property
    def date_range(self) -> DateRange:
        return DateRange(start=local_day(self.start), end=local_day(self.end))
