"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from models.documents import DailyDocument
from models.records import DisplayWindow, MetricSummary, NormalizedReading, Statistics
from services.battery import BatteryHealth, BatteryStatus, classify_level, classify_voltage


class TagListResponse(BaseModel):
    tag_ids: List[str] = Field(default_factory=list)


class DocumentIngestResponse(BaseModel):
    """Identifiers of the documents accepted by an ingest request."""

    document_count: int = Field(..., ge=0)
    doc_ids: List[str] = Field(default_factory=list)


class ReadingOut(BaseModel):
    tag_id: str
    timestamp: int = Field(..., description="Seconds since the epoch.")
    temperature: float
    humidity: float
    battery_level: Optional[int] = None
    battery_voltage: Optional[int] = None

    @classmethod
    def from_domain(cls, reading: NormalizedReading) -> "ReadingOut":
        return cls(
            tag_id=reading.tag_id,
            timestamp=reading.timestamp,
            temperature=reading.temperature,
            humidity=reading.humidity,
            battery_level=reading.battery_level,
            battery_voltage=reading.battery_voltage,
        )


class DocumentPageResponse(BaseModel):
    """One page of daily documents, newest day first by default."""

    documents: List[DailyDocument] = Field(default_factory=list)
    readings: List[ReadingOut] = Field(
        default_factory=list,
        description="Most recent measurements of each document, newest first.",
    )
    next_cursor: Optional[str] = Field(
        default=None, description="Opaque token to pass as ``cursor`` for the next page."
    )
    has_more: bool = Field(
        ..., description="True when the page was full; the next page may still be empty."
    )


class MetricSummaryOut(BaseModel):
    min: float
    max: float
    avg: float
    latest: float

    @classmethod
    def from_domain(cls, summary: Optional[MetricSummary]) -> Optional["MetricSummaryOut"]:
        if summary is None:
            return None
        return cls(min=summary.min, max=summary.max, avg=summary.avg, latest=summary.latest)


class StatisticsOut(BaseModel):
    """Aggregate metrics computed over a reading series."""

    temperature: MetricSummaryOut
    humidity: MetricSummaryOut
    battery_level: Optional[MetricSummaryOut] = None
    battery_voltage: Optional[MetricSummaryOut] = None
    first: int = 0
    last: int = 0

    @classmethod
    def from_domain(cls, statistics: Statistics) -> "StatisticsOut":
        return cls(
            temperature=MetricSummaryOut.from_domain(statistics.temperature),
            humidity=MetricSummaryOut.from_domain(statistics.humidity),
            battery_level=MetricSummaryOut.from_domain(statistics.battery_level),
            battery_voltage=MetricSummaryOut.from_domain(statistics.battery_voltage),
            first=statistics.first,
            last=statistics.last,
        )


class BatteryStatusOut(BaseModel):
    level: Optional[int] = None
    voltage: Optional[int] = None
    level_health: Optional[BatteryHealth] = None
    voltage_health: Optional[BatteryHealth] = None
    voltage_health_percent: Optional[float] = None

    @classmethod
    def from_domain(cls, status: BatteryStatus) -> "BatteryStatusOut":
        payload = cls(level=status.level, voltage=status.voltage)
        if status.level is not None:
            payload.level_health = classify_level(status.level)
        if status.voltage is not None:
            health, percent = classify_voltage(status.voltage)
            payload.voltage_health = health
            payload.voltage_health_percent = round(percent, 1)
        return payload


class SeriesResponse(BaseModel):
    tag_id: str
    start: Optional[str] = None
    end: Optional[str] = None
    readings: List[ReadingOut] = Field(default_factory=list)
    statistics: StatisticsOut
    battery: BatteryStatusOut
    document_count: int = Field(..., ge=0)
    skipped_count: int = Field(..., ge=0)


class WindowOut(BaseModel):
    start: int
    end: int
    start_day: str
    end_day: str

    @classmethod
    def from_domain(cls, window: DisplayWindow) -> "WindowOut":
        days = window.date_range
        return cls(start=window.start, end=window.end, start_day=days.start, end_day=days.end)


class SelectTagRequest(BaseModel):
    tag_id: str = Field(..., min_length=1)


class DateRangeRequest(BaseModel):
    start: str = Field(..., description="First day, YYYY-MM-DD.")
    end: str = Field(..., description="Last day, YYYY-MM-DD, inclusive.")


class SessionStateResponse(BaseModel):
    """Current display session as last applied."""

    generation: int
    tag_ids: List[str] = Field(default_factory=list)
    selected_tag: Optional[str] = None
    calibrated: bool
    window: Optional[WindowOut] = None
    reading_count: int = Field(..., ge=0)
    skipped_count: int = Field(..., ge=0)
    has_data: bool
    statistics: StatisticsOut
    battery: BatteryStatusOut
    message: str
    last_error: Optional[str] = None
