"""Pydantic models for the day-bucketed documents held by the document store."""

from __future__ import annotations

from typing import Any, List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator


def _stringify(value: Any) -> Any:
    # Some writers store numbers instead of numeric strings.
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    return value


class RawMeasurement(BaseModel):
    """One sample within a daily document; every field is a raw string."""

    ts: Optional[str] = Field(default=None, description="Time of day, HH:MM:SS.")
    t: Optional[str] = Field(default=None, description="Temperature as a decimal string.")
    h: Optional[str] = Field(default=None, description="Humidity as a decimal string.")

    @field_validator("ts", "t", "h", mode="before")
    @classmethod
    def coerce_numbers(cls, value: Any) -> Any:
        return _stringify(value)


class DailyDocument(BaseModel):
    """All measurements reported by one sensor tag for one calendar day."""

    doc_id: str = Field(default_factory=lambda: uuid4().hex)
    day: Optional[str] = Field(default=None, description="Calendar day, YYYY-MM-DD.")
    tag_id: Optional[str] = None
    measurements: List[RawMeasurement] = Field(default_factory=list)
    battery_level: Optional[str] = Field(
        default=None, description="Battery level in percent, integer string."
    )
    battery_voltage: Optional[str] = Field(
        default=None, description="Battery voltage in millivolts, integer string."
    )

    @field_validator("day", "tag_id", "battery_level", "battery_voltage", mode="before")
    @classmethod
    def coerce_numbers(cls, value: Any) -> Any:
        return _stringify(value)

    @field_validator("measurements", mode="before")
    @classmethod
    def default_measurements(cls, value: Any) -> Any:
        return [] if value is None else value
