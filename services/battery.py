"""Battery carry-forward tracking and health classification."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, Iterator, Optional, Tuple

from models.documents import DailyDocument

logger = logging.getLogger(__name__)

LEVEL_LOW_PERCENT = 30
LEVEL_MEDIUM_PERCENT = 50
VOLTAGE_LOW_MV = 3300
VOLTAGE_MEDIUM_MV = 3700


class BatteryHealth(str, Enum):
    low = "Low"
    medium = "Medium"
    good = "Good"


def _parse_battery_field(raw: Optional[str], field: str, document: DailyDocument) -> Optional[int]:
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw.strip())
    except ValueError:
        logger.warning(
            "Ignoring unparsable battery field",
            extra={
                "tag_id": document.tag_id,
                "day": document.day,
                "reason": f"invalid {field}",
                "invalid_value": raw,
            },
        )
        return None


@dataclass(frozen=True)
class BatteryStatus:
    """Most recently reported battery level (percent) and voltage (mV)."""

    level: Optional[int] = None
    voltage: Optional[int] = None

    def updated_with(self, document: DailyDocument) -> "BatteryStatus":
        """Overwrite each field the document declares; keep the others."""
        level = _parse_battery_field(document.battery_level, "battery_level", document)
        voltage = _parse_battery_field(document.battery_voltage, "battery_voltage", document)
        changes = {}
        if level is not None:
            changes["level"] = level
        if voltage is not None:
            changes["voltage"] = voltage
        return replace(self, **changes) if changes else self

    @classmethod
    def from_document(cls, document: DailyDocument) -> "BatteryStatus":
        return cls().updated_with(document)

    @property
    def is_empty(self) -> bool:
        return self.level is None and self.voltage is None


def carry_forward(
    documents: Iterable[DailyDocument],
    initial: BatteryStatus = BatteryStatus(),
) -> Iterator[Tuple[DailyDocument, BatteryStatus]]:
    """Pair each document with the battery status in effect once it is processed."""
    status = initial
    for document in documents:
        status = status.updated_with(document)
        yield document, status


def classify_level(level: int) -> BatteryHealth:
    if level < LEVEL_LOW_PERCENT:
        return BatteryHealth.low
    if level < LEVEL_MEDIUM_PERCENT:
        return BatteryHealth.medium
    return BatteryHealth.good


def classify_voltage(voltage: int) -> Tuple[BatteryHealth, float]:
    """Return the health bucket and a 0-100 health percentage for a Li-ion cell voltage."""
    if voltage < VOLTAGE_LOW_MV:
        return BatteryHealth.low, max(0.0, voltage / VOLTAGE_LOW_MV * 50)
    if voltage < VOLTAGE_MEDIUM_MV:
        span = VOLTAGE_MEDIUM_MV - VOLTAGE_LOW_MV
        return BatteryHealth.medium, 50 + (voltage - VOLTAGE_LOW_MV) / span * 30
    return BatteryHealth.good, 80 + min(20.0, (voltage - VOLTAGE_MEDIUM_MV) / 500 * 20)
