"""Display session state shared by repeated pipeline runs.

Runs may overlap (a new tag is selected while the previous load is still in
flight). Each run draws a number from a monotonically increasing generation
counter and its result is applied only if no newer run was started since;
superseded results are dropped without error.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import lru_cache
from threading import Lock
from typing import List, Optional

from datastore.errors import DocumentStoreError
from models.records import (
    EMPTY_STATISTICS,
    DateRange,
    DisplayWindow,
    NormalizedReading,
    Statistics,
)
from services.battery import BatteryStatus
from services.calibrator import DateRangeCalibrator
from services.pipeline import SensorDataService, build_default_service
from services.range_filter import filter_readings
from settings import get_settings

logger = logging.getLogger(__name__)


@dataclass
class SessionSnapshot:
    """Everything the display layer needs after one applied run."""

    generation: int = 0
    tag_ids: List[str] = field(default_factory=list)
    selected_tag: Optional[str] = None
    window: Optional[DisplayWindow] = None
    readings: List[NormalizedReading] = field(default_factory=list)
    statistics: Statistics = EMPTY_STATISTICS
    battery: BatteryStatus = field(default_factory=BatteryStatus)
    skipped_count: int = 0
    message: str = "No data loaded."

    @property
    def has_data(self) -> bool:
        return bool(self.readings)


class DisplaySession:

    def __init__(self, service: SensorDataService, default_range: DateRange) -> None:
        self.service = service
        self.calibrator = DateRangeCalibrator(default_range.to_window())
        self.selected_tag: Optional[str] = None
        self.snapshot = SessionSnapshot(window=self.calibrator.window)
        self.last_error: Optional[str] = None
        self._generation = 0
        self._lock = Lock()

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def select_tag(self, tag_id: str) -> SessionSnapshot:
        with self._lock:
            if tag_id != self.selected_tag:
                self.selected_tag = tag_id
                self.calibrator.reset()
        return self.refresh()

    def set_range(self, date_range: DateRange) -> SessionSnapshot:
        """Apply a manual range; it is never overridden by calibration."""
        with self._lock:
            self.calibrator.lock(date_range.to_window())
        return self.refresh()

    def refresh(self) -> SessionSnapshot:
        with self._lock:
            self._generation += 1
            generation = self._generation
            tag_id = self.selected_tag
            calibrated = self.calibrator.calibrated
            window = self.calibrator.window

        try:
            tag_ids = self.service.list_tag_ids()
            if tag_id is None and tag_ids:
                tag_id = tag_ids[0]
            if tag_id is None:
                loaded = None
            else:
                date_range = window.date_range if calibrated else None
                loaded = self.service.load_series(tag_id, date_range)
        except DocumentStoreError as exc:
            if self._record_failure(generation, exc):
                raise
            logger.info("Discarding failed superseded run", extra={"generation": generation})
            with self._lock:
                return self.snapshot

        with self._lock:
            if generation != self._generation:
                logger.info("Discarding superseded run", extra={"generation": generation})
                return self.snapshot

            self.last_error = None
            if loaded is None:
                self.snapshot = SessionSnapshot(
                    generation=generation,
                    window=self.calibrator.window,
                    message="No sensor tags found.",
                )
                return self.snapshot

            if self.selected_tag is None:
                self.selected_tag = tag_id
            readings = loaded.readings
            if not calibrated and self.calibrator.calibrate(readings):
                readings = filter_readings(readings, self.calibrator.window.date_range)

            statistics = self.service.get_statistics(readings)
            self.snapshot = SessionSnapshot(
                generation=generation,
                tag_ids=tag_ids,
                selected_tag=tag_id,
                window=self.calibrator.window,
                readings=readings,
                statistics=statistics,
                battery=loaded.battery,
                skipped_count=len(loaded.issues),
                message=(
                    f"Processed {len(readings)} data points"
                    if readings
                    else f"No data for tag {tag_id} in the selected range."
                ),
            )
            return self.snapshot

    def _record_failure(self, generation: int, exc: Exception) -> bool:
        """Record ``exc`` for the current run; ``False`` if the run was superseded."""
        with self._lock:
            if generation != self._generation:
                return False
            self.last_error = f"Error fetching data: {exc}"
        logger.error(
            "Pipeline run failed; keeping previous data",
            extra={"generation": generation, "tag_id": self.selected_tag},
        )
        return True


@lru_cache
def build_default_session() -> DisplaySession:
    settings = get_settings()
    default_range = DateRange(start=settings.default_start_day, end=settings.default_end_day)
    return DisplaySession(service=build_default_service(), default_range=default_range)
