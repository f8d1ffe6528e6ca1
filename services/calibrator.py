"""One-shot narrowing of the display window to the span of loaded data."""

from __future__ import annotations

import logging
from typing import Iterable

from models.records import DisplayWindow, NormalizedReading

logger = logging.getLogger(__name__)


class DateRangeCalibrator:
    """Holds the active display window and whether it has been settled.

    The window is calibrated at most once per tag selection; a manual edit
    (``lock``) also counts as settled so later reloads never override it.
    """

    def __init__(self, window: DisplayWindow) -> None:
        self.window = window
        self.calibrated = False

    def calibrate(self, readings: Iterable[NormalizedReading]) -> bool:
        """Fit the window to ``readings``; return whether the window changed."""
        if self.calibrated:
            return False
        timestamps = [reading.timestamp for reading in readings]
        if not timestamps:
            return False
        self.window = DisplayWindow(start=min(timestamps), end=max(timestamps))
        self.calibrated = True
        logger.info(
            "Calibrated display window",
            extra={"reading_count": len(timestamps)},
        )
        return True

    def lock(self, window: DisplayWindow) -> None:
        self.window = window
        self.calibrated = True

    def reset(self) -> None:
        self.calibrated = False
