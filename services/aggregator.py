"""Aggregation logic for reading series."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Optional

from models.records import EMPTY_STATISTICS, MetricSummary, NormalizedReading, Statistics


@dataclass
class _RunningMetric:
    count: int = 0
    total: float = 0.0
    min_value: float = 0.0
    max_value: float = 0.0
    latest: float = 0.0

    def add(self, value: float) -> None:
        if self.count == 0 or value < self.min_value:
            self.min_value = value
        if self.count == 0 or value > self.max_value:
            self.max_value = value
        self.count += 1
        self.total += value
        self.latest = value

    def summary(self) -> Optional[MetricSummary]:
        if not self.count:
            return None
        mean = self.total / self.count
        # Rounding can push the mean a hair past the extremes.
        mean = min(max(mean, self.min_value), self.max_value)
        return MetricSummary(
            min=self.min_value,
            max=self.max_value,
            avg=mean,
            latest=self.latest,
        )


_METRICS: Dict[str, Callable[[NormalizedReading], Optional[float]]] = {
    "temperature": lambda reading: reading.temperature,
    "humidity": lambda reading: reading.humidity,
    "battery_level": lambda reading: reading.battery_level,
    "battery_voltage": lambda reading: reading.battery_voltage,
}


class StatisticsAggregator:
    """Pure aggregation component that can be unit tested in isolation.

    Expects a series already sorted by timestamp: ``latest`` is the value of
    the last reading in the given order that carries the metric.
    """

    def aggregate(self, readings: Iterable[NormalizedReading]) -> Statistics:
        running = {name: _RunningMetric() for name in _METRICS}
        first: Optional[int] = None
        last: Optional[int] = None

        for reading in readings:
            for name, extract in _METRICS.items():
                value = extract(reading)
                if value is not None:
                    running[name].add(float(value))

            if first is None or reading.timestamp < first:
                first = reading.timestamp
            if last is None or reading.timestamp > last:
                last = reading.timestamp

        if first is None or last is None:
            return EMPTY_STATISTICS

        return Statistics(
            temperature=running["temperature"].summary() or MetricSummary(),
            humidity=running["humidity"].summary() or MetricSummary(),
            battery_level=running["battery_level"].summary(),
            battery_voltage=running["battery_voltage"].summary(),
            first=first,
            last=last,
        )
