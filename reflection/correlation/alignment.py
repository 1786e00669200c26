"""Series alignment: inner-join two metric series on calendar days."""

from collections.abc import Iterator
from dataclasses import dataclass
from datetime import date, timedelta

import structlog

from reflection.correlation.catalog import MetricCatalog
from reflection.models import DataMetric

logger = structlog.get_logger()


@dataclass(frozen=True)
class DateRange:
    """Inclusive range of calendar days."""

    start: date
    end: date

    @classmethod
    def last_days(cls, days: int, today: date | None = None) -> "DateRange":
        """Range from `today - days` to `today`, inclusive."""
        end = today or date.today()
        return cls(start=end - timedelta(days=days), end=end)

    @property
    def is_empty(self) -> bool:
        return self.start > self.end

    def __len__(self) -> int:
        if self.is_empty:
            return 0
        return (self.end - self.start).days + 1

    def __iter__(self) -> Iterator[date]:
        current = self.start
        while current <= self.end:
            yield current
            current += timedelta(days=1)


@dataclass(frozen=True)
class DataPoint:
    """One aligned day: X observed on `date`, Y observed `lag` days later."""

    date: date
    value_x: float
    value_y: float


class SeriesAligner:
    """Builds aligned (date, x, y) samples from the catalog's providers."""

    def __init__(self, catalog: MetricCatalog):
        self.catalog = catalog

    def align(
        self,
        metric_x: DataMetric,
        metric_y: DataMetric,
        date_range: DateRange,
        lag: int = 0,
    ) -> list[DataPoint]:
        """
        Align two metrics over a date range.

        For every day d in the range, X is read on d and Y on d + lag.
        Days where either value is missing are skipped; nothing is
        interpolated.

        Args:
            metric_x: Leading metric
            metric_y: Following metric
            date_range: Days to read X on
            lag: Day offset applied to Y (>= 0)

        Returns:
            Aligned points in ascending date order
        """
        if lag < 0:
            raise ValueError(f"lag must be non-negative, got {lag}")

        shift = timedelta(days=lag)
        points = []
        for day in date_range:
            x = self.catalog.value_for(metric_x, day)
            if x is None:
                continue
            y = self.catalog.value_for(metric_y, day + shift)
            if y is None:
                continue
            points.append(DataPoint(date=day, value_x=x, value_y=y))

        logger.debug(
            "Series aligned",
            metric_x=metric_x.key,
            metric_y=metric_y.key,
            lag=lag,
            days=len(date_range),
            points=len(points),
        )
        return points
