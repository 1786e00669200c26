"""Shared fixtures for correlation engine tests."""

from datetime import date, timedelta

import pytest
import structlog

from reflection.correlation import MetricCatalog
from reflection.models import DataMetric, MetricCategory
from reflection.providers import SnapshotProvider

TODAY = date(2024, 3, 31)


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo logging configuration applied by CLI invocations."""
    yield
    structlog.reset_defaults()


def daily_values(values: list[float | None], end: date = TODAY) -> dict[date, float | None]:
    """Map a list of values onto consecutive days ending at `end`."""
    start = end - timedelta(days=len(values) - 1)
    return {start + timedelta(days=i): v for i, v in enumerate(values)}


def build_catalog(series: dict[DataMetric, dict[date, float | None]]) -> MetricCatalog:
    """Catalog with one snapshot provider per metric."""
    catalog = MetricCatalog()
    for metric, values in series.items():
        catalog.register(metric, SnapshotProvider(values))
    return catalog


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def sleep_metric():
    return DataMetric(
        key="sleep_hours", name="Sleep", category=MetricCategory.SLEEP, unit="hours"
    )


@pytest.fixture
def focus_metric():
    return DataMetric(
        key="focus_minutes",
        name="Focus time",
        category=MetricCategory.PRODUCTIVITY,
        unit="min",
    )


@pytest.fixture
def screen_metric():
    return DataMetric(
        key="screen_time",
        name="Screen time",
        category=MetricCategory.PHONE_USAGE,
        unit="min",
    )


@pytest.fixture
def mood_metric():
    return DataMetric(key="mood_score", name="Mood", category=MetricCategory.MOOD)


@pytest.fixture
def make_series():
    """Factory: list of values -> {date: value} ending at TODAY."""
    return daily_values


@pytest.fixture
def make_catalog():
    """Factory: {metric: {date: value}} -> MetricCatalog."""
    return build_catalog
