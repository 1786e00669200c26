"""Snapshot value providers and series file loading."""

from collections.abc import Mapping
from datetime import date
from pathlib import Path
from typing import Any

import structlog
import yaml

from reflection.config import MetricDefinition
from reflection.correlation.catalog import MetricCatalog
from reflection.models import DataMetric, MetricCategory

logger = structlog.get_logger()


class SnapshotProvider:
    """Read-only value provider over a copy of daily observations."""

    def __init__(self, values: Mapping[date, float | None]):
        self._values = {
            day: float(value) for day, value in values.items() if value is not None
        }

    def __call__(self, day: date) -> float | None:
        return self._values.get(day)

    def __len__(self) -> int:
        return len(self._values)

    @property
    def days(self) -> list[date]:
        """Observed days in ascending order."""
        return sorted(self._values)


def _parse_values(raw: Mapping[Any, Any] | None) -> dict[date, float | None]:
    """Parse a {date: value} mapping whose keys are ISO strings or dates."""
    values: dict[date, float | None] = {}
    for key, value in (raw or {}).items():
        day = key if isinstance(key, date) else date.fromisoformat(str(key))
        values[day] = None if value is None else float(value)
    return values


def load_series_file(
    path: Path,
    definitions: list[MetricDefinition] | None = None,
) -> MetricCatalog:
    """
    Build a catalog from a YAML series snapshot.

    Each entry in the top-level `metrics` list has a `key` and `values`.
    `name`, `category` and `unit` may be omitted when a matching
    definition is supplied.

    Args:
        path: Snapshot file
        definitions: Known metric definitions, matched by key

    Returns:
        MetricCatalog with one SnapshotProvider per metric
    """
    with open(path) as f:
        document = yaml.safe_load(f) or {}

    known = {d.key: d for d in definitions or []}
    catalog = MetricCatalog()

    for entry in document.get("metrics", []) or []:
        key = entry["key"]
        fallback = known.get(key)
        name = entry.get("name") or (fallback.name if fallback else key)
        category = entry.get("category") or (fallback.category if fallback else None)
        if category is None:
            raise ValueError(f"Metric {key} has no category")
        unit = entry.get("unit", fallback.unit if fallback else None)

        metric = DataMetric(
            key=key, name=name, category=MetricCategory(category), unit=unit
        )
        provider = SnapshotProvider(_parse_values(entry.get("values")))
        catalog.register(metric, provider)

    logger.info("Series file loaded", path=str(path), metrics=len(catalog))
    return catalog
