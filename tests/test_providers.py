"""Tests for snapshot providers and series file loading."""

from datetime import date

import pytest

from reflection.config import MetricDefinition
from reflection.correlation import DuplicateMetricError
from reflection.models import MetricCategory
from reflection.providers import SnapshotProvider, load_series_file


class TestSnapshotProvider:
    """Tests for SnapshotProvider."""

    def test_lookup(self):
        provider = SnapshotProvider({date(2024, 3, 1): 7, date(2024, 3, 2): None})
        assert provider(date(2024, 3, 1)) == 7.0
        assert provider(date(2024, 3, 2)) is None
        assert provider(date(2024, 3, 3)) is None
        assert len(provider) == 1

    def test_copy_is_isolated(self):
        values = {date(2024, 3, 1): 7.0}
        provider = SnapshotProvider(values)
        values[date(2024, 3, 1)] = 99.0
        assert provider(date(2024, 3, 1)) == 7.0

    def test_days_sorted(self):
        provider = SnapshotProvider({date(2024, 3, 5): 1, date(2024, 3, 1): 2})
        assert provider.days == [date(2024, 3, 1), date(2024, 3, 5)]


class TestLoadSeriesFile:
    """Tests for load_series_file."""

    def test_full_entries(self, tmp_path):
        path = tmp_path / "series.yaml"
        path.write_text(
            """
metrics:
  - key: sleep_hours
    name: Sleep
    category: sleep
    unit: hours
    values:
      "2024-03-01": 7.5
      "2024-03-02": 6
      "2024-03-03": null
  - key: mood_score
    name: Mood
    category: mood
    values:
      2024-03-01: 4
"""
        )

        catalog = load_series_file(path)

        assert len(catalog) == 2
        sleep = catalog.get("sleep_hours")
        assert sleep.category == MetricCategory.SLEEP
        assert sleep.unit == "hours"
        assert catalog.value_for(sleep, date(2024, 3, 1)) == 7.5
        assert catalog.value_for(sleep, date(2024, 3, 3)) is None
        # Unquoted YAML dates parse as date objects
        assert catalog.value_for(catalog.get("mood_score"), date(2024, 3, 1)) == 4.0

    def test_definitions_fill_gaps(self, tmp_path):
        path = tmp_path / "series.yaml"
        path.write_text(
            """
metrics:
  - key: steps
    values:
      "2024-03-01": 9000
"""
        )
        definitions = [
            MetricDefinition(key="steps", name="Steps", category="activity", unit="steps")
        ]

        metric = load_series_file(path, definitions).get("steps")

        assert metric.name == "Steps"
        assert metric.category == MetricCategory.ACTIVITY
        assert metric.unit == "steps"

    def test_missing_category(self, tmp_path):
        path = tmp_path / "series.yaml"
        path.write_text("metrics:\n  - key: mystery\n    values: {}\n")
        with pytest.raises(ValueError, match="mystery"):
            load_series_file(path)

    def test_duplicate_keys(self, tmp_path):
        path = tmp_path / "series.yaml"
        path.write_text(
            "metrics:\n"
            "  - {key: steps, name: Steps, category: activity}\n"
            "  - {key: steps, name: Steps again, category: activity}\n"
        )
        with pytest.raises(DuplicateMetricError):
            load_series_file(path)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "series.yaml"
        path.write_text("")
        assert len(load_series_file(path)) == 0
