"""Tests for suggestion generation."""

from datetime import date

import pytest

from reflection.correlation.suggestions import (
    SuggestionGenerator,
    choose_lever,
    compute_priority,
    generate_suggestions,
)
from reflection.models import CorrelationResult, DataMetric, MetricCategory, result_id


def make_result(metric_x, metric_y, r=0.8, confidence=0.95, n=30, lag=0, slope=1.0):
    return CorrelationResult(
        id=result_id(metric_x.key, metric_y.key, date(2024, 3, 1), date(2024, 3, 31), lag),
        metric_x=metric_x,
        metric_y=metric_y,
        correlation_coefficient=r,
        confidence_score=confidence,
        sample_size=n,
        lag_days=lag,
        slope=slope,
        window_start=date(2024, 3, 1),
        window_end=date(2024, 3, 31),
    )


class TestComputePriority:
    """Tests for priority mapping."""

    def test_top_priority(self, sleep_metric, focus_metric):
        assert compute_priority(make_result(sleep_metric, focus_metric, 0.99, 1.0)) == 5

    def test_half_rounds_up(self, sleep_metric, focus_metric):
        # 1 + 4 * 0.5 * 0.75 = 2.5
        assert compute_priority(make_result(sleep_metric, focus_metric, 0.5, 0.75)) == 3

    def test_zero_confidence_is_lowest(self, sleep_metric, focus_metric):
        assert compute_priority(make_result(sleep_metric, focus_metric, 0.9, 0.0)) == 1

    def test_monotone_in_strength(self, sleep_metric, focus_metric):
        priorities = [
            compute_priority(make_result(sleep_metric, focus_metric, r, c))
            for r, c in [(0.4, 0.3), (0.5, 0.6), (0.7, 0.8), (0.85, 0.95), (1.0, 1.0)]
        ]
        assert priorities == sorted(priorities)
        assert all(1 <= p <= 5 for p in priorities)

    def test_sign_does_not_matter(self, sleep_metric, focus_metric):
        positive = make_result(sleep_metric, focus_metric, 0.6, 0.9)
        negative = make_result(sleep_metric, focus_metric, -0.6, 0.9)
        assert compute_priority(positive) == compute_priority(negative)


class TestChooseLever:
    """Tests for lever selection."""

    def test_sleep_is_lever_for_productivity(self, sleep_metric, focus_metric):
        lever, outcome = choose_lever(make_result(focus_metric, sleep_metric))
        assert lever == sleep_metric
        assert outcome == focus_metric

    def test_phone_usage_beats_sleep(self, sleep_metric, screen_metric):
        lever, _ = choose_lever(make_result(sleep_metric, screen_metric))
        assert lever == screen_metric

    def test_same_category_keeps_x(self, sleep_metric):
        quality = DataMetric(key="sleep_quality", name="Sleep quality", category=MetricCategory.SLEEP)
        lever, outcome = choose_lever(make_result(quality, sleep_metric))
        assert lever == quality
        assert outcome == sleep_metric


class TestSuggestionGenerator:
    """Tests for SuggestionGenerator."""

    @pytest.fixture
    def generator(self):
        return SuggestionGenerator(large_sample_days=60)

    def test_weak_and_none_skipped(self, generator, sleep_metric, focus_metric):
        assert generator.suggest(make_result(sleep_metric, focus_metric, 0.3)) is None
        assert generator.suggest(make_result(sleep_metric, focus_metric, 0.1)) is None

    def test_moderate_and_strong_produce(self, generator, sleep_metric, focus_metric):
        assert generator.suggest(make_result(sleep_metric, focus_metric, 0.5)) is not None
        assert generator.suggest(make_result(sleep_metric, focus_metric, -0.9)) is not None

    def test_fields_populated(self, generator, sleep_metric, focus_metric):
        result = make_result(sleep_metric, focus_metric, 0.9, 0.99, n=30, slope=20.0)
        suggestion = generator.suggest(result)

        assert suggestion.result == result
        assert "Sleep and Focus time" in suggestion.insight
        assert "strong positive" in suggestion.insight
        assert "sleep" in suggestion.suggested_change
        assert "+20.0 min of Focus time" in suggestion.expected_impact
        assert "limited data" in suggestion.expected_impact

    def test_large_sample_has_no_caveat(self, generator, sleep_metric, focus_metric):
        suggestion = generator.suggest(make_result(sleep_metric, focus_metric, n=90))
        assert "limited data" not in suggestion.expected_impact

    def test_lag_mentioned(self, generator, sleep_metric, focus_metric):
        suggestion = generator.suggest(make_result(sleep_metric, focus_metric, lag=2))
        assert "2 days later" in suggestion.insight
        assert "about 2 days later" in suggestion.suggested_change

    def test_single_day_lag(self, generator, sleep_metric, focus_metric):
        suggestion = generator.suggest(make_result(sleep_metric, focus_metric, lag=1))
        assert "1 day later" in suggestion.insight

    def test_slope_inverted_when_lever_is_y(self, generator, sleep_metric, focus_metric):
        # focus on x, sleep is the lever: outcome per lever unit is r^2 / slope
        result = make_result(focus_metric, sleep_metric, r=0.8, slope=0.04)
        suggestion = generator.suggest(result)
        assert "Each 1 hours increase in Sleep" in suggestion.expected_impact
        assert "+16.0 min of Focus time" in suggestion.expected_impact

    def test_negative_direction(self, generator, screen_metric, mood_metric):
        result = make_result(mood_metric, screen_metric, r=-0.75, slope=-10.0)
        suggestion = generator.suggest(result)
        assert "negative" in suggestion.insight
        assert "screen time" in suggestion.suggested_change
        assert " points of Mood" in suggestion.expected_impact

    def test_deterministic_ids(self, generator, sleep_metric, focus_metric):
        result = make_result(sleep_metric, focus_metric)
        assert generator.suggest(result).id == generator.suggest(result).id

    def test_ordered_by_priority(self, generator, sleep_metric, focus_metric, screen_metric, mood_metric):
        results = [
            make_result(sleep_metric, focus_metric, 0.5, 0.5),
            make_result(screen_metric, mood_metric, 0.95, 0.99),
            make_result(sleep_metric, mood_metric, 0.2, 0.99),
            make_result(focus_metric, mood_metric, 0.7, 0.9),
        ]
        suggestions = generator.generate_suggestions(results)

        assert len(suggestions) == 3
        priorities = [s.priority for s in suggestions]
        assert priorities == sorted(priorities, reverse=True)
        assert suggestions[0].result == results[1]

    def test_ties_keep_input_order(self, generator, sleep_metric, focus_metric, screen_metric, mood_metric):
        first = make_result(sleep_metric, focus_metric, 0.8, 0.9)
        second = make_result(screen_metric, mood_metric, 0.8, 0.9)
        suggestions = generator.generate_suggestions([first, second])
        assert [s.result for s in suggestions] == [first, second]

        suggestions = generator.generate_suggestions([second, first])
        assert [s.result for s in suggestions] == [second, first]

    def test_empty_input(self, generator):
        assert generator.generate_suggestions([]) == []


def test_module_level_helper(sleep_metric, focus_metric):
    results = [make_result(sleep_metric, focus_metric, 0.8, 0.9)]
    suggestions = generate_suggestions(results, large_sample_days=10)
    assert len(suggestions) == 1
    assert "limited data" not in suggestions[0].expected_impact
