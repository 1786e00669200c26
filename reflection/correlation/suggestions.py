"""Suggestion generator: turns ranked correlations into actionable advice."""

import math
from collections.abc import Iterable

import structlog

from reflection.models import (
    CorrelationResult,
    CorrelationSuggestion,
    DataMetric,
    MetricCategory,
    Significance,
    suggestion_id,
)

logger = structlog.get_logger()

# Categories a person can change most directly come first
LEVER_ORDER = [
    MetricCategory.PHONE_USAGE,
    MetricCategory.SLEEP,
    MetricCategory.ACTIVITY,
    MetricCategory.HEALTH,
    MetricCategory.PRODUCTIVITY,
    MetricCategory.MOOD,
]

SUGGESTIBLE = {Significance.MODERATE, Significance.STRONG}

CHANGE_TEMPLATES: dict[tuple[MetricCategory, str], str] = {
    (MetricCategory.PHONE_USAGE, "positive"): (
        "Try trimming {lever} for a week and watch whether {outcome} falls with it."
    ),
    (MetricCategory.PHONE_USAGE, "negative"): (
        "Try cutting back on {lever}; lighter days have come with more {outcome}."
    ),
    (MetricCategory.SLEEP, "positive"): (
        "Aim for more consistent {lever}; nights with more of it have come "
        "with higher {outcome}."
    ),
    (MetricCategory.SLEEP, "negative"): (
        "Look for the {lever} that suits you; more of it has come with lower {outcome}."
    ),
    (MetricCategory.ACTIVITY, "positive"): (
        "Build more {lever} into your routine and see whether {outcome} rises with it."
    ),
    (MetricCategory.ACTIVITY, "negative"): (
        "Balance {lever} with recovery; heavier days have come with lower {outcome}."
    ),
    (MetricCategory.HEALTH, "positive"): (
        "Keep an eye on {lever}; it tends to move together with {outcome}."
    ),
    (MetricCategory.HEALTH, "negative"): (
        "Keep an eye on {lever}; when it rises, {outcome} tends to fall."
    ),
    (MetricCategory.PRODUCTIVITY, "positive"): (
        "Protect time for {lever}; it has risen and fallen with {outcome}."
    ),
    (MetricCategory.PRODUCTIVITY, "negative"): (
        "Check whether heavy {lever} days are squeezing {outcome}."
    ),
    (MetricCategory.MOOD, "positive"): (
        "Notice what lifts your {lever}; better days have come with higher {outcome}."
    ),
    (MetricCategory.MOOD, "negative"): (
        "On low {lever} days, plan for {outcome} to run higher than usual."
    ),
}


def _days(count: int) -> str:
    return "1 day" if count == 1 else f"{count} days"


def compute_priority(result: CorrelationResult) -> int:
    """Priority 1-5 from confidence-weighted strength, rounding half up."""
    raw = 1 + 4 * result.strength_score
    return max(1, min(5, math.floor(raw + 0.5)))


def choose_lever(result: CorrelationResult) -> tuple[DataMetric, DataMetric]:
    """Split a pair into (lever, outcome); ties keep metric_x as the lever."""
    x_rank = LEVER_ORDER.index(result.metric_x.category)
    y_rank = LEVER_ORDER.index(result.metric_y.category)
    if y_rank < x_rank:
        return result.metric_y, result.metric_x
    return result.metric_x, result.metric_y


def _lever_slope(result: CorrelationResult, lever: DataMetric) -> float:
    """Change in the outcome per unit of the lever."""
    if lever.key == result.metric_x.key:
        return result.slope
    # slope(x on y) * slope(y on x) == r^2
    if result.slope == 0:
        return 0.0
    return result.correlation_coefficient**2 / result.slope


class SuggestionGenerator:
    """Maps correlation results to prioritized suggestions."""

    def __init__(self, large_sample_days: int = 60):
        self.large_sample_days = large_sample_days

    def _insight(self, result: CorrelationResult) -> str:
        x_name = result.metric_x.name
        y_name = result.metric_y.name
        tendency = "higher" if result.direction == "positive" else "lower"
        text = (
            f"{x_name} and {y_name} show a {result.significance.value} "
            f"{result.direction} relationship: when {x_name} is higher, "
            f"{y_name} tends to be {tendency}"
        )
        if result.lag_days:
            text += f" {_days(result.lag_days)} later"
        return text + "."

    def _suggested_change(self, result: CorrelationResult) -> str:
        lever, outcome = choose_lever(result)
        template = CHANGE_TEMPLATES[(lever.category, result.direction)]
        text = template.format(lever=lever.name.lower(), outcome=outcome.name.lower())
        if result.lag_days:
            text += f" The effect shows up about {_days(result.lag_days)} later."
        return text

    def _expected_impact(self, result: CorrelationResult) -> str:
        lever, outcome = choose_lever(result)
        slope = _lever_slope(result, lever)
        sign = "+" if slope >= 0 else "-"
        text = (
            f"Each 1 {lever.unit or 'point'} increase in {lever.name} has gone with "
            f"{sign}{abs(slope):.1f} {outcome.unit or 'points'} of {outcome.name} "
            f"across {result.sample_size} days "
            f"({result.confidence_score:.0%} confidence)."
        )
        if result.sample_size < self.large_sample_days:
            text += " Keep tracking to confirm; this is based on limited data."
        return text

    def suggest(self, result: CorrelationResult) -> CorrelationSuggestion | None:
        """Suggestion for one result, or None below moderate significance."""
        if result.significance not in SUGGESTIBLE:
            return None
        return CorrelationSuggestion(
            id=suggestion_id(result),
            result=result,
            insight=self._insight(result),
            suggested_change=self._suggested_change(result),
            expected_impact=self._expected_impact(result),
            priority=compute_priority(result),
        )

    def generate_suggestions(
        self, results: Iterable[CorrelationResult]
    ) -> list[CorrelationSuggestion]:
        """
        Suggestions for moderate and strong results.

        Ordered by priority descending; ties keep input order.
        """
        suggestions = []
        skipped = 0
        for result in results:
            suggestion = self.suggest(result)
            if suggestion is None:
                skipped += 1
                continue
            suggestions.append(suggestion)

        suggestions.sort(key=lambda s: -s.priority)

        logger.info(
            "Generated suggestions",
            suggestions=len(suggestions),
            skipped=skipped,
        )
        return suggestions


def generate_suggestions(
    results: Iterable[CorrelationResult], large_sample_days: int = 60
) -> list[CorrelationSuggestion]:
    """Convenience function using a default SuggestionGenerator."""
    return SuggestionGenerator(large_sample_days).generate_suggestions(results)
