"""Correlation statistics and lag search.

Implements:
- Pearson product-moment correlation with undefined-variance handling
- Confidence scoring from a Fisher z-test
- Best-lag selection across a set of day offsets
"""

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

import structlog

from reflection.correlation.alignment import DataPoint, DateRange, SeriesAligner
from reflection.models import DataMetric, Significance, classify_significance

logger = structlog.get_logger()

DEFAULT_MIN_SAMPLE_SIZE = 7
DEFAULT_LARGE_SAMPLE_DAYS = 60
DEFAULT_LAG_DAYS = (0, 1, 2, 3)

# Coefficients this close are treated as tied during lag search
TIE_TOLERANCE = 1e-9


# ============================================================================
# Statistical Functions
# ============================================================================


def pearson_correlation(x: Sequence[float], y: Sequence[float]) -> float | None:
    """
    Calculate the Pearson correlation coefficient.

    Args:
        x: First data series
        y: Second data series

    Returns:
        Coefficient clamped to [-1, 1], or None when undefined
        (mismatched lengths, fewer than 2 points, zero variance)
    """
    n = len(x)
    if n != len(y) or n < 2:
        return None

    # Exact constancy check; float means leave residue on constant series
    if min(x) == max(x) or min(y) == max(y):
        return None

    mean_x = sum(x) / n
    mean_y = sum(y) / n
    dx = [xi - mean_x for xi in x]
    dy = [yi - mean_y for yi in y]

    ss_xx = sum(d * d for d in dx)
    ss_yy = sum(d * d for d in dy)

    ss_xy = sum(a * b for a, b in zip(dx, dy))
    denominator = math.sqrt(ss_xx * ss_yy)
    if denominator == 0:
        return None
    r = ss_xy / denominator
    return max(-1.0, min(1.0, r))


def linear_slope(x: Sequence[float], y: Sequence[float]) -> float | None:
    """Least-squares slope of y on x, or None when x has no variance."""
    n = len(x)
    if n != len(y) or n < 2:
        return None
    if min(x) == max(x):
        return None
    mean_x = sum(x) / n
    mean_y = sum(y) / n
    ss_xx = sum((xi - mean_x) ** 2 for xi in x)
    ss_xy = sum((xi - mean_x) * (yi - mean_y) for xi, yi in zip(x, y))
    return ss_xy / ss_xx


def _normal_cdf(x: float) -> float:
    """Cumulative distribution function for the standard normal."""
    return 0.5 * (1 + math.erf(x / math.sqrt(2)))


def correlation_confidence(coefficient: float, sample_size: int) -> float:
    """
    Confidence in [0, 1] that a correlation is not sampling noise.

    Uses the Fisher z-transform: z = atanh(|r|) * sqrt(n - 3), and returns
    1 - p for the two-sided p-value. Grows with both sample size and
    coefficient magnitude.
    """
    if sample_size <= 3:
        return 0.0
    magnitude = abs(coefficient)
    if magnitude >= 1.0:
        return 1.0
    z = math.atanh(magnitude) * math.sqrt(sample_size - 3)
    p_value = 2 * (1 - _normal_cdf(z))
    return max(0.0, min(1.0, 1 - p_value))


# ============================================================================
# Scores and Relationships
# ============================================================================


@dataclass(frozen=True)
class CorrelationScore:
    """Score of one aligned sample set."""

    coefficient: float
    confidence: float
    sample_size: int
    slope: float = 0.0

    @property
    def significance(self) -> Significance:
        return classify_significance(self.coefficient)


@dataclass(frozen=True)
class MetricRelationship:
    """Aligned samples for a metric pair at the lag that scored best."""

    metric_x: DataMetric
    metric_y: DataMetric
    date_range: DateRange
    lag_days: int
    score: CorrelationScore
    points: list[DataPoint] = field(default_factory=list)

    @property
    def sample_size(self) -> int:
        return len(self.points)


# ============================================================================
# Correlation Computer
# ============================================================================


def _stronger(candidate: CorrelationScore, current: CorrelationScore) -> bool:
    """True when `candidate` beats `current` by more than rounding noise."""
    new, old = abs(candidate.coefficient), abs(current.coefficient)
    if math.isclose(new, old, rel_tol=TIE_TOLERANCE, abs_tol=1e-12):
        return False
    return new > old


class CorrelationComputer:
    """
    Scores aligned series and searches lag offsets.

    Lags mean "Y observed this many days after X". With
    `search_both_directions`, non-zero lags are also tried with the roles
    swapped so either metric may lead.
    """

    def __init__(
        self,
        aligner: SeriesAligner,
        min_sample_size: int = DEFAULT_MIN_SAMPLE_SIZE,
        lag_days: Iterable[int] = DEFAULT_LAG_DAYS,
        search_both_directions: bool = True,
    ):
        if min_sample_size < 3:
            raise ValueError("min_sample_size must be at least 3")
        lags = sorted(set(lag_days))
        if not lags:
            raise ValueError("lag_days must not be empty")
        if lags[0] < 0:
            raise ValueError("lag_days must be non-negative")

        self.aligner = aligner
        self.min_sample_size = min_sample_size
        self.lag_days = tuple(lags)
        self.search_both_directions = search_both_directions

    def score(self, points: Sequence[DataPoint]) -> CorrelationScore | None:
        """
        Score an aligned sample set.

        Returns None for under-powered samples or when either series has
        zero variance.
        """
        sample_size = len(points)
        if sample_size < self.min_sample_size:
            return None

        xs = [p.value_x for p in points]
        ys = [p.value_y for p in points]
        r = pearson_correlation(xs, ys)
        if r is None:
            return None

        return CorrelationScore(
            coefficient=r,
            confidence=correlation_confidence(r, sample_size),
            sample_size=sample_size,
            slope=linear_slope(xs, ys) or 0.0,
        )

    def best_relationship(
        self,
        metric_a: DataMetric,
        metric_b: DataMetric,
        date_range: DateRange,
    ) -> MetricRelationship | None:
        """
        Find the lag (and leading metric) with the strongest correlation.

        Candidates below the minimum sample size are ignored. Ties on
        |r| prefer the smaller lag, then `metric_a` leading.
        """
        best: MetricRelationship | None = None

        for lag in self.lag_days:
            orientations = [(metric_a, metric_b)]
            if lag > 0 and self.search_both_directions:
                orientations.append((metric_b, metric_a))

            for leader, follower in orientations:
                points = self.aligner.align(leader, follower, date_range, lag)
                score = self.score(points)
                if score is None:
                    continue
                if best is None or _stronger(score, best.score):
                    best = MetricRelationship(
                        metric_x=leader,
                        metric_y=follower,
                        date_range=date_range,
                        lag_days=lag,
                        score=score,
                        points=points,
                    )

        if best is not None:
            logger.debug(
                "Best lag selected",
                metric_x=best.metric_x.key,
                metric_y=best.metric_y.key,
                lag=best.lag_days,
                r=round(best.score.coefficient, 4),
                n=best.sample_size,
            )
        return best
