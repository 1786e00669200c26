"""Data models for the correlation engine."""

import uuid
from datetime import date
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, computed_field

# Namespace for deterministic result identifiers
RESULT_NAMESPACE = uuid.UUID("6f1c2a4e-93d5-5b8e-a0c7-2f4e8d1b9c63")


class MetricCategory(str, Enum):
    """Source domain of a metric."""

    HEALTH = "health"
    SLEEP = "sleep"
    ACTIVITY = "activity"
    PHONE_USAGE = "phone_usage"
    MOOD = "mood"
    PRODUCTIVITY = "productivity"


class Significance(str, Enum):
    """Qualitative bucket derived from coefficient magnitude."""

    STRONG = "strong"  # |r| >= 0.7
    MODERATE = "moderate"  # 0.4 <= |r| < 0.7
    WEAK = "weak"  # 0.2 <= |r| < 0.4
    NONE = "none"  # |r| < 0.2


def classify_significance(coefficient: float) -> Significance:
    """Bucket a correlation coefficient by magnitude."""
    magnitude = abs(coefficient)
    if magnitude >= 0.7:
        return Significance.STRONG
    if magnitude >= 0.4:
        return Significance.MODERATE
    if magnitude >= 0.2:
        return Significance.WEAK
    return Significance.NONE


class DataMetric(BaseModel):
    """A registered metric. Identity is the key."""

    model_config = ConfigDict(frozen=True)

    key: str = Field(min_length=1)
    name: str
    category: MetricCategory
    unit: str | None = None

    def label(self) -> str:
        """Display name with unit, e.g. 'Sleep (hours)'."""
        if self.unit:
            return f"{self.name} ({self.unit})"
        return self.name


class CorrelationResult(BaseModel):
    """Scored relationship between two metrics over a window."""

    model_config = ConfigDict(frozen=True)

    id: uuid.UUID
    metric_x: DataMetric
    metric_y: DataMetric
    correlation_coefficient: float = Field(ge=-1.0, le=1.0)
    confidence_score: float = Field(ge=0.0, le=1.0)
    sample_size: int = Field(ge=0)
    lag_days: int = Field(default=0, ge=0)
    slope: float = 0.0  # change in Y per unit of X
    window_start: date
    window_end: date
    description: str = ""

    @computed_field
    @property
    def significance(self) -> Significance:
        """Significance bucket, a pure function of the coefficient."""
        return classify_significance(self.correlation_coefficient)

    @property
    def direction(self) -> str:
        """Get correlation direction."""
        if self.correlation_coefficient > 0:
            return "positive"
        if self.correlation_coefficient < 0:
            return "negative"
        return "none"

    @property
    def strength_score(self) -> float:
        """Ranking weight: confidence times coefficient magnitude."""
        return self.confidence_score * abs(self.correlation_coefficient)

    @property
    def pair_key(self) -> tuple[str, str]:
        """Order-independent identity of the metric pair."""
        return tuple(sorted((self.metric_x.key, self.metric_y.key)))  # type: ignore[return-value]


class CorrelationSuggestion(BaseModel):
    """Actionable suggestion derived from one correlation result."""

    model_config = ConfigDict(frozen=True)

    id: uuid.UUID
    result: CorrelationResult
    insight: str
    suggested_change: str
    expected_impact: str
    priority: int = Field(ge=1, le=5)


def result_id(
    metric_x: str,
    metric_y: str,
    window_start: date,
    window_end: date,
    lag_days: int,
) -> uuid.UUID:
    """Deterministic identifier for a correlation result."""
    name = f"{metric_x}|{metric_y}|{window_start.isoformat()}|{window_end.isoformat()}|{lag_days}"
    return uuid.uuid5(RESULT_NAMESPACE, name)


def suggestion_id(result: CorrelationResult) -> uuid.UUID:
    """Deterministic identifier for a suggestion derived from a result."""
    return uuid.uuid5(RESULT_NAMESPACE, f"suggestion|{result.id}")
