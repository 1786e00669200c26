"""Metric catalog: registry of metrics and their value providers."""

import math
from collections.abc import Callable
from datetime import date

import structlog

from reflection.models import DataMetric

logger = structlog.get_logger()

# A provider returns the observed value for a day, or None when nothing was recorded.
ValueProvider = Callable[[date], float | None]


class ReflectionError(Exception):
    """Base class for correlation engine errors."""


class DuplicateMetricError(ReflectionError, ValueError):
    """Raised when a metric key is registered twice."""

    def __init__(self, key: str):
        super().__init__(f"Metric already registered: {key}")
        self.key = key


class ProviderUnavailableError(ReflectionError):
    """Raised when a value provider cannot serve data."""

    def __init__(self, metric_key: str, reason: str = ""):
        message = f"Value provider unavailable for {metric_key}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.metric_key = metric_key
        self.reason = reason


class MetricCatalog:
    """
    Registry of known metrics.

    Each metric is bound to a provider at registration time. Providers
    must return stable values for a given day for the duration of one
    analysis run.
    """

    def __init__(self) -> None:
        self._metrics: dict[str, DataMetric] = {}
        self._providers: dict[str, ValueProvider] = {}

    def __contains__(self, item: object) -> bool:
        if isinstance(item, DataMetric):
            return item.key in self._metrics
        return item in self._metrics

    def __len__(self) -> int:
        return len(self._metrics)

    def register(self, metric: DataMetric, provider: ValueProvider) -> None:
        """Register a metric with its value provider."""
        if metric.key in self._metrics:
            raise DuplicateMetricError(metric.key)
        self._metrics[metric.key] = metric
        self._providers[metric.key] = provider
        logger.debug(
            "Metric registered",
            key=metric.key,
            category=metric.category.value,
        )

    def list_available(self) -> set[DataMetric]:
        """All registered metrics."""
        return set(self._metrics.values())

    def get(self, key: str) -> DataMetric:
        """Look up a metric by key."""
        return self._metrics[key]

    def value_for(self, metric: DataMetric, day: date) -> float | None:
        """
        Get the observed value of a metric for a day.

        Returns None when there is no observation. Non-finite values are
        treated as missing.

        Raises:
            KeyError: metric is not registered
            ProviderUnavailableError: the provider failed
        """
        provider = self._providers[metric.key]
        try:
            value = provider(day)
        except ProviderUnavailableError:
            raise
        except Exception as e:
            logger.warning(
                "Value provider failed",
                key=metric.key,
                day=day.isoformat(),
                error=str(e),
            )
            raise ProviderUnavailableError(metric.key, str(e)) from e

        if value is None:
            return None
        value = float(value)
        if not math.isfinite(value):
            return None
        return value
