"""Correlation engine: pairwise scan, ranking and relationship detail.

Enumerates unordered metric pairs, scores each pair at its best lag,
drops under-powered and negligible results, and orders the rest
deterministically by confidence-weighted strength.
"""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING

import structlog

from reflection.config import EngineConfig
from reflection.correlation.alignment import DateRange, SeriesAligner
from reflection.correlation.catalog import (
    MetricCatalog,
    ProviderUnavailableError,
    ReflectionError,
)
from reflection.correlation.statistics import CorrelationComputer, MetricRelationship
from reflection.models import CorrelationResult, DataMetric, Significance, result_id

if TYPE_CHECKING:
    from reflection.cache import CorrelationCache

logger = structlog.get_logger()


class AnalysisCancelledError(ReflectionError):
    """Raised when a scan is cancelled between pair evaluations."""


@dataclass
class PairFailure:
    """A metric pair that could not be evaluated."""

    metric_x: str
    metric_y: str
    error: str


@dataclass
class CorrelationScan:
    """Outcome of a correlation scan."""

    date_range: DateRange
    results: list[CorrelationResult] = field(default_factory=list)
    failures: list[PairFailure] = field(default_factory=list)
    pairs_evaluated: int = 0

    @property
    def all_failed(self) -> bool:
        """True when every evaluated pair hit a provider failure."""
        return self.pairs_evaluated > 0 and len(self.failures) == self.pairs_evaluated


def describe_relationship(
    relationship: MetricRelationship, large_sample_days: int
) -> str:
    """Build a one-line human-readable description of a relationship."""
    score = relationship.score
    direction = "positive" if score.coefficient > 0 else "negative"
    x_name = relationship.metric_x.name
    y_name = relationship.metric_y.name

    text = (
        f"{score.significance.value.capitalize()} {direction} correlation between "
        f"{x_name} and {y_name} (r={score.coefficient:.2f}, n={score.sample_size})"
    )
    if relationship.lag_days == 1:
        text += f"; {y_name} follows {x_name} by 1 day"
    elif relationship.lag_days > 1:
        text += f"; {y_name} follows {x_name} by {relationship.lag_days} days"
    if score.sample_size < large_sample_days:
        text += f"; preliminary, fewer than {large_sample_days} days of data"
    return text


class CorrelationEngine:
    """
    Orchestrates correlation analysis over a metric catalog.

    Stateless between calls: results depend only on provider values for
    the requested window and on the engine configuration.
    """

    def __init__(self, catalog: MetricCatalog, config: EngineConfig | None = None):
        self.catalog = catalog
        self.config = config or EngineConfig()
        self.aligner = SeriesAligner(catalog)
        self.computer = CorrelationComputer(
            self.aligner,
            min_sample_size=self.config.min_sample_size,
            lag_days=self.config.lag_days,
            search_both_directions=self.config.search_both_directions,
        )

    # ========================================================================
    # Helpers
    # ========================================================================

    def list_available_metrics(self) -> set[DataMetric]:
        """All metrics known to the catalog."""
        return self.catalog.list_available()

    def date_range(self, minimum_days: int | None = None, today: date | None = None) -> DateRange:
        """Analysis window ending today, inclusive."""
        days = self.config.default_window_days if minimum_days is None else minimum_days
        if days < 0:
            raise ValueError(f"minimum_days must be non-negative, got {days}")
        return DateRange.last_days(days, today)

    def candidate_pairs(
        self, metrics: Iterable[DataMetric] | None = None
    ) -> list[tuple[DataMetric, DataMetric]]:
        """Unordered distinct pairs, each once, in key order.

        Metrics are resolved through the catalog by key.
        """
        pool = self.catalog.list_available() if metrics is None else metrics
        by_key: dict[str, DataMetric] = {}
        for metric in pool:
            if metric not in self.catalog:
                raise KeyError(f"Metric not registered: {metric.key}")
            by_key[metric.key] = self.catalog.get(metric.key)

        ordered = [by_key[key] for key in sorted(by_key)]
        return [
            (ordered[i], ordered[j])
            for i in range(len(ordered))
            for j in range(i + 1, len(ordered))
        ]

    def _to_result(self, relationship: MetricRelationship) -> CorrelationResult:
        score = relationship.score
        window = relationship.date_range
        return CorrelationResult(
            id=result_id(
                relationship.metric_x.key,
                relationship.metric_y.key,
                window.start,
                window.end,
                relationship.lag_days,
            ),
            metric_x=relationship.metric_x,
            metric_y=relationship.metric_y,
            correlation_coefficient=score.coefficient,
            confidence_score=score.confidence,
            sample_size=score.sample_size,
            lag_days=relationship.lag_days,
            slope=score.slope,
            window_start=window.start,
            window_end=window.end,
            description=describe_relationship(
                relationship, self.config.large_sample_days
            ),
        )

    def evaluate_pair(
        self, metric_a: DataMetric, metric_b: DataMetric, date_range: DateRange
    ) -> CorrelationResult | None:
        """Score one pair at its best lag. None when under-powered."""
        relationship = self.computer.best_relationship(metric_a, metric_b, date_range)
        if relationship is None:
            return None
        return self._to_result(relationship)

    @staticmethod
    def _rank_key(result: CorrelationResult) -> tuple[float, int, tuple[str, str]]:
        return (-result.strength_score, -result.sample_size, result.pair_key)

    def _finish(self, scan: CorrelationScan) -> CorrelationScan:
        scan.results.sort(key=self._rank_key)
        logger.info(
            "Correlation scan complete",
            window_start=scan.date_range.start.isoformat(),
            window_end=scan.date_range.end.isoformat(),
            pairs_evaluated=scan.pairs_evaluated,
            results=len(scan.results),
            failures=len(scan.failures),
        )
        return scan

    def _collect(self, scan: CorrelationScan, result: CorrelationResult | None) -> None:
        scan.pairs_evaluated += 1
        if result is None:
            return
        if result.sample_size < self.config.min_sample_size:
            return
        if result.significance == Significance.NONE:
            return
        scan.results.append(result)

    def _record_failure(
        self,
        scan: CorrelationScan,
        pair: tuple[DataMetric, DataMetric],
        error: ProviderUnavailableError,
    ) -> None:
        scan.pairs_evaluated += 1
        scan.failures.append(
            PairFailure(metric_x=pair[0].key, metric_y=pair[1].key, error=str(error))
        )
        logger.warning(
            "Skipping pair after provider failure",
            metric_x=pair[0].key,
            metric_y=pair[1].key,
            error=str(error),
        )

    # ========================================================================
    # Public API
    # ========================================================================

    def scan(
        self,
        metrics: Iterable[DataMetric] | None = None,
        minimum_days: int | None = None,
        *,
        today: date | None = None,
        cancel_event: threading.Event | None = None,
    ) -> CorrelationScan:
        """
        Evaluate every metric pair over the last `minimum_days` days.

        Args:
            metrics: Metrics to pair up (all registered metrics if None)
            minimum_days: Window length in days (config default if None)
            today: Last day of the window (current date if None)
            cancel_event: Checked between pairs; when set the scan stops

        Returns:
            CorrelationScan with ordered results and per-pair failures

        Raises:
            AnalysisCancelledError: cancel_event was set
        """
        date_range = self.date_range(minimum_days, today)
        pairs = self.candidate_pairs(metrics)
        scan = CorrelationScan(date_range=date_range)

        for pair in pairs:
            if cancel_event is not None and cancel_event.is_set():
                logger.info(
                    "Correlation scan cancelled",
                    pairs_evaluated=scan.pairs_evaluated,
                    pairs_total=len(pairs),
                )
                raise AnalysisCancelledError(
                    f"Scan cancelled after {scan.pairs_evaluated} of {len(pairs)} pairs"
                )
            try:
                result = self.evaluate_pair(pair[0], pair[1], date_range)
            except ProviderUnavailableError as e:
                self._record_failure(scan, pair, e)
                continue
            self._collect(scan, result)

        return self._finish(scan)

    def find_correlations(
        self,
        metrics: Iterable[DataMetric] | None = None,
        minimum_days: int | None = None,
        *,
        today: date | None = None,
        cancel_event: threading.Event | None = None,
    ) -> list[CorrelationResult]:
        """Ordered significant correlations over the last `minimum_days` days."""
        return self.scan(
            metrics, minimum_days, today=today, cancel_event=cancel_event
        ).results

    def analyze_relationship(
        self,
        metric_x: DataMetric,
        metric_y: DataMetric,
        minimum_days: int | None = None,
        *,
        today: date | None = None,
    ) -> MetricRelationship | None:
        """
        Aligned points for one pair at its best lag.

        The returned relationship's `metric_x` is the leading metric, which
        may be `metric_y` when the reverse direction scored higher.

        Raises:
            ValueError: both arguments are the same metric
            ProviderUnavailableError: a provider failed
        """
        if metric_x.key == metric_y.key:
            raise ValueError("Cannot analyze a metric against itself")
        for metric in (metric_x, metric_y):
            if metric not in self.catalog:
                raise KeyError(f"Metric not registered: {metric.key}")
        metric_x = self.catalog.get(metric_x.key)
        metric_y = self.catalog.get(metric_y.key)

        date_range = self.date_range(minimum_days, today)
        return self.computer.best_relationship(metric_x, metric_y, date_range)

    async def scan_async(
        self,
        metrics: Iterable[DataMetric] | None = None,
        minimum_days: int | None = None,
        *,
        today: date | None = None,
        cache: CorrelationCache | None = None,
    ) -> CorrelationScan:
        """
        Evaluate pairs on worker threads, bounded by `max_workers`.

        Cancelling the awaiting task abandons pairs not yet started. The
        output order matches `scan` regardless of completion order.
        """
        date_range = self.date_range(minimum_days, today)
        pairs = self.candidate_pairs(metrics)
        scan = CorrelationScan(date_range=date_range)
        semaphore = asyncio.Semaphore(self.config.max_workers)

        async def evaluate_with_semaphore(
            pair: tuple[DataMetric, DataMetric],
        ) -> CorrelationResult | None:
            async with semaphore:
                if cache is not None:
                    key = cache.key_for(pair[0], pair[1], date_range, self.config)
                    hit, cached = await cache.get_result(key)
                    if hit:
                        return cached
                result = await asyncio.to_thread(
                    self.evaluate_pair, pair[0], pair[1], date_range
                )
                if cache is not None:
                    await cache.set_result(key, result)
                return result

        outcomes = await asyncio.gather(
            *(evaluate_with_semaphore(pair) for pair in pairs),
            return_exceptions=True,
        )

        for pair, outcome in zip(pairs, outcomes):
            if isinstance(outcome, ProviderUnavailableError):
                self._record_failure(scan, pair, outcome)
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                self._collect(scan, outcome)

        return self._finish(scan)
