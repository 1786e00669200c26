"""Correlation engine: catalog, alignment, scoring, ranking and suggestions."""

from reflection.correlation.alignment import DataPoint, DateRange, SeriesAligner
from reflection.correlation.catalog import (
    DuplicateMetricError,
    MetricCatalog,
    ProviderUnavailableError,
    ReflectionError,
    ValueProvider,
)
from reflection.correlation.engine import (
    AnalysisCancelledError,
    CorrelationEngine,
    CorrelationScan,
    PairFailure,
    describe_relationship,
)
from reflection.correlation.statistics import (
    CorrelationComputer,
    CorrelationScore,
    MetricRelationship,
    correlation_confidence,
    linear_slope,
    pearson_correlation,
)
from reflection.correlation.suggestions import (
    SuggestionGenerator,
    choose_lever,
    compute_priority,
    generate_suggestions,
)

__all__ = [
    # Catalog
    "DuplicateMetricError",
    "MetricCatalog",
    "ProviderUnavailableError",
    "ReflectionError",
    "ValueProvider",
    # Alignment
    "DataPoint",
    "DateRange",
    "SeriesAligner",
    # Statistics
    "CorrelationComputer",
    "CorrelationScore",
    "MetricRelationship",
    "correlation_confidence",
    "linear_slope",
    "pearson_correlation",
    # Engine
    "AnalysisCancelledError",
    "CorrelationEngine",
    "CorrelationScan",
    "PairFailure",
    "describe_relationship",
    # Suggestions
    "SuggestionGenerator",
    "choose_lever",
    "compute_priority",
    "generate_suggestions",
]
