"""Configuration management for the correlation engine."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings

from reflection.models import DataMetric, MetricCategory


class EngineConfig(BaseModel):
    """Thresholds and search parameters for correlation analysis."""

    min_sample_size: int = Field(default=7, ge=3)
    large_sample_days: int = Field(default=60, ge=1)
    lag_days: list[int] = Field(default_factory=lambda: [0, 1, 2, 3])
    search_both_directions: bool = True
    default_window_days: int = Field(default=30, ge=1)
    max_workers: int = Field(default=4, ge=1)

    @field_validator("lag_days")
    @classmethod
    def _normalize_lags(cls, value: list[int]) -> list[int]:
        if not value:
            raise ValueError("lag_days must not be empty")
        if any(lag < 0 for lag in value):
            raise ValueError("lag_days must be non-negative")
        return sorted(set(value))


class MetricDefinition(BaseModel):
    """A metric declared in configuration."""

    key: str
    name: str
    category: MetricCategory
    unit: str | None = None

    def to_metric(self) -> DataMetric:
        return DataMetric(
            key=self.key, name=self.name, category=self.category, unit=self.unit
        )


class Settings(BaseSettings):
    """Application settings from environment variables."""

    # Paths
    config_path: Path = Path("config/engine.yaml")

    # Redis (optional result cache)
    redis_url: str = "redis://localhost:6379"
    cache_ttl_seconds: int = 3600

    # Logging
    log_level: str = "WARNING"

    class Config:
        env_prefix = "REFLECTION_"
        env_file = ".env"
        env_file_encoding = "utf-8"


def load_engine_config(config_path: Path | None = None) -> dict[str, Any]:
    """Load engine configuration from YAML file."""
    if config_path is None:
        config_path = Path("config/engine.yaml")

    with open(config_path) as f:
        return yaml.safe_load(f) or {}


def get_engine_config(config: dict[str, Any]) -> EngineConfig:
    """Extract engine settings from configuration."""
    engine_data = config.get("engine", {}) or {}
    return EngineConfig(**engine_data)


def get_metric_definitions(config: dict[str, Any]) -> list[MetricDefinition]:
    """Extract metric definitions from configuration as flat list."""
    definitions = []
    metrics_section = config.get("metrics", {}) or {}

    for category, metric_list in metrics_section.items():
        for metric_data in metric_list or []:
            data = {"category": category, **metric_data}
            definitions.append(MetricDefinition(**data))

    return definitions
