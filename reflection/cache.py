"""Redis cache for per-pair correlation results."""

import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError

from reflection.config import EngineConfig
from reflection.correlation.alignment import DateRange
from reflection.models import CorrelationResult, DataMetric

logger = structlog.get_logger()

# Stored for pairs that were evaluated but had too little data
UNDERPOWERED = "null"


class CorrelationCache:
    """Redis cache manager for pair evaluations."""

    def __init__(self, redis_url: str, ttl_seconds: int | None = 3600, prefix: str = "reflection"):
        self.redis_url = redis_url
        self.ttl_seconds = ttl_seconds
        self.prefix = prefix
        self.redis: Redis | None = None

    async def connect(self) -> None:
        """Connect to Redis."""
        self.redis = Redis.from_url(self.redis_url, encoding="utf-8", decode_responses=True)
        await self.redis.ping()
        logger.info("Redis connected")

    async def close(self) -> None:
        """Close Redis connection."""
        if self.redis:
            await self.redis.close()
            logger.info("Redis disconnected")

    def key_for(
        self,
        metric_x: DataMetric,
        metric_y: DataMetric,
        date_range: DateRange,
        config: EngineConfig,
    ) -> str:
        """Cache key covering everything a pair evaluation depends on."""
        x_key, y_key = sorted((metric_x.key, metric_y.key))
        lags = ",".join(str(lag) for lag in config.lag_days)
        if config.search_both_directions:
            lags += "+rev"
        return (
            f"{self.prefix}:pair:{x_key}:{y_key}:"
            f"{date_range.start.isoformat()}:{date_range.end.isoformat()}:"
            f"{lags}:{config.min_sample_size}:{config.large_sample_days}"
        )

    async def get_result(self, key: str) -> tuple[bool, CorrelationResult | None]:
        """
        Look up a cached evaluation.

        Returns (hit, result); result is None for an under-powered pair.
        Redis errors count as a miss.
        """
        if not self.redis:
            raise RuntimeError("Redis not connected")
        try:
            raw = await self.redis.get(key)
        except RedisError as e:
            logger.warning("Cache read failed", key=key, error=str(e))
            return False, None

        if raw is None:
            return False, None
        if raw == UNDERPOWERED:
            return True, None
        return True, CorrelationResult.model_validate_json(raw)

    async def set_result(self, key: str, result: CorrelationResult | None) -> None:
        """Store an evaluation; write failures are logged and ignored."""
        if not self.redis:
            raise RuntimeError("Redis not connected")
        value = UNDERPOWERED if result is None else result.model_dump_json()
        try:
            await self.redis.set(key, value, ex=self.ttl_seconds)
        except RedisError as e:
            logger.warning("Cache write failed", key=key, error=str(e))

    async def clear(self) -> int:
        """Delete all cached pair evaluations. Returns count deleted."""
        if not self.redis:
            raise RuntimeError("Redis not connected")
        keys = [key async for key in self.redis.scan_iter(match=f"{self.prefix}:pair:*")]
        if not keys:
            return 0
        count = await self.redis.delete(*keys)
        logger.info("Cache cleared", count=count)
        return count
