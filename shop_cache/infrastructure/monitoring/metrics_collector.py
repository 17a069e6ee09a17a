#!/usr/bin/env python3
"""
Metrics Collector with Prometheus Integration

Counters and histograms for the cache consistency engine:
- Cache lookups by strategy and outcome (hit, null_hit, miss, stale, corrupt)
- Lock acquisitions by outcome
- Primary store queries
- Background rebuild jobs by outcome
- Write invalidations

Architectural Decision: prometheus-client for industry-standard metrics
- Compatible with Grafana dashboards
- Metrics are process-global; the collector only wraps label handling
"""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)

from shop_cache.core.config.settings import get_settings
from shop_cache.core.logging.logger import get_logger

logger = get_logger(__name__)


# ============================================================================
# Metric Definitions
# ============================================================================

CACHE_LOOKUPS = Counter(
    'shop_cache_lookups_total',
    'Total cache lookups',
    ['strategy', 'outcome']
)

LOCK_ACQUISITIONS = Counter(
    'shop_cache_lock_acquisitions_total',
    'Total rebuild lock acquisition attempts',
    ['outcome']  # acquired, busy
)

STORE_QUERIES = Counter(
    'shop_cache_store_queries_total',
    'Total primary store reads issued by the cache layer',
    ['source']  # pass_through, mutex, rebuild, warm
)

STORE_QUERY_DURATION = Histogram(
    'shop_cache_store_query_duration_seconds',
    'Primary store read latency',
    ['source'],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0)
)

MUTEX_RETRIES = Counter(
    'shop_cache_mutex_retries_total',
    'Total retry sleeps while waiting for a competing rebuild'
)

REBUILD_JOBS = Counter(
    'shop_cache_rebuild_jobs_total',
    'Total background rebuild jobs',
    ['outcome']  # submitted, rejected, completed, missing, failed
)

REBUILD_QUEUE_DEPTH = Gauge(
    'shop_cache_rebuild_queue_depth',
    'Current rebuild backlog'
)

INVALIDATIONS = Counter(
    'shop_cache_invalidations_total',
    'Total cache deletes issued by the write path',
    ['outcome']  # deleted, failed
)

ERRORS = Counter(
    'shop_cache_errors_total',
    'Total errors by type',
    ['error_type', 'stage']
)

APP_INFO = Info(
    'shop_cache_app',
    'Application information'
)


class MetricsCollector:
    """
    Centralized metrics collector.

    STAGE-M: Metrics collection

    Usage:
        metrics = get_metrics_collector()
        metrics.record_cache_lookup("mutex", CacheOutcome.HIT)
        output = metrics.get_prometheus_metrics()
    """

    def __init__(self):
        """Initialize metrics collector."""
        self.settings = get_settings()

        APP_INFO.info({
            'version': self.settings.app.APP_VERSION,
            'environment': self.settings.app.ENVIRONMENT,
            'app_name': self.settings.app.APP_NAME,
            'read_strategy': self.settings.cache.CACHE_READ_STRATEGY,
        })

        logger.info("Metrics collector initialized", stage="M.0")

    @staticmethod
    def _label(value) -> str:
        return value.value if hasattr(value, "value") else str(value)

    # =========================================================================
    # Cache Metrics
    # =========================================================================

    def record_cache_lookup(self, strategy, outcome) -> None:
        """Record one cache lookup outcome."""
        CACHE_LOOKUPS.labels(strategy=self._label(strategy), outcome=self._label(outcome)).inc()

    # =========================================================================
    # Lock Metrics
    # =========================================================================

    def record_lock_attempt(self, acquired: bool) -> None:
        LOCK_ACQUISITIONS.labels(outcome="acquired" if acquired else "busy").inc()

    def record_mutex_retry(self) -> None:
        MUTEX_RETRIES.inc()

    # =========================================================================
    # Store Metrics
    # =========================================================================

    def record_store_query(self, source: str, duration_seconds: float) -> None:
        """Record a primary store read and its latency."""
        STORE_QUERIES.labels(source=source).inc()
        STORE_QUERY_DURATION.labels(source=source).observe(duration_seconds)

    # =========================================================================
    # Rebuild Metrics
    # =========================================================================

    def record_rebuild(self, outcome: str) -> None:
        REBUILD_JOBS.labels(outcome=outcome).inc()

    def record_rebuild_queue_depth(self, depth: int) -> None:
        REBUILD_QUEUE_DEPTH.set(depth)

    # =========================================================================
    # Invalidation Metrics
    # =========================================================================

    def record_invalidation(self, deleted: bool) -> None:
        INVALIDATIONS.labels(outcome="deleted" if deleted else "failed").inc()

    # =========================================================================
    # Error Metrics
    # =========================================================================

    def record_error(self, error_type: str, stage: str) -> None:
        """Record error."""
        ERRORS.labels(error_type=error_type, stage=stage).inc()

    # =========================================================================
    # Export
    # =========================================================================

    def get_prometheus_metrics(self) -> bytes:
        """
        Get Prometheus metrics output.

        Returns:
            bytes: Prometheus text format metrics
        """
        return generate_latest(REGISTRY)

    def get_content_type(self) -> str:
        """Get Prometheus content type."""
        return CONTENT_TYPE_LATEST


# Global metrics collector
_metrics: MetricsCollector | None = None


def get_metrics_collector() -> MetricsCollector:
    """Get global metrics collector."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
