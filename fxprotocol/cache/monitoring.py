"""
Prometheus metrics for the response cache.
"""
from typing import Any, Dict

import structlog
from prometheus_client import Counter, Gauge

from .stats import CacheStats

logger = structlog.get_logger()

CACHE_HITS = Counter('fx_cache_hits_total', 'Total number of cache hits', ['tier'])
CACHE_MISSES = Counter('fx_cache_misses_total', 'Total number of cache misses')
CACHE_MEMORY_ENTRIES = Gauge('fx_cache_memory_entries', 'Current number of entries in the memory tier')

MEMORY_TIER = 'memory'
DISK_TIER = 'disk'


class CacheMonitor:
    """Publishes cache activity to process-wide Prometheus metrics."""

    def record_hit(self, tier: str) -> None:
        """
        Record a cache hit.

        Args:
            tier: Tier that served the value (memory or disk)
        """
        CACHE_HITS.labels(tier=tier).inc()

    def record_miss(self) -> None:
        CACHE_MISSES.inc()

    def update_size(self, size: int) -> None:
        CACHE_MEMORY_ENTRIES.set(size)

    def log_metrics(self, stats: CacheStats, memory_size: int) -> Dict[str, Any]:
        """Log and return a report for one cache manager."""
        report = dict(stats.to_dict(), memory_entries=memory_size)
        logger.info("cache_metrics_report", **report)
        return report


_monitor = CacheMonitor()


def get_monitor() -> CacheMonitor:
    """Get the global cache monitor instance."""
    return _monitor
