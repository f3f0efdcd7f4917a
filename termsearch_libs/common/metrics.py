"""Metrics collection for the term search service.

Provides a thin convenience wrapper around ``prometheus_client`` so the
engine and HTTP layer record search, cache, and hydration metrics
consistently.

Design notes
- Metrics and labels are predeclared to avoid cardinality explosions
- A single registry is kept per collector (inject one in tests)
"""

from typing import Optional

from prometheus_client import Counter, Histogram, Gauge, CollectorRegistry, generate_latest


class MetricsCollector:
    """Centralized metrics collection.

    Parameters
    - service_name: Logical name used for scoping
    - registry: Optional custom ``CollectorRegistry`` (e.g. for testing)
    """

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry or CollectorRegistry()

        self.request_count = Counter(
            'http_requests_total',
            'Total HTTP requests',
            ['method', 'endpoint', 'status'],
            registry=self.registry
        )

        self.request_duration = Histogram(
            'http_request_duration_seconds',
            'HTTP request duration',
            ['method', 'endpoint'],
            registry=self.registry
        )

        self.search_requests = Counter(
            'termsearch_search_requests_total',
            'Total search requests by outcome status',
            ['status'],
            registry=self.registry
        )

        self.search_duration = Histogram(
            'termsearch_search_duration_seconds',
            'Search duration',
            ['subject_match'],
            registry=self.registry
        )

        self.no_result_searches = Counter(
            'termsearch_no_result_searches_total',
            'Searches that matched nothing',
            registry=self.registry
        )

        self.cache_hits = Counter(
            'termsearch_cache_hits_total',
            'Total result cache hits',
            registry=self.registry
        )

        self.cache_misses = Counter(
            'termsearch_cache_misses_total',
            'Total result cache misses',
            registry=self.registry
        )

        self.cache_entries = Gauge(
            'termsearch_cache_entries',
            'Entries currently held by the result cache',
            registry=self.registry
        )

        self.cache_evictions = Counter(
            'termsearch_cache_evictions_total',
            'Entries dropped by cache sweeps',
            ['trigger'],
            registry=self.registry
        )

        self.hydration_misses = Counter(
            'termsearch_hydration_misses_total',
            'Refs that could not be resolved to a display record',
            ['kind'],
            registry=self.registry
        )

    def record_http_request(
        self,
        method: str,
        endpoint: str,
        status: int,
        duration: float
    ) -> None:
        """Record HTTP request metrics.

        duration is expected in seconds to match Prometheus histogram units.
        """
        self.request_count.labels(method=method, endpoint=endpoint, status=status).inc()
        self.request_duration.labels(method=method, endpoint=endpoint).observe(duration)

    def record_search(self, status: str, subject_match: bool, duration: float) -> None:
        """Record a completed search."""
        self.search_requests.labels(status=status).inc()
        self.search_duration.labels(subject_match=str(subject_match).lower()).observe(duration)

    def record_no_results(self) -> None:
        self.no_result_searches.inc()

    def record_cache_hit(self) -> None:
        self.cache_hits.inc()

    def record_cache_miss(self) -> None:
        self.cache_misses.inc()

    def set_cache_entries(self, count: int) -> None:
        self.cache_entries.set(count)

    def record_cache_eviction(self, trigger: str, count: int) -> None:
        """Record entries evicted by one sweep."""
        if count:
            self.cache_evictions.labels(trigger=trigger).inc(count)

    def record_hydration_miss(self, kind: str) -> None:
        self.hydration_misses.labels(kind=kind).inc()

    def get_metrics(self) -> str:
        """Get metrics in Prometheus exposition format for scraping."""
        return generate_latest(self.registry).decode('utf-8')


# Global metrics collector instance
_metrics_collector: Optional[MetricsCollector] = None


def get_metrics_collector(service_name: str) -> MetricsCollector:
    """Get or create the process-wide metrics collector."""
    global _metrics_collector
    if _metrics_collector is None:
        _metrics_collector = MetricsCollector(service_name)
    return _metrics_collector
