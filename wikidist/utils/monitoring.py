"""
Monitoring and metrics collection for the wikidist crawler.
"""

import logging
from typing import Dict, Optional, Any

from prometheus_client import Counter, Gauge, CollectorRegistry, start_http_server


class CrawlerMonitor:
    """
    Crawler metrics backed by a dedicated Prometheus registry.

    Every monitor owns its registry, so several crawlers (or tests) in one
    process do not share counters.
    """

    def __init__(self, enable_server: bool = False, prometheus_port: int = 8000,
                 registry: Optional[CollectorRegistry] = None):
        self.logger = logging.getLogger(__name__)
        self.enable_server = enable_server
        self.prometheus_port = prometheus_port
        self.registry = registry or CollectorRegistry()

        self.requests = Counter(
            'wikidist_requests_total',
            'API requests by response status, or hard_failure',
            ['state'],
            registry=self.registry
        )
        self.articles_fetched = Counter(
            'wikidist_articles_fetched_total',
            'Articles taken from the frontier and fetched',
            registry=self.registry
        )
        self.articles_registered = Counter(
            'wikidist_articles_registered_total',
            'Articles written to the store',
            registry=self.registry
        )
        self.new_urls = Counter(
            'wikidist_queue_new_urls_total',
            'URLs admitted into the frontier queue',
            registry=self.registry
        )
        self.fetch_errors = Counter(
            'wikidist_fetch_errors_total',
            'Failed article fetches by error type',
            ['error_type'],
            registry=self.registry
        )
        self.queue_length = Gauge(
            'wikidist_crawler_queue_length',
            'URLs waiting in the frontier queue',
            registry=self.registry
        )
        self.results_length = Gauge(
            'wikidist_crawler_results_length',
            'Fetch outcomes waiting to be registered',
            registry=self.registry
        )

    def start_server(self):
        """Start Prometheus metrics HTTP server."""
        if not self.enable_server:
            return

        try:
            start_http_server(self.prometheus_port, registry=self.registry)
            self.logger.info(f"Prometheus metrics server started on port {self.prometheus_port}")
        except Exception as e:
            self.logger.error(f"Failed to start Prometheus server: {e}")

    def record_request(self, state: str):
        """Record an API request outcome: an HTTP status code or `hard_failure`."""
        self.requests.labels(state=state).inc()

    def record_fetched(self):
        self.articles_fetched.inc()

    def record_registered(self):
        self.articles_registered.inc()

    def record_new_urls(self, count: int):
        if count:
            self.new_urls.inc(count)

    def record_fetch_error(self, error_type: str):
        self.fetch_errors.labels(error_type=error_type).inc()

    def update_queue_lengths(self, queue_length: int, results_length: int):
        self.queue_length.set(queue_length)
        self.results_length.set(results_length)

    def get_value(self, name: str, labels: Optional[Dict[str, str]] = None) -> float:
        """Current value of a sample, 0 if it was never recorded."""
        value = self.registry.get_sample_value(name, labels or {})
        return value if value is not None else 0.0

    def get_summary(self) -> Dict[str, Any]:
        """Get a summary of the main metrics."""
        return {
            'articles_fetched': self.get_value('wikidist_articles_fetched_total'),
            'articles_registered': self.get_value('wikidist_articles_registered_total'),
            'new_urls': self.get_value('wikidist_queue_new_urls_total'),
            'queue_length': self.get_value('wikidist_crawler_queue_length'),
            'results_length': self.get_value('wikidist_crawler_results_length')
        }
