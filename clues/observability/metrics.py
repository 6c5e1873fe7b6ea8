"""
Prometheus metrics collection.
"""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

from clues.config import get_settings
from clues.constants import (
    METRIC_EVENTS_PUBLISHED,
    METRIC_JOBS_FAILED,
    METRIC_TIME_IN_QUEUE,
    METRIC_TIME_TO_PERFORM,
)

# Global metrics instance
_metrics: "MetricsCollector | None" = None


class MetricsCollector:
    """
    Prometheus metrics collector for queue instrumentation.

    Collects metrics for:
    - Lifecycle events published, by event type and queue
    - Time jobs spend waiting in a queue
    - Time handlers take to perform jobs
    - Failed jobs
    """

    def __init__(
        self,
        registry: CollectorRegistry | None = None,
        namespace: str | None = None,
    ):
        """
        Initialize the metrics collector.

        Args:
            registry: Optional custom registry. Uses default if not provided.
            namespace: Metric name prefix. Defaults to the configured one.
        """
        self._registry = registry or REGISTRY
        namespace = namespace or get_settings().metrics_namespace

        self.events_published = Counter(
            METRIC_EVENTS_PUBLISHED,
            "Total number of lifecycle events published",
            ["event_type", "queue"],
            namespace=namespace,
            registry=self._registry,
        )

        self.time_in_queue = Histogram(
            METRIC_TIME_IN_QUEUE,
            "Seconds a job waited between enqueue and dequeue",
            ["queue"],
            buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 15.0, 60.0, 300.0, 900.0),
            namespace=namespace,
            registry=self._registry,
        )

        self.time_to_perform = Histogram(
            METRIC_TIME_TO_PERFORM,
            "Seconds a handler took to perform a job",
            ["queue", "job_class"],
            buckets=(0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0),
            namespace=namespace,
            registry=self._registry,
        )

        self.jobs_failed = Counter(
            METRIC_JOBS_FAILED,
            "Total number of jobs whose handler raised",
            ["queue", "job_class"],
            namespace=namespace,
            registry=self._registry,
        )

    def record_event(self, event_type: str, queue: str) -> None:
        """Record a published lifecycle event."""
        self.events_published.labels(event_type=event_type, queue=queue).inc()

    def record_time_in_queue(self, queue: str, seconds: float) -> None:
        """Record how long a job sat in a queue."""
        self.time_in_queue.labels(queue=queue).observe(seconds)

    def record_time_to_perform(self, queue: str, job_class: str, seconds: float) -> None:
        """Record how long a job took to perform."""
        self.time_to_perform.labels(queue=queue, job_class=job_class).observe(seconds)

    def record_job_failed(self, queue: str, job_class: str) -> None:
        """Record a failed job."""
        self.jobs_failed.labels(queue=queue, job_class=job_class).inc()

    def get_metrics(self) -> bytes:
        """Get all metrics in Prometheus format."""
        return generate_latest(self._registry)

    def get_content_type(self) -> str:
        """Get the content type for metrics response."""
        return CONTENT_TYPE_LATEST


def setup_metrics() -> MetricsCollector:
    """
    Set up and return the process-wide metrics collector.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics


def get_metrics() -> MetricsCollector:
    """
    Get the process-wide metrics collector, creating it on first use.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    if _metrics is None:
        return setup_metrics()
    return _metrics
