"""
Prometheus metrics collection.
"""

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
)

from drainqueue.constants import (
    METRIC_QUEUE_CLEARS,
    METRIC_QUEUE_DEPTH,
    METRIC_TASK_DURATION,
    METRIC_TASKS_ADDED,
    METRIC_TASKS_DUPLICATE,
    METRIC_TASKS_PROCESSED,
)

# Global metrics instance
_metrics: "QueueMetrics | None" = None


class QueueMetrics:
    """
    Prometheus metrics collector for task queues.

    Every series is labelled with the queue name so several queues can
    share one registry.
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """
        Initialize the metrics collector.

        Args:
            registry: Optional custom registry. Uses default if not provided.
        """
        self._registry = registry or REGISTRY

        self.queue_depth = Gauge(
            METRIC_QUEUE_DEPTH,
            "Number of tasks waiting in the queue",
            ["queue"],
            registry=self._registry,
        )

        self.tasks_added = Counter(
            METRIC_TASKS_ADDED,
            "Total number of tasks accepted into the queue",
            ["queue"],
            registry=self._registry,
        )

        self.tasks_duplicate = Counter(
            METRIC_TASKS_DUPLICATE,
            "Total number of tasks suppressed as duplicates",
            ["queue"],
            registry=self._registry,
        )

        self.tasks_processed = Counter(
            METRIC_TASKS_PROCESSED,
            "Total number of tasks handed back by the processing function",
            ["queue", "status"],
            registry=self._registry,
        )

        self.task_duration = Histogram(
            METRIC_TASK_DURATION,
            "Time between handing a task to the processing function and its completion",
            ["queue", "status"],
            buckets=(0.001, 0.01, 0.1, 0.5, 1.0, 5.0, 30.0, 120.0),
            registry=self._registry,
        )

        self.queue_clears = Counter(
            METRIC_QUEUE_CLEARS,
            "Total number of explicit queue clears",
            ["queue"],
            registry=self._registry,
        )

    def record_task_added(self, queue: str) -> None:
        """Record an accepted task."""
        self.tasks_added.labels(queue=queue).inc()

    def record_duplicate(self, queue: str) -> None:
        """Record a suppressed duplicate."""
        self.tasks_duplicate.labels(queue=queue).inc()

    def record_task_processed(
        self,
        queue: str,
        status: str,
        duration_seconds: float,
    ) -> None:
        """Record a finished task."""
        self.tasks_processed.labels(queue=queue, status=status).inc()
        self.task_duration.labels(queue=queue, status=status).observe(duration_seconds)

    def record_clear(self, queue: str) -> None:
        """Record a clear of the queue."""
        self.queue_clears.labels(queue=queue).inc()

    def update_queue_depth(self, queue: str, depth: int) -> None:
        """Update the number of waiting tasks."""
        self.queue_depth.labels(queue=queue).set(depth)


def setup_metrics() -> QueueMetrics:
    """
    Set up and return the process-wide metrics collector.

    Returns:
        QueueMetrics: The metrics collector instance.
    """
    global _metrics
    if _metrics is None:
        _metrics = QueueMetrics()
    return _metrics


def get_metrics() -> QueueMetrics:
    """
    Get the process-wide metrics collector, creating it on first use.

    Returns:
        QueueMetrics: The metrics collector instance.
    """
    if _metrics is None:
        return setup_metrics()
    return _metrics
