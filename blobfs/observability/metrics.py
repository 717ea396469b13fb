"""
Prometheus metrics collection.
"""

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Histogram,
    start_http_server,
)

from blobfs.constants import (
    METRIC_FS_BATCH_FAILURES,
    METRIC_FS_OPERATIONS,
    METRIC_LOCK_ABANDONED,
    METRIC_LOCK_ACQUIRED,
    METRIC_LOCK_POLLS,
    METRIC_LOCK_RELEASED,
    METRIC_LOCK_WAIT,
)

# Global metrics instance
_metrics: "MetricsCollector | None" = None


class MetricsCollector:
    """
    Prometheus metrics collector for blobfs.

    Collects metrics for:
    - Lock acquisitions, releases and abandoned attempts
    - Time spent waiting for the lock
    - Outcome of every poll in the acquire loop
    - Filesystem operations and batch failures
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """
        Initialize the metrics collector.

        Args:
            registry: Optional custom registry. Uses default if not provided.
        """
        self._registry = registry or REGISTRY

        self.lock_acquired = Counter(
            METRIC_LOCK_ACQUIRED,
            "Total number of lock acquisitions",
            ["instance_id"],
            registry=self._registry,
        )

        self.lock_released = Counter(
            METRIC_LOCK_RELEASED,
            "Total number of lock releases",
            ["instance_id"],
            registry=self._registry,
        )

        self.lock_abandoned = Counter(
            METRIC_LOCK_ABANDONED,
            "Total number of acquire attempts given up before success",
            ["reason"],
            registry=self._registry,
        )

        self.lock_wait = Histogram(
            METRIC_LOCK_WAIT,
            "Time spent in acquire() before the lock was granted",
            buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 10.0, 30.0, 60.0, 300.0),
            registry=self._registry,
        )

        self.lock_polls = Counter(
            METRIC_LOCK_POLLS,
            "Receive calls made by the acquire loop, by outcome",
            ["outcome"],
            registry=self._registry,
        )

        self.fs_operations = Counter(
            METRIC_FS_OPERATIONS,
            "Total number of virtual filesystem operations",
            ["operation"],
            registry=self._registry,
        )

        self.fs_batch_failures = Counter(
            METRIC_FS_BATCH_FAILURES,
            "Objects that failed inside a multi-object rename or remove",
            ["operation"],
            registry=self._registry,
        )

    def record_lock_acquired(self, instance_id: str, wait_seconds: float) -> None:
        """Record a granted lock and how long it took."""
        self.lock_acquired.labels(instance_id=instance_id).inc()
        self.lock_wait.observe(wait_seconds)

    def record_lock_released(self, instance_id: str) -> None:
        """Record a lock release."""
        self.lock_released.labels(instance_id=instance_id).inc()

    def record_lock_abandoned(self, reason: str) -> None:
        """Record an acquire attempt that stopped without the lock."""
        self.lock_abandoned.labels(reason=reason).inc()

    def record_poll(self, outcome: str) -> None:
        """Record one pass of the acquire loop."""
        self.lock_polls.labels(outcome=outcome).inc()

    def record_fs_operation(self, operation: str) -> None:
        """Record a filesystem operation."""
        self.fs_operations.labels(operation=operation).inc()

    def record_batch_failures(self, operation: str, count: int) -> None:
        """Record failed objects inside a batch operation."""
        if count:
            self.fs_batch_failures.labels(operation=operation).inc(count)


def setup_metrics(port: int | None = None) -> MetricsCollector:
    """
    Set up and return the metrics collector.

    Args:
        port: When given, serve the default registry over HTTP on this port.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    if port is not None:
        start_http_server(port)
    return _metrics


def get_metrics() -> MetricsCollector:
    """
    Get the metrics collector instance, creating it on first use.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    if _metrics is None:
        return setup_metrics()
    return _metrics
