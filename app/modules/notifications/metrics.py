"""Prometheus metrics for the notification pipeline.

Metrics live on an injected NotificationMetrics instance with its own
CollectorRegistry, so tests and multiple pipelines never share global
collector state.

Exported series (``<ns>`` is the configured namespace):
    <ns>_notifications_queue_size{status}                  gauge
    <ns>_notifications_sent_total{channel_type,status}     counter
    <ns>_notifications_send_duration_seconds{channel_type} histogram
    <ns>_notifications_queue_fetched_total                 counter

Every fetched item ends in exactly one sent_total outcome, so
``queue_fetched_total == sum(sent_total)`` once the worker is idle.
"""

from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram

from modules.notifications.queue import QueueStats

SEND_DURATION_BUCKETS = (0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)

# Outcome labels for sent_total
OUTCOME_SUCCESS = "success"
OUTCOME_RETRY = "retry"
OUTCOME_FAILED = "failed"
OUTCOME_SKIPPED_UNVERIFIED = "skipped_unverified"
OUTCOME_SKIPPED_DISABLED = "skipped_disabled"

UNKNOWN_CHANNEL_TYPE = "unknown"


class NotificationMetrics:
    """Collectors for queue depth, delivery outcomes and send latency.

    Example:
        metrics = NotificationMetrics(namespace="statuspage")
        metrics.record_sent("email", OUTCOME_SUCCESS)
        metrics.observe_send_duration("email", 0.42)
    """

    def __init__(
        self,
        namespace: str = "statuspage",
        registry: Optional[CollectorRegistry] = None,
    ):
        self.registry = registry or CollectorRegistry()

        self.queue_size = Gauge(
            "notifications_queue_size",
            "Number of notifications in queue by status",
            labelnames=("status",),
            namespace=namespace,
            registry=self.registry,
        )
        self.sent_total = Counter(
            "notifications_sent_total",
            "Notification delivery outcomes",
            labelnames=("channel_type", "status"),
            namespace=namespace,
            registry=self.registry,
        )
        self.send_duration = Histogram(
            "notifications_send_duration_seconds",
            "Time from pick-up to successful delivery",
            labelnames=("channel_type",),
            namespace=namespace,
            buckets=SEND_DURATION_BUCKETS,
            registry=self.registry,
        )
        self.queue_fetched = Counter(
            "notifications_queue_fetched_total",
            "Queue items claimed by workers",
            namespace=namespace,
            registry=self.registry,
        )

    def record_sent(self, channel_type: str, outcome: str) -> None:
        self.sent_total.labels(channel_type=channel_type, status=outcome).inc()

    def observe_send_duration(self, channel_type: str, seconds: float) -> None:
        self.send_duration.labels(channel_type=channel_type).observe(seconds)

    def record_fetched(self, count: int) -> None:
        if count > 0:
            self.queue_fetched.inc(count)

    def set_queue_stats(self, stats: QueueStats) -> None:
        for status, count in stats.as_dict().items():
            self.queue_size.labels(status=status).set(count)
