"""Notification pipeline infrastructure settings."""

from pydantic import Field

from infrastructure.configuration.base import InfrastructureSettings


class NotificationSettings(InfrastructureSettings):
    """Notification queue, retry and worker pool configuration.

    Environment Variables:
        NOTIFICATIONS_ENABLED: Enable queued subscriber notifications (default: True)
        NOTIFICATIONS_BASE_URL: Public status page URL used for event deep links
        NOTIFICATIONS_MAX_ATTEMPTS: Delivery attempts before an item fails (default: 3)
        NOTIFICATIONS_INITIAL_BACKOFF_SECONDS: First retry delay (default: 1s)
        NOTIFICATIONS_MAX_BACKOFF_SECONDS: Retry delay cap (default: 300s)
        NOTIFICATIONS_BACKOFF_MULTIPLIER: Exponential growth factor (default: 2.0)
        NOTIFICATIONS_BATCH_SIZE: Items claimed per poll (default: 100)
        NOTIFICATIONS_POLL_INTERVAL_SECONDS: Delay between polls (default: 5s)
        NOTIFICATIONS_NUM_WORKERS: Concurrent pollers (default: 5)
        NOTIFICATIONS_STUCK_AFTER_SECONDS: Age after which a processing item
            is returned to pending (default: 600s)
        NOTIFICATIONS_SENT_RETENTION_HOURS: How long sent items are kept (default: 168h)
        NOTIFICATIONS_STATS_INTERVAL_SECONDS: Queue depth collection period (default: 15s)

    Exponential Backoff:
        Delay for attempt n: min(initial * multiplier ^ (n - 1), max)

        Example with defaults (initial=1s, multiplier=2, max=300s):
            Attempt 1: 1s
            Attempt 2: 2s
            Attempt 3: 4s
            ...
            Attempt 10: 300s (capped)

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()

        if settings.notifications.enabled:
            workers = settings.notifications.num_workers
        ```
    """

    enabled: bool = Field(
        default=True,
        alias="NOTIFICATIONS_ENABLED",
        description="Enable queued subscriber notifications",
    )
    base_url: str = Field(
        default="",
        alias="NOTIFICATIONS_BASE_URL",
        description="Public status page base URL for event links",
    )
    max_attempts: int = Field(
        default=3,
        alias="NOTIFICATIONS_MAX_ATTEMPTS",
        description="Maximum delivery attempts before an item is marked failed",
    )
    initial_backoff_seconds: float = Field(
        default=1.0,
        alias="NOTIFICATIONS_INITIAL_BACKOFF_SECONDS",
        description="Delay before the first retry (seconds)",
    )
    max_backoff_seconds: float = Field(
        default=300.0,
        alias="NOTIFICATIONS_MAX_BACKOFF_SECONDS",
        description="Maximum delay between retries (seconds, 5 minutes)",
    )
    backoff_multiplier: float = Field(
        default=2.0,
        alias="NOTIFICATIONS_BACKOFF_MULTIPLIER",
        description="Exponential backoff multiplier",
    )
    batch_size: int = Field(
        default=100,
        alias="NOTIFICATIONS_BATCH_SIZE",
        description="Number of queue items claimed per poll",
    )
    poll_interval_seconds: float = Field(
        default=5.0,
        alias="NOTIFICATIONS_POLL_INTERVAL_SECONDS",
        description="Interval between queue polls (seconds)",
    )
    num_workers: int = Field(
        default=5,
        alias="NOTIFICATIONS_NUM_WORKERS",
        description="Number of concurrent queue pollers",
    )
    stuck_after_seconds: int = Field(
        default=600,
        alias="NOTIFICATIONS_STUCK_AFTER_SECONDS",
        description="Processing items older than this are returned to pending",
    )
    sent_retention_hours: int = Field(
        default=168,
        alias="NOTIFICATIONS_SENT_RETENTION_HOURS",
        description="Retention for sent queue items (hours, 7 days)",
    )
    stats_interval_seconds: float = Field(
        default=15.0,
        alias="NOTIFICATIONS_STATS_INTERVAL_SECONDS",
        description="Queue depth metrics collection interval (seconds)",
    )
