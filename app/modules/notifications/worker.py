"""Notification queue worker pool.

Each worker thread polls the queue store, claims a batch of due items and
drives every item through its delivery state machine:

    pending -> processing -> sent
                          -> pending   (retryable failure, attempts left)
                          -> failed    (permanent failure or budget spent)

Items for unverified or disabled channels are failed without a send.
Every claimed item produces exactly one ``sent_total`` outcome, so the
fetched counter always reconciles with the outcome counters.
"""

import threading
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import structlog

from infrastructure.logging import bind_delivery_context
from modules.notifications import metrics as outcomes
from modules.notifications.channels import ChannelType
from modules.notifications.dispatcher import NotificationDispatcher
from modules.notifications.errors import is_retryable
from modules.notifications.metrics import NotificationMetrics
from modules.notifications.queue import QueueItem
from modules.notifications.renderer import Renderer
from modules.notifications.repository import Repository
from modules.notifications.senders.base import Notification

logger = structlog.get_logger()


@dataclass
class WorkerConfig:
    """Configuration for the notification worker pool.

    Attributes:
        batch_size: Items claimed per poll
        poll_interval_seconds: Wait between polls of one worker thread
        initial_backoff_seconds: Delay before the first retry
        max_backoff_seconds: Cap for the exponential backoff
        backoff_multiplier: Growth factor between consecutive retries
        num_workers: Number of polling threads

    Example:
        config = WorkerConfig(num_workers=2, poll_interval_seconds=1.0)
    """

    batch_size: int = 100
    poll_interval_seconds: float = 5.0
    initial_backoff_seconds: float = 1.0
    max_backoff_seconds: float = 300.0  # 5 minutes
    backoff_multiplier: float = 2.0
    num_workers: int = 5

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        if self.poll_interval_seconds <= 0:
            raise ValueError("poll_interval_seconds must be positive")
        if self.initial_backoff_seconds <= 0:
            raise ValueError("initial_backoff_seconds must be positive")
        if self.max_backoff_seconds < self.initial_backoff_seconds:
            raise ValueError("max_backoff_seconds must be >= initial_backoff_seconds")
        if self.backoff_multiplier < 1:
            raise ValueError("backoff_multiplier must be at least 1")
        if self.num_workers < 1:
            raise ValueError("num_workers must be at least 1")


def calculate_backoff(attempt: int, config: WorkerConfig) -> timedelta:
    """Delay before retry number ``attempt`` (1-based).

    ``initial * multiplier ** (attempt - 1)`` capped at ``max_backoff``.
    With the defaults: 1s, 2s, 4s, 8s, 16s ... 5m.
    """
    try:
        delay = config.initial_backoff_seconds * config.backoff_multiplier ** max(
            attempt - 1, 0
        )
    except OverflowError:
        delay = config.max_backoff_seconds
    return timedelta(seconds=min(delay, config.max_backoff_seconds))


def _empty_stats() -> dict:
    return {
        "processed": 0,
        "sent": 0,
        "retried": 0,
        "failed": 0,
        "skipped": 0,
    }


_STATS_KEY = {
    outcomes.OUTCOME_SUCCESS: "sent",
    outcomes.OUTCOME_RETRY: "retried",
    outcomes.OUTCOME_FAILED: "failed",
    outcomes.OUTCOME_SKIPPED_UNVERIFIED: "skipped",
    outcomes.OUTCOME_SKIPPED_DISABLED: "skipped",
}


class NotificationWorker:
    """Pool of threads draining the notification queue.

    Attributes:
        repository: Queue store and channel lookup
        dispatcher: Routes rendered notifications to senders
        renderer: Renders payloads per channel type
        metrics: NotificationMetrics collector
        config: WorkerConfig
    """

    def __init__(
        self,
        repository: Repository,
        dispatcher: NotificationDispatcher,
        renderer: Renderer,
        metrics: NotificationMetrics,
        config: Optional[WorkerConfig] = None,
    ) -> None:
        self.repository = repository
        self.dispatcher = dispatcher
        self.renderer = renderer
        self.metrics = metrics
        self.config = config or WorkerConfig()
        self.log = logger.bind(component="notification_worker")

        self._stop_event = threading.Event()
        self._threads: List[threading.Thread] = []

    @property
    def is_running(self) -> bool:
        return any(thread.is_alive() for thread in self._threads)

    def start(self) -> None:
        """Launch ``num_workers`` polling threads."""
        if self.is_running:
            self.log.warning("notification_worker_already_running")
            return

        self._stop_event.clear()
        self._threads = [
            threading.Thread(
                target=self._run,
                args=(f"notification-worker-{index}",),
                daemon=True,
                name=f"notification-worker-{index}",
            )
            for index in range(self.config.num_workers)
        ]
        for thread in self._threads:
            thread.start()

        self.log.info(
            "notification_worker_started",
            workers=self.config.num_workers,
            batch_size=self.config.batch_size,
            poll_interval_seconds=self.config.poll_interval_seconds,
        )

    def stop(self, timeout: Optional[float] = None) -> None:
        """Signal every thread to stop and wait for them.

        A batch in progress finishes before its thread exits.
        """
        self._stop_event.set()
        for thread in self._threads:
            thread.join(timeout)
        self._threads = []
        self.log.info("notification_worker_stopped")

    def _run(self, worker_id: str) -> None:
        # New threads start with an empty contextvars context
        structlog.contextvars.bind_contextvars(worker_id=worker_id)

        while not self._stop_event.wait(self.config.poll_interval_seconds):
            try:
                self.process_batch()
            except Exception as e:
                self.log.error(
                    "notification_batch_exception",
                    error=str(e),
                    exc_info=True,
                )

    def process_batch(self) -> dict:
        """Claim and process one batch of due items.

        Returns:
            Dictionary with processing statistics:
                - processed: Items claimed and handled
                - sent: Delivered
                - retried: Rescheduled for another attempt
                - failed: Terminally failed
                - skipped: Failed without a send (unverified or disabled channel)
        """
        stats = _empty_stats()

        try:
            items = self.repository.fetch_pending(self.config.batch_size)
        except Exception as e:
            self.log.error("fetch_pending_failed", error=str(e), exc_info=True)
            return stats

        if not items:
            return stats

        self.metrics.record_fetched(len(items))
        self.log.debug("notification_batch_start", item_count=len(items))

        for item in items:
            with bind_delivery_context(
                event_id=item.event_id,
                queue_item_id=item.id,
                channel_id=item.channel_id,
            ):
                try:
                    outcome = self.process_item(item)
                except Exception as e:
                    self.log.error(
                        "notification_processing_exception",
                        error=str(e),
                        exc_info=True,
                    )
                    outcome = self._handle_send_error(
                        item, outcomes.UNKNOWN_CHANNEL_TYPE, e
                    )

            stats["processed"] += 1
            stats[_STATS_KEY[outcome]] += 1

        self.log.info("notification_batch_complete", **stats)
        return stats

    def process_item(self, item: QueueItem) -> str:
        """Deliver one claimed item and record its outcome.

        Returns:
            The outcome label recorded in ``sent_total``
        """
        start = time.monotonic()

        try:
            channel = self.repository.get_channel(item.channel_id)
        except Exception as e:
            self.log.error("notification_channel_not_found", error=str(e))
            self._mark_failed(item, str(e))
            return self._record(outcomes.UNKNOWN_CHANNEL_TYPE, outcomes.OUTCOME_FAILED)

        channel_type = ChannelType(channel.type).value

        if not channel.is_verified:
            self.log.debug("notification_skipped_unverified_channel")
            self._mark_failed(item, "channel not verified")
            return self._record(channel_type, outcomes.OUTCOME_SKIPPED_UNVERIFIED)

        if not channel.is_enabled:
            self.log.debug("notification_skipped_disabled_channel")
            self._mark_failed(item, "channel disabled")
            return self._record(channel_type, outcomes.OUTCOME_SKIPPED_DISABLED)

        try:
            subject, body = self.renderer.render(channel.type, item.payload)
        except Exception as e:
            self.log.error("notification_render_failed", error=str(e))
            self._mark_failed(item, str(e))
            return self._record(channel_type, outcomes.OUTCOME_FAILED)

        try:
            self.dispatcher.send_to_channel(
                channel.type,
                Notification(to=channel.target, subject=subject, body=body),
            )
        except Exception as e:
            return self._handle_send_error(item, channel_type, e)

        duration = time.monotonic() - start
        try:
            self.repository.mark_sent(item.id)
        except Exception as e:
            self.log.error("mark_sent_failed", error=str(e), exc_info=True)

        self.metrics.observe_send_duration(channel_type, duration)
        self.log.debug(
            "notification_sent",
            channel_type=channel_type,
            duration_seconds=round(duration, 3),
        )
        return self._record(channel_type, outcomes.OUTCOME_SUCCESS)

    def _handle_send_error(
        self, item: QueueItem, channel_type: str, error: Exception
    ) -> str:
        attempt = item.attempts + 1
        self.log.warning(
            "notification_send_failed",
            attempt=attempt,
            max_attempts=item.max_attempts,
            error=str(error),
        )

        if not is_retryable(error):
            self._mark_failed(item, str(error))
            return self._record(channel_type, outcomes.OUTCOME_FAILED)

        if attempt >= item.max_attempts:
            self._mark_failed(item, f"max attempts exceeded: {error}")
            return self._record(channel_type, outcomes.OUTCOME_FAILED)

        next_attempt_at = self._next_attempt_at(attempt, error)
        try:
            self.repository.mark_for_retry(item.id, str(error), next_attempt_at)
        except Exception as e:
            self.log.error("mark_for_retry_failed", error=str(e), exc_info=True)

        self.log.info(
            "notification_scheduled_for_retry",
            next_attempt_at=next_attempt_at.isoformat(),
        )
        return self._record(channel_type, outcomes.OUTCOME_RETRY)

    def _next_attempt_at(self, attempt: int, error: Exception) -> datetime:
        delay = calculate_backoff(attempt, self.config)

        # Upstream rate limit hints win over the schedule, within the cap
        retry_after = getattr(error, "retry_after", None)
        if retry_after:
            hinted = timedelta(
                seconds=min(float(retry_after), self.config.max_backoff_seconds)
            )
            delay = max(delay, hinted)

        return datetime.now(timezone.utc) + delay

    def _mark_failed(self, item: QueueItem, error: str) -> None:
        try:
            self.repository.mark_failed(item.id, error)
        except Exception as e:
            self.log.error("mark_failed_failed", error=str(e), exc_info=True)

    def _record(self, channel_type: str, outcome: str) -> str:
        self.metrics.record_sent(channel_type, outcome)
        return outcome
