"""Queue maintenance.

Background housekeeping for the notification queue and the operator
actions on failed items:

- stuck recovery: items left in ``processing`` after a crash go back to
  ``pending``
- retention: ``sent`` items older than the retention window are deleted
- queue depth: the ``queue_size`` gauge is refreshed from store counts
- failed items can be listed and resubmitted with a fresh attempt budget
"""

import threading
from dataclasses import dataclass
from datetime import timedelta
from typing import List, Optional

import structlog

from modules.notifications.metrics import NotificationMetrics
from modules.notifications.queue import QueueItem
from modules.notifications.repository import Repository

logger = structlog.get_logger()


@dataclass
class MaintenanceConfig:
    """Configuration for queue maintenance.

    Attributes:
        interval_seconds: Wait between maintenance runs
        stuck_after_seconds: Processing age after which an item is recovered
        sent_retention_hours: How long sent items are kept
    """

    interval_seconds: float = 15.0
    stuck_after_seconds: int = 600  # 10 minutes
    sent_retention_hours: int = 168  # 7 days

    def __post_init__(self) -> None:
        if self.interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        if self.stuck_after_seconds < 1:
            raise ValueError("stuck_after_seconds must be at least 1")
        if self.sent_retention_hours < 1:
            raise ValueError("sent_retention_hours must be at least 1")


class QueueMaintenance:
    """Periodic queue housekeeping plus failed-item operations.

    Example:
        maintenance = QueueMaintenance(repository, metrics)
        maintenance.start()
        ...
        for item in maintenance.list_failed(limit=20):
            maintenance.retry_failed(item.id)
    """

    def __init__(
        self,
        repository: Repository,
        metrics: NotificationMetrics,
        config: Optional[MaintenanceConfig] = None,
    ) -> None:
        self.repository = repository
        self.metrics = metrics
        self.config = config or MaintenanceConfig()
        self.log = logger.bind(component="queue_maintenance")

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run, daemon=True, name="notification-maintenance"
        )
        self._thread.start()
        self.log.info(
            "queue_maintenance_started",
            interval_seconds=self.config.interval_seconds,
        )

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        self.log.info("queue_maintenance_stopped")

    def _run(self) -> None:
        # Refresh the gauge right away so it is populated before the first interval
        self.run_once()
        while not self._stop_event.wait(self.config.interval_seconds):
            self.run_once()

    def run_once(self) -> dict:
        """Run one maintenance pass. Each step is isolated from the others.

        Returns:
            Dictionary with ``recovered`` and ``purged`` counts
        """
        stats = {"recovered": 0, "purged": 0}

        try:
            stats["recovered"] = self.repository.recover_stuck_processing(
                timedelta(seconds=self.config.stuck_after_seconds)
            )
            if stats["recovered"]:
                self.log.warning(
                    "stuck_notifications_recovered", count=stats["recovered"]
                )
        except Exception as e:
            self.log.error("recover_stuck_processing_failed", error=str(e), exc_info=True)

        try:
            stats["purged"] = self.repository.delete_old_sent_items(
                timedelta(hours=self.config.sent_retention_hours)
            )
            if stats["purged"]:
                self.log.info("old_sent_notifications_deleted", count=stats["purged"])
        except Exception as e:
            self.log.error("delete_old_sent_items_failed", error=str(e), exc_info=True)

        self.collect_queue_stats()
        return stats

    def collect_queue_stats(self) -> None:
        try:
            stats = self.repository.get_queue_stats()
        except Exception as e:
            self.log.error("get_queue_stats_failed", error=str(e), exc_info=True)
            return
        self.metrics.set_queue_stats(stats)

    def list_failed(self, limit: int = 50) -> List[QueueItem]:
        """Most recently failed items, newest first."""
        return self.repository.get_failed_items(limit)

    def retry_failed(self, item_id: str) -> None:
        """Resubmit a failed item with a fresh attempt budget.

        Raises:
            KeyError: The item does not exist or is not failed
        """
        self.repository.retry_failed_item(item_id)
        self.log.info("failed_notification_resubmitted", queue_item_id=item_id)
