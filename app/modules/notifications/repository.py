"""Notification queue and subscriber storage.

The Repository protocol is the only persistence surface the pipeline
uses. Implementations must make ``fetch_pending`` an atomic claim: an
item returned to one caller is never returned to another until its
outcome is recorded or it is recovered as stuck.

InMemoryRepository is a thread-safe implementation for single process
deployments, development and tests. A SQL implementation claims with
``SELECT ... FOR UPDATE SKIP LOCKED`` and then flips the rows to
processing in the same transaction.
"""

import threading
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Protocol, Sequence

from infrastructure.logging import get_module_logger
from modules.notifications.channels import Channel, ChannelInfo
from modules.notifications.errors import ChannelNotFoundError, EnqueueError
from modules.notifications.queue import QueueItem, QueueStats, QueueStatus

logger = get_module_logger()


class Repository(Protocol):
    """Storage interface for channels, event subscribers and the queue.

    Methods:
        enqueue / enqueue_batch: Persist new pending items
        fetch_pending: Claim due pending items (pending -> processing)
        mark_sent / mark_failed / mark_for_retry: Record an attempt outcome
        get_channel: Load a channel by id
        create_event_subscribers / add_event_subscribers /
        get_event_subscribers: Frozen subscriber set of an event
        find_subscribers_for_services: Resolve current subscribers
        get_failed_items / retry_failed_item / recover_stuck_processing /
        delete_old_sent_items / get_queue_stats: Queue maintenance
    """

    def enqueue(self, item: QueueItem) -> None:
        ...

    def enqueue_batch(self, items: Sequence[QueueItem]) -> None:
        """Persist all items or none of them.

        Raises:
            EnqueueError: The batch was rejected
        """
        ...

    def fetch_pending(self, limit: int) -> List[QueueItem]:
        """Claim up to ``limit`` pending items whose next_attempt_at has passed.

        Items are returned ordered by next_attempt_at and are already in
        the processing state.
        """
        ...

    def mark_sent(self, item_id: str) -> None:
        ...

    def mark_failed(self, item_id: str, error: str) -> None:
        ...

    def mark_for_retry(
        self, item_id: str, error: str, next_attempt_at: datetime
    ) -> None:
        ...

    def get_channel(self, channel_id: str) -> Channel:
        """Raises ChannelNotFoundError when the channel does not exist."""
        ...

    def create_event_subscribers(
        self, event_id: str, channel_ids: Sequence[str]
    ) -> None:
        """Replace the event's subscriber set."""
        ...

    def add_event_subscribers(self, event_id: str, channel_ids: Sequence[str]) -> None:
        """Append to the event's subscriber set, skipping duplicates."""
        ...

    def get_event_subscribers(self, event_id: str) -> List[str]:
        ...

    def find_subscribers_for_services(
        self, service_ids: Sequence[str]
    ) -> List[ChannelInfo]:
        """Distinct enabled, verified channels subscribed to any of the services."""
        ...

    def get_failed_items(self, limit: int) -> List[QueueItem]:
        ...

    def retry_failed_item(self, item_id: str) -> None:
        """Reset a failed item to pending with a fresh attempt budget.

        Raises:
            KeyError: The item does not exist or is not failed
        """
        ...

    def recover_stuck_processing(self, stuck_for: timedelta) -> int:
        ...

    def delete_old_sent_items(self, older_than: timedelta) -> int:
        ...

    def get_queue_stats(self) -> QueueStats:
        ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryRepository:
    """In-memory implementation of Repository.

    All state lives behind a single lock, so the claim in
    ``fetch_pending`` is atomic across worker threads. Returned items are
    copies; mutating them does not change stored state.

    Attributes:
        channels: Registered channels keyed by id
    """

    def __init__(self) -> None:
        self.channels: Dict[str, Channel] = {}
        self._owner_emails: Dict[str, str] = {}
        self._event_subscribers: Dict[str, List[str]] = {}
        self._queue: Dict[str, QueueItem] = {}
        self._lock = threading.Lock()

    # Channels

    def save_channel(self, channel: Channel, owner_email: str = "") -> None:
        with self._lock:
            self.channels[channel.id] = channel
            if owner_email:
                self._owner_emails[channel.user_id] = owner_email

    def get_channel(self, channel_id: str) -> Channel:
        with self._lock:
            channel = self.channels.get(channel_id)
            if channel is None:
                raise ChannelNotFoundError(channel_id)
            return channel

    def find_subscribers_for_services(
        self, service_ids: Sequence[str]
    ) -> List[ChannelInfo]:
        with self._lock:
            return [
                ChannelInfo(
                    id=channel.id,
                    user_id=channel.user_id,
                    type=channel.type,
                    target=channel.target,
                    email=self._owner_emails.get(channel.user_id, ""),
                )
                for channel in self.channels.values()
                if channel.is_enabled
                and channel.is_verified
                and channel.is_subscribed_to_any(list(service_ids))
            ]

    # Event subscribers

    def create_event_subscribers(
        self, event_id: str, channel_ids: Sequence[str]
    ) -> None:
        with self._lock:
            self._event_subscribers[event_id] = list(dict.fromkeys(channel_ids))

    def add_event_subscribers(self, event_id: str, channel_ids: Sequence[str]) -> None:
        with self._lock:
            existing = self._event_subscribers.setdefault(event_id, [])
            for channel_id in channel_ids:
                if channel_id not in existing:
                    existing.append(channel_id)

    def get_event_subscribers(self, event_id: str) -> List[str]:
        with self._lock:
            return list(self._event_subscribers.get(event_id, []))

    # Queue

    def enqueue(self, item: QueueItem) -> None:
        self.enqueue_batch([item])

    def enqueue_batch(self, items: Sequence[QueueItem]) -> None:
        with self._lock:
            ids = [item.id for item in items]
            if len(set(ids)) != len(ids) or any(i in self._queue for i in ids):
                raise EnqueueError("duplicate queue item id in batch")

            now = _utcnow()
            for item in items:
                stored = self._copy(item)
                stored.status = QueueStatus.PENDING
                stored.attempts = 0
                stored.created_at = now
                stored.updated_at = now
                self._queue[item.id] = stored

        logger.debug("queue_items_enqueued", count=len(items))

    def fetch_pending(self, limit: int) -> List[QueueItem]:
        with self._lock:
            now = _utcnow()
            due = sorted(
                (
                    item
                    for item in self._queue.values()
                    if item.status == QueueStatus.PENDING and item.next_attempt_at <= now
                ),
                key=lambda item: item.next_attempt_at,
            )[:limit]

            for item in due:
                item.status = QueueStatus.PROCESSING
                item.updated_at = now

            return [self._copy(item) for item in due]

    def mark_sent(self, item_id: str) -> None:
        with self._lock:
            item = self._get_locked(item_id)
            now = _utcnow()
            item.status = QueueStatus.SENT
            item.attempts += 1
            item.sent_at = now
            item.updated_at = now

    def mark_failed(self, item_id: str, error: str) -> None:
        with self._lock:
            item = self._get_locked(item_id)
            item.status = QueueStatus.FAILED
            item.attempts += 1
            item.last_error = error
            item.updated_at = _utcnow()

    def mark_for_retry(
        self, item_id: str, error: str, next_attempt_at: datetime
    ) -> None:
        with self._lock:
            item = self._get_locked(item_id)
            item.status = QueueStatus.PENDING
            item.attempts += 1
            item.last_error = error
            item.next_attempt_at = next_attempt_at
            item.updated_at = _utcnow()

    # Maintenance

    def get_failed_items(self, limit: int) -> List[QueueItem]:
        with self._lock:
            failed = sorted(
                (i for i in self._queue.values() if i.status == QueueStatus.FAILED),
                key=lambda item: item.updated_at,
                reverse=True,
            )[:limit]
            return [self._copy(item) for item in failed]

    def retry_failed_item(self, item_id: str) -> None:
        with self._lock:
            item = self._queue.get(item_id)
            if item is None or item.status != QueueStatus.FAILED:
                raise KeyError(f"failed queue item not found: {item_id}")
            now = _utcnow()
            item.status = QueueStatus.PENDING
            item.attempts = 0
            item.last_error = None
            item.next_attempt_at = now
            item.updated_at = now

    def recover_stuck_processing(self, stuck_for: timedelta) -> int:
        with self._lock:
            now = _utcnow()
            cutoff = now - stuck_for
            recovered = 0
            for item in self._queue.values():
                if item.status == QueueStatus.PROCESSING and item.updated_at < cutoff:
                    item.status = QueueStatus.PENDING
                    item.next_attempt_at = now
                    item.updated_at = now
                    recovered += 1
            return recovered

    def delete_old_sent_items(self, older_than: timedelta) -> int:
        with self._lock:
            cutoff = _utcnow() - older_than
            stale = [
                item.id
                for item in self._queue.values()
                if item.status == QueueStatus.SENT and item.updated_at < cutoff
            ]
            for item_id in stale:
                del self._queue[item_id]
            return len(stale)

    def get_queue_stats(self) -> QueueStats:
        with self._lock:
            counts = {status: 0 for status in QueueStatus}
            for item in self._queue.values():
                counts[item.status] += 1
            return QueueStats(
                pending=counts[QueueStatus.PENDING],
                processing=counts[QueueStatus.PROCESSING],
                sent=counts[QueueStatus.SENT],
                failed=counts[QueueStatus.FAILED],
            )

    def get_item(self, item_id: str) -> QueueItem:
        """Return a copy of a stored item (inspection helper)."""
        with self._lock:
            return self._copy(self._get_locked(item_id))

    def _get_locked(self, item_id: str) -> QueueItem:
        item = self._queue.get(item_id)
        if item is None:
            raise KeyError(f"queue item not found: {item_id}")
        return item

    @staticmethod
    def _copy(item: QueueItem) -> QueueItem:
        # Payloads are frozen, a shallow copy is enough
        return QueueItem(**vars(item))
