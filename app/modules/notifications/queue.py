"""Queue item models.

A QueueItem is one (payload, channel) delivery. Items move
pending -> processing -> sent | failed, with processing -> pending on
retry. ``attempts`` is incremented by the store on every outcome.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from modules.notifications.models import MessageType, NotificationPayload


class QueueStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SENT = "sent"
    FAILED = "failed"


@dataclass
class QueueItem:
    """A notification waiting for, or done with, delivery.

    Fields:
        id: UUID assigned by the notifier
        event_id: Event the payload describes
        channel_id: Target channel
        message_type: Copy of payload.message_type for store-side filtering
        payload: Frozen notification payload
        status: Current queue status
        attempts: Outcomes recorded so far
        max_attempts: Attempt budget before the item is terminally failed
        next_attempt_at: Earliest time a worker may claim the item
        last_error: Most recent failure message
        created_at: Enqueue time
        updated_at: Last state change
        sent_at: Delivery time for sent items
    """

    id: str
    event_id: str
    channel_id: str
    message_type: MessageType
    payload: NotificationPayload
    max_attempts: int = 3
    status: QueueStatus = QueueStatus.PENDING
    attempts: int = 0
    next_attempt_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    last_error: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    sent_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")


@dataclass(frozen=True)
class QueueStats:
    pending: int = 0
    processing: int = 0
    sent: int = 0
    failed: int = 0

    def as_dict(self) -> dict:
        return {
            QueueStatus.PENDING.value: self.pending,
            QueueStatus.PROCESSING.value: self.processing,
            QueueStatus.SENT.value: self.sent,
            QueueStatus.FAILED.value: self.failed,
        }
