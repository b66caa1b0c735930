"""Notification payload models.

Channel-agnostic, immutable snapshots of what happened to an event. A
payload is built once per lifecycle transition by the notifier, stored on
every queue item it fans out to, and rendered per channel type by the
worker.

Uses Pydantic BaseModel for:
- Immutability (frozen models, tuple collections)
- JSON round-tripping so a durable store can keep payloads as documents
- Consistent datetime / timedelta serialization
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MessageType(str, Enum):
    """Kind of lifecycle transition a payload describes.

    Values:
        INITIAL: Event created
        UPDATE: Event updated
        RESOLVED: Incident resolved
        COMPLETED: Maintenance completed
        CANCELLED: Scheduled maintenance cancelled
    """

    INITIAL = "initial"
    UPDATE = "update"
    RESOLVED = "resolved"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class ServiceInfo(_Frozen):
    """A service as shown in a notification.

    Attributes:
        id: Service identifier
        name: Display name, falls back to the id when it cannot be resolved
        status: Event-specific status of the service, empty when unknown
    """

    id: str
    name: str
    status: str = ""


class GroupInfo(_Frozen):
    id: str
    name: str


class ServiceStatusChange(_Frozen):
    id: str
    name: str
    status_from: str
    status_to: str


class EventData(_Frozen):
    """Snapshot of an event at notification time.

    Attributes:
        id: Event identifier
        title: Event title
        type: "incident" or "maintenance"
        status: Lifecycle status at notification time
        severity: minor / major / critical, empty for maintenance
        message: Description, or the update message for updates
        services: Affected services
        groups: Attached service groups
        created_at: Event creation time
        started_at: Incident start time
        scheduled_start: Maintenance window start
        scheduled_end: Maintenance window end
    """

    id: str
    title: str
    type: str
    status: str
    severity: str = ""
    message: str = ""
    services: Tuple[ServiceInfo, ...] = ()
    groups: Tuple[GroupInfo, ...] = ()
    created_at: datetime = Field(default_factory=_utcnow)
    started_at: Optional[datetime] = None
    scheduled_start: Optional[datetime] = None
    scheduled_end: Optional[datetime] = None


class EventChanges(_Frozen):
    """What changed in an update, resolution or completion."""

    status_from: str = ""
    status_to: str = ""
    severity_from: str = ""
    severity_to: str = ""
    services_added: Tuple[ServiceInfo, ...] = ()
    services_removed: Tuple[ServiceInfo, ...] = ()
    services_updated: Tuple[ServiceStatusChange, ...] = ()
    reason: str = ""


class EventResolution(_Frozen):
    resolved_at: datetime
    duration: timedelta = timedelta(0)
    message: str = ""


class NotificationPayload(_Frozen):
    """Everything a template needs to render one notification.

    Attributes:
        message_type: Lifecycle transition being announced
        event: Event snapshot
        changes: Change set for update / resolved / completed
        resolution: Resolution data for resolved / completed
        event_url: Deep link to the event page, empty when not configured
        generated_at: When the payload was built

    Example:
        payload = initial_payload(event_data, "https://status.example.com/events/evt-1")
        document = payload.model_dump(mode="json")
        restored = NotificationPayload.model_validate(document)
    """

    message_type: MessageType
    event: EventData
    changes: Optional[EventChanges] = None
    resolution: Optional[EventResolution] = None
    event_url: str = ""
    generated_at: datetime = Field(default_factory=_utcnow)


def initial_payload(event: EventData, event_url: str) -> NotificationPayload:
    return NotificationPayload(
        message_type=MessageType.INITIAL, event=event, event_url=event_url
    )


def update_payload(
    event: EventData, changes: EventChanges, event_url: str
) -> NotificationPayload:
    return NotificationPayload(
        message_type=MessageType.UPDATE,
        event=event,
        changes=changes,
        event_url=event_url,
    )


def resolved_payload(
    event: EventData,
    changes: EventChanges,
    resolution: EventResolution,
    event_url: str,
) -> NotificationPayload:
    return NotificationPayload(
        message_type=MessageType.RESOLVED,
        event=event,
        changes=changes,
        resolution=resolution,
        event_url=event_url,
    )


def completed_payload(
    event: EventData,
    changes: EventChanges,
    resolution: EventResolution,
    event_url: str,
) -> NotificationPayload:
    return NotificationPayload(
        message_type=MessageType.COMPLETED,
        event=event,
        changes=changes,
        resolution=resolution,
        event_url=event_url,
    )


def cancelled_payload(event: EventData) -> NotificationPayload:
    """Cancellation carries no link, change set or resolution."""
    return NotificationPayload(message_type=MessageType.CANCELLED, event=event)
