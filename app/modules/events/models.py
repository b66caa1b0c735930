"""Domain models for incidents and scheduled maintenance.

These are the shared types the events layer hands to the notifier when an
event changes. They are plain dataclasses (no validation); request
validation happens before an Event is built.

Key distinctions:
  - Event / EventUpdate: the state of an event and of one timeline entry
  - ChangeSet: what a single update changed (status, severity, services)
  - Resolution: closing message for resolved / completed events
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional


class EventType(str, Enum):
    INCIDENT = "incident"
    MAINTENANCE = "maintenance"


class EventStatus(str, Enum):
    """Lifecycle statuses.

    Incidents move investigating -> identified -> monitoring -> resolved.
    Maintenance moves scheduled -> in_progress -> completed.
    """

    INVESTIGATING = "investigating"
    IDENTIFIED = "identified"
    MONITORING = "monitoring"
    RESOLVED = "resolved"
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


@dataclass
class Event:
    """An incident or a scheduled maintenance window.

    Attributes:
        id: Event identifier.
        title: Short human readable title.
        type: "incident" or "maintenance".
        status: Current lifecycle status.
        severity: minor / major / critical. None for maintenance.
        description: Initial description shown to subscribers.
        notify_subscribers: Whether lifecycle changes notify subscribers.
        service_ids: Services currently affected by the event.
        group_ids: Service groups attached to the event.
        started_at: When the incident started or the maintenance began.
        resolved_at: When the event was resolved or completed.
        scheduled_start_at: Planned start of a maintenance window.
        scheduled_end_at: Planned end of a maintenance window.
        created_at: Creation timestamp.
    """

    id: str
    title: str
    type: str
    status: str
    severity: Optional[str] = None
    description: str = ""
    notify_subscribers: bool = True
    service_ids: List[str] = field(default_factory=list)
    group_ids: List[str] = field(default_factory=list)
    started_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    scheduled_start_at: Optional[datetime] = None
    scheduled_end_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_maintenance(self) -> bool:
        return self.type == EventType.MAINTENANCE.value


@dataclass
class EventUpdate:
    """A timeline entry posted against an event."""

    id: str
    event_id: str
    status: str
    message: str = ""
    notify_subscribers: bool = True
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class EventService:
    """A service attached to an event with its event-specific status."""

    service_id: str
    status: str = ""


@dataclass
class ServiceStatusUpdate:
    """A status transition for a service already attached to an event."""

    service_id: str
    service_name: str
    status_from: str
    status_to: str


@dataclass
class ChangeSet:
    """Changes carried by a single event update."""

    status_from: str = ""
    status_to: str = ""
    severity_from: str = ""
    severity_to: str = ""
    services_added: List[EventService] = field(default_factory=list)
    services_removed: List[EventService] = field(default_factory=list)
    services_updated: List[ServiceStatusUpdate] = field(default_factory=list)
    reason: str = ""


@dataclass
class Resolution:
    message: str = ""
