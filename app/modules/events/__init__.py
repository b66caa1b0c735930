"""Incident and maintenance event domain types."""

from modules.events.models import (
    ChangeSet,
    Event,
    EventService,
    EventStatus,
    EventType,
    EventUpdate,
    Resolution,
    ServiceStatusUpdate,
)

__all__ = [
    "ChangeSet",
    "Event",
    "EventService",
    "EventStatus",
    "EventType",
    "EventUpdate",
    "Resolution",
    "ServiceStatusUpdate",
]
