"""Lifecycle notifier.

Turns incident and maintenance lifecycle changes into queued
notifications. For each change the notifier:

1. Resolves who should hear about it (on creation, and for services added
   by an update) and persists that as the event's frozen subscriber set.
2. Builds one channel-agnostic payload.
3. Enqueues one queue item per subscribed channel.

Delivery happens later in the worker pool. Every public method is
fire-and-forget: the event change that triggered it has already been
committed, so storage failures are logged and never raised to the caller.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Protocol, Sequence

from infrastructure.logging import bind_delivery_context, get_module_logger
from modules.events.models import (
    ChangeSet,
    Event,
    EventService,
    EventStatus,
    EventUpdate,
    Resolution,
)
from modules.notifications.models import (
    EventChanges,
    EventData,
    EventResolution,
    NotificationPayload,
    ServiceInfo,
    ServiceStatusChange,
    cancelled_payload,
    completed_payload,
    initial_payload,
    resolved_payload,
    update_payload,
)
from modules.notifications.queue import QueueItem
from modules.notifications.repository import Repository

logger = get_module_logger()


class ServiceNameResolver(Protocol):
    """Resolves a service id to its display name.

    Implementations may raise for unknown ids; the notifier then falls back
    to the raw id.
    """

    def get_service_name(self, service_id: str) -> str:
        ...


@dataclass
class NotifierConfig:
    """Configuration for the lifecycle notifier.

    Attributes:
        max_attempts: Attempt budget stamped on every enqueued item
    """

    max_attempts: int = 3

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")


class Notifier:
    """Builds payloads for lifecycle changes and enqueues them per channel.

    Attributes:
        repository: Subscriber and queue storage
        config: NotifierConfig
        base_url: Public status page URL used for event deep links
        name_resolver: Optional ServiceNameResolver

    Example:
        notifier = Notifier(repository, NotifierConfig(max_attempts=5),
                            base_url="https://status.example.com")
        notifier.on_created(event, event.service_ids)
    """

    def __init__(
        self,
        repository: Repository,
        config: Optional[NotifierConfig] = None,
        base_url: str = "",
        name_resolver: Optional[ServiceNameResolver] = None,
    ):
        self.repository = repository
        self.config = config or NotifierConfig()
        self.base_url = base_url.rstrip("/")
        self.name_resolver = name_resolver

    def on_created(self, event: Event, service_ids: Sequence[str]) -> None:
        """Notify subscribers of the affected services about a new event.

        Persists the matched channels as the event's subscriber set, so later
        lifecycle notifications reach the same audience.
        """
        if not event.notify_subscribers:
            return

        with bind_delivery_context(event_id=event.id, trigger="event_created"):
            try:
                channels = self.repository.find_subscribers_for_services(
                    list(service_ids)
                )
                if not channels:
                    logger.debug("no_subscribers_for_event")
                    return

                channel_ids = [channel.id for channel in channels]
                self.repository.create_event_subscribers(event.id, channel_ids)
            except Exception as e:
                logger.error(
                    "event_subscribers_resolution_failed",
                    error=str(e),
                    exc_info=True,
                )
                return

            payload = initial_payload(
                self._build_event_data(event, service_ids),
                self._event_url(event.id),
            )
            self._enqueue(event.id, channel_ids, payload)

    def on_updated(
        self,
        event: Event,
        update: Optional[EventUpdate] = None,
        changes: Optional[ChangeSet] = None,
    ) -> None:
        """Notify the event's subscribers about an update.

        Subscribers of services added by this update join the subscriber set
        before the update is sent. A non-empty update message replaces the
        event description in the payload.
        """
        if update is not None and not update.notify_subscribers:
            return

        with bind_delivery_context(event_id=event.id, trigger="event_updated"):
            if changes is not None and changes.services_added:
                self._add_subscribers_for(event.id, changes.services_added)

            event_data = self._build_event_data(event, event.service_ids)
            if update is not None and update.message:
                event_data = event_data.model_copy(update={"message": update.message})

            payload = update_payload(
                event_data,
                self._convert_changes(changes),
                self._event_url(event.id),
            )
            self._send_to_event_subscribers(event.id, payload)

    def on_resolved(
        self, event: Event, resolution: Optional[Resolution] = None
    ) -> None:
        """Notify the event's subscribers that an incident is resolved."""
        with bind_delivery_context(event_id=event.id, trigger="event_resolved"):
            changes, event_resolution = self._closing_data(
                event, EventStatus.MONITORING.value, resolution
            )
            payload = resolved_payload(
                self._build_event_data(event, event.service_ids),
                changes,
                event_resolution,
                self._event_url(event.id),
            )
            self._send_to_event_subscribers(event.id, payload)

    def on_completed(
        self, event: Event, resolution: Optional[Resolution] = None
    ) -> None:
        """Notify the event's subscribers that a maintenance is completed."""
        with bind_delivery_context(event_id=event.id, trigger="event_completed"):
            changes, event_resolution = self._closing_data(
                event, EventStatus.IN_PROGRESS.value, resolution
            )
            payload = completed_payload(
                self._build_event_data(event, event.service_ids),
                changes,
                event_resolution,
                self._event_url(event.id),
            )
            self._send_to_event_subscribers(event.id, payload)

    def on_cancelled(self, event: Event) -> None:
        """Notify the event's subscribers that a scheduled maintenance is cancelled."""
        if not event.notify_subscribers:
            return

        with bind_delivery_context(event_id=event.id, trigger="event_cancelled"):
            payload = cancelled_payload(
                self._build_event_data(event, event.service_ids)
            )
            self._send_to_event_subscribers(event.id, payload)

    def _add_subscribers_for(
        self, event_id: str, services: Sequence[EventService]
    ) -> None:
        service_ids = [service.service_id for service in services]
        try:
            channels = self.repository.find_subscribers_for_services(service_ids)
        except Exception as e:
            logger.error(
                "find_new_subscribers_failed",
                service_ids=service_ids,
                error=str(e),
                exc_info=True,
            )
            return

        if not channels:
            return

        try:
            self.repository.add_event_subscribers(
                event_id, [channel.id for channel in channels]
            )
        except Exception as e:
            logger.error("add_event_subscribers_failed", error=str(e), exc_info=True)
            return

        logger.info("event_subscribers_added", count=len(channels))

    def _send_to_event_subscribers(
        self, event_id: str, payload: NotificationPayload
    ) -> None:
        try:
            channel_ids = self.repository.get_event_subscribers(event_id)
        except Exception as e:
            logger.error("get_event_subscribers_failed", error=str(e), exc_info=True)
            return

        self._enqueue(event_id, channel_ids, payload)

    def _enqueue(
        self, event_id: str, channel_ids: Sequence[str], payload: NotificationPayload
    ) -> None:
        if not channel_ids:
            return

        items = [
            QueueItem(
                id=str(uuid.uuid4()),
                event_id=event_id,
                channel_id=channel_id,
                message_type=payload.message_type,
                payload=payload,
                max_attempts=self.config.max_attempts,
            )
            for channel_id in channel_ids
        ]

        try:
            self.repository.enqueue_batch(items)
        except Exception as e:
            logger.error(
                "enqueue_notifications_failed",
                message_type=payload.message_type.value,
                count=len(items),
                error=str(e),
                exc_info=True,
            )
            return

        logger.info(
            "notifications_queued",
            message_type=payload.message_type.value,
            count=len(items),
        )

    def _closing_data(
        self, event: Event, status_from: str, resolution: Optional[Resolution]
    ):
        resolved_at = event.resolved_at or datetime.now(timezone.utc)
        duration = resolved_at - event.started_at if event.started_at else timedelta(0)

        changes = EventChanges(status_from=status_from, status_to=event.status)
        event_resolution = EventResolution(
            resolved_at=resolved_at,
            duration=duration,
            message=resolution.message if resolution is not None else "",
        )
        return changes, event_resolution

    def _build_event_data(self, event: Event, service_ids: Sequence[str]) -> EventData:
        data = {
            "id": event.id,
            "title": event.title,
            "type": event.type,
            "status": event.status,
            "severity": event.severity or "",
            "message": event.description,
            # Event specific service status would need another lookup
            "services": tuple(
                ServiceInfo(id=service_id, name=self._service_name(service_id))
                for service_id in service_ids
            ),
            "created_at": event.created_at,
            "started_at": event.started_at,
        }
        if event.is_maintenance:
            data["scheduled_start"] = event.scheduled_start_at
            data["scheduled_end"] = event.scheduled_end_at
        return EventData(**data)

    def _convert_changes(self, changes: Optional[ChangeSet]) -> EventChanges:
        if changes is None:
            return EventChanges()

        return EventChanges(
            status_from=changes.status_from,
            status_to=changes.status_to,
            severity_from=changes.severity_from,
            severity_to=changes.severity_to,
            services_added=self._service_infos(changes.services_added),
            services_removed=self._service_infos(changes.services_removed),
            services_updated=tuple(
                ServiceStatusChange(
                    id=update.service_id,
                    name=update.service_name,
                    status_from=update.status_from,
                    status_to=update.status_to,
                )
                for update in changes.services_updated
            ),
            reason=changes.reason,
        )

    def _service_infos(self, services: List[EventService]):
        return tuple(
            ServiceInfo(
                id=service.service_id,
                name=self._service_name(service.service_id),
                status=service.status,
            )
            for service in services
        )

    def _service_name(self, service_id: str) -> str:
        if self.name_resolver is None:
            return service_id
        try:
            return self.name_resolver.get_service_name(service_id) or service_id
        except Exception as e:
            logger.debug(
                "service_name_resolution_failed",
                service_id=service_id,
                error=str(e),
            )
            return service_id

    def _event_url(self, event_id: str) -> str:
        if not self.base_url:
            return ""
        return f"{self.base_url}/events/{event_id}"
