"""Fixtures for notification pipeline tests."""

from datetime import datetime, timedelta, timezone
from typing import List, Optional
from unittest.mock import MagicMock

import pytest

from modules.events.models import Event
from modules.notifications.channels import Channel, ChannelType
from modules.notifications.dispatcher import NotificationDispatcher
from modules.notifications.metrics import NotificationMetrics
from modules.notifications.models import (
    EventChanges,
    EventData,
    EventResolution,
    MessageType,
    NotificationPayload,
    ServiceInfo,
)
from modules.notifications.queue import QueueItem
from modules.notifications.renderer import Renderer
from modules.notifications.repository import InMemoryRepository
from modules.notifications.senders.base import Sender

STARTED_AT = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)
METRICS_NAMESPACE = "test"


@pytest.fixture
def repository():
    return InMemoryRepository()


@pytest.fixture
def metrics():
    """NotificationMetrics with an isolated registry."""
    return NotificationMetrics(namespace=METRICS_NAMESPACE)


@pytest.fixture
def sample_value(metrics):
    """Read a sample from the test metrics registry, 0.0 when absent.

    Example:
        sample_value("notifications_sent_total", channel_type="email", status="success")
    """

    def _read(name: str, **labels) -> float:
        value = metrics.registry.get_sample_value(
            f"{METRICS_NAMESPACE}_{name}", labels
        )
        return value or 0.0

    return _read


@pytest.fixture
def renderer():
    return Renderer()


@pytest.fixture
def event_factory():
    """Factory for incident and maintenance Event instances.

    Example:
        incident = event_factory()
        maintenance = event_factory(type="maintenance", status="scheduled")
    """

    def _factory(
        id: str = "evt-1",
        title: str = "API outage",
        type: str = "incident",
        status: str = "investigating",
        severity: Optional[str] = "major",
        description: str = "We are investigating elevated error rates.",
        notify_subscribers: bool = True,
        service_ids: Optional[List[str]] = None,
        **kwargs,
    ) -> Event:
        return Event(
            id=id,
            title=title,
            type=type,
            status=status,
            severity=severity,
            description=description,
            notify_subscribers=notify_subscribers,
            service_ids=service_ids if service_ids is not None else ["svc-api"],
            started_at=kwargs.pop("started_at", STARTED_AT),
            created_at=kwargs.pop("created_at", STARTED_AT),
            **kwargs,
        )

    return _factory


@pytest.fixture
def channel_factory():
    """Factory for Channel instances, verified and enabled by default.

    Example:
        channel = channel_factory(id="ch-2", type=ChannelType.WEBHOOK,
                                  target="https://chat.example.com/hooks/abc")
    """

    def _factory(
        id: str = "ch-1",
        user_id: str = "user-1",
        type: ChannelType = ChannelType.EMAIL,
        target: str = "user@example.com",
        is_enabled: bool = True,
        is_verified: bool = True,
        subscribe_to_all_services: bool = False,
        subscribed_service_ids: Optional[List[str]] = None,
    ) -> Channel:
        return Channel(
            id=id,
            user_id=user_id,
            type=type,
            target=target,
            is_enabled=is_enabled,
            is_verified=is_verified,
            subscribe_to_all_services=subscribe_to_all_services,
            subscribed_service_ids=(
                subscribed_service_ids
                if subscribed_service_ids is not None
                else ["svc-api"]
            ),
        )

    return _factory


@pytest.fixture
def event_data_factory():
    """Factory for EventData snapshots."""

    def _factory(**overrides) -> EventData:
        data = {
            "id": "evt-1",
            "title": "API outage",
            "type": "incident",
            "status": "investigating",
            "severity": "major",
            "message": "We are investigating elevated error rates.",
            "services": (ServiceInfo(id="svc-api", name="API"),),
            "created_at": STARTED_AT,
            "started_at": STARTED_AT,
        }
        data.update(overrides)
        return EventData(**data)

    return _factory


@pytest.fixture
def payload_factory(event_data_factory):
    """Factory for NotificationPayload instances.

    Example:
        payload = payload_factory()
        resolved = payload_factory(
            message_type=MessageType.RESOLVED,
            resolution=EventResolution(resolved_at=..., duration=timedelta(hours=2)),
        )
    """

    def _factory(
        message_type: MessageType = MessageType.INITIAL,
        event: Optional[EventData] = None,
        changes: Optional[EventChanges] = None,
        resolution: Optional[EventResolution] = None,
        event_url: str = "https://status.example.com/events/evt-1",
    ) -> NotificationPayload:
        return NotificationPayload(
            message_type=message_type,
            event=event or event_data_factory(),
            changes=changes,
            resolution=resolution,
            event_url=event_url,
        )

    return _factory


@pytest.fixture
def queue_item_factory(payload_factory):
    """Factory for QueueItem instances due immediately.

    Example:
        item = queue_item_factory(id="q-2", channel_id="ch-2", max_attempts=5)
    """

    def _factory(
        id: str = "q-1",
        event_id: str = "evt-1",
        channel_id: str = "ch-1",
        payload: Optional[NotificationPayload] = None,
        max_attempts: int = 3,
        **kwargs,
    ) -> QueueItem:
        payload = payload or payload_factory()
        return QueueItem(
            id=id,
            event_id=event_id,
            channel_id=channel_id,
            message_type=payload.message_type,
            payload=payload,
            max_attempts=max_attempts,
            next_attempt_at=kwargs.pop(
                "next_attempt_at", datetime.now(timezone.utc) - timedelta(seconds=1)
            ),
            **kwargs,
        )

    return _factory


@pytest.fixture
def mock_sender_factory():
    """Factory for MagicMock senders bound to a channel type.

    Example:
        sender = mock_sender_factory(ChannelType.EMAIL,
                                     side_effect=RetryableSendError("timeout"))
    """

    def _factory(channel_type: ChannelType = ChannelType.EMAIL, side_effect=None):
        sender = MagicMock(spec=Sender)
        sender.channel_type = channel_type
        sender.send.side_effect = side_effect
        return sender

    return _factory


@pytest.fixture
def dispatcher_factory(repository, mock_sender_factory):
    """Factory for a NotificationDispatcher over the test repository."""

    def _factory(senders=None) -> NotificationDispatcher:
        if senders is None:
            senders = [mock_sender_factory(ChannelType.EMAIL)]
        return NotificationDispatcher(repository, senders)

    return _factory
