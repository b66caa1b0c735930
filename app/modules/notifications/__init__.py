"""Subscriber notification delivery pipeline.

Lifecycle changes enter through the Notifier, are stored as queue items
and delivered by the worker pool through one sender per channel type.
"""

from modules.notifications.channels import Channel, ChannelInfo, ChannelType
from modules.notifications.dispatcher import NotificationDispatcher
from modules.notifications.errors import (
    ChannelNotFoundError,
    EnqueueError,
    NotificationError,
    PermanentSendError,
    RenderError,
    RetryableSendError,
    SendError,
    SenderNotConfiguredError,
    TemplateNotFoundError,
    is_retryable,
)
from modules.notifications.maintenance import MaintenanceConfig, QueueMaintenance
from modules.notifications.metrics import NotificationMetrics
from modules.notifications.models import MessageType, NotificationPayload
from modules.notifications.notifier import (
    Notifier,
    NotifierConfig,
    ServiceNameResolver,
)
from modules.notifications.queue import QueueItem, QueueStats, QueueStatus
from modules.notifications.renderer import Renderer
from modules.notifications.repository import InMemoryRepository, Repository
from modules.notifications.service import NotificationService
from modules.notifications.worker import (
    NotificationWorker,
    WorkerConfig,
    calculate_backoff,
)

__all__ = [
    "Channel",
    "ChannelInfo",
    "ChannelNotFoundError",
    "ChannelType",
    "EnqueueError",
    "InMemoryRepository",
    "MaintenanceConfig",
    "MessageType",
    "NotificationDispatcher",
    "NotificationError",
    "NotificationMetrics",
    "NotificationPayload",
    "NotificationService",
    "Notifier",
    "NotifierConfig",
    "PermanentSendError",
    "QueueItem",
    "QueueMaintenance",
    "QueueStats",
    "QueueStatus",
    "RenderError",
    "Renderer",
    "Repository",
    "RetryableSendError",
    "SendError",
    "SenderNotConfiguredError",
    "ServiceNameResolver",
    "TemplateNotFoundError",
    "WorkerConfig",
    "calculate_backoff",
    "is_retryable",
]
