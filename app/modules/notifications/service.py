"""Notification service composition root.

Builds the delivery pipeline from settings and owns its lifecycle:

    NotificationService.from_settings(settings)
        repository  -> InMemoryRepository unless one is injected
        senders     -> one per enabled channel integration
        renderer    -> compiled templates (fails fast on template errors)
        metrics     -> NotificationMetrics with its own registry
        dispatcher, notifier, worker pool, queue maintenance
"""

from typing import List, Optional

import structlog

from infrastructure.configuration import Settings
from modules.notifications.dispatcher import NotificationDispatcher
from modules.notifications.maintenance import MaintenanceConfig, QueueMaintenance
from modules.notifications.metrics import NotificationMetrics
from modules.notifications.notifier import (
    Notifier,
    NotifierConfig,
    ServiceNameResolver,
)
from modules.notifications.renderer import Renderer
from modules.notifications.repository import InMemoryRepository, Repository
from modules.notifications.senders import (
    ChatApiSender,
    EmailSender,
    Sender,
    WebhookSender,
)
from modules.notifications.worker import NotificationWorker, WorkerConfig

logger = structlog.get_logger()


def build_senders(settings: Settings) -> List[Sender]:
    """Instantiate a sender for every enabled channel integration.

    Channel types without a sender are failed by the worker as
    non-retryable.
    """
    senders: List[Sender] = []

    if settings.email.EMAIL_ENABLED:
        senders.append(
            EmailSender(
                host=settings.email.SMTP_HOST,
                from_address=settings.email.SMTP_FROM_ADDRESS,
                port=settings.email.SMTP_PORT,
                username=settings.email.SMTP_USER,
                password=settings.email.SMTP_PASSWORD,
                use_tls=settings.email.SMTP_USE_TLS,
                timeout=settings.email.SMTP_TIMEOUT_SECONDS,
            )
        )

    if settings.chat_api.CHAT_API_ENABLED:
        senders.append(
            ChatApiSender(
                bot_token=settings.chat_api.CHAT_API_BOT_TOKEN or "",
                api_url=settings.chat_api.CHAT_API_URL,
                timeout=settings.chat_api.CHAT_API_TIMEOUT_SECONDS,
                rate_limit=settings.chat_api.CHAT_API_RATE_LIMIT,
                burst=settings.chat_api.CHAT_API_BURST,
            )
        )

    if settings.webhook.WEBHOOK_ENABLED:
        senders.append(
            WebhookSender(
                username=settings.webhook.WEBHOOK_USERNAME,
                icon_url=settings.webhook.WEBHOOK_ICON_URL,
                timeout=settings.webhook.WEBHOOK_TIMEOUT_SECONDS,
            )
        )

    return senders


class NotificationService:
    """Wired notification pipeline.

    Attributes:
        repository: Queue and subscriber store
        metrics: Prometheus collectors (``metrics.registry`` is exported)
        dispatcher: Sender routing, immediate delivery
        notifier: Lifecycle hooks called by the events layer
        worker: Queue worker pool
        maintenance: Queue housekeeping and failed-item operations
        enabled: When False, ``start()`` does not launch background threads

    Example:
        service = NotificationService.from_settings(get_settings())
        service.start()
        service.notifier.on_created(event, event.service_ids)
        ...
        service.stop()
    """

    def __init__(
        self,
        repository: Repository,
        metrics: NotificationMetrics,
        dispatcher: NotificationDispatcher,
        notifier: Notifier,
        worker: NotificationWorker,
        maintenance: QueueMaintenance,
        enabled: bool = True,
    ) -> None:
        self.repository = repository
        self.metrics = metrics
        self.dispatcher = dispatcher
        self.notifier = notifier
        self.worker = worker
        self.maintenance = maintenance
        self.enabled = enabled

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        repository: Optional[Repository] = None,
        senders: Optional[List[Sender]] = None,
        name_resolver: Optional[ServiceNameResolver] = None,
    ) -> "NotificationService":
        """Build the pipeline from settings.

        Args:
            settings: Application settings
            repository: Store to use. Defaults to an InMemoryRepository.
            senders: Senders to use. Defaults to ``build_senders(settings)``.
            name_resolver: Optional service name lookup for payloads

        Raises:
            ValueError: Invalid configuration or sender settings
            RenderError: A template failed to load
        """
        config = settings.notifications
        repository = repository if repository is not None else InMemoryRepository()
        senders = senders if senders is not None else build_senders(settings)

        metrics = NotificationMetrics(namespace=settings.metrics.namespace)
        renderer = Renderer()
        dispatcher = NotificationDispatcher(repository, senders)

        notifier = Notifier(
            repository,
            NotifierConfig(max_attempts=config.max_attempts),
            base_url=config.base_url,
            name_resolver=name_resolver,
        )
        worker = NotificationWorker(
            repository,
            dispatcher,
            renderer,
            metrics,
            WorkerConfig(
                batch_size=config.batch_size,
                poll_interval_seconds=config.poll_interval_seconds,
                initial_backoff_seconds=config.initial_backoff_seconds,
                max_backoff_seconds=config.max_backoff_seconds,
                backoff_multiplier=config.backoff_multiplier,
                num_workers=config.num_workers,
            ),
        )
        maintenance = QueueMaintenance(
            repository,
            metrics,
            MaintenanceConfig(
                interval_seconds=config.stats_interval_seconds,
                stuck_after_seconds=config.stuck_after_seconds,
                sent_retention_hours=config.sent_retention_hours,
            ),
        )

        logger.info(
            "notification_service_built",
            channel_types=sorted(dispatcher.senders.keys()),
            enabled=config.enabled,
        )

        return cls(
            repository=repository,
            metrics=metrics,
            dispatcher=dispatcher,
            notifier=notifier,
            worker=worker,
            maintenance=maintenance,
            enabled=config.enabled,
        )

    def start(self) -> None:
        if not self.enabled:
            logger.info("notification_service_disabled")
            return

        self.worker.start()
        self.maintenance.start()
        logger.info("notification_service_started")

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop the worker pool, then maintenance. Safe to call when not started."""
        self.worker.stop(timeout)
        self.maintenance.stop(timeout)
        logger.info("notification_service_stopped")
