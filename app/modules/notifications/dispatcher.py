"""Notification dispatcher with per channel type routing.

Two delivery paths share the sender registry:

- ``send_to_channel``: single delivery used by the queue worker. Errors
  propagate so the worker can apply its retry state machine.
- ``dispatch`` / ``send_test_message``: immediate, non-queued delivery
  for synchronous flows. Errors are logged and dropped.

Usage Example:
    dispatcher = NotificationDispatcher(
        repository=repository,
        senders=[email_sender, webhook_sender],
    )

    dispatcher.send_to_channel(
        ChannelType.EMAIL,
        Notification(to="user@example.com", subject="[Incident] API", body="..."),
    )
"""

from typing import Any, Dict, List, Optional, Sequence

import structlog

from modules.notifications.channels import Channel, ChannelType
from modules.notifications.errors import NotificationError, SenderNotConfiguredError
from modules.notifications.repository import Repository
from modules.notifications.senders.base import Notification, Sender

logger = structlog.get_logger()

VERIFICATION_SUBJECT = "Channel Verification"
VERIFICATION_BODY = (
    "This is a test message to verify your notification channel. "
    "If you received this message, your channel is working correctly."
)


class NotificationDispatcher:
    """Routes notifications to the sender for a channel type.

    Attributes:
        repository: Used to resolve subscribers for immediate fan-out
        senders: Dict mapping channel type value to Sender instance
    """

    def __init__(self, repository: Repository, senders: Sequence[Sender]):
        self.repository = repository
        self.senders: Dict[str, Sender] = {
            sender.channel_type.value: sender for sender in senders
        }

        logger.info(
            "initialized_notification_dispatcher",
            channel_types=sorted(self.senders.keys()),
        )

    def get_sender(self, channel_type: Any) -> Optional[Sender]:
        return self.senders.get(getattr(channel_type, "value", channel_type))

    def send_to_channel(self, channel_type: Any, notification: Notification) -> None:
        """Deliver one notification through the sender for ``channel_type``.

        Raises:
            SenderNotConfiguredError: No sender registered (non-retryable)
            SendError: Propagated from the sender
        """
        sender = self.get_sender(channel_type)
        if sender is None:
            raise SenderNotConfiguredError(getattr(channel_type, "value", channel_type))
        sender.send(notification)

    def dispatch(self, service_ids: Sequence[str], subject: str, body: str) -> int:
        """Send a message immediately to current subscribers of the services.

        Missing senders and delivery errors are logged and skipped; nothing
        is retried.

        Returns:
            Number of channels delivered to successfully
        """
        channels = self.repository.find_subscribers_for_services(list(service_ids))

        logger.info(
            "dispatching_notifications",
            service_ids=list(service_ids),
            channel_count=len(channels),
        )

        delivered = 0
        for channel in channels:
            sender = self.get_sender(channel.type)
            if sender is None:
                logger.warning(
                    "sender_not_found",
                    channel_type=getattr(channel.type, "value", channel.type),
                    channel_id=channel.id,
                )
                continue

            try:
                sender.send(Notification(to=channel.target, subject=subject, body=body))
            except Exception as e:
                logger.error(
                    "dispatch_send_failed",
                    channel_id=channel.id,
                    channel_type=sender.channel_type.value,
                    error=str(e),
                    exc_info=not isinstance(e, NotificationError),
                )
                continue
            delivered += 1

        return delivered

    def send_test_message(self, channel: Channel) -> None:
        """Send the verification test message to a channel, bypassing the queue.

        Raises:
            SenderNotConfiguredError: No sender for the channel type
            SendError: Delivery failed
        """
        self.send_to_channel(
            channel.type,
            Notification(
                to=channel.target,
                subject=VERIFICATION_SUBJECT,
                body=VERIFICATION_BODY,
            ),
        )
        logger.info(
            "test_message_sent",
            channel_id=channel.id,
            channel_type=ChannelType(channel.type).value,
        )

    def health_check(self) -> List[dict]:
        """Run every sender's health check.

        Returns:
            One entry per channel type with status and message
        """
        results = []
        for channel_type, sender in sorted(self.senders.items()):
            result = sender.health_check()
            results.append(
                {
                    "channel_type": channel_type,
                    "status": result.status.value,
                    "message": result.message,
                }
            )
        return results
