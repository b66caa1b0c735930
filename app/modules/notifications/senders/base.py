"""Sender abstract base class.

All channel type transports (email, chat_api, webhook) implement this
interface. The dispatcher routes by ``channel_type``.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from infrastructure.operations import OperationResult
from modules.notifications.channels import ChannelType


@dataclass(frozen=True)
class Notification:
    """A rendered notification addressed to a single channel target.

    Attributes:
        to: Channel target (email address, chat id or webhook URL)
        subject: Rendered subject line
        body: Rendered body in the channel's format
    """

    to: str
    subject: str
    body: str


class Sender(ABC):
    """Abstract base class for notification senders.

    Example Implementation:
        class EmailSender(Sender):

            @property
            def channel_type(self) -> ChannelType:
                return ChannelType.EMAIL

            def send(self, notification: Notification) -> None:
                result = self._deliver(notification)
                if not result.is_success:
                    raise SendError.from_result(result)
    """

    @property
    @abstractmethod
    def channel_type(self) -> ChannelType:
        """Channel type this sender delivers for."""
        pass

    @abstractmethod
    def send(self, notification: Notification) -> None:
        """Deliver a notification to its target.

        Raises:
            SendError: Delivery failed. ``retryable`` tells the worker
                whether another attempt may succeed.
        """
        pass

    @abstractmethod
    def health_check(self) -> OperationResult:
        """Check transport health (connectivity, credentials).

        Returns:
            OperationResult indicating sender health
        """
        pass
