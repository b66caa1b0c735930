"""Errors for the notifications module.

Every failure raised inside the delivery pipeline derives from
NotificationError. Sender failures carry a ``retryable`` flag that the
worker reads through ``is_retryable()``.
"""

from typing import Optional

from infrastructure.operations import OperationResult


class NotificationError(Exception):
    """Base class for notification pipeline errors."""


class SendError(NotificationError):
    """Raised by a sender when delivery to a target fails.

    Attributes:
        retryable: Whether a later attempt may succeed.
        retry_after: Upstream hint in seconds, when rate limited.
        error_code: Machine readable code from classification.
    """

    def __init__(
        self,
        message: str,
        retryable: bool = True,
        retry_after: Optional[int] = None,
        error_code: Optional[str] = None,
    ):
        super().__init__(message)
        self.retryable = retryable
        self.retry_after = retry_after
        self.error_code = error_code

    @classmethod
    def from_result(cls, result: OperationResult) -> "SendError":
        """Build the matching SendError subclass from a failed OperationResult."""
        if result.is_retryable:
            return RetryableSendError(
                result.message,
                retry_after=result.retry_after,
                error_code=result.error_code,
            )
        return PermanentSendError(result.message, error_code=result.error_code)


class RetryableSendError(SendError):
    def __init__(
        self,
        message: str,
        retry_after: Optional[int] = None,
        error_code: Optional[str] = None,
    ):
        super().__init__(
            message, retryable=True, retry_after=retry_after, error_code=error_code
        )


class PermanentSendError(SendError):
    def __init__(self, message: str, error_code: Optional[str] = None):
        super().__init__(message, retryable=False, error_code=error_code)


class TemplateNotFoundError(NotificationError):
    """No template exists for a channel type / message type pair."""

    retryable = False

    def __init__(self, template_name: str):
        super().__init__(f"template not found: {template_name}")
        self.template_name = template_name


class RenderError(NotificationError):
    """A template exists but failed to render the payload."""

    retryable = False


class ChannelNotFoundError(NotificationError):
    retryable = False

    def __init__(self, channel_id: str):
        super().__init__(f"notification channel not found: {channel_id}")
        self.channel_id = channel_id


class SenderNotConfiguredError(NotificationError):
    retryable = False

    def __init__(self, channel_type: str):
        super().__init__(f"no sender configured for channel type: {channel_type}")
        self.channel_type = channel_type


class EnqueueError(NotificationError):
    """The queue store rejected a write. Nothing from the batch was stored."""


def is_retryable(exc: BaseException) -> bool:
    """Return whether a delivery failure should be retried.

    Exceptions that declare a ``retryable`` attribute are trusted; anything
    unclassified is retried.
    """
    retryable = getattr(exc, "retryable", None)
    if retryable is None:
        return True
    return bool(retryable)
