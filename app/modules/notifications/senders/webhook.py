"""Incoming webhook sender (Mattermost / Slack compatible)."""

from typing import Optional
from urllib.parse import urlsplit

import requests
import structlog

from infrastructure.operations import (
    OperationResult,
    classify_http_error,
    classify_http_response,
)
from modules.notifications.channels import ChannelType
from modules.notifications.errors import PermanentSendError, SendError
from modules.notifications.senders.base import Notification, Sender

logger = structlog.get_logger()


def mask_webhook_url(url: str) -> str:
    """Hide the secret part of a webhook URL for logging."""
    if len(url) > 40:
        return url[:20] + "..." + url[-10:]
    return url


class WebhookSender(Sender):
    """Posts Markdown messages to per-channel incoming webhook URLs.

    The channel target is the webhook URL, so no global endpoint is
    configured here.
    """

    def __init__(
        self,
        username: str = "StatusPage",
        icon_url: Optional[str] = None,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self.username = username
        self.icon_url = icon_url
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def channel_type(self) -> ChannelType:
        return ChannelType.WEBHOOK

    def send(self, notification: Notification) -> None:
        if not notification.to:
            raise PermanentSendError("webhook URL is empty", error_code="MISSING_URL")

        try:
            response = self.session.post(
                notification.to,
                json=self.build_body(notification),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            result = self._redact(classify_http_error(e, service="webhook"), notification.to)
        else:
            result = classify_http_response(response, service="webhook")

        if not result.is_success:
            logger.warning(
                "webhook_send_failed",
                webhook=mask_webhook_url(notification.to),
                **result.log_fields(),
            )
            raise SendError.from_result(result)

        logger.debug("webhook_message_sent", webhook=mask_webhook_url(notification.to))

    def health_check(self) -> OperationResult:
        return OperationResult.success(
            message="Webhook sender has no shared endpoint to probe"
        )

    def _redact(self, result: OperationResult, url: str) -> OperationResult:
        # requests exceptions embed the webhook URL, whose path is the secret
        parts = urlsplit(url)
        if parts.path and parts.path != "/":
            masked = f"{parts.scheme}://{parts.netloc}/***"
            result.message = result.message.replace(url, masked)
            result.message = result.message.replace(parts.path, "/***")
        return result

    def build_body(self, notification: Notification) -> dict:
        if notification.subject:
            text = f"### {notification.subject}\n\n{notification.body}"
        else:
            text = notification.body

        body = {"text": text, "username": self.username}
        if self.icon_url:
            body["icon_url"] = self.icon_url
        return body
