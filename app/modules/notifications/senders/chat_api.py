"""Chat Bot API sender (Telegram-compatible ``sendMessage``)."""

from typing import Optional

import requests
import structlog

from infrastructure.operations import (
    OperationResult,
    classify_http_error,
    classify_http_response,
)
from modules.notifications.channels import ChannelType
from modules.notifications.errors import SendError
from modules.notifications.senders.base import Notification, Sender
from modules.notifications.senders.ratelimit import TokenBucket

logger = structlog.get_logger()

DEFAULT_API_URL = "https://api.telegram.org/bot{token}/sendMessage"


class ChatApiSender(Sender):
    """Sends HTML formatted messages through a chat Bot API.

    The channel target is the chat id. Outbound calls share one token
    bucket so the bot stays under the API's global message rate.
    """

    def __init__(
        self,
        bot_token: str,
        api_url: str = DEFAULT_API_URL,
        timeout: float = 10.0,
        rate_limit: float = 25.0,
        burst: int = 30,
        session: Optional[requests.Session] = None,
        limiter: Optional[TokenBucket] = None,
    ):
        if not bot_token:
            raise ValueError("chat api sender: bot token is required")

        self._bot_token = bot_token
        self.api_url = api_url
        self.timeout = timeout
        self.session = session or requests.Session()
        self.limiter = limiter or TokenBucket(rate=rate_limit, burst=burst)

        logger.info(
            "initialized_chat_api_sender",
            rate_limit=self.limiter.rate,
            burst=self.limiter.burst,
        )

    @property
    def channel_type(self) -> ChannelType:
        return ChannelType.CHAT_API

    def send(self, notification: Notification) -> None:
        result = self._send_message(notification)
        if not result.is_success:
            logger.warning(
                "chat_api_send_failed",
                chat_id=notification.to,
                **result.log_fields(),
            )
            raise SendError.from_result(result)
        logger.debug("chat_api_message_sent", chat_id=notification.to)

    def health_check(self) -> OperationResult:
        url = self._url().replace("sendMessage", "getMe")
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            return self._redact(classify_http_error(e, service="chat api"))
        return classify_http_response(response, service="chat api")

    def _url(self) -> str:
        return self.api_url.format(token=self._bot_token)

    def _redact(self, result: OperationResult) -> OperationResult:
        # requests exceptions embed the request URL, which carries the token
        result.message = result.message.replace(self._bot_token, "***")
        return result

    def _send_message(self, notification: Notification) -> OperationResult:
        if not notification.to:
            return OperationResult.permanent_error(
                "chat id is empty", error_code="MISSING_CHAT_ID"
            )

        self.limiter.acquire()

        body = {
            "chat_id": notification.to,
            "text": notification.body,
            "parse_mode": "HTML",
        }
        try:
            response = self.session.post(self._url(), json=body, timeout=self.timeout)
        except requests.RequestException as e:
            return self._redact(classify_http_error(e, service="chat api"))

        result = classify_http_response(response, service="chat api")
        return self._apply_api_body(response, result)

    def _apply_api_body(
        self, response: requests.Response, result: OperationResult
    ) -> OperationResult:
        """Refine the HTTP classification with the API's JSON envelope.

        The API reports ``{"ok": false, "description": ..., "parameters":
        {"retry_after": n}}``; the description replaces the raw body and
        ``retry_after`` overrides the header.
        """
        try:
            data = response.json()
        except ValueError:
            return result

        if not isinstance(data, dict):
            return result

        if result.is_success:
            if data.get("ok", True):
                return result
            return OperationResult.permanent_error(
                f"chat api rejected message: {data.get('description', '')}",
                error_code="API_ERROR",
            )

        description = data.get("description")
        if description:
            result.message = f"chat api error {response.status_code}: {description}"
        retry_after = (data.get("parameters") or {}).get("retry_after")
        if result.is_retryable and isinstance(retry_after, int) and retry_after > 0:
            result.retry_after = retry_after
        return result
