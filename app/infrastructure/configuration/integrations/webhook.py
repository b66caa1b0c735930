"""Incoming webhook sender settings."""

from pydantic import Field

from infrastructure.configuration.base import IntegrationSettings


class WebhookSettings(IntegrationSettings):
    """Incoming webhook configuration.

    The webhook URL itself is the channel target, so only transport and
    presentation options live here.

    Environment Variables:
        WEBHOOK_ENABLED: Enable the webhook sender (default: True)
        WEBHOOK_TIMEOUT_SECONDS: Request timeout (default: 10s)
        WEBHOOK_USERNAME: Display name posted with each message
        WEBHOOK_ICON_URL: Optional avatar URL posted with each message
    """

    WEBHOOK_ENABLED: bool = Field(default=True, alias="WEBHOOK_ENABLED")
    WEBHOOK_TIMEOUT_SECONDS: float = Field(
        default=10.0, alias="WEBHOOK_TIMEOUT_SECONDS"
    )
    WEBHOOK_USERNAME: str = Field(default="StatusPage", alias="WEBHOOK_USERNAME")
    WEBHOOK_ICON_URL: str | None = Field(default=None, alias="WEBHOOK_ICON_URL")
