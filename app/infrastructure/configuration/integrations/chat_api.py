"""Chat Bot API sender settings."""

from pydantic import Field

from infrastructure.configuration.base import IntegrationSettings


class ChatApiSettings(IntegrationSettings):
    """Chat Bot API configuration.

    Environment Variables:
        CHAT_API_ENABLED: Enable the chat bot sender (default: False)
        CHAT_API_BOT_TOKEN: Bot token, required when enabled
        CHAT_API_URL: sendMessage URL template, ``{token}`` is substituted
        CHAT_API_TIMEOUT_SECONDS: Request timeout (default: 10s)
        CHAT_API_RATE_LIMIT: Messages per second (default: 25)
        CHAT_API_BURST: Token bucket burst size (default: 30)
    """

    CHAT_API_ENABLED: bool = Field(default=False, alias="CHAT_API_ENABLED")
    CHAT_API_BOT_TOKEN: str | None = Field(default=None, alias="CHAT_API_BOT_TOKEN")
    CHAT_API_URL: str = Field(
        default="https://api.telegram.org/bot{token}/sendMessage",
        alias="CHAT_API_URL",
    )
    CHAT_API_TIMEOUT_SECONDS: float = Field(
        default=10.0, alias="CHAT_API_TIMEOUT_SECONDS"
    )
    CHAT_API_RATE_LIMIT: float = Field(default=25.0, alias="CHAT_API_RATE_LIMIT")
    CHAT_API_BURST: int = Field(default=30, alias="CHAT_API_BURST")
