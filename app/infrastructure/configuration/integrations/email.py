"""SMTP email sender settings."""

from pydantic import Field

from infrastructure.configuration.base import IntegrationSettings


class EmailSettings(IntegrationSettings):
    """SMTP configuration for the email channel.

    Environment Variables:
        EMAIL_ENABLED: Enable the email sender (default: False)
        SMTP_HOST: SMTP server hostname
        SMTP_PORT: SMTP server port (default: 587)
        SMTP_USER: SMTP username (optional)
        SMTP_PASSWORD: SMTP password (optional)
        SMTP_FROM_ADDRESS: Envelope and header sender address
        SMTP_USE_TLS: Issue STARTTLS after connecting (default: True)
        SMTP_TIMEOUT_SECONDS: Socket timeout (default: 10s)

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()

        if settings.email.EMAIL_ENABLED:
            host = settings.email.SMTP_HOST
        ```
    """

    EMAIL_ENABLED: bool = Field(default=False, alias="EMAIL_ENABLED")
    SMTP_HOST: str = Field(default="", alias="SMTP_HOST")
    SMTP_PORT: int = Field(default=587, alias="SMTP_PORT")
    SMTP_USER: str | None = Field(default=None, alias="SMTP_USER")
    SMTP_PASSWORD: str | None = Field(default=None, alias="SMTP_PASSWORD")
    SMTP_FROM_ADDRESS: str = Field(default="", alias="SMTP_FROM_ADDRESS")
    SMTP_USE_TLS: bool = Field(default=True, alias="SMTP_USE_TLS")
    SMTP_TIMEOUT_SECONDS: float = Field(default=10.0, alias="SMTP_TIMEOUT_SECONDS")
