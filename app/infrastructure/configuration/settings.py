"""Status page configuration settings - main aggregator."""

from pydantic_settings import BaseSettings, SettingsConfigDict

# Integration settings
from infrastructure.configuration.integrations import (
    ChatApiSettings,
    EmailSettings,
    WebhookSettings,
)

# Infrastructure settings
from infrastructure.configuration.infrastructure import (
    MetricsSettings,
    NotificationSettings,
)


class Settings(BaseSettings):
    """Status page configuration settings - main aggregator.

    Aggregates all domain-specific settings into a single configuration object.
    Settings are organized by concern:

    - **Integrations**: Outbound sender configurations (email, chat API, webhook)
    - **Infrastructure**: Core system configurations (notification queue, metrics)

    Environment Variables:
        PREFIX: Environment prefix for non-production deployments
        LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
        GIT_SHA: Git commit SHA for deployment tracking

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()

        if settings.notifications.enabled:
            batch_size = settings.notifications.batch_size

        if settings.is_production:
            # Production-specific logic...
        ```
    """

    # Application-level settings
    PREFIX: str = ""
    LOG_LEVEL: str = "INFO"
    GIT_SHA: str = "Unknown"

    # Integration settings
    email: EmailSettings
    chat_api: ChatApiSettings
    webhook: WebhookSettings

    # Infrastructure settings
    notifications: NotificationSettings
    metrics: MetricsSettings

    @property
    def is_production(self) -> bool:
        """Check if the application is running in production.

        Returns:
            True if PREFIX is empty (production), False otherwise.
        """
        return not bool(self.PREFIX)

    def __init__(self, **kwargs):
        """Initialize Settings with automatic subsettings instantiation.

        Args:
            **kwargs: Optional overrides for specific settings sections.
        """
        settings_map = {
            # Integrations
            "email": EmailSettings,
            "chat_api": ChatApiSettings,
            "webhook": WebhookSettings,
            # Infrastructure
            "notifications": NotificationSettings,
            "metrics": MetricsSettings,
        }

        for setting_name, setting_class in settings_map.items():
            if setting_name not in kwargs:
                kwargs[setting_name] = setting_class()

        super().__init__(**kwargs)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )
