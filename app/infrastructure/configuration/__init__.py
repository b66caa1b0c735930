"""Infrastructure configuration module - public API.

Centralized configuration management using Pydantic BaseSettings with
domain-based organization.

Exports:
    Settings: Main settings class (for testing/overrides)
    NotificationSettings: Notification pipeline settings class (for testing)

Example:
    ```python
    from infrastructure.services import get_settings

    settings = get_settings()

    max_attempts = settings.notifications.max_attempts
    smtp_host = settings.email.SMTP_HOST
    ```
"""

from infrastructure.configuration.settings import Settings
from infrastructure.configuration.infrastructure.notifications import (
    NotificationSettings,
)

__all__ = ["Settings", "NotificationSettings"]
