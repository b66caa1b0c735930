"""
Factory functions for dependency injection.

Provides application-scoped singleton providers for core services.
"""

from functools import lru_cache
from typing import TYPE_CHECKING

from infrastructure.configuration import Settings

if TYPE_CHECKING:
    from modules.notifications.service import NotificationService


@lru_cache
def get_settings() -> Settings:
    """
    Get application-scoped settings singleton.

    This is the single source of truth for settings across the entire application.
    The @lru_cache decorator ensures only ONE instance is created per process.

    Usage:
        from infrastructure.services.providers import get_settings
        settings = get_settings()

    Returns:
        Settings: Cached settings instance loaded from environment.
    """
    return Settings()


@lru_cache
def get_notification_service() -> "NotificationService":
    """Get application-scoped notification service singleton.

    Wires the repository, senders, renderer, metrics, notifier and worker
    pool from settings. The service is built but not started; callers own
    its lifecycle (``start()`` / ``stop()``).

    Returns:
        NotificationService: Cached, fully wired service.
    """
    from modules.notifications.service import NotificationService

    return NotificationService.from_settings(get_settings())
