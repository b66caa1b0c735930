"""Infrastructure settings __init__ - exports all infrastructure settings."""

from infrastructure.configuration.infrastructure.metrics import MetricsSettings
from infrastructure.configuration.infrastructure.notifications import (
    NotificationSettings,
)

__all__ = [
    "MetricsSettings",
    "NotificationSettings",
]
