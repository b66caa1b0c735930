"""Integration settings __init__ - exports all sender settings."""

from infrastructure.configuration.integrations.chat_api import ChatApiSettings
from infrastructure.configuration.integrations.email import EmailSettings
from infrastructure.configuration.integrations.webhook import WebhookSettings

__all__ = [
    "ChatApiSettings",
    "EmailSettings",
    "WebhookSettings",
]
