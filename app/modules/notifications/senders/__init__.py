"""Notification senders, one per channel type."""

from modules.notifications.senders.base import Notification, Sender
from modules.notifications.senders.chat_api import ChatApiSender
from modules.notifications.senders.email import EmailSender
from modules.notifications.senders.webhook import WebhookSender

__all__ = [
    "ChatApiSender",
    "EmailSender",
    "Notification",
    "Sender",
    "WebhookSender",
]
