"""Subscriber channel models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List


class ChannelType(str, Enum):
    """Delivery transport of a channel.

    Values:
        EMAIL: SMTP email, target is an address
        CHAT_API: Chat Bot API, target is a chat id
        WEBHOOK: Incoming webhook, target is the webhook URL
    """

    EMAIL = "email"
    CHAT_API = "chat_api"
    WEBHOOK = "webhook"


@dataclass
class Channel:
    """A subscriber's delivery target and its subscription settings.

    Only channels that are both enabled and verified receive queued
    notifications; the worker checks this at delivery time.
    """

    id: str
    user_id: str
    type: ChannelType
    target: str
    is_enabled: bool = True
    is_verified: bool = False
    subscribe_to_all_services: bool = False
    subscribed_service_ids: List[str] = field(default_factory=list)

    def is_subscribed_to_any(self, service_ids: List[str]) -> bool:
        if self.subscribe_to_all_services:
            return True
        return bool(set(self.subscribed_service_ids) & set(service_ids))


@dataclass(frozen=True)
class ChannelInfo:
    """Subscriber resolution result handed to the notifier and dispatcher."""

    id: str
    user_id: str
    type: ChannelType
    target: str
    email: str = ""
