"""Custom log processors for structured logging.

Delivery failures log upstream error text, which can embed the chat bot
token (it is part of the API URL) or an incoming webhook key. These
processors keep such values out of the output.

Dependencies:
    - structlog processors
"""

import re
from typing import Any


def add_app_info(app_name: str, app_version: str = "unknown"):
    """Create a processor that stamps every entry with the app name and git SHA."""

    def processor(
        logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        event_dict["app_name"] = app_name
        event_dict["app_version"] = app_version
        return event_dict

    return processor


# Key fragments whose values never reach the log output
SENSITIVE_PATTERNS = frozenset(
    {
        "password",
        "smtp_pass",
        "bot_token",
        "token",
        "secret",
        "authorization",
    }
)

# /bot<id>:<secret>/ in chat API URLs and /hooks/<key> in webhook URLs
_URL_SECRETS = (
    (re.compile(r"/bot\d+:[A-Za-z0-9_-]+"), "/bot***"),
    (re.compile(r"/hooks/[A-Za-z0-9]+"), "/hooks/***"),
)


def mask_sensitive_data(
    mask_value: str = "***REDACTED***",
    additional_patterns: frozenset[str] | None = None,
):
    """Create a processor that masks values of sensitive keys.

    Keys match case-insensitively on any fragment in SENSITIVE_PATTERNS
    (plus ``additional_patterns``). ``None`` values are left alone.
    """
    patterns = SENSITIVE_PATTERNS
    if additional_patterns:
        patterns = patterns | additional_patterns

    def processor(
        logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        for key, value in event_dict.items():
            if value is None:
                continue
            if any(pattern in key.lower() for pattern in patterns):
                event_dict[key] = mask_value
        return event_dict

    return processor


def redact_url_secrets():
    """Create a processor that scrubs tokens embedded in URLs inside string values."""

    def processor(
        logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        for key, value in event_dict.items():
            if not isinstance(value, str):
                continue
            for pattern, replacement in _URL_SECRETS:
                value = pattern.sub(replacement, value)
            event_dict[key] = value
        return event_dict

    return processor


def truncate_large_values(max_length: int = 500):
    """Create a processor that cuts long strings such as upstream error bodies."""

    def processor(
        logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        for key, value in event_dict.items():
            if isinstance(value, str) and len(value) > max_length:
                event_dict[key] = (
                    value[:max_length] + f"...[truncated, {len(value)} chars total]"
                )
        return event_dict

    return processor
