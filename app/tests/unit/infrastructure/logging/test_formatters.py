"""Unit tests for infrastructure.logging.formatters module.

Tests cover:
- add_app_info() processor
- mask_sensitive_data() processor
- redact_url_secrets() processor
- truncate_large_values() processor
- SENSITIVE_PATTERNS constant
"""

import pytest

from infrastructure.logging.formatters import (
    SENSITIVE_PATTERNS,
    add_app_info,
    mask_sensitive_data,
    redact_url_secrets,
    truncate_large_values,
)


@pytest.mark.unit
class TestAddAppInfo:
    """Test suite for add_app_info processor."""

    def test_adds_name_and_version(self):
        """Processor adds app_name and app_version."""
        processor = add_app_info("statuspage-notifier", "abc123")

        result = processor(None, "info", {"event": "test"})

        assert result["app_name"] == "statuspage-notifier"
        assert result["app_version"] == "abc123"
        assert result["event"] == "test"

    def test_unknown_version_default(self):
        """Version defaults to 'unknown'."""
        result = add_app_info("statuspage-notifier")(None, "info", {})

        assert result["app_version"] == "unknown"


@pytest.mark.unit
class TestMaskSensitiveData:
    """Test suite for mask_sensitive_data processor."""

    @pytest.mark.parametrize(
        "key",
        ["password", "smtp_password", "bot_token", "CHAT_API_BOT_TOKEN", "SMTP_PASS", "Authorization"],
    )
    def test_masks_sensitive_keys(self, key):
        """Keys containing a sensitive fragment are masked, case-insensitively."""
        result = mask_sensitive_data()(None, "info", {key: "s3cr3t"})

        assert result[key] == "***REDACTED***"

    def test_preserves_non_sensitive(self):
        """Other keys pass through unchanged."""
        event = {"event": "notification_sent", "channel_id": "ch-1", "attempt": 2}

        assert mask_sensitive_data()(None, "info", dict(event)) == event

    def test_preserves_none_values(self):
        """None values are left as None."""
        result = mask_sensitive_data()(None, "info", {"password": None})

        assert result["password"] is None

    def test_custom_mask_and_patterns(self):
        """Custom mask value and extra patterns are honoured."""
        processor = mask_sensitive_data(
            mask_value="[hidden]", additional_patterns=frozenset({"chat_id"})
        )

        result = processor(None, "info", {"chat_id": "-100123", "target": "x"})

        assert result == {"chat_id": "[hidden]", "target": "x"}


@pytest.mark.unit
class TestRedactUrlSecrets:
    """Test suite for redact_url_secrets processor."""

    def test_scrubs_bot_token(self):
        """Bot tokens inside API URLs are replaced."""
        event = {
            "error": "chat api connection error: https://api.example.org/bot123456:AAH-x_9/sendMessage"
        }

        result = redact_url_secrets()(None, "info", event)

        assert result["error"] == "chat api connection error: https://api.example.org/bot***/sendMessage"

    def test_scrubs_webhook_key(self):
        result = redact_url_secrets()(
            None, "info", {"url": "https://chat.example.com/hooks/abc123XYZ"}
        )

        assert result["url"] == "https://chat.example.com/hooks/***"

    def test_leaves_other_values(self):
        event = {"event": "notification_sent", "attempt": 1}

        assert redact_url_secrets()(None, "info", dict(event)) == event


@pytest.mark.unit
class TestTruncateLargeValues:
    """Test suite for truncate_large_values processor."""

    def test_truncates_long_strings(self):
        """Strings over the limit are cut and annotated with their length."""
        result = truncate_large_values(max_length=10)(None, "info", {"error": "x" * 25})

        assert result["error"] == "x" * 10 + "...[truncated, 25 chars total]"

    def test_preserves_short_strings_and_non_strings(self):
        """Short strings and other types are untouched."""
        event = {"error": "short", "count": 10_000, "items": ["a" * 1000]}

        assert truncate_large_values(max_length=10)(None, "info", dict(event)) == event

    def test_default_length(self):
        """The default limit is 500 characters."""
        result = truncate_large_values()(None, "info", {"body": "y" * 501})

        assert result["body"].startswith("y" * 500 + "...[truncated")


@pytest.mark.unit
class TestSensitivePatterns:
    def test_is_frozenset(self):
        assert isinstance(SENSITIVE_PATTERNS, frozenset)

    def test_covers_sender_credentials(self):
        """SMTP passwords and bot tokens are covered."""
        assert {"password", "token", "secret"} <= SENSITIVE_PATTERNS
