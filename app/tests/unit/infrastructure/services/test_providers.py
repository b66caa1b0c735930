"""
Unit tests for dependency injection providers.

Tests cover:
- get_settings() caching behavior
- get_notification_service() caching and wiring
"""

from infrastructure.configuration import Settings
from infrastructure.services.providers import get_notification_service, get_settings


class TestGetSettings:
    """Tests for get_settings() provider function."""

    def test_returns_settings_instance(self, reset_providers):
        """get_settings() returns a Settings instance."""
        assert isinstance(get_settings(), Settings)

    def test_returns_cached_instance(self, reset_providers):
        """get_settings() returns the same instance (caching)."""
        assert get_settings() is get_settings()

    def test_cache_can_be_cleared(self, reset_providers):
        """get_settings() cache can be cleared for testing."""
        instance1 = get_settings()
        get_settings.cache_clear()
        instance2 = get_settings()

        assert instance1 is not instance2

    def test_reads_environment(self, monkeypatch, reset_providers):
        """Environment variables are picked up on first call."""
        monkeypatch.setenv("NOTIFICATIONS_BATCH_SIZE", "42")
        monkeypatch.setenv("PREFIX", "dev-")

        settings = get_settings()

        assert settings.notifications.batch_size == 42
        assert settings.is_production is False


class TestGetNotificationService:
    """Tests for get_notification_service() provider function."""

    def test_returns_cached_unstarted_service(self, monkeypatch, reset_providers):
        """The service is built once and not started."""
        monkeypatch.setenv("WEBHOOK_ENABLED", "false")

        service = get_notification_service()

        assert service is get_notification_service()
        assert not service.worker.is_running

    def test_uses_cached_settings(self, monkeypatch, reset_providers):
        """The service is built from the settings singleton."""
        monkeypatch.setenv("METRICS_NAMESPACE", "custom")
        monkeypatch.setenv("NOTIFICATIONS_NUM_WORKERS", "3")

        service = get_notification_service()

        assert get_settings().metrics.namespace == "custom"
        assert service.worker.config.num_workers == 3
        assert (
            service.metrics.registry.get_sample_value(
                "custom_notifications_queue_fetched_total"
            )
            == 0
        )
