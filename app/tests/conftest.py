"""Shared fixtures for the whole test suite."""

import pytest
import structlog

from infrastructure.services import get_notification_service, get_settings


@pytest.fixture(autouse=True)
def clear_logging_context():
    """Start and end every test with an empty structlog context."""
    structlog.contextvars.clear_contextvars()
    yield
    structlog.contextvars.clear_contextvars()


@pytest.fixture
def reset_providers():
    """Clear cached provider singletons around a test.

    Use together with monkeypatch.setenv so providers rebuild from the
    patched environment.
    """
    get_settings.cache_clear()
    get_notification_service.cache_clear()
    yield
    get_settings.cache_clear()
    get_notification_service.cache_clear()
