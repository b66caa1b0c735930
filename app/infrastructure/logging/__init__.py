"""Structured logging infrastructure.

This package provides centralized logging configuration and utilities
for the notifier using structlog.

Public API:
    - configure_logging(): Initialize logging for the application
    - get_logger(): Get a logger instance with a specific name
    - get_module_logger(): Get a logger for the calling module
    - bind_delivery_context(): Context manager for delivery-scoped logging
    - get_correlation_id(): Get current correlation ID from context
    - set_correlation_id(): Set correlation ID in context
    - clear_delivery_context(): Clear all delivery context

Processors:
    - add_app_info(): Processor to add app name/version
    - mask_sensitive_data(): Processor to redact sensitive fields
    - redact_url_secrets(): Processor to scrub tokens embedded in URLs
    - truncate_large_values(): Processor to limit string lengths

Example:
    from infrastructure.logging import configure_logging, get_module_logger

    # At application startup
    configure_logging()

    # In a module
    logger = get_module_logger()
    logger.info("module_initialized")
"""

from infrastructure.logging.setup import (
    configure_logging,
    get_logger,
    get_module_logger,
)

from infrastructure.logging.context import (
    bind_delivery_context,
    get_correlation_id,
    set_correlation_id,
    clear_delivery_context,
)

from infrastructure.logging.formatters import (
    add_app_info,
    mask_sensitive_data,
    redact_url_secrets,
    truncate_large_values,
    SENSITIVE_PATTERNS,
)

__all__ = [
    # Setup
    "configure_logging",
    "get_logger",
    "get_module_logger",
    # Context
    "bind_delivery_context",
    "get_correlation_id",
    "set_correlation_id",
    "clear_delivery_context",
    # Processors
    "add_app_info",
    "mask_sensitive_data",
    "redact_url_secrets",
    "truncate_large_values",
    "SENSITIVE_PATTERNS",
]
