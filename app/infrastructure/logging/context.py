"""Delivery context binding for structured logging.

Binds correlation and delivery identifiers to structlog's context
variables so every log line emitted while handling a lifecycle event
or a queue item carries them.

Usage:
    from infrastructure.logging import bind_delivery_context

    with bind_delivery_context(event_id="evt-1", queue_item_id="q-1"):
        logger.info("notification_sent")

Dependencies:
    - structlog.contextvars
"""

import uuid
from contextlib import contextmanager
from typing import Optional, Any, Generator
import structlog


@contextmanager
def bind_delivery_context(
    correlation_id: Optional[str] = None,
    event_id: Optional[str] = None,
    queue_item_id: Optional[str] = None,
    channel_id: Optional[str] = None,
    **extra_context: Any,
) -> Generator[None, None, None]:
    """Bind delivery-scoped context to all logs within the context manager.

    Args:
        correlation_id: Unique identifier for this unit of work.
            Auto-generated if not provided.
        event_id: Incident or maintenance event being notified about.
        queue_item_id: Queue item being processed.
        channel_id: Target channel.
        **extra_context: Additional key-value pairs to include in logs.

    Yields:
        None - context is bound to structlog's context vars.

    Example:
        with bind_delivery_context(event_id=event.id, trigger="on_created"):
            notifier_logic()
    """
    context: dict[str, Any] = {"correlation_id": correlation_id or str(uuid.uuid4())}

    if event_id is not None:
        context["event_id"] = event_id

    if queue_item_id is not None:
        context["queue_item_id"] = queue_item_id

    if channel_id is not None:
        context["channel_id"] = channel_id

    context.update(extra_context)

    tokens = structlog.contextvars.bind_contextvars(**context)
    try:
        yield
    finally:
        # Restores values bound by an enclosing block
        structlog.contextvars.reset_contextvars(**tokens)


def get_correlation_id() -> Optional[str]:
    """Get the current correlation ID from the logging context.

    Returns:
        The correlation ID if set, None otherwise.
    """
    ctx = structlog.contextvars.get_contextvars()
    return ctx.get("correlation_id")


def set_correlation_id(correlation_id: str) -> None:
    """Set the correlation ID in the current logging context."""
    structlog.contextvars.bind_contextvars(correlation_id=correlation_id)


def clear_delivery_context() -> None:
    """Clear all delivery-scoped context from the logging context.

    Used by tests and long-lived threads that start a fresh unit of work.
    """
    structlog.contextvars.clear_contextvars()
