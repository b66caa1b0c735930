"""Infrastructure modules for the status page notifier.

Centralized infrastructure components:
- configuration: Settings management (Settings and per-concern sections)
- logging: Structured logging setup and delivery context binding
- operations: Operation results and transport error classification
- services: Application-scoped providers (get_settings, get_notification_service)
"""
