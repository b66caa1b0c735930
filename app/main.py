import signal
import threading

from dotenv import load_dotenv
from prometheus_client import start_http_server

from infrastructure.logging import configure_logging, get_module_logger
from infrastructure.services import get_notification_service, get_settings

load_dotenv()

logger = get_module_logger()


def main():
    """Run the notification delivery pipeline until SIGINT or SIGTERM."""
    settings = get_settings()
    configure_logging(log_level=settings.LOG_LEVEL, is_production=settings.is_production)

    logger.info(
        "application_startup",
        git_sha=settings.GIT_SHA,
        prefix=settings.PREFIX,
    )
    list_configs()

    service = get_notification_service()

    if settings.metrics.enabled:
        start_http_server(settings.metrics.port, registry=service.metrics.registry)
        logger.info("metrics_server_started", port=settings.metrics.port)

    shutdown = threading.Event()

    def handle_signal(signum, _frame):
        logger.info("shutdown_signal_received", signal=signal.Signals(signum).name)
        shutdown.set()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    service.start()
    shutdown.wait()
    service.stop()

    logger.info("application_shutdown")


def list_configs():
    """Log which channel integrations are enabled."""
    settings = get_settings()
    logger.info(
        "configuration_loaded",
        email_enabled=settings.email.EMAIL_ENABLED,
        chat_api_enabled=settings.chat_api.CHAT_API_ENABLED,
        webhook_enabled=settings.webhook.WEBHOOK_ENABLED,
        notifications_enabled=settings.notifications.enabled,
        num_workers=settings.notifications.num_workers,
    )


if __name__ == "__main__":
    main()
