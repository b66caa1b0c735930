"""Prometheus exporter settings."""

from pydantic import Field

from infrastructure.configuration.base import InfrastructureSettings


class MetricsSettings(InfrastructureSettings):
    """Metrics exporter configuration.

    Environment Variables:
        METRICS_ENABLED: Start the Prometheus HTTP exporter (default: True)
        METRICS_PORT: Exporter listen port (default: 9090)
        METRICS_NAMESPACE: Metric name prefix (default: statuspage)
    """

    enabled: bool = Field(default=True, alias="METRICS_ENABLED")
    port: int = Field(default=9090, alias="METRICS_PORT")
    namespace: str = Field(default="statuspage", alias="METRICS_NAMESPACE")
