"""overpass-geojson utilities."""

from .backoff import BackoffConfig, delay_after, rate_limit_delay
from .logging import get_logger, setup_logging, setup_logging_from_dict
from .metrics import ClientMetrics, MetricsConfig, SimpleMetrics, is_prometheus_available

__all__ = [
    "BackoffConfig",
    "delay_after",
    "rate_limit_delay",
    "get_logger",
    "setup_logging",
    "setup_logging_from_dict",
    "ClientMetrics",
    "MetricsConfig",
    "SimpleMetrics",
    "is_prometheus_available",
]
