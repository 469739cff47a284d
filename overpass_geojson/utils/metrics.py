"""
Metrics collection and export for overpass-geojson.

Provides optional Prometheus integration.
Uses simple in-memory metrics unless prometheus_client is installed and selected.
"""

import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

_PROMETHEUS_AVAILABLE = False
try:
    from prometheus_client import Counter, Gauge, Histogram, start_http_server
    _PROMETHEUS_AVAILABLE = True
except ImportError:
    pass


@dataclass
class MetricsConfig:
    """
    Metrics configuration.

    Attributes:
        enabled: Whether metrics collection is active
        type: Metrics backend type ("prometheus", "simple")
        port: HTTP port for metrics endpoint (Prometheus)
    """
    enabled: bool = False
    type: str = "simple"
    port: int = 9090


class SimpleMetrics:
    """
    Simple in-memory metrics collector (no external dependencies).

    Provides basic counters and histograms for monitoring.
    """

    def __init__(self) -> None:
        self._counters: Dict[str, int] = {}
        self._histograms: Dict[str, list] = {}
        self._gauges: Dict[str, float] = {}
        self._start_time = time.time()

    def inc_counter(self, name: str, value: int = 1, labels: Optional[Dict[str, str]] = None) -> None:
        """Increment a counter."""
        key = self._make_key(name, labels)
        self._counters[key] = self._counters.get(key, 0) + value

    def observe_histogram(self, name: str, value: float, labels: Optional[Dict[str, str]] = None) -> None:
        """Record a histogram observation."""
        key = self._make_key(name, labels)
        self._histograms.setdefault(key, []).append(value)

    def set_gauge(self, name: str, value: float, labels: Optional[Dict[str, str]] = None) -> None:
        key = self._make_key(name, labels)
        self._gauges[key] = value

    def get_counter(self, name: str, labels: Optional[Dict[str, str]] = None) -> int:
        key = self._make_key(name, labels)
        return self._counters.get(key, 0)

    def get_histogram_stats(self, name: str, labels: Optional[Dict[str, str]] = None) -> Dict[str, float]:
        """Get histogram statistics."""
        key = self._make_key(name, labels)
        values = self._histograms.get(key, [])
        if not values:
            return {"count": 0, "sum": 0, "min": 0, "max": 0, "avg": 0}
        return {
            "count": len(values),
            "sum": sum(values),
            "min": min(values),
            "max": max(values),
            "avg": sum(values) / len(values),
        }

    def get_gauge(self, name: str, labels: Optional[Dict[str, str]] = None) -> float:
        key = self._make_key(name, labels)
        return self._gauges.get(key, 0.0)

    def get_all(self) -> Dict[str, Any]:
        """Get all metrics as a dictionary."""
        return {
            "counters": dict(self._counters),
            "histograms": {k: self.get_histogram_stats(k) for k in self._histograms},
            "gauges": dict(self._gauges),
            "uptime_seconds": time.time() - self._start_time,
        }

    def reset(self) -> None:
        """Reset all metrics."""
        self._counters.clear()
        self._histograms.clear()
        self._gauges.clear()
        self._start_time = time.time()

    @staticmethod
    def _make_key(name: str, labels: Optional[Dict[str, str]] = None) -> str:
        """Create a unique key for a metric with labels."""
        if not labels:
            return name
        label_str = ",".join(f"{k}={v}" for k, v in sorted(labels.items()))
        return f"{name}{{{label_str}}}"


class PrometheusMetrics:
    """
    Prometheus metrics collector.

    Requires prometheus_client package:
        pip install prometheus-client
    """

    def __init__(self, port: int = 9090) -> None:
        if not _PROMETHEUS_AVAILABLE:
            raise ImportError(
                "prometheus_client not installed. "
                "Install with: pip install prometheus-client"
            )

        self._port = port
        self._server_started = False

        self._requests_total = Counter(
            "overpass_requests_total",
            "Upstream requests",
            ["endpoint", "status"],
        )
        self._request_duration = Histogram(
            "overpass_request_duration_seconds",
            "Upstream request duration in seconds",
            ["endpoint"],
        )
        self._cache_lookups = Counter(
            "overpass_cache_lookups_total",
            "Cache lookups",
            ["result"],
        )
        self._endpoint_failures = Counter(
            "overpass_endpoint_failures_total",
            "Failed attempts per endpoint",
            ["endpoint", "kind"],
        )
        self._cache_size = Gauge(
            "overpass_cache_entries",
            "Resident cache entries",
        )

    def start_server(self) -> None:
        """Start the Prometheus HTTP server."""
        if not self._server_started:
            start_http_server(self._port)
            self._server_started = True

    def record_request(self, endpoint: str, success: bool, duration_ms: int) -> None:
        status = "success" if success else "error"
        self._requests_total.labels(endpoint=endpoint, status=status).inc()
        self._request_duration.labels(endpoint=endpoint).observe(duration_ms / 1000)

    def record_cache_lookup(self, hit: bool) -> None:
        self._cache_lookups.labels(result="hit" if hit else "miss").inc()

    def record_failure(self, endpoint: str, kind: str) -> None:
        self._endpoint_failures.labels(endpoint=endpoint, kind=kind).inc()

    def set_cache_size(self, size: int) -> None:
        self._cache_size.set(size)


class ClientMetrics:
    """
    Overpass client metrics collector.

    Automatically chooses backend based on configuration and available libraries.
    """

    def __init__(self, config: Optional[MetricsConfig] = None) -> None:
        self._config = config or MetricsConfig()
        self._backend: Any = None

        if self._config.enabled and self._config.type == "prometheus" and _PROMETHEUS_AVAILABLE:
            self._backend = PrometheusMetrics(port=self._config.port)
        else:
            self._backend = SimpleMetrics()

    @property
    def is_enabled(self) -> bool:
        return self._config.enabled

    @property
    def backend_type(self) -> str:
        if isinstance(self._backend, PrometheusMetrics):
            return "prometheus"
        return "simple"

    def start_server(self) -> None:
        """Start metrics HTTP server (Prometheus only)."""
        if isinstance(self._backend, PrometheusMetrics):
            self._backend.start_server()

    def record_request(self, endpoint: str, success: bool, duration_ms: int) -> None:
        """Record a completed upstream attempt."""
        if isinstance(self._backend, PrometheusMetrics):
            self._backend.record_request(endpoint, success, duration_ms)
        else:
            status = "success" if success else "error"
            self._backend.inc_counter("requests_total", labels={"endpoint": endpoint, "status": status})
            self._backend.observe_histogram("request_duration_ms", duration_ms, labels={"endpoint": endpoint})

    def record_cache_lookup(self, hit: bool) -> None:
        if isinstance(self._backend, PrometheusMetrics):
            self._backend.record_cache_lookup(hit)
        else:
            self._backend.inc_counter("cache_lookups", labels={"result": "hit" if hit else "miss"})

    def record_failure(self, endpoint: str, kind: str) -> None:
        if isinstance(self._backend, PrometheusMetrics):
            self._backend.record_failure(endpoint, kind)
        else:
            self._backend.inc_counter("endpoint_failures", labels={"endpoint": endpoint, "kind": kind})

    def set_cache_size(self, size: int) -> None:
        if isinstance(self._backend, PrometheusMetrics):
            self._backend.set_cache_size(size)
        else:
            self._backend.set_gauge("cache_entries", size)

    def get_all(self) -> Dict[str, Any]:
        """Get all metrics (simple backend only)."""
        if isinstance(self._backend, SimpleMetrics):
            return self._backend.get_all()
        return {"note": "Use Prometheus endpoint for metrics"}

    def reset(self) -> None:
        if isinstance(self._backend, SimpleMetrics):
            self._backend.reset()


def is_prometheus_available() -> bool:
    """Check if prometheus_client is installed."""
    return _PROMETHEUS_AVAILABLE
