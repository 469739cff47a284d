"""
Usage telemetry for the Overpass client.

``UsageTelemetry`` subscribes to client events and keeps running counters:
requests, cache hits and misses, errors, rate limits, failures per
endpoint, requests per caller and per hour, and response latency.
It is read-only with respect to the client.
"""

import logging
import threading
import time
from datetime import datetime
from typing import Any, Dict, Optional

from .errors import ErrorKind
from .events import (
    CacheEvent,
    EndpointErrorEvent,
    EventEmitter,
    RequestCompleteEvent,
    RequestStartEvent,
)
from .utils.metrics import ClientMetrics

logger = logging.getLogger(__name__)


def format_uptime(seconds: float) -> str:
    """Compact uptime string: ``1d 2h 3m``, ``2h 5m``, ``4m 10s`` or ``9s``."""
    total = int(seconds)
    minutes, secs = divmod(total, 60)
    hours, minutes = divmod(minutes, 60)
    days, hours = divmod(hours, 24)
    if days > 0:
        return f"{days}d {hours}h {minutes}m"
    if hours > 0:
        return f"{hours}h {minutes}m"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


class UsageTelemetry:
    """
    Aggregates client events into usage statistics.

    Usage:
        telemetry = UsageTelemetry()
        telemetry.attach(client.events)
        ...
        print(telemetry.get_stats())
    """

    def __init__(self, metrics: Optional[ClientMetrics] = None) -> None:
        self._metrics = metrics
        self._lock = threading.Lock()
        self._reset_counters()

    def _reset_counters(self) -> None:
        self._requests = 0
        self._cache_hits = 0
        self._cache_misses = 0
        self._errors = 0
        self._rate_limits = 0
        self._server_failures: Dict[str, int] = {}
        self._requests_by_caller: Dict[str, int] = {}
        self._requests_by_hour: Dict[int, int] = {}
        self._total_response_ms = 0
        self._start_time = time.time()

    @property
    def metrics(self) -> Optional[ClientMetrics]:
        return self._metrics

    def attach(self, emitter: EventEmitter) -> None:
        """Subscribe to every event type this collector understands."""
        emitter.add_handler(RequestStartEvent, self.on_request_start)
        emitter.add_handler(RequestCompleteEvent, self.on_request_complete)
        emitter.add_handler(CacheEvent, self.on_cache)
        emitter.add_handler(EndpointErrorEvent, self.on_endpoint_error)

    def detach(self, emitter: EventEmitter) -> None:
        emitter.remove_handler(RequestStartEvent, self.on_request_start)
        emitter.remove_handler(RequestCompleteEvent, self.on_request_complete)
        emitter.remove_handler(CacheEvent, self.on_cache)
        emitter.remove_handler(EndpointErrorEvent, self.on_endpoint_error)

    # === Event handlers ===

    def on_request_start(self, event: RequestStartEvent) -> None:
        hour = datetime.fromtimestamp(event.timestamp).hour
        with self._lock:
            self._requests += 1
            self._requests_by_caller[event.caller] = self._requests_by_caller.get(event.caller, 0) + 1
            self._requests_by_hour[hour] = self._requests_by_hour.get(hour, 0) + 1

    def on_request_complete(self, event: RequestCompleteEvent) -> None:
        with self._lock:
            self._total_response_ms += event.duration_ms
        if self._metrics:
            self._metrics.record_request(event.endpoint, event.success, event.duration_ms)

    def on_cache(self, event: CacheEvent) -> None:
        with self._lock:
            if event.hit:
                self._cache_hits += 1
            else:
                self._cache_misses += 1
        if self._metrics:
            self._metrics.record_cache_lookup(event.hit)

    def on_endpoint_error(self, event: EndpointErrorEvent) -> None:
        with self._lock:
            self._errors += 1
            self._server_failures[event.endpoint] = self._server_failures.get(event.endpoint, 0) + 1
            if event.kind == ErrorKind.RATE_LIMIT:
                self._rate_limits += 1
        if self._metrics:
            self._metrics.record_failure(event.endpoint, event.kind.value)

    # === Reporting ===

    def get_stats(self) -> Dict[str, Any]:
        """Snapshot of usage statistics."""
        with self._lock:
            uptime = time.time() - self._start_time
            requests = self._requests
            lookups = self._cache_hits + self._cache_misses
            avg_ms = self._total_response_ms / requests if requests else 0.0
            per_minute = requests / (uptime / 60) if uptime > 0 else 0.0
            return {
                "uptime": {
                    "seconds": uptime,
                    "formatted": format_uptime(uptime),
                },
                "requests": {
                    "total": requests,
                    "per_minute": round(per_minute, 2),
                    "average_response_ms": round(avg_ms, 2),
                },
                "cache": {
                    "hits": self._cache_hits,
                    "misses": self._cache_misses,
                    "hit_rate": f"{self._cache_hits / lookups * 100:.1f}%" if lookups else "0%",
                },
                "errors": {
                    "total": self._errors,
                    "rate_limits": self._rate_limits,
                    "error_rate": f"{self._errors / requests * 100:.1f}%" if requests else "0%",
                },
                "server_failures": dict(self._server_failures),
                "requests_by_caller": dict(self._requests_by_caller),
                "requests_by_hour": dict(self._requests_by_hour),
            }

    def reset(self) -> None:
        with self._lock:
            self._reset_counters()
        if self._metrics:
            self._metrics.reset()

    def log_summary(self) -> None:
        """Write a multi-line usage summary to the log."""
        stats = self.get_stats()
        cache = stats["cache"]
        lines = [
            "=== API Usage Statistics ===",
            f"Uptime: {stats['uptime']['formatted']}",
            f"Total Requests: {stats['requests']['total']} ({stats['requests']['per_minute']}/min)",
            f"Average Response Time: {stats['requests']['average_response_ms']}ms",
            f"Cache Hit Rate: {cache['hit_rate']} ({cache['hits']}/{cache['hits'] + cache['misses']})",
            f"Error Rate: {stats['errors']['error_rate']} ({stats['errors']['total']}/{stats['requests']['total']})",
            f"Rate Limits: {stats['errors']['rate_limits']}",
        ]
        if stats["server_failures"]:
            lines.append("Server Failures:")
            lines.extend(f"  {host}: {count}" for host, count in stats["server_failures"].items())
        if stats["requests_by_caller"]:
            lines.append("Requests by Caller:")
            lines.extend(f"  {caller}: {count}" for caller, count in stats["requests_by_caller"].items())
        logger.info("\n".join(lines))
