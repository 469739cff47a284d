"""
Resilient Overpass query client.

Combines the endpoint pool, the query cache and the HTTP transport:
cache first, then each endpoint in pool order, with backoff after rate
limits and server errors. Per-request failures are returned as a
``QueryResponse`` with ``success=False``; they are never raised.
"""

import asyncio
import json
import logging
import time
from typing import Any, Awaitable, Callable, List, Optional, Sequence

from .cache import QueryCache
from .config import OverpassConfig
from .endpoints import Endpoint, EndpointPool
from .errors import ErrorKind, OverpassError
from .events import (
    BackoffEvent,
    CacheEvent,
    EndpointErrorEvent,
    EventEmitter,
    RequestCompleteEvent,
    RequestStartEvent,
)
from .telemetry import UsageTelemetry
from .transport import OverpassTransport
from .types import ConnectionCheck, QueryResponse
from .utils.backoff import BackoffConfig, delay_after
from .utils.logging import setup_logging
from .utils.metrics import ClientMetrics, MetricsConfig

logger = logging.getLogger(__name__)

CONNECTION_TEST_QUERY = "[out:json];out count;"


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


class OverpassClient:
    """
    Query client with endpoint failover, backoff and caching.

    Usage:
        async with OverpassClient() as client:
            response = await client.execute("[out:json];node(1);out;", caller="example")
            if response:
                print(len(response.data["elements"]))
            else:
                print(response.error)

    Concurrent ``execute`` calls on one client are supported. Identical
    concurrent queries are not coalesced: each one that misses the cache
    goes to the network.
    """

    def __init__(
        self,
        endpoints: Optional[Sequence[Endpoint]] = None,
        config: Optional[OverpassConfig] = None,
        cache: Optional[QueryCache] = None,
        transport: Optional[OverpassTransport] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """
        Initialize the client.

        Args:
            endpoints: Endpoints to use (overrides config.endpoints)
            config: Optional OverpassConfig (defaults reproduce the public pool)
            cache: Pre-built cache; built from config when omitted
            transport: Pre-built transport; built from config when omitted
            sleep: Coroutine used for backoff delays
        """
        self._config = config or OverpassConfig()
        cfg = self._config

        self._pool = EndpointPool(endpoints if endpoints is not None else cfg.endpoints)

        if cache is not None:
            self._cache: Optional[QueryCache] = cache
        elif cfg.cache_enabled:
            self._cache = QueryCache(
                max_size=cfg.cache_max_size,
                ttl=cfg.cache_ttl,
                cleanup_interval=cfg.cache_cleanup_interval,
            )
        else:
            self._cache = None

        self._transport = transport or OverpassTransport(
            timeout=cfg.timeout,
            user_agent=cfg.user_agent,
            verify_tls=cfg.verify_tls,
        )
        self._backoff = BackoffConfig(
            rate_limit_base=cfg.rate_limit_backoff_base,
            rate_limit_max=cfg.rate_limit_backoff_max,
            rate_limit_multiplier=cfg.rate_limit_backoff_multiplier,
            server_error_delay=cfg.server_error_delay,
        )
        self._sleep = sleep

        self.events = EventEmitter()
        self._metrics = ClientMetrics(MetricsConfig(
            enabled=cfg.metrics_enabled,
            type=cfg.metrics_type,
            port=cfg.metrics_port,
        ))
        self.telemetry = UsageTelemetry(self._metrics)
        self.telemetry.attach(self.events)

        self._request_counter = 0
        self._started = False

    @classmethod
    def from_config(cls, config_path: str) -> "OverpassClient":
        """
        Create a client from a YAML config file and apply its logging settings.

        Args:
            config_path: Path to YAML configuration file
        """
        config = OverpassConfig.load(config_path)
        setup_logging(config)
        return cls(config=config)

    # === Properties ===

    @property
    def config(self) -> OverpassConfig:
        return self._config

    @property
    def pool(self) -> EndpointPool:
        return self._pool

    @property
    def cache(self) -> Optional[QueryCache]:
        return self._cache

    @property
    def endpoints(self) -> List[Endpoint]:
        return self._pool.endpoints

    # === Lifecycle ===

    async def start(self) -> None:
        """Start background work (cache sweep, metrics server)."""
        if self._started:
            return
        if self._cache is not None:
            self._cache.start()
        self._metrics.start_server()
        self._started = True
        logger.debug(f"Overpass client ready ({len(self._pool)} endpoints)")

    async def close(self) -> None:
        """Stop the cache sweep, drop cached entries and close the HTTP client."""
        if self._cache is not None:
            await self._cache.destroy()
        await self._transport.close()
        self._started = False

    async def __aenter__(self) -> "OverpassClient":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # === Query execution ===

    async def execute(
        self,
        query: str,
        bypass_cache: bool = False,
        caller: str = "unknown",
    ) -> QueryResponse:
        """
        Run a query against the pool.

        Args:
            query: Raw Overpass QL text; sent byte-for-byte
            bypass_cache: Skip both the cache lookup and the cache store
            caller: Label for telemetry (e.g. the tool name)

        Returns:
            QueryResponse. On failure ``error_kind`` is EXHAUSTED and
            ``error`` names the last endpoint's failure.
        """
        started = time.monotonic()
        use_cache = self._cache is not None and not bypass_cache

        if use_cache:
            cached = self._cache.get(query)
            self.events.emit(CacheEvent(caller=caller, hit=cached is not None, query=query))
            if cached is not None:
                logger.debug(f"Cache hit for {caller}: {query[:50]}")
                return QueryResponse(data=cached, from_cache=True, duration_ms=_elapsed_ms(started))
            logger.debug(f"Cache miss for {caller}: {query[:50]}")

        attempt_order = self._pool.ordered_positions()
        last_error: Optional[OverpassError] = None

        for index, position in enumerate(attempt_order):
            endpoint = self._pool[position]
            self._request_counter += 1
            request_id = self._request_counter
            self.events.emit(RequestStartEvent(
                caller=caller, request_id=request_id, endpoint=endpoint.host, query=query[:100],
            ))
            logger.info(f"Request #{request_id} started: {caller} on {endpoint.host}")
            attempt_started = time.monotonic()

            try:
                payload = await self._transport.post(endpoint, query)
            except OverpassError as e:
                last_error = e
                self.events.emit(RequestCompleteEvent(
                    caller=caller, request_id=request_id, endpoint=endpoint.host,
                    success=False, duration_ms=_elapsed_ms(attempt_started),
                ))
                self.events.emit(EndpointErrorEvent(
                    caller=caller, endpoint=endpoint.host, error=e.message, kind=e.kind,
                ))
                logger.warning(f"Failed with {endpoint.host}: {e.message}")

                if index < len(attempt_order) - 1:
                    await self._backoff_before_next(e, index, endpoint, caller)
                continue

            # Only a fully parsed response reaches this point
            self._pool.record_success(endpoint, position)
            if use_cache:
                self._cache.set(query, payload)
                self._metrics.set_cache_size(len(self._cache))

            duration_ms = _elapsed_ms(attempt_started)
            response_size = len(json.dumps(payload))
            self.events.emit(RequestCompleteEvent(
                caller=caller, request_id=request_id, endpoint=endpoint.host,
                success=True, duration_ms=duration_ms, response_size=response_size,
            ))
            logger.info(
                f"Request #{request_id} completed: SUCCESS ({duration_ms}ms, {response_size} bytes)"
            )
            return QueryResponse(
                data=payload,
                endpoint=endpoint.host,
                attempts=index + 1,
                duration_ms=_elapsed_ms(started),
            )

        reason = last_error.message if last_error else "no endpoint attempted"
        message = f"All endpoints failed. Last error: {reason}"
        logger.error(message)
        return QueryResponse(
            success=False,
            error=message,
            error_kind=ErrorKind.EXHAUSTED,
            endpoint=last_error.endpoint if last_error else None,
            attempts=len(attempt_order),
            duration_ms=_elapsed_ms(started),
            last_error=last_error,
        )

    async def _backoff_before_next(
        self,
        error: OverpassError,
        index: int,
        endpoint: Endpoint,
        caller: str,
    ) -> None:
        delay = delay_after(error, index, self._backoff)
        if delay <= 0:
            return
        if error.kind == ErrorKind.RATE_LIMIT:
            logger.info(f"Rate limited by {endpoint.host}, waiting {delay:.1f}s before next endpoint")
        else:
            logger.info(f"Server error from {endpoint.host}, waiting {delay:.1f}s before next endpoint")
        self.events.emit(BackoffEvent(caller=caller, endpoint=endpoint.host, delay=delay, kind=error.kind))
        await self._sleep(delay)

    # === Diagnostics ===

    async def test_connection(self) -> List[ConnectionCheck]:
        """
        Probe every endpoint with a minimal query.

        Does not touch the cache or the preferred endpoint.
        """
        results: List[ConnectionCheck] = []
        for endpoint in self._pool:
            started = time.monotonic()
            try:
                await self._transport.post(endpoint, CONNECTION_TEST_QUERY)
            except OverpassError as e:
                results.append(ConnectionCheck(
                    host=endpoint.host, ok=False, error=e.message, duration_ms=_elapsed_ms(started),
                ))
            else:
                results.append(ConnectionCheck(host=endpoint.host, ok=True, duration_ms=_elapsed_ms(started)))
        return results

    def get_cache_stats(self) -> dict:
        if self._cache is None:
            return {"enabled": False, "size": 0}
        return {"enabled": True, **self._cache.stats()}

    def get_api_stats(self) -> dict:
        return self.telemetry.get_stats()

    def get_metrics(self) -> dict:
        return self._metrics.get_all()

    def log_stats(self) -> None:
        self.telemetry.log_summary()

    def clear_cache(self) -> None:
        if self._cache is not None:
            self._cache.clear()
