"""
overpass-geojson event system.

The client emits events during query execution for:
- Request lifecycle (start / complete per endpoint attempt)
- Cache lookups (hit / miss)
- Endpoint failures and the backoff that follows
Handlers observe; they never influence control flow.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Type, TypeVar

from .errors import ErrorKind

logger = logging.getLogger(__name__)


@dataclass
class ClientEvent:
    """Base event class for all client events."""
    timestamp: float = field(default_factory=time.time)
    caller: str = "unknown"


@dataclass
class RequestStartEvent(ClientEvent):
    """An attempt against one endpoint is about to be sent."""
    request_id: int = 0
    endpoint: str = ""
    query: str = ""


@dataclass
class RequestCompleteEvent(ClientEvent):
    """An attempt finished, successfully or not."""
    request_id: int = 0
    endpoint: str = ""
    success: bool = False
    duration_ms: int = 0
    response_size: int = 0


@dataclass
class CacheEvent(ClientEvent):
    """Result of a cache lookup."""
    hit: bool = False
    query: str = ""


@dataclass
class EndpointErrorEvent(ClientEvent):
    """An endpoint attempt failed."""
    endpoint: str = ""
    error: str = ""
    kind: ErrorKind = ErrorKind.TRANSPORT


@dataclass
class BackoffEvent(ClientEvent):
    """The client is sleeping before trying the next endpoint."""
    endpoint: str = ""
    delay: float = 0.0
    kind: ErrorKind = ErrorKind.RATE_LIMIT


E = TypeVar("E", bound=ClientEvent)


class EventEmitter:
    """
    Simple pub/sub for client events.

    Usage:
        emitter = EventEmitter()

        @emitter.on(CacheEvent)
        def on_cache(event: CacheEvent):
            print("hit" if event.hit else "miss")

        emitter.emit(CacheEvent(hit=True))
    """

    def __init__(self) -> None:
        self._handlers: Dict[Type[ClientEvent], List[Callable[..., None]]] = {}
        self._global_handlers: List[Callable[[ClientEvent], None]] = []
        self._lock = threading.Lock()

    def on(self, event_type: Type[E]) -> Callable[[Callable[[E], None]], Callable[[E], None]]:
        """Decorator to register an event handler."""
        def decorator(func: Callable[[E], None]) -> Callable[[E], None]:
            self.add_handler(event_type, func)
            return func
        return decorator

    def on_any(self, func: Callable[[ClientEvent], None]) -> Callable[[ClientEvent], None]:
        """Register a handler for all events."""
        with self._lock:
            self._global_handlers.append(func)
        return func

    def add_handler(self, event_type: Type[E], handler: Callable[[E], None]) -> None:
        with self._lock:
            self._handlers.setdefault(event_type, []).append(handler)

    def remove_handler(self, event_type: Type[E], handler: Callable[[E], None]) -> None:
        with self._lock:
            if event_type in self._handlers:
                self._handlers[event_type] = [
                    h for h in self._handlers[event_type] if h != handler
                ]

    def emit(self, event: ClientEvent) -> None:
        """
        Emit an event to all registered handlers.

        Handler lists are snapshotted under the lock and called without it.
        A failing handler is logged and skipped.
        """
        with self._lock:
            global_snapshot = list(self._global_handlers)
            specific_snapshot = list(self._handlers.get(type(event), []))

        for handler in global_snapshot + specific_snapshot:
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Event handler error ({type(event).__name__}): {e}")

    def clear_handlers(self, event_type: Optional[Type[E]] = None) -> None:
        with self._lock:
            if event_type is not None:
                self._handlers[event_type] = []
            else:
                self._handlers.clear()
                self._global_handlers.clear()

    def handler_count(self, event_type: Optional[Type[E]] = None) -> int:
        with self._lock:
            if event_type is not None:
                return len(self._handlers.get(event_type, []))
            return sum(len(h) for h in self._handlers.values()) + len(self._global_handlers)
