"""
Upstream endpoint selection.

The pool keeps a single preferred index. Every call walks the pool starting
from that index and wrapping around; the index only moves when a request
succeeds, and it moves to the endpoint that succeeded.
"""

import threading
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Sequence

from .errors import ConfigurationError


@dataclass(frozen=True)
class Endpoint:
    """
    One Overpass instance.

    Attributes:
        url: Transport address (usually an IP literal) including the path
        host: DNS name sent in the Host header
    """
    url: str
    host: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Endpoint":
        url = data.get("url")
        host = data.get("host")
        if not url or not host:
            raise ConfigurationError(f"Endpoint needs both url and host: {data!r}")
        return cls(url=str(url), host=str(host))

    def to_dict(self) -> Dict[str, str]:
        return {"url": self.url, "host": self.host}


class EndpointPool:
    """
    Ordered endpoints with a rotating preferred index.

    Usage:
        pool = EndpointPool([primary, mirror])
        for endpoint in pool.ordered_attempt_sequence():
            ...
        pool.record_success(mirror)  # next sequence starts at mirror
    """

    def __init__(self, endpoints: Sequence[Endpoint]) -> None:
        if not endpoints:
            raise ConfigurationError("Endpoint pool needs at least one endpoint")
        self._endpoints: List[Endpoint] = list(endpoints)
        self._preferred = 0
        self._lock = threading.Lock()

    @property
    def endpoints(self) -> List[Endpoint]:
        return list(self._endpoints)

    @property
    def preferred_index(self) -> int:
        return self._preferred

    @property
    def preferred(self) -> Endpoint:
        return self._endpoints[self._preferred]

    def ordered_positions(self) -> List[int]:
        """Pool positions in attempt order, starting at the preferred index."""
        with self._lock:
            start = self._preferred
        n = len(self._endpoints)
        return [(start + i) % n for i in range(n)]

    def ordered_attempt_sequence(self) -> List[Endpoint]:
        """Every endpoint exactly once, starting at the preferred index."""
        return [self._endpoints[position] for position in self.ordered_positions()]

    def record_success(self, endpoint: Endpoint, position: Optional[int] = None) -> None:
        """
        Make ``endpoint`` the first one tried on the next call.

        Pass ``position`` when the pool lists the same endpoint more than
        once; without it the first matching entry is used.
        """
        if position is None:
            try:
                position = self._endpoints.index(endpoint)
            except ValueError:
                raise ValueError(f"Endpoint not in pool: {endpoint.host}") from None
        elif not 0 <= position < len(self._endpoints) or self._endpoints[position] != endpoint:
            raise ValueError(f"Endpoint {endpoint.host} is not at pool position {position}")
        with self._lock:
            self._preferred = position

    def __getitem__(self, position: int) -> Endpoint:
        return self._endpoints[position]

    def __len__(self) -> int:
        return len(self._endpoints)

    def __iter__(self) -> Iterator[Endpoint]:
        return iter(self._endpoints)
