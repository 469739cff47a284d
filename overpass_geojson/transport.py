"""
HTTP transport for Overpass endpoints.

One POST per attempt. Endpoints are addressed by IP literal with the real
DNS name in the Host header, so certificate verification is disabled by
default (``verify_tls=False``). Callers that point the pool at DNS URLs
can turn it back on.
"""

import json
import logging
from typing import Any, Dict, Optional

import httpx

from .endpoints import Endpoint
from .errors import ParseError, RateLimitError, TransportError, UpstreamServerError

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "OSM-MCP/1.0"


class OverpassTransport:
    """
    Async HTTP transport built on a shared ``httpx.AsyncClient``.

    Raises a typed TransportError subclass for every failed attempt and
    returns the parsed payload on success.
    """

    def __init__(
        self,
        timeout: float = 60.0,
        user_agent: str = DEFAULT_USER_AGENT,
        verify_tls: bool = False,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._timeout = timeout
        self._user_agent = user_agent
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout, verify=verify_tls)

    @property
    def timeout(self) -> float:
        return self._timeout

    def build_headers(self, endpoint: Endpoint, body: bytes) -> Dict[str, str]:
        return {
            "Content-Type": "text/plain",
            "Content-Length": str(len(body)),
            "User-Agent": self._user_agent,
            "Host": endpoint.host,
        }

    async def post(self, endpoint: Endpoint, query: str) -> Dict[str, Any]:
        """
        Send ``query`` to one endpoint.

        Returns:
            Parsed Overpass JSON payload (an object with an ``elements`` list)

        Raises:
            RateLimitError: HTTP 429
            UpstreamServerError: HTTP 5xx
            ParseError: HTTP 200 with a body that is not an Overpass payload
            TransportError: Timeout, connection failure or other status
        """
        body = query.encode("utf-8")
        try:
            response = await self._client.post(
                endpoint.url,
                content=body,
                headers=self.build_headers(endpoint, body),
                timeout=self._timeout,
            )
        except httpx.TimeoutException as e:
            raise TransportError(f"Request timeout after {self._timeout}s: {e}", endpoint=endpoint.host) from e
        except httpx.HTTPError as e:
            raise TransportError(f"{type(e).__name__}: {e}", endpoint=endpoint.host) from e

        status = response.status_code
        if status != 200:
            message = f"HTTP {status}: {response.text[:200]}"
            if status == 429:
                raise RateLimitError(message, endpoint=endpoint.host)
            if 500 <= status < 600:
                raise UpstreamServerError(message, endpoint=endpoint.host, status_code=status)
            raise TransportError(message, endpoint=endpoint.host)

        return self.parse_payload(response.content, endpoint)

    @staticmethod
    def parse_payload(content: bytes, endpoint: Endpoint) -> Dict[str, Any]:
        try:
            payload = json.loads(content)
        except ValueError as e:
            raise ParseError(f"Failed to parse response: {e}", endpoint=endpoint.host) from e
        if not isinstance(payload, dict) or not isinstance(payload.get("elements"), list):
            raise ParseError("Failed to parse response: missing 'elements' list", endpoint=endpoint.host)
        return payload

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "OverpassTransport":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()
