"""Tests for overpass_geojson.transport module."""

import json

import httpx
import pytest

from overpass_geojson.endpoints import Endpoint
from overpass_geojson.errors import (
    ErrorKind,
    ParseError,
    RateLimitError,
    TransportError,
    UpstreamServerError,
)
from overpass_geojson.transport import OverpassTransport

ENDPOINT = Endpoint(url="https://10.0.0.1/api/interpreter", host="overpass.example")
QUERY = '[out:json];node["name"="東京駅"];out;'


def make_transport(handler, **kwargs) -> OverpassTransport:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return OverpassTransport(client=client, **kwargs)


def respond(status: int, body):
    def handler(request: httpx.Request) -> httpx.Response:
        if isinstance(body, (dict, list)):
            return httpx.Response(status, json=body)
        return httpx.Response(status, text=body)
    return handler


class TestHeaders:
    """Tests for request shape."""

    def test_build_headers(self):
        """Headers carry content type, length, user agent and Host override."""
        transport = OverpassTransport(user_agent="Agent/2.0")
        body = QUERY.encode("utf-8")
        headers = transport.build_headers(ENDPOINT, body)
        assert headers == {
            "Content-Type": "text/plain",
            "Content-Length": str(len(body)),
            "User-Agent": "Agent/2.0",
            "Host": "overpass.example",
        }

    @pytest.mark.asyncio
    async def test_request_sent(self):
        """POST goes to the endpoint URL with the raw UTF-8 query as body."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["url"] = str(request.url)
            seen["body"] = request.content
            seen["host"] = request.headers["host"]
            seen["user_agent"] = request.headers["user-agent"]
            seen["content_type"] = request.headers["content-type"]
            return httpx.Response(200, json={"elements": []})

        async with make_transport(handler) as transport:
            await transport.post(ENDPOINT, QUERY)

        assert seen["method"] == "POST"
        assert seen["url"] == ENDPOINT.url
        assert seen["body"] == QUERY.encode("utf-8")
        assert seen["host"] == "overpass.example"
        assert seen["user_agent"] == "OSM-MCP/1.0"
        assert seen["content_type"] == "text/plain"


class TestResponses:
    """Tests for status and body classification."""

    @pytest.mark.asyncio
    async def test_success(self):
        """HTTP 200 with elements returns the parsed payload."""
        payload = {"version": 0.6, "elements": [{"type": "node", "id": 1, "lat": 0, "lon": 0}]}
        transport = make_transport(respond(200, payload))
        assert await transport.post(ENDPOINT, QUERY) == payload
        await transport.close()

    @pytest.mark.asyncio
    async def test_rate_limited(self):
        """HTTP 429 raises RateLimitError."""
        transport = make_transport(respond(429, "Too Many Requests"))
        with pytest.raises(RateLimitError) as exc_info:
            await transport.post(ENDPOINT, QUERY)
        assert exc_info.value.kind == ErrorKind.RATE_LIMIT
        assert exc_info.value.message == "HTTP 429: Too Many Requests"
        assert exc_info.value.endpoint == "overpass.example"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [500, 502, 503, 504])
    async def test_server_error(self, status):
        """5xx raises UpstreamServerError with the status code."""
        transport = make_transport(respond(status, "busy"))
        with pytest.raises(UpstreamServerError) as exc_info:
            await transport.post(ENDPOINT, QUERY)
        assert exc_info.value.status_code == status
        assert exc_info.value.kind == ErrorKind.SERVER

    @pytest.mark.asyncio
    async def test_other_status(self):
        """Other non-200 statuses are plain transport errors."""
        transport = make_transport(respond(400, "bad query"))
        with pytest.raises(TransportError) as exc_info:
            await transport.post(ENDPOINT, QUERY)
        assert type(exc_info.value) is TransportError
        assert exc_info.value.message.startswith("HTTP 400")

    @pytest.mark.asyncio
    async def test_error_body_truncated(self):
        """Error messages keep at most 200 characters of the body."""
        transport = make_transport(respond(400, "x" * 1000))
        with pytest.raises(TransportError) as exc_info:
            await transport.post(ENDPOINT, QUERY)
        assert exc_info.value.message == "HTTP 400: " + "x" * 200

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        """A 200 that is not JSON raises ParseError."""
        transport = make_transport(respond(200, "<html>maintenance</html>"))
        with pytest.raises(ParseError) as exc_info:
            await transport.post(ENDPOINT, QUERY)
        assert exc_info.value.message.startswith("Failed to parse response")
        assert exc_info.value.kind == ErrorKind.PARSE

    @pytest.mark.asyncio
    async def test_missing_elements(self):
        """A JSON body without an elements list raises ParseError."""
        transport = make_transport(respond(200, {"remark": "runtime error"}))
        with pytest.raises(ParseError):
            await transport.post(ENDPOINT, QUERY)

    @pytest.mark.asyncio
    async def test_timeout(self):
        """A timeout becomes a TransportError naming the timeout."""
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        transport = make_transport(handler, timeout=5)
        with pytest.raises(TransportError) as exc_info:
            await transport.post(ENDPOINT, QUERY)
        assert exc_info.value.message.startswith("Request timeout after 5s")

    @pytest.mark.asyncio
    async def test_connection_error(self):
        """Connection failures become TransportError."""
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        transport = make_transport(handler)
        with pytest.raises(TransportError) as exc_info:
            await transport.post(ENDPOINT, QUERY)
        assert "ConnectError" in exc_info.value.message
        assert exc_info.value.endpoint == "overpass.example"


class TestParsePayload:
    """Tests for OverpassTransport.parse_payload()."""

    def test_list_body_rejected(self):
        with pytest.raises(ParseError):
            OverpassTransport.parse_payload(json.dumps([1, 2]).encode(), ENDPOINT)

    def test_empty_elements_ok(self):
        payload = OverpassTransport.parse_payload(b'{"elements": []}', ENDPOINT)
        assert payload == {"elements": []}


class TestClose:
    """Tests for client ownership."""

    @pytest.mark.asyncio
    async def test_injected_client_not_closed(self):
        """An injected client belongs to the caller."""
        client = httpx.AsyncClient(transport=httpx.MockTransport(respond(200, {"elements": []})))
        transport = OverpassTransport(client=client)
        await transport.close()
        assert not client.is_closed
        await client.aclose()

    @pytest.mark.asyncio
    async def test_owned_client_closed(self):
        transport = OverpassTransport()
        await transport.close()
        assert transport._client.is_closed
