"""
overpass-geojson: resilient Overpass API client with GeoJSON conversion.

Queries OpenStreetMap data through a pool of Overpass endpoints with
failover, backoff and an in-memory TTL/LRU cache, then converts the OSM
element list into GeoJSON features.

Basic Usage:
    import asyncio
    from overpass_geojson import OverpassClient, OSMGeoJSONService

    async def main():
        async with OverpassClient() as client:
            service = OSMGeoJSONService(client)
            result = await service.fetch("buildings", 139.76, 35.68, 139.77, 35.69, limit=100)
            print(result.summary if result else result.error)

    asyncio.run(main())

Raw Queries:
    from overpass_geojson import OverpassClient, osm_to_geojson

    async with OverpassClient.from_config("overpass-geojson.yaml") as client:
        response = await client.execute("[out:json];node(1);out;")
        geojson = osm_to_geojson(response.data)
"""

__version__ = "1.0.1"

from .cache import QueryCache
from .client import OverpassClient
from .config import OverpassConfig, find_config
from .converter import GeometryConverter, create_geojson_response, osm_to_geojson
from .endpoints import Endpoint, EndpointPool

# Errors
from .errors import (
    ConfigurationError,
    ErrorKind,
    ExhaustedError,
    OverpassError,
    ParseError,
    RateLimitError,
    TransportError,
    UpstreamServerError,
    ValidationError,
)

# Event system
from .events import (
    BackoffEvent,
    CacheEvent,
    ClientEvent,
    EndpointErrorEvent,
    EventEmitter,
    RequestCompleteEvent,
    RequestStartEvent,
)
from .query import CATEGORIES, build_query, category_query
from .service import OSMGeoJSONService
from .telemetry import UsageTelemetry

# Type definitions
from .types import (
    ConnectionCheck,
    Feature,
    FeatureCollection,
    GeoJSONResult,
    Geometry,
    GeometryType,
    QueryResponse,
    ValidationResult,
)
from .validator import BoundingBox, BoundingBoxValidator

__all__ = [
    # Version
    "__version__",
    # Main classes
    "OverpassClient",
    "OSMGeoJSONService",
    "QueryCache",
    "Endpoint",
    "EndpointPool",
    "BoundingBox",
    "BoundingBoxValidator",
    "GeometryConverter",
    "UsageTelemetry",
    # Configuration
    "OverpassConfig",
    "find_config",
    # Queries and conversion
    "CATEGORIES",
    "build_query",
    "category_query",
    "osm_to_geojson",
    "create_geojson_response",
    # Types
    "ConnectionCheck",
    "Feature",
    "FeatureCollection",
    "GeoJSONResult",
    "Geometry",
    "GeometryType",
    "QueryResponse",
    "ValidationResult",
    # Errors
    "ErrorKind",
    "OverpassError",
    "ConfigurationError",
    "ValidationError",
    "TransportError",
    "RateLimitError",
    "UpstreamServerError",
    "ParseError",
    "ExhaustedError",
    # Events
    "ClientEvent",
    "EventEmitter",
    "RequestStartEvent",
    "RequestCompleteEvent",
    "CacheEvent",
    "EndpointErrorEvent",
    "BackoffEvent",
]
