"""
Feature-category fetch service.

``OSMGeoJSONService`` ties the validator, the query builder, the client and
the converter together: one call per feature category returns a
``GeoJSONResult`` ready to serialize.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from . import __version__
from .client import OverpassClient
from .converter import create_geojson_response, osm_to_geojson
from .errors import ErrorKind, ValidationError
from .query import FilterValue, get_category
from .types import GeoJSONResult
from .validator import BoundingBox, BoundingBoxValidator

logger = logging.getLogger(__name__)

SERVICE_NAME = "overpass-geojson"

# Summary key under which each category reports its filter value
FILTER_KEYS: Dict[str, str] = {
    "buildings": "building_type",
    "roads": "road_types",
    "amenities": "amenity_type",
    "waterways": "waterway_type",
    "greenspaces": "green_space_type",
    "railways": "railway_type",
    "boundaries": "admin_level",
}

ADMIN_LEVEL_DESCRIPTIONS: Dict[str, str] = {
    "2": "National border",
    "4": "State or prefecture border",
    "6": "County border",
    "7": "City district border",
    "8": "Municipality border",
    "9": "Neighbourhood border",
    "10": "Other small subdivision",
    "all": "All administrative boundaries",
}


class OSMGeoJSONService:
    """
    Fetch OSM features by category as GeoJSON.

    Usage:
        async with OverpassClient() as client:
            service = OSMGeoJSONService(client)
            result = await service.fetch("buildings", 139.76, 35.68, 139.77, 35.69, limit=100)
            if result:
                print(result.summary["feature_count"])
    """

    def __init__(
        self,
        client: OverpassClient,
        validator: Optional[BoundingBoxValidator] = None,
    ) -> None:
        self._client = client
        self._validator = validator or BoundingBoxValidator.from_config(client.config)

    @property
    def client(self) -> OverpassClient:
        return self._client

    @property
    def validator(self) -> BoundingBoxValidator:
        return self._validator

    async def fetch(
        self,
        category: str,
        min_lon: Any,
        min_lat: Any,
        max_lon: Any,
        max_lat: Any,
        filter_value: Optional[FilterValue] = None,
        limit: Any = None,
        bypass_cache: bool = False,
    ) -> GeoJSONResult:
        """
        Fetch one feature category inside a bounding box.

        Invalid input is reported as a VALIDATION failure without any
        network traffic. Upstream failures carry the client's error kind.
        """
        try:
            checked = self._validator.validate_common_inputs(min_lon, min_lat, max_lon, max_lat, limit)
            feature_category = get_category(category)
            bbox = BoundingBox(float(min_lon), float(min_lat), float(max_lon), float(max_lat))
            query = feature_category.build(bbox, filter_value=filter_value, limit=checked.normalized_limit)
        except ValidationError as e:
            logger.warning(f"Rejected {category} request: {e.message}")
            return GeoJSONResult(success=False, error=e.message, error_kind=ErrorKind.VALIDATION)

        summary: Dict[str, Any] = {
            FILTER_KEYS.get(category, "filter"): filter_value if filter_value is not None else "all",
        }
        if category == "boundaries":
            level = filter_value if isinstance(filter_value, str) else "all"
            summary["admin_level_description"] = ADMIN_LEVEL_DESCRIPTIONS.get(level, level)

        return await self._run(
            query,
            caller=f"get_{category}",
            bypass_cache=bypass_cache,
            limit=checked.normalized_limit,
            bbox=bbox.as_list(),
            warnings=checked.warnings,
            extra=summary,
        )

    async def fetch_raw(
        self,
        query: str,
        bypass_cache: bool = False,
        caller: str = "fetch_raw",
    ) -> GeoJSONResult:
        """Execute caller-supplied Overpass QL and convert the answer."""
        if not query or not query.strip():
            return GeoJSONResult(success=False, error="Query must not be empty", error_kind=ErrorKind.VALIDATION)
        return await self._run(query, caller=caller, bypass_cache=bypass_cache)

    async def _run(
        self,
        query: str,
        caller: str,
        bypass_cache: bool = False,
        limit: Optional[int] = None,
        bbox: Optional[List[float]] = None,
        warnings: Optional[List[str]] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> GeoJSONResult:
        response = await self._client.execute(query, bypass_cache=bypass_cache, caller=caller)
        if not response:
            return GeoJSONResult(
                success=False,
                error=response.error,
                error_kind=response.error_kind,
                query=query,
            )

        geojson = osm_to_geojson(response.data)
        feature_count = len(geojson["features"])
        summary: Dict[str, Any] = dict(extra or {})
        summary.update(
            limit_applied=limit,
            is_truncated=feature_count >= limit if limit else False,
            endpoint=response.endpoint,
            from_cache=response.from_cache,
        )
        if bbox is not None:
            summary["bbox"] = bbox
        if warnings:
            summary["warnings"] = list(warnings)

        wrapped = create_geojson_response(geojson, **summary)
        logger.debug(f"{caller}: {feature_count} features")
        return GeoJSONResult(data=wrapped["data"], summary=wrapped["summary"], query=query)

    def api_stats(self) -> Dict[str, Any]:
        """Usage and cache statistics plus service information."""
        api_statistics = self._client.get_api_stats()
        cache_statistics = self._client.get_cache_stats()
        config = self._client.config
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "api_statistics": api_statistics,
            "cache_statistics": cache_statistics,
            "server_status": {
                "name": SERVICE_NAME,
                "version": __version__,
                "uptime": api_statistics["uptime"],
            },
            "compliance_info": {
                "user_agent": config.user_agent,
                "caching": (
                    f"enabled ({int(config.cache_ttl // 60)}min TTL)" if cache_statistics["enabled"] else "disabled"
                ),
                "endpoints": [e.host for e in self._client.endpoints],
            },
        }
