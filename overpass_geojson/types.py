"""
overpass-geojson type definitions.

This module contains the public value types shared by the client,
the cache and the geometry converter.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from .errors import ErrorKind, ExhaustedError, OverpassError, error_for_kind

Coordinate = List[float]  # [lon, lat]


class ElementType(Enum):
    """OSM element variants delivered by Overpass."""
    NODE = "node"
    WAY = "way"
    RELATION = "relation"


class GeometryType(Enum):
    """GeoJSON geometry types produced by the converter."""
    POINT = "Point"
    LINE_STRING = "LineString"
    POLYGON = "Polygon"
    MULTI_POLYGON = "MultiPolygon"


# === OSM elements ===


@dataclass
class PointElement:
    """An OSM node."""
    id: int
    lon: Optional[float] = None
    lat: Optional[float] = None
    tags: Dict[str, str] = field(default_factory=dict)

    type = ElementType.NODE

    @property
    def has_coordinates(self) -> bool:
        return self.lon is not None and self.lat is not None


@dataclass
class WayElement:
    """An OSM way: ordered references to nodes."""
    id: int
    node_ids: List[int] = field(default_factory=list)
    tags: Dict[str, str] = field(default_factory=dict)

    type = ElementType.WAY


@dataclass
class RelationMember:
    """One role-tagged member of a relation.

    ``node_ids`` is filled when Overpass inlines the member way's nodes.
    """
    member_type: str  # "node" | "way" | "relation"
    member_id: int
    role: str = ""
    node_ids: Optional[List[int]] = None


@dataclass
class RelationElement:
    """An OSM relation."""
    id: int
    tags: Dict[str, str] = field(default_factory=dict)
    members: List[RelationMember] = field(default_factory=list)

    type = ElementType.RELATION


OSMElement = Union[PointElement, WayElement, RelationElement]


# === GeoJSON ===


@dataclass
class Geometry:
    """A GeoJSON geometry."""
    type: GeometryType
    coordinates: Any

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type.value, "coordinates": self.coordinates}


@dataclass
class Feature:
    """A GeoJSON feature built from one OSM element."""
    id: str  # "{elementType}/{elementId}"
    geometry: Geometry
    properties: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "Feature",
            "id": self.id,
            "properties": dict(self.properties),
            "geometry": self.geometry.to_dict(),
        }


@dataclass
class FeatureCollection:
    """Ordered features; order follows element processing order."""
    features: List[Feature] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.features)

    def __iter__(self):
        return iter(self.features)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "FeatureCollection",
            "features": [f.to_dict() for f in self.features],
        }


# === Results ===


@dataclass
class ValidationResult:
    """Outcome of bounding box / limit validation."""
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    area: float = 0.0
    normalized_limit: Optional[int] = None

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def __bool__(self) -> bool:
        """Allow `if result:` checks."""
        return self.is_valid


@dataclass
class QueryResponse:
    """Result of one OverpassClient.execute() call."""
    data: Optional[Dict[str, Any]] = None
    success: bool = True
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    endpoint: Optional[str] = None  # host that answered
    from_cache: bool = False
    attempts: int = 0
    duration_ms: int = 0
    timestamp: float = field(default_factory=time.time)
    last_error: Optional[OverpassError] = field(default=None, repr=False, compare=False)

    def __bool__(self) -> bool:
        """Allow `if response:` checks."""
        return self.success

    def raise_for_error(self) -> "QueryResponse":
        """Raise the matching OverpassError if this response is a failure."""
        if not self.success:
            if self.error_kind in (None, ErrorKind.EXHAUSTED):
                raise ExhaustedError(self.error or "Query failed", last_error=self.last_error)
            raise error_for_kind(self.error_kind, self.error or "Query failed")
        return self


@dataclass
class GeoJSONResult:
    """Result of a service-level fetch: converted features plus summary."""
    success: bool = True
    data: Optional[Dict[str, Any]] = None
    summary: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    query: str = ""

    def __bool__(self) -> bool:
        return self.success

    def to_dict(self) -> Dict[str, Any]:
        if not self.success:
            return {"error": self.error, "query": self.query}
        return {"type": "geojson", "data": self.data, "summary": dict(self.summary)}


@dataclass
class ConnectionCheck:
    """Outcome of probing one endpoint."""
    host: str
    ok: bool
    error: Optional[str] = None
    duration_ms: int = 0

    def __str__(self) -> str:
        if self.ok:
            return f"✓ {self.host} - connected ({self.duration_ms}ms)"
        return f"✗ {self.host} - error: {self.error}"
