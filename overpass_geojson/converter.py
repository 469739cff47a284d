"""
OSM element list to GeoJSON conversion.

Overpass returns a flat element list where ways and relations only carry
node references. Conversion runs in two passes: collect node coordinates
(and way node lists) first, then build one geometry per element in input
order. Unresolvable references degrade the result; they never raise.

Known limitations:
- A multipolygon with several outer rings becomes a MultiPolygon of bare
  outer rings. Inner rings are not assigned to any of them.
- Boundary relations are the plain concatenation of member way
  coordinates, without ordering or stitching of fragments.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .types import (
    Coordinate,
    Feature,
    FeatureCollection,
    Geometry,
    GeometryType,
    OSMElement,
    PointElement,
    RelationElement,
    RelationMember,
    WayElement,
)

logger = logging.getLogger(__name__)

MIN_RING_COORDINATES = 4
MIN_LINE_COORDINATES = 2


# === Parsing ===


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _as_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _tags(raw: Dict[str, Any]) -> Dict[str, str]:
    tags = raw.get("tags")
    return dict(tags) if isinstance(tags, dict) else {}


def _node_ids(values: Any) -> List[int]:
    if not isinstance(values, list):
        return []
    ids = []
    for value in values:
        node_id = _as_int(value)
        if node_id is not None:
            ids.append(node_id)
    return ids


def parse_element(raw: Any) -> Optional[OSMElement]:
    """
    Build a typed element from one raw Overpass JSON object.

    Returns None for unknown types and entries without a usable id.
    """
    if not isinstance(raw, dict):
        return None
    element_id = _as_int(raw.get("id"))
    if element_id is None:
        return None

    kind = raw.get("type")
    if kind == "node":
        return PointElement(
            id=element_id,
            lon=_as_float(raw.get("lon")),
            lat=_as_float(raw.get("lat")),
            tags=_tags(raw),
        )
    if kind == "way":
        return WayElement(id=element_id, node_ids=_node_ids(raw.get("nodes")), tags=_tags(raw))
    if kind == "relation":
        members = []
        for m in raw.get("members") or []:
            if not isinstance(m, dict):
                continue
            ref = _as_int(m.get("ref"))
            if ref is None:
                continue
            members.append(RelationMember(
                member_type=str(m.get("type", "")),
                member_id=ref,
                role=str(m.get("role") or ""),
                node_ids=_node_ids(m["nodes"]) if "nodes" in m else None,
            ))
        return RelationElement(id=element_id, tags=_tags(raw), members=members)
    return None


def parse_elements(payload: Any) -> List[OSMElement]:
    """Typed elements from a raw payload; malformed entries are skipped."""
    if not isinstance(payload, dict):
        return []
    raw_elements = payload.get("elements")
    if not isinstance(raw_elements, list):
        return []
    elements = []
    for raw in raw_elements:
        element = parse_element(raw)
        if element is not None:
            elements.append(element)
    return elements


# === Conversion ===


class GeometryConverter:
    """
    Converts typed OSM elements into a FeatureCollection.

    Stateless; ``convert`` may be called concurrently.
    """

    def convert(self, elements: Iterable[OSMElement]) -> FeatureCollection:
        elements = list(elements)
        nodes, ways = self._index(elements)

        features: List[Feature] = []
        for element in elements:
            geometry = self._geometry_for(element, nodes, ways)
            if geometry is None:
                continue
            features.append(Feature(
                id=f"{element.type.value}/{element.id}",
                geometry=geometry,
                properties=dict(element.tags or {}),
            ))
        return FeatureCollection(features=features)

    @staticmethod
    def _index(
        elements: List[OSMElement],
    ) -> Tuple[Dict[int, Coordinate], Dict[int, List[int]]]:
        """Node coordinates and way node lists, gathered before any resolution."""
        nodes: Dict[int, Coordinate] = {}
        ways: Dict[int, List[int]] = {}
        for element in elements:
            if isinstance(element, PointElement):
                if element.has_coordinates:
                    nodes[element.id] = [element.lon, element.lat]
            elif isinstance(element, WayElement):
                ways[element.id] = element.node_ids
        return nodes, ways

    @staticmethod
    def _resolve(node_ids: List[int], nodes: Dict[int, Coordinate]) -> List[Coordinate]:
        return [list(nodes[n]) for n in node_ids if n in nodes]

    def _geometry_for(
        self,
        element: OSMElement,
        nodes: Dict[int, Coordinate],
        ways: Dict[int, List[int]],
    ) -> Optional[Geometry]:
        if isinstance(element, PointElement):
            if element.has_coordinates:
                return Geometry(GeometryType.POINT, [element.lon, element.lat])
            return None
        if isinstance(element, WayElement):
            return self._way_geometry(element, nodes)
        if isinstance(element, RelationElement):
            return self._relation_geometry(element, nodes, ways)
        return None

    def _way_geometry(self, way: WayElement, nodes: Dict[int, Coordinate]) -> Optional[Geometry]:
        if not way.node_ids:
            return None
        coordinates = self._resolve(way.node_ids, nodes)
        if not coordinates:
            return None
        is_closed = way.node_ids[0] == way.node_ids[-1]
        if is_closed and len(coordinates) >= MIN_RING_COORDINATES:
            return Geometry(GeometryType.POLYGON, [coordinates])
        return Geometry(GeometryType.LINE_STRING, coordinates)

    def _member_coordinates(
        self,
        member: RelationMember,
        nodes: Dict[int, Coordinate],
        ways: Dict[int, List[int]],
    ) -> List[Coordinate]:
        if member.member_type != "way":
            return []
        node_ids = member.node_ids if member.node_ids is not None else ways.get(member.member_id, [])
        return self._resolve(node_ids, nodes)

    def _relation_geometry(
        self,
        relation: RelationElement,
        nodes: Dict[int, Coordinate],
        ways: Dict[int, List[int]],
    ) -> Optional[Geometry]:
        if not relation.members:
            return None
        tags = relation.tags or {}

        if tags.get("type") == "multipolygon":
            outer_rings: List[List[Coordinate]] = []
            inner_rings: List[List[Coordinate]] = []
            for member in relation.members:
                ring = self._member_coordinates(member, nodes, ways)
                if len(ring) < MIN_RING_COORDINATES:
                    continue
                if member.role == "outer":
                    outer_rings.append(ring)
                elif member.role == "inner":
                    inner_rings.append(ring)

            if len(outer_rings) == 1:
                return Geometry(GeometryType.POLYGON, [outer_rings[0], *inner_rings])
            if len(outer_rings) > 1:
                return Geometry(GeometryType.MULTI_POLYGON, [[ring] for ring in outer_rings])
            # No usable outer ring; a boundary tag may still apply

        if "boundary" in tags:
            chain: List[Coordinate] = []
            for member in relation.members:
                coordinates = self._member_coordinates(member, nodes, ways)
                if len(coordinates) >= MIN_LINE_COORDINATES:
                    chain.extend(coordinates)
            if len(chain) >= MIN_LINE_COORDINATES:
                return Geometry(GeometryType.LINE_STRING, chain)

        return None


_default_converter = GeometryConverter()


def convert_elements(elements: Iterable[OSMElement]) -> FeatureCollection:
    return _default_converter.convert(elements)


def osm_to_geojson(payload: Any) -> Dict[str, Any]:
    """
    Convert a raw Overpass JSON payload to a GeoJSON FeatureCollection dict.

    A payload without ``elements`` yields an empty collection.
    """
    return _default_converter.convert(parse_elements(payload)).to_dict()


def create_geojson_response(geojson: Dict[str, Any], **summary: Any) -> Dict[str, Any]:
    """Wrap a FeatureCollection dict with a summary carrying ``feature_count``."""
    return {
        "type": "geojson",
        "data": geojson,
        "summary": {
            "feature_count": len(geojson.get("features", [])),
            **summary,
        },
    }
