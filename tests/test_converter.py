"""Tests for overpass_geojson.converter module."""

from overpass_geojson.converter import (
    GeometryConverter,
    convert_elements,
    create_geojson_response,
    osm_to_geojson,
    parse_element,
    parse_elements,
)
from overpass_geojson.types import (
    GeometryType,
    PointElement,
    RelationElement,
    RelationMember,
    WayElement,
)


def square_nodes():
    return [
        PointElement(id=1, lon=0, lat=0),
        PointElement(id=2, lon=1, lat=0),
        PointElement(id=3, lon=1, lat=1),
        PointElement(id=4, lon=0, lat=1),
    ]


class TestParsing:
    """Tests for raw JSON parsing."""

    def test_node(self):
        element = parse_element({"type": "node", "id": 5, "lat": 35.6, "lon": 139.7, "tags": {"a": "b"}})
        assert element == PointElement(id=5, lon=139.7, lat=35.6, tags={"a": "b"})

    def test_way(self):
        element = parse_element({"type": "way", "id": 7, "nodes": [1, 2, 3]})
        assert element == WayElement(id=7, node_ids=[1, 2, 3])

    def test_relation_members(self):
        """Members keep type, ref, role and inline node lists."""
        element = parse_element({
            "type": "relation",
            "id": 9,
            "tags": {"type": "multipolygon"},
            "members": [
                {"type": "way", "ref": 10, "role": "outer"},
                {"type": "way", "ref": 11, "role": "inner", "nodes": [1, 2]},
                {"type": "way", "role": "outer"},
            ],
        })
        assert element.members == [
            RelationMember(member_type="way", member_id=10, role="outer"),
            RelationMember(member_type="way", member_id=11, role="inner", node_ids=[1, 2]),
        ]

    def test_unknown_and_malformed(self):
        """Unknown types and entries without ids are skipped."""
        assert parse_element({"type": "area", "id": 1}) is None
        assert parse_element({"type": "node"}) is None
        assert parse_element("node") is None

    def test_parse_elements_without_list(self):
        """Payloads without an elements list yield nothing."""
        assert parse_elements({}) == []
        assert parse_elements(None) == []


class TestPoints:
    """Tests for node conversion."""

    def test_point(self):
        collection = convert_elements([PointElement(id=1, lon=139.7, lat=35.6, tags={"name": "x"})])
        feature = collection.features[0]
        assert feature.id == "node/1"
        assert feature.geometry.type == GeometryType.POINT
        assert feature.geometry.coordinates == [139.7, 35.6]
        assert feature.properties == {"name": "x"}

    def test_point_without_coordinates(self):
        """Nodes without coordinates produce no feature."""
        assert len(convert_elements([PointElement(id=1)])) == 0


class TestWays:
    """Tests for way conversion."""

    def test_closed_way_scenario(self):
        """A closed square building becomes one Polygon feature."""
        elements = square_nodes() + [WayElement(id=10, node_ids=[1, 2, 3, 4, 1], tags={"building": "yes"})]
        collection = GeometryConverter().convert(elements)

        way_features = [f for f in collection if f.id == "way/10"]
        assert len(way_features) == 1
        feature = way_features[0]
        assert feature.properties == {"building": "yes"}
        assert feature.geometry.type == GeometryType.POLYGON
        assert feature.geometry.coordinates == [[[0, 0], [1, 0], [1, 1], [0, 1], [0, 0]]]

    def test_scenario_feature_count(self):
        """Tagged or untagged, every node with coordinates also becomes a Point."""
        elements = square_nodes() + [WayElement(id=10, node_ids=[1, 2, 3, 4, 1], tags={"building": "yes"})]
        collection = convert_elements(elements)
        assert [f.id for f in collection] == ["node/1", "node/2", "node/3", "node/4", "way/10"]

    def test_open_way(self):
        """An open way is a LineString regardless of point count."""
        elements = square_nodes() + [WayElement(id=10, node_ids=[1, 2, 3, 4])]
        geometry = convert_elements(elements).features[-1].geometry
        assert geometry.type == GeometryType.LINE_STRING
        assert geometry.coordinates == [[0, 0], [1, 0], [1, 1], [0, 1]]

    def test_closed_way_too_short(self):
        """A closed way resolving fewer than 4 coordinates is a LineString."""
        elements = square_nodes()[:2] + [WayElement(id=10, node_ids=[1, 2, 1])]
        geometry = convert_elements(elements).features[-1].geometry
        assert geometry.type == GeometryType.LINE_STRING

    def test_unresolved_nodes_dropped(self):
        """Missing nodes are skipped; the rest still form a geometry."""
        elements = square_nodes() + [WayElement(id=10, node_ids=[1, 99, 2])]
        geometry = convert_elements(elements).features[-1].geometry
        assert geometry.coordinates == [[0, 0], [1, 0]]

    def test_no_resolved_nodes(self):
        """A way with no resolvable node produces no feature."""
        collection = convert_elements([WayElement(id=10, node_ids=[98, 99])])
        assert len(collection) == 0

    def test_nodes_after_way(self):
        """Node order in the input does not matter."""
        elements = [WayElement(id=10, node_ids=[1, 2])] + square_nodes()
        collection = convert_elements(elements)
        assert collection.features[0].id == "way/10"
        assert collection.features[0].geometry.coordinates == [[0, 0], [1, 0]]


class TestRelations:
    """Tests for relation conversion."""

    def _ring_nodes(self):
        outer = [
            PointElement(id=i, lon=lon, lat=lat)
            for i, (lon, lat) in enumerate([(0, 0), (10, 0), (10, 10), (0, 10)], start=1)
        ]
        inner = [
            PointElement(id=i, lon=lon, lat=lat)
            for i, (lon, lat) in enumerate([(2, 2), (4, 2), (3, 4)], start=11)
        ]
        return outer + inner

    def test_multipolygon_scenario(self):
        """One outer (5 coords) and one inner (4 coords) make a Polygon with a hole."""
        elements = self._ring_nodes() + [
            WayElement(id=100, node_ids=[1, 2, 3, 4, 1]),
            WayElement(id=101, node_ids=[11, 12, 13, 11]),
            RelationElement(
                id=500,
                tags={"type": "multipolygon", "natural": "water"},
                members=[
                    RelationMember("way", 100, "outer"),
                    RelationMember("way", 101, "inner"),
                ],
            ),
        ]
        feature = convert_elements(elements).features[-1]
        assert feature.id == "relation/500"
        assert feature.geometry.type == GeometryType.POLYGON
        assert feature.geometry.coordinates == [
            [[0, 0], [10, 0], [10, 10], [0, 10], [0, 0]],
            [[2, 2], [4, 2], [3, 4], [2, 2]],
        ]
        assert feature.properties == {"type": "multipolygon", "natural": "water"}

    def test_multiple_outers(self):
        """Several outers become a MultiPolygon of bare outer rings."""
        elements = self._ring_nodes() + [
            WayElement(id=100, node_ids=[1, 2, 3, 4, 1]),
            WayElement(id=101, node_ids=[11, 12, 13, 11]),
            RelationElement(
                id=500,
                tags={"type": "multipolygon"},
                members=[
                    RelationMember("way", 100, "outer"),
                    RelationMember("way", 101, "outer"),
                    RelationMember("way", 101, "inner"),
                ],
            ),
        ]
        geometry = convert_elements(elements).features[-1].geometry
        assert geometry.type == GeometryType.MULTI_POLYGON
        assert geometry.coordinates == [
            [[[0, 0], [10, 0], [10, 10], [0, 10], [0, 0]]],
            [[[2, 2], [4, 2], [3, 4], [2, 2]]],
        ]

    def test_short_rings_ignored(self):
        """Rings with fewer than 4 coordinates are not counted."""
        elements = self._ring_nodes() + [
            WayElement(id=100, node_ids=[1, 2, 3, 4, 1]),
            WayElement(id=102, node_ids=[11, 12]),
            RelationElement(
                id=500,
                tags={"type": "multipolygon"},
                members=[RelationMember("way", 100, "outer"), RelationMember("way", 102, "inner")],
            ),
        ]
        geometry = convert_elements(elements).features[-1].geometry
        assert geometry.type == GeometryType.POLYGON
        assert len(geometry.coordinates) == 1

    def test_inline_member_nodes(self):
        """Member node lists supplied inline are used without a way element."""
        elements = self._ring_nodes() + [
            RelationElement(
                id=500,
                tags={"type": "multipolygon"},
                members=[RelationMember("way", 100, "outer", node_ids=[1, 2, 3, 4, 1])],
            ),
        ]
        geometry = convert_elements(elements).features[-1].geometry
        assert geometry.type == GeometryType.POLYGON

    def test_boundary_concatenates(self):
        """Boundary relations chain member coordinates without stitching."""
        elements = self._ring_nodes() + [
            WayElement(id=100, node_ids=[1, 2]),
            WayElement(id=101, node_ids=[2, 3]),
            WayElement(id=102, node_ids=[4]),
            RelationElement(
                id=600,
                tags={"type": "boundary", "boundary": "administrative", "admin_level": "8"},
                members=[
                    RelationMember("way", 100, "outer"),
                    RelationMember("way", 101, "outer"),
                    RelationMember("way", 102, "outer"),
                    RelationMember("node", 1, "admin_centre"),
                ],
            ),
        ]
        feature = convert_elements(elements).features[-1]
        assert feature.id == "relation/600"
        assert feature.geometry.type == GeometryType.LINE_STRING
        assert feature.geometry.coordinates == [[0, 0], [10, 0], [10, 0], [10, 10]]

    def test_multipolygon_without_outer_uses_boundary(self):
        """A multipolygon lacking outers still converts when it has a boundary tag."""
        elements = self._ring_nodes() + [
            WayElement(id=100, node_ids=[1, 2]),
            RelationElement(
                id=700,
                tags={"type": "multipolygon", "boundary": "protected_area"},
                members=[RelationMember("way", 100, "outer")],
            ),
        ]
        geometry = convert_elements(elements).features[-1].geometry
        assert geometry.type == GeometryType.LINE_STRING

    def test_other_relation_dropped(self):
        """Route and other relation shapes produce no feature."""
        elements = self._ring_nodes() + [
            WayElement(id=100, node_ids=[1, 2]),
            RelationElement(id=800, tags={"type": "route"}, members=[RelationMember("way", 100, "")]),
        ]
        ids = [f.id for f in convert_elements(elements)]
        assert "relation/800" not in ids

    def test_relation_without_members(self):
        elements = [RelationElement(id=900, tags={"type": "multipolygon"})]
        assert len(convert_elements(elements)) == 0


class TestGeoJSONOutput:
    """Tests for dict output helpers."""

    def test_osm_to_geojson(self):
        """Raw payloads convert straight to a FeatureCollection dict."""
        payload = {
            "elements": [
                {"type": "node", "id": 1, "lat": 0, "lon": 0},
                {"type": "node", "id": 2, "lat": 0, "lon": 1},
                {"type": "way", "id": 3, "nodes": [1, 2], "tags": {"highway": "primary"}},
            ]
        }
        geojson = osm_to_geojson(payload)
        assert geojson["type"] == "FeatureCollection"
        assert geojson["features"][-1] == {
            "type": "Feature",
            "id": "way/3",
            "properties": {"highway": "primary"},
            "geometry": {"type": "LineString", "coordinates": [[0.0, 0.0], [1.0, 0.0]]},
        }

    def test_empty_payload(self):
        assert osm_to_geojson({"elements": []}) == {"type": "FeatureCollection", "features": []}

    def test_create_geojson_response(self):
        """Summary always carries the feature count."""
        geojson = {"type": "FeatureCollection", "features": [{}, {}]}
        response = create_geojson_response(geojson, bbox=[0, 0, 1, 1])
        assert response["type"] == "geojson"
        assert response["data"] is geojson
        assert response["summary"] == {"feature_count": 2, "bbox": [0, 0, 1, 1]}

    def test_converter_never_raises(self):
        """Malformed elements degrade instead of failing."""
        payload = {"elements": [{"type": "way", "id": 1, "nodes": "abc"}, {"type": "node", "id": "x"}, 7]}
        assert osm_to_geojson(payload)["features"] == []
