"""Tests for overpass_geojson.types and overpass_geojson.errors modules."""

import pytest

from overpass_geojson.errors import (
    ErrorKind,
    ExhaustedError,
    OverpassError,
    RateLimitError,
    TransportError,
    UpstreamServerError,
    ValidationError,
    error_for_kind,
)
from overpass_geojson.types import (
    ConnectionCheck,
    Feature,
    FeatureCollection,
    GeoJSONResult,
    Geometry,
    GeometryType,
    QueryResponse,
    ValidationResult,
)


class TestErrors:
    """Tests for the error taxonomy."""

    def test_hierarchy(self):
        """Rate limits and server errors are transport errors."""
        assert issubclass(RateLimitError, TransportError)
        assert issubclass(UpstreamServerError, TransportError)
        assert issubclass(TransportError, OverpassError)

    def test_kinds(self):
        assert ValidationError("x").kind == ErrorKind.VALIDATION
        assert RateLimitError("x").kind == ErrorKind.RATE_LIMIT
        assert ExhaustedError("x").kind == ErrorKind.EXHAUSTED

    def test_exhausted_keeps_last_error(self):
        last = TransportError("refused", endpoint="c.example")
        error = ExhaustedError("All endpoints failed", last_error=last)
        assert error.last_error is last
        assert error.endpoint == "c.example"

    @pytest.mark.parametrize("kind", list(ErrorKind))
    def test_error_for_kind(self, kind):
        error = error_for_kind(kind, "message")
        assert error.kind == kind
        assert error.message == "message"


class TestResults:
    """Tests for result dataclasses."""

    def test_validation_result_bool(self):
        assert ValidationResult()
        assert not ValidationResult(errors=["bad"])

    def test_query_response_raise_for_error(self):
        response = QueryResponse(success=False, error="boom", error_kind=ErrorKind.EXHAUSTED)
        with pytest.raises(ExhaustedError, match="boom"):
            response.raise_for_error()

    def test_query_response_carries_last_error(self):
        last = TransportError("refused", endpoint="a.example")
        response = QueryResponse(
            success=False, error="All endpoints failed", error_kind=ErrorKind.EXHAUSTED, last_error=last,
        )
        with pytest.raises(ExhaustedError) as exc_info:
            response.raise_for_error()
        assert exc_info.value.last_error is last
        assert exc_info.value.endpoint == "a.example"

    def test_query_response_success_passthrough(self):
        response = QueryResponse(data={"elements": []})
        assert response.raise_for_error() is response

    def test_geojson_result_to_dict(self):
        ok = GeoJSONResult(data={"type": "FeatureCollection", "features": []}, summary={"feature_count": 0})
        assert ok.to_dict() == {
            "type": "geojson",
            "data": {"type": "FeatureCollection", "features": []},
            "summary": {"feature_count": 0},
        }
        failed = GeoJSONResult(success=False, error="bad", query="q")
        assert failed.to_dict() == {"error": "bad", "query": "q"}

    def test_connection_check_str(self):
        assert str(ConnectionCheck(host="a", ok=True, duration_ms=12)) == "✓ a - connected (12ms)"
        assert str(ConnectionCheck(host="a", ok=False, error="x")) == "✗ a - error: x"


class TestGeoJSONTypes:
    """Tests for GeoJSON value types."""

    def test_feature_collection_dict(self):
        feature = Feature(id="node/1", geometry=Geometry(GeometryType.POINT, [1.0, 2.0]), properties={"a": "b"})
        collection = FeatureCollection([feature])
        assert len(collection) == 1
        assert collection.to_dict() == {
            "type": "FeatureCollection",
            "features": [{
                "type": "Feature",
                "id": "node/1",
                "properties": {"a": "b"},
                "geometry": {"type": "Point", "coordinates": [1.0, 2.0]},
            }],
        }
