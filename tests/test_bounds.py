"""
Tests for overall bounds and zoom estimation.
"""

import pytest

from regionmap.bounds import calculate_optimal_zoom, compute_overall_bounds, normalize_longitude
from regionmap.models import BoundsResult, RegionRecord, Viewport


def _record(region_id, geometry):
    return RegionRecord(
        id=region_id,
        geojson={"id": region_id, "geometry": geometry},
        level=1,
        display_name=region_id,
    )


def _polygon(*points):
    return {"type": "Polygon", "coordinates": [list(points)]}


class TestComputeOverallBounds:
    @pytest.mark.parametrize("records", [[], None])
    def test_empty_input(self, records):
        assert compute_overall_bounds(records) is None

    def test_all_unparseable(self):
        records = [
            RegionRecord(id="a", geojson="garbage", level=1, display_name="a"),
            _record("b", {"type": "Point", "coordinates": [1, 2]}),
        ]
        assert compute_overall_bounds(records) is None

    def test_single_polygon(self):
        bounds = compute_overall_bounds([_record("m", _polygon([37, 55], [38, 55], [38, 56], [37, 56]))])
        assert bounds is not None
        assert (bounds.min_lon, bounds.max_lon) == (37, 38)
        assert (bounds.min_lat, bounds.max_lat) == (55, 56)
        assert bounds.center == (55.5, 37.5)
        assert bounds.width_deg == 1
        assert bounds.height_deg == 1
        assert bounds.crosses_antimeridian is False
        assert bounds.is_very_large_region is False

    def test_string_payloads_and_multipolygons(self):
        multi = {
            "type": "MultiPolygon",
            "coordinates": [[[[10, 0], [12, 0], [12, 2]]], [[[20, 5], [22, 5], [22, 7]]]],
        }
        bounds = compute_overall_bounds(
            [
                RegionRecord(id="s", geojson=str({"id": "s", "geometry": multi}), level=1, display_name="s"),
            ]
        )
        assert bounds.bounds_rect == ((0, 10), (7, 22))

    def test_antimeridian_crossing(self):
        bounds = compute_overall_bounds(
            [
                _record("east", _polygon([179, 60], [179.5, 60], [179.5, 61])),
                _record("west", _polygon([-179, 60], [-179.5, 60], [-179.5, 61])),
            ]
        )
        assert bounds.crosses_antimeridian is True
        assert bounds.width_deg == 360.0
        assert bounds.bounds_rect == ((60, -180.0), (61, 180.0))
        assert bounds.center[1] == pytest.approx(180.0)

    def test_very_large_region_is_flagged(self):
        bounds = compute_overall_bounds([_record("big", _polygon([0, -40], [50, -40], [50, 30]))])
        assert bounds.is_very_large_region is True
        assert bounds.crosses_antimeridian is True

    def test_longitudes_are_normalized(self):
        bounds = compute_overall_bounds([_record("w", _polygon([370, 10], [371, 10], [371, 11]))])
        assert (bounds.min_lon, bounds.max_lon) == (10, 11)

    def test_malformed_record_is_skipped(self):
        bounds = compute_overall_bounds(
            [
                _record("bad", {"type": "Polygon", "coordinates": [[[1]]]}),
                _record("ok", _polygon([37, 55], [38, 56])),
            ]
        )
        assert bounds.bounds_rect == ((55, 37), (56, 38))

    def test_mapping_positions_are_skipped(self):
        bounds = compute_overall_bounds(
            [
                _record("ok", _polygon([37, 55], [38, 56])),
                _record("bad", {"type": "Polygon", "coordinates": [{"lon": 1, "lat": 2}]}),
                _record("worse", {"type": "Polygon", "coordinates": [[{"lon": 1, "lat": 2}]]}),
            ]
        )
        assert bounds.bounds_rect == ((55, 37), (56, 38))

    def test_normalize_longitude(self):
        assert normalize_longitude(190) == -170
        assert normalize_longitude(-540) == -180
        assert normalize_longitude(45) == 45


class TestCalculateOptimalZoom:
    def _bounds(self, lon_span, lat_span, *, crosses=False, very_large=False):
        return BoundsResult(
            bounds_rect=((0.0, 0.0), (lat_span, lon_span)),
            center=(lat_span / 2, lon_span / 2),
            width_deg=360.0 if crosses else lon_span,
            height_deg=lat_span,
            crosses_antimeridian=crosses,
            is_very_large_region=very_large,
        )

    @pytest.mark.parametrize("viewport", [None, Viewport(), Viewport(1920, 1080), Viewport(1, 1)])
    def test_no_bounds_gives_default(self, viewport):
        assert calculate_optimal_zoom(None, viewport) == 6

    @pytest.mark.parametrize(
        "lon_span,lat_span",
        [(0.0, 0.0), (0.0001, 0.0001), (1.0, 1.0), (20.0, 5.0), (45.0, 30.0), (90.0, 50.0), (99.0, 59.0)],
    )
    def test_zoom_is_integer_in_range(self, lon_span, lat_span):
        zoom = calculate_optimal_zoom(self._bounds(lon_span, lat_span), Viewport(800, 600))
        assert isinstance(zoom, int)
        assert 2 <= zoom <= 15

    def test_point_extent_clamps_to_max(self):
        assert calculate_optimal_zoom(self._bounds(0.0, 0.0)) == 15

    def test_unit_extent(self):
        # lon: log2(360 * 800/256 / 1) = 10.13; lat: log2(180 * 600/256 / 1) = 8.72
        assert calculate_optimal_zoom(self._bounds(1.0, 1.0), Viewport(800, 600)) == 8

    @pytest.mark.parametrize(
        "lon_span,lat_span,cap",
        [(16.0, 1.0, 7), (31.0, 1.0, 6), (61.0, 1.0, 5), (1.0, 11.0, 7), (1.0, 21.0, 6), (1.0, 41.0, 5)],
    )
    def test_damping_caps(self, lon_span, lat_span, cap):
        assert calculate_optimal_zoom(self._bounds(lon_span, lat_span), Viewport(4096, 4096)) <= cap

    def test_very_large_caps_at_four(self):
        bounds = self._bounds(20.0, 10.0, very_large=True)
        assert calculate_optimal_zoom(bounds, Viewport(4096, 4096)) == 4

    def test_antimeridian_rules(self):
        assert calculate_optimal_zoom(self._bounds(0, 10, crosses=True, very_large=True)) == 3
        assert calculate_optimal_zoom(self._bounds(0, 10, crosses=True)) == 5
        assert calculate_optimal_zoom(self._bounds(0, 200, crosses=True)) == 3
        assert calculate_optimal_zoom(self._bounds(0, 400, crosses=True)) == 2

    def test_unknown_viewport_uses_default_size(self):
        bounds = self._bounds(1.0, 1.0)
        assert calculate_optimal_zoom(bounds, Viewport(0, -5)) == calculate_optimal_zoom(bounds, Viewport(800, 600))

    def test_deterministic(self):
        bounds = self._bounds(3.3, 2.1)
        zooms = {calculate_optimal_zoom(bounds, Viewport(640, 480)) for _ in range(5)}
        assert len(zooms) == 1
