"""GeoJSON normalization and representative points."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

from .models import NormalizedGeometry, Point


SUPPORTED_TYPES = ("Polygon", "MultiPolygon")
FALLBACK_POINT: Point = (55.75, 37.61)

_LOGGER = logging.getLogger("regionmap.geometry")


def normalize_geometry(geometry: Any) -> NormalizedGeometry | None:
    """Swap ``[lon, lat]`` pairs to ``(lat, lon)`` for Polygon/MultiPolygon input.

    Unsupported geometry types return None.
    """
    if not isinstance(geometry, Mapping):
        return None
    geom_type = geometry.get("type")
    coordinates = geometry.get("coordinates")
    if not geom_type or not coordinates:
        return None
    if geom_type == "Polygon":
        return NormalizedGeometry(type="Polygon", coordinates=_swap_polygon(coordinates))
    if geom_type == "MultiPolygon":
        return NormalizedGeometry(
            type="MultiPolygon",
            coordinates=tuple(_swap_polygon(polygon) for polygon in coordinates),
        )
    _LOGGER.debug("Unsupported geometry type %s", geom_type)
    return None


def swap_lon_lat(coord: Any) -> Any:
    if not isinstance(coord, (list, tuple)) or len(coord) < 2:
        return coord
    lon, lat = coord[0], coord[1]
    return (lat, lon)


def compute_centroid(geometry: NormalizedGeometry | None) -> Point:
    """Label anchor for a normalized geometry.

    Polygon: mean of the outer ring's vertices. MultiPolygon: bounding-box
    center of the part whose outer-ring box is largest. The two branches
    approximate "center" differently and label placement relies on both.
    """
    if geometry is None:
        return FALLBACK_POINT
    try:
        if geometry.type == "Polygon":
            return _ring_mean(geometry.coordinates[0] if geometry.coordinates else ())
        if geometry.type == "MultiPolygon":
            return _largest_part_box_center(geometry.coordinates)
    except (TypeError, ValueError, IndexError, KeyError) as exc:
        _LOGGER.warning("Centroid fallback for malformed geometry: %s", exc)
        return FALLBACK_POINT
    return FALLBACK_POINT


def ring_bbox(ring: Sequence[Point]) -> tuple[float, float, float, float]:
    """Return ``(min_lat, max_lat, min_lon, max_lon)`` of a ``(lat, lon)`` ring."""
    lats = [float(point[0]) for point in ring]
    lons = [float(point[1]) for point in ring]
    return (min(lats), max(lats), min(lons), max(lons))


def _swap_polygon(rings: Any) -> tuple[Any, ...]:
    return tuple(tuple(swap_lon_lat(coord) for coord in ring) for ring in rings)


def _ring_mean(ring: Sequence[Point]) -> Point:
    if not ring:
        return FALLBACK_POINT
    lat_sum = 0.0
    lon_sum = 0.0
    for lat, lon in ring:
        lat_sum += float(lat)
        lon_sum += float(lon)
    return (lat_sum / len(ring), lon_sum / len(ring))


def _largest_part_box_center(polygons: Sequence[Any]) -> Point:
    largest: tuple[float, float, float, float] | None = None
    max_area = 0.0
    for polygon in polygons:
        if not polygon or not polygon[0]:
            continue
        bbox = ring_bbox(polygon[0])
        area = (bbox[1] - bbox[0]) * (bbox[3] - bbox[2])
        if area > max_area:
            largest = bbox
            max_area = area
    if largest is None:
        return FALLBACK_POINT
    min_lat, max_lat, min_lon, max_lon = largest
    return ((min_lat + max_lat) / 2.0, (min_lon + max_lon) / 2.0)


def is_drawable(geometry: NormalizedGeometry) -> bool:
    """True when every ring is non-empty and holds numeric ``(lat, lon)`` pairs."""
    for rings in geometry.polygons:
        if not isinstance(rings, (list, tuple)) or not rings:
            return False
        for ring in rings:
            if not isinstance(ring, (list, tuple)) or not ring:
                return False
            for point in ring:
                if not isinstance(point, tuple) or len(point) != 2:
                    return False
                if not all(isinstance(value, (int, float)) and not isinstance(value, bool) for value in point):
                    return False
    return True
