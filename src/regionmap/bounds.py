"""Overall bounds and zoom estimation for a set of regions."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Iterable, Sequence

from .models import BoundsResult, RegionRecord, Viewport
from .payload import parse_geometry


DEFAULT_ZOOM = 6
MIN_ZOOM = 2
MAX_ZOOM = 15
TILE_SIZE_PX = 256

_LOGGER = logging.getLogger("regionmap.bounds")


@dataclass(frozen=True, slots=True)
class _LargeRegionPolicy:
    lon_span_deg: float
    lat_span_deg: float


@dataclass(frozen=True, slots=True)
class _ZoomDampingStep:
    lon_span_deg: float
    lat_span_deg: float
    max_zoom: int


_LARGE_REGION_POLICY = _LargeRegionPolicy(lon_span_deg=100.0, lat_span_deg=60.0)
_VERY_LARGE_MAX_ZOOM = 4
_ANTIMERIDIAN_VERY_LARGE_ZOOM = 3
# Checked in order; the first step whose spans are exceeded caps the zoom.
_ZOOM_DAMPING_STEPS = (
    _ZoomDampingStep(lon_span_deg=60.0, lat_span_deg=40.0, max_zoom=5),
    _ZoomDampingStep(lon_span_deg=30.0, lat_span_deg=20.0, max_zoom=6),
    _ZoomDampingStep(lon_span_deg=15.0, lat_span_deg=10.0, max_zoom=7),
)


def normalize_longitude(lon: float) -> float:
    while lon < -180.0:
        lon += 360.0
    while lon > 180.0:
        lon -= 360.0
    return lon


def compute_overall_bounds(records: Sequence[RegionRecord] | None) -> BoundsResult | None:
    """Bounding box, center and antimeridian flag over every record's polygons."""
    if not records:
        return None

    lons: list[float] = []
    lats: list[float] = []
    for record in records:
        vertices = _record_vertices(record)
        for lon, lat in vertices:
            lons.append(normalize_longitude(lon))
            lats.append(lat)

    if not lons:
        return None

    min_lon, max_lon = min(lons), max(lons)
    min_lat, max_lat = min(lats), max(lats)
    lon_span = max_lon - min_lon
    lat_span = max_lat - min_lat
    is_very_large = (
        lon_span > _LARGE_REGION_POLICY.lon_span_deg
        or lat_span > _LARGE_REGION_POLICY.lat_span_deg
    )

    if lon_span > 180.0 or is_very_large:
        shifted = [lon + 360.0 if lon < 0 else lon for lon in lons]
        center_lon = (min(shifted) + max(shifted)) / 2.0
        if center_lon > 180.0:
            center_lon -= 360.0
        _LOGGER.debug(
            "Antimeridian bounds: lat %.3f..%.3f, remapped center lon %.3f",
            min_lat,
            max_lat,
            center_lon,
        )
        return BoundsResult(
            bounds_rect=((min_lat, -180.0), (max_lat, 180.0)),
            center=((min_lat + max_lat) / 2.0, center_lon),
            width_deg=360.0,
            height_deg=lat_span,
            crosses_antimeridian=True,
            is_very_large_region=is_very_large,
        )

    return BoundsResult(
        bounds_rect=((min_lat, min_lon), (max_lat, max_lon)),
        center=((min_lat + max_lat) / 2.0, (min_lon + max_lon) / 2.0),
        width_deg=lon_span,
        height_deg=lat_span,
        crosses_antimeridian=False,
        is_very_large_region=is_very_large,
    )


def calculate_optimal_zoom(bounds: BoundsResult | None, viewport: Viewport | None = None) -> int:
    """Integer zoom that fits ``bounds`` into the viewport, damped for large extents."""
    if bounds is None:
        return DEFAULT_ZOOM
    view = viewport if viewport is not None else Viewport()
    width_px = view.width_px if view.width_px > 0 else Viewport().width_px
    height_px = view.height_px if view.height_px > 0 else Viewport().height_px

    lon_span = bounds.width_deg
    lat_span = bounds.height_deg

    if bounds.crosses_antimeridian:
        if bounds.is_very_large_region:
            return _ANTIMERIDIAN_VERY_LARGE_ZOOM
        return max(MIN_ZOOM, min(5, math.floor(6 - lat_span / 90.0)))

    lon_zoom = _span_zoom(360.0, width_px, lon_span)
    lat_zoom = _span_zoom(180.0, height_px, lat_span)
    zoom = min(lon_zoom, lat_zoom)

    if bounds.is_very_large_region:
        zoom = min(zoom, _VERY_LARGE_MAX_ZOOM)
    else:
        for step in _ZOOM_DAMPING_STEPS:
            if lon_span > step.lon_span_deg or lat_span > step.lat_span_deg:
                zoom = min(zoom, step.max_zoom)
                break

    zoom = max(MIN_ZOOM, min(MAX_ZOOM, zoom))
    return int(math.floor(zoom))


def _span_zoom(world_deg: float, viewport_px: float, span_deg: float) -> float:
    if span_deg <= 0:
        return math.inf
    return math.log2(world_deg * (viewport_px / TILE_SIZE_PX) / span_deg)


def _record_vertices(record: RegionRecord) -> list[tuple[float, float]]:
    parsed = parse_geometry(record.geojson)
    if parsed is None:
        return []
    geometry = parsed.geometry
    geom_type = geometry.get("type")
    coordinates = geometry.get("coordinates")
    if geom_type not in ("Polygon", "MultiPolygon") or not isinstance(coordinates, (list, tuple)):
        return []
    out: list[tuple[float, float]] = []
    try:
        _collect_vertices(coordinates, out)
    except (TypeError, ValueError, IndexError) as exc:
        _LOGGER.warning("Skipping region %s for bounds: malformed coordinates (%s)", record.id, exc)
        return []
    return out


def _collect_vertices(coords: Iterable[Any], out: list[tuple[float, float]]) -> None:
    for coord in coords:
        if not isinstance(coord, (list, tuple)):
            raise TypeError(f"expected a coordinate array, got {type(coord).__name__}")
        if isinstance(coord[0], (list, tuple)):
            _collect_vertices(coord, out)
        else:
            out.append((float(coord[0]), float(coord[1])))
