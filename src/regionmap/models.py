"""Domain models shared across engine modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping


Point = tuple[float, float]

DEFAULT_VIEWPORT_WIDTH_PX = 800
DEFAULT_VIEWPORT_HEIGHT_PX = 600


@dataclass(frozen=True, slots=True)
class RegionRecord:
    """One drawable region row after column mapping."""

    id: str
    geojson: Any
    level: int
    display_name: str
    region_name: str | None = None
    message_html: str = ""
    parent_id: str | None = None
    metric_value: float = 0.0
    color: str | None = None
    extras: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def key(self) -> tuple[int, str]:
        return (self.level, self.id)

    @property
    def color_seed(self) -> str:
        return self.region_name or f"region_{self.id}"


@dataclass(frozen=True, slots=True)
class ParsedGeometry:
    id: str
    geometry: Mapping[str, Any]


@dataclass(frozen=True, slots=True)
class NormalizedGeometry:
    """Polygon or MultiPolygon with coordinates in (lat, lon) order."""

    type: str
    coordinates: tuple[Any, ...]

    @property
    def polygons(self) -> tuple[tuple[tuple[Point, ...], ...], ...]:
        """Polygons as ring tuples regardless of the geometry type."""
        if self.type == "Polygon":
            return (self.coordinates,)
        return self.coordinates


@dataclass(frozen=True, slots=True)
class BoundsResult:
    """Overall extent of a region set, as consumed by the zoom estimator."""

    bounds_rect: tuple[Point, Point]
    center: Point
    width_deg: float
    height_deg: float
    crosses_antimeridian: bool
    is_very_large_region: bool

    @property
    def min_lat(self) -> float:
        return self.bounds_rect[0][0]

    @property
    def min_lon(self) -> float:
        return self.bounds_rect[0][1]

    @property
    def max_lat(self) -> float:
        return self.bounds_rect[1][0]

    @property
    def max_lon(self) -> float:
        return self.bounds_rect[1][1]

    def to_dict(self) -> dict[str, Any]:
        return {
            "bounds": [list(self.bounds_rect[0]), list(self.bounds_rect[1])],
            "center": list(self.center),
            "width_deg": self.width_deg,
            "height_deg": self.height_deg,
            "crosses_antimeridian": self.crosses_antimeridian,
            "is_very_large_region": self.is_very_large_region,
        }


@dataclass(frozen=True, slots=True)
class NavigationState:
    current_level: int
    current_parent_id: str | None = None

    @classmethod
    def initial(cls) -> NavigationState:
        return cls(current_level=1, current_parent_id=None)

    @property
    def is_initial(self) -> bool:
        return self.current_level == 1 and self.current_parent_id is None


@dataclass(frozen=True, slots=True)
class Viewport:
    width_px: float = DEFAULT_VIEWPORT_WIDTH_PX
    height_px: float = DEFAULT_VIEWPORT_HEIGHT_PX

    @classmethod
    def of(cls, width_px: float | None, height_px: float | None) -> Viewport:
        """Build a viewport, substituting defaults for unknown dimensions."""
        width = float(width_px) if width_px else 0.0
        height = float(height_px) if height_px else 0.0
        return cls(
            width_px=width if width > 0 else DEFAULT_VIEWPORT_WIDTH_PX,
            height_px=height if height > 0 else DEFAULT_VIEWPORT_HEIGHT_PX,
        )
