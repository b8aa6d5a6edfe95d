"""Legend entries, label offsets and info-card scaling."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Sequence

from .colors import resolve_region_color
from .models import RegionRecord


_BASE_LABEL_OFFSETS = {
    "top": (0.0, -40.0),
    "bottom": (0.0, 40.0),
    "left": (-40.0, 0.0),
    "right": (40.0, 0.0),
}
_LABEL_TEXT_FACTOR = 0.7
_LABEL_TEXT_MAX_SHIFT = 15.0

_INFO_SCALE_MIN_ZOOM = 5
_INFO_SCALE_MAX_ZOOM = 13
_INFO_SCALE_FLOOR = 0.2


@dataclass(frozen=True, slots=True)
class LegendItem:
    id: str
    name: str
    color: str
    value: float

    def to_dict(self) -> dict[str, object]:
        return {"id": self.id, "name": self.name, "color": self.color, "value": self.value}


def legend_items(
    records: Sequence[RegionRecord],
    color_map: Mapping[str, str],
) -> list[LegendItem]:
    """One entry per visible region, in record order."""
    return [
        LegendItem(
            id=record.id,
            name=record.display_name,
            color=color_map.get(record.id) or resolve_region_color(record),
            value=record.metric_value,
        )
        for record in records
    ]


def label_offset(position: str, name: str) -> tuple[float, float]:
    """Pixel offset pushing a label away from its anchor, further for longer names."""
    shift = min(len(name) * _LABEL_TEXT_FACTOR, _LABEL_TEXT_MAX_SHIFT)
    dx, dy = _BASE_LABEL_OFFSETS.get(position, _BASE_LABEL_OFFSETS["top"])
    if position == "bottom":
        return (dx, dy + shift)
    if position == "left":
        return (dx - shift, dy)
    if position == "right":
        return (dx + shift, dy)
    return (dx, dy - shift)


def info_scale_factor(zoom: float, info_scale: float | None = None) -> float:
    """Scale for info cards: the configured value, or interpolated from zoom when unset."""
    if info_scale is not None:
        return float(info_scale)
    if zoom <= _INFO_SCALE_MIN_ZOOM:
        return _INFO_SCALE_FLOOR
    if zoom >= _INFO_SCALE_MAX_ZOOM:
        return 1.0
    progress = (zoom - _INFO_SCALE_MIN_ZOOM) / (_INFO_SCALE_MAX_ZOOM - _INFO_SCALE_MIN_ZOOM)
    return _INFO_SCALE_FLOOR + (1.0 - _INFO_SCALE_FLOOR) * progress
