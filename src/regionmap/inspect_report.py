"""JSON inspection report of levels, extents, zooms and label anchors."""

from __future__ import annotations

from collections import Counter
from pathlib import Path
from typing import Any, Sequence

from .bounds import calculate_optimal_zoom, compute_overall_bounds
from .colors import build_color_map
from .config import ChartConfig
from .geometry import compute_centroid, normalize_geometry
from .models import RegionRecord
from .payload import parse_geometry
from .util import sha256_file, write_json


def build_inspection(
    cfg: ChartConfig,
    records: Sequence[RegionRecord],
    *,
    skipped_rows: Sequence[str] = (),
    data_path: Path | None = None,
) -> dict[str, Any]:
    """Describe every level as the widget would show it at the top of that level."""
    viewport = cfg.viewport.viewport
    per_level = Counter(record.level for record in records)
    levels: list[dict[str, Any]] = []
    for level in sorted(per_level):
        level_records = [record for record in records if record.level == level]
        bounds = compute_overall_bounds(level_records)
        colors = build_color_map(
            level_records,
            heatmap=cfg.display.show_heatmap,
            base_color=cfg.heatmap.base_color,
            opacity=cfg.heatmap.opacity,
        )
        levels.append(
            {
                "level": level,
                "regions": len(level_records),
                "bounds": bounds.to_dict() if bounds is not None else None,
                "zoom": calculate_optimal_zoom(bounds, viewport),
                "items": [_region_to_dict(record, colors.get(record.id)) for record in level_records],
            }
        )

    meta: dict[str, Any] = {
        "records": len(records),
        "skipped_rows": list(skipped_rows),
        "metric": cfg.metric,
        "heatmap": cfg.display.show_heatmap,
        "viewport": [viewport.width_px, viewport.height_px],
    }
    if data_path is not None:
        meta["data_file"] = str(data_path)
        meta["data_sha256"] = sha256_file(data_path)
    return {"meta": meta, "levels": levels}


def write_inspection(path: Path, payload: dict[str, Any]) -> Path:
    write_json(path, payload)
    return path


def _region_to_dict(record: RegionRecord, color: str | None) -> dict[str, Any]:
    parsed = parse_geometry(record.geojson)
    geometry = normalize_geometry(parsed.geometry) if parsed is not None else None
    return {
        "id": record.id,
        "name": record.display_name,
        "parent_id": record.parent_id,
        "metric": record.metric_value,
        "color": color,
        "geometry_type": geometry.type if geometry is not None else None,
        "parts": len(geometry.polygons) if geometry is not None else 0,
        "centroid": list(compute_centroid(geometry)) if geometry is not None else None,
    }
