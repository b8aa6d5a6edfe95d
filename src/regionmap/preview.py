"""Static PNG previews of the map state held by an in-memory adapter."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Sequence

from .adapter import InMemoryMapAdapter, Overlay
from .bounds import TILE_SIZE_PX
from .models import Point, Viewport


_LOGGER = logging.getLogger("regionmap.preview")


@dataclass(frozen=True, slots=True)
class _PreviewStylePolicy:
    background: str = "#f4f6fb"
    default_fill: str = "#cccccc"
    label_color: str = "#2d3748"
    label_font_size: float = 9.0
    info_font_size: float = 8.0
    info_box_color: str = "#ffffff"
    info_edge_color: str = "#4159ba"


_STYLE_POLICY = _PreviewStylePolicy()


class PreviewMapAdapter(InMemoryMapAdapter):
    """In-memory adapter that can draw its current overlays with matplotlib."""

    def __init__(self, viewport: Viewport | None = None, *, dpi: int = 100) -> None:
        super().__init__()
        self.viewport = viewport if viewport is not None else Viewport()
        self.dpi = dpi

    def extent(self) -> tuple[float, float, float, float]:
        """``(min_lon, max_lon, min_lat, max_lat)`` visible at the current center and zoom."""
        center = self.center
        zoom = self.get_zoom()
        if center is None or zoom is None:
            raise RuntimeError("Map has no view; call create_map first")
        return view_extent(center, zoom, self.viewport)

    def save_png(self, output_path: Path, *, background: str | None = None) -> Path:
        plt, transforms, mcolors, mpl_path, path_patch = _require_matplotlib()
        orient = _require_shapely_orient()
        min_lon, max_lon, min_lat, max_lat = self.extent()
        bg = background or _STYLE_POLICY.background

        fig, ax = plt.subplots(
            figsize=(self.viewport.width_px / self.dpi, self.viewport.height_px / self.dpi),
            dpi=self.dpi,
        )
        fig.subplots_adjust(left=0.0, right=1.0, bottom=0.0, top=1.0)
        try:
            fig.patch.set_facecolor(bg)
            ax.set_facecolor(bg)
            ax.set_xlim(min_lon, max_lon)
            ax.set_ylim(min_lat, max_lat)
            ax.axis("off")

            drawn = 0
            for overlay in self.overlays_of_kind("polygon"):
                patch = _polygon_patch(
                    overlay, orient=orient, mcolors=mcolors, path_cls=mpl_path, patch_cls=path_patch
                )
                if patch is None:
                    continue
                ax.add_patch(patch)
                drawn += 1

            for overlay in self.overlays_of_kind("marker"):
                _draw_marker(ax=ax, fig=fig, transforms=transforms, overlay=overlay)

            output_path.parent.mkdir(parents=True, exist_ok=True)
            fig.savefig(output_path, dpi=self.dpi, format="png", facecolor=fig.get_facecolor())
            _LOGGER.info("Preview written to %s (%d polygons)", output_path, drawn)
            return output_path
        finally:
            plt.close(fig)


def view_extent(center: Point, zoom: int, viewport: Viewport) -> tuple[float, float, float, float]:
    scale = 2.0**zoom
    lon_span = 360.0 * (viewport.width_px / TILE_SIZE_PX) / scale
    lat_span = 180.0 * (viewport.height_px / TILE_SIZE_PX) / scale
    lat, lon = center
    return (
        lon - lon_span / 2.0,
        lon + lon_span / 2.0,
        max(-90.0, lat - lat_span / 2.0),
        min(90.0, lat + lat_span / 2.0),
    )


def _polygon_patch(overlay: Overlay, *, orient: Any, mcolors: Any, path_cls: Any, patch_cls: Any) -> Any | None:
    rings = [[(float(lon), float(lat)) for lat, lon in ring] for ring in overlay.geometry if len(ring) >= 3]
    if not rings:
        return None
    shapely_polygon = _require_shapely_polygon()
    try:
        polygon = orient(shapely_polygon(rings[0], rings[1:]), sign=1.0)
    except ValueError as exc:
        _LOGGER.warning("Skipping degenerate polygon for region %s: %s", overlay.region_id, exc)
        return None
    if polygon.is_empty:
        return None

    vertices: list[tuple[float, float]] = []
    codes: list[int] = []
    for ring in (polygon.exterior, *polygon.interiors):
        coords = list(ring.coords)
        vertices.extend(coords)
        codes.extend([path_cls.MOVETO] + [path_cls.LINETO] * (len(coords) - 2) + [path_cls.CLOSEPOLY])

    options = overlay.options
    fill = options.get("fill_color") or _STYLE_POLICY.default_fill
    face = mcolors.to_rgba(fill[:7], alpha=float(options.get("fill_opacity", 1.0)))
    edge = mcolors.to_rgba(
        str(options.get("stroke_color", "#000000"))[:7],
        alpha=float(options.get("stroke_opacity", 1.0)),
    )
    return patch_cls(
        path_cls(vertices, codes),
        facecolor=face,
        edgecolor=edge,
        linewidth=float(options.get("stroke_width", 1.0)),
        zorder=int(options.get("z_index", 100)) / 100.0,
    )


def _draw_marker(*, ax: Any, fig: Any, transforms: Any, overlay: Overlay) -> None:
    lat, lon = overlay.geometry
    kind = overlay.options.get("kind")
    name = str(overlay.properties.get("region_name", ""))
    if kind == "label":
        dx_px, dy_px = overlay.options.get("offset", (0.0, 0.0))
        shift = transforms.ScaledTranslation(dx_px / fig.dpi, -dy_px / fig.dpi, fig.dpi_scale_trans)
        ax.text(
            lon,
            lat,
            name,
            transform=ax.transData + shift,
            color=_STYLE_POLICY.label_color,
            fontsize=_STYLE_POLICY.label_font_size,
            ha="center",
            va="center",
            clip_on=True,
            zorder=14,
        )
    elif kind == "info":
        scale = float(overlay.options.get("scale", 1.0))
        label = overlay.properties.get("metric_label", "value")
        value = overlay.properties.get("metric_value", "")
        ax.annotate(
            f"{name}\n{label}: {value}",
            xy=(lon, lat),
            ha="center",
            va="center",
            fontsize=_STYLE_POLICY.info_font_size * scale,
            bbox={
                "boxstyle": "round,pad=0.3",
                "facecolor": _STYLE_POLICY.info_box_color,
                "edgecolor": _STYLE_POLICY.info_edge_color,
            },
            annotation_clip=True,
            zorder=15,
        )


def _require_matplotlib() -> tuple[Any, Any, Any, Any, Any]:
    try:
        import matplotlib

        matplotlib.use("Agg", force=False)
        import matplotlib.colors as mcolors
        import matplotlib.pyplot as plt
        import matplotlib.transforms as transforms
        from matplotlib.patches import PathPatch
        from matplotlib.path import Path as MplPath
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("matplotlib is required for preview rendering") from exc
    return (plt, transforms, mcolors, MplPath, PathPatch)


@lru_cache(maxsize=1)
def _require_shapely_orient() -> Any:
    try:
        from shapely.geometry.polygon import orient
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("shapely is required for preview polygons") from exc
    return orient


@lru_cache(maxsize=1)
def _require_shapely_polygon() -> Any:
    try:
        from shapely.geometry import Polygon
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("shapely is required for preview polygons") from exc
    return Polygon


def overlay_counts(overlays: Sequence[Overlay]) -> dict[str, int]:
    counts: dict[str, int] = {}
    for overlay in overlays:
        key = overlay.options.get("kind", overlay.kind) if overlay.kind == "marker" else overlay.kind
        counts[key] = counts.get(key, 0) + 1
    return counts
