"""Region map widget: wires rows, navigation, colors and bounds to a map adapter."""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping, Sequence

from .adapter import MapAdapter, Overlay, Unsubscribe
from .bounds import calculate_optimal_zoom, compute_overall_bounds
from .colors import build_color_map, darken_color
from .config import ChartConfig
from .crossfilter import build_data_mask, is_filter_active, selected_values_of
from .formatting import number_format
from .geometry import compute_centroid, is_drawable, normalize_geometry
from .layout import LegendItem, info_scale_factor, label_offset, legend_items
from .loader import ProviderLoader, get_provider_loader
from .models import BoundsResult, NavigationState, Point, RegionRecord, Viewport
from .navigation import HierarchyNavigator
from .payload import parse_geometry
from .render_pass import RenderPass, open_pass
from .rows import NormalizationResult, normalize_rows


STATUS_IDLE = "idle"
STATUS_LOADING = "loading"
STATUS_READY = "ready"
STATUS_UNAVAILABLE = "unavailable"
STATUS_UNMOUNTED = "unmounted"

CENTER_DURATION_MS = 500
INFO_ICON_OFFSET = (-110.0, -110.0)

_LOGGER = logging.getLogger("regionmap.widget")


@dataclass(frozen=True, slots=True)
class _PolygonStylePolicy:
    stroke_color: str = "#4159ba"
    hover_stroke_color: str = "#506fdd"
    stroke_width: float = 2.0
    mobile_stroke_width: float = 1.2
    heatmap_stroke_width: float = 1.0
    heatmap_stroke_darken: float = 0.3
    heatmap_hover_darken: float = 0.1
    fill_opacity: float = 0.72
    stroke_opacity: float = 0.9
    hover_opacity_boost: float = 0.15
    hover_width_factor: float = 1.25
    z_index: int = 100
    hover_z_index: int = 170


_STYLE_POLICY = _PolygonStylePolicy()


@dataclass(slots=True)
class RenderReport:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    infos: list[str] = field(default_factory=list)
    rendered_regions: list[str] = field(default_factory=list)
    skipped_regions: list[str] = field(default_factory=list)
    center: Point | None = None
    zoom: int | None = None

    @property
    def ok(self) -> bool:
        return not self.errors

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)

    def add_info(self, msg: str) -> None:
        self.infos.append(msg)

    @property
    def summary(self) -> dict[str, Any]:
        return {
            "rendered": len(self.rendered_regions),
            "skipped": len(self.skipped_regions),
            "errors": len(self.errors),
            "warnings": len(self.warnings),
            "center": list(self.center) if self.center is not None else None,
            "zoom": self.zoom,
        }


def format_render_lines(report: RenderReport) -> Iterable[str]:
    for info in report.infos:
        yield f"[INFO] {info}"
    for warning in report.warnings:
        yield f"[WARN] {warning}"
    for error in report.errors:
        yield f"[ERROR] {error}"
    if report.ok:
        yield f"[OK] Rendered {len(report.rendered_regions)} regions."


@dataclass(frozen=True, slots=True)
class DetailView:
    """Actions available for the region the user opened."""

    region: RegionRecord
    has_children: bool
    has_parent: bool
    can_return_to_min: bool
    filter_active: bool
    cross_filter_enabled: bool


class RegionMapWidget:
    """Controller behind one map widget instance.

    The widget renders only after the shared provider loader reports ready.
    Each render tears down the previous overlays before building new ones.
    """

    def __init__(
        self,
        config: ChartConfig,
        adapter: MapAdapter,
        *,
        loader: ProviderLoader | None = None,
        set_data_mask: Callable[[dict[str, Any]], None] | None = None,
        filter_state: Mapping[str, Any] | None = None,
        mobile: bool = False,
    ) -> None:
        self.config = config
        self._adapter = adapter
        self._loader = loader
        self._set_data_mask = set_data_mask
        self._filter_state: Mapping[str, Any] | None = filter_state
        self._mobile = mobile
        self._viewport = config.viewport.viewport
        self._navigator = HierarchyNavigator()
        self._status = STATUS_IDLE
        self._pass: RenderPass | None = None
        self._base_styles: dict[int, dict[str, Any]] = {}
        self._hovered: set[int] = set()
        self._detail: DetailView | None = None
        self._cancel_ready: Unsubscribe | None = None
        self._listeners: list[Unsubscribe] = []
        self.last_report: RenderReport | None = None

    # ------------------------------------------------------------------ state

    @property
    def status(self) -> str:
        return self._status

    @property
    def navigator(self) -> HierarchyNavigator:
        return self._navigator

    @property
    def navigation_state(self) -> NavigationState:
        return self._navigator.state

    @property
    def viewport(self) -> Viewport:
        return self._viewport

    @property
    def detail(self) -> DetailView | None:
        return self._detail

    @property
    def render_pass(self) -> RenderPass | None:
        return self._pass

    @property
    def filter_state(self) -> Mapping[str, Any] | None:
        return self._filter_state

    def visible_records(self) -> list[RegionRecord]:
        return self._navigator.filtered_data()

    def color_map(self, records: Sequence[RegionRecord] | None = None) -> Mapping[str, str]:
        visible = self.visible_records() if records is None else records
        return build_color_map(
            visible,
            heatmap=self.config.display.show_heatmap,
            base_color=self.config.heatmap.base_color,
            opacity=self.config.heatmap.opacity,
        )

    def legend(self) -> list[LegendItem]:
        if not self.config.display.show_legend:
            return []
        visible = self.visible_records()
        return legend_items(visible, self.color_map(visible))

    def view(self, records: Sequence[RegionRecord] | None = None) -> tuple[BoundsResult | None, Point, int]:
        """Bounds, center and zoom for the visible records."""
        visible = self.visible_records() if records is None else records
        bounds = compute_overall_bounds(visible)
        viewport_cfg = self.config.viewport
        center = bounds.center if bounds is not None else viewport_cfg.initial_center
        if viewport_cfg.use_initial_zoom:
            zoom = viewport_cfg.initial_zoom
        else:
            zoom = calculate_optimal_zoom(bounds, self._viewport)
        return bounds, center, zoom

    # -------------------------------------------------------------- lifecycle

    def mount(self) -> None:
        if self._status == STATUS_UNMOUNTED:
            raise RuntimeError("Widget was unmounted and cannot be mounted again")
        if self._status != STATUS_IDLE:
            return
        self._status = STATUS_LOADING
        loader = self._loader if self._loader is not None else get_provider_loader()
        self._cancel_ready = loader.request(self._on_provider_ready)

    def unmount(self) -> None:
        if self._status == STATUS_UNMOUNTED:
            return
        if self._cancel_ready is not None:
            self._cancel_ready()
            self._cancel_ready = None
        for unsubscribe in self._listeners:
            unsubscribe()
        self._listeners.clear()
        self._teardown_pass()
        self._adapter.destroy()
        self._detail = None
        self._status = STATUS_UNMOUNTED
        _LOGGER.debug("Widget unmounted")

    def _on_provider_ready(self, ok: bool) -> None:
        self._cancel_ready = None
        if self._status != STATUS_LOADING:
            return
        if not ok:
            self._status = STATUS_UNAVAILABLE
            _LOGGER.warning("Map provider unavailable; widget shows a placeholder")
            return
        _bounds, center, zoom = self.view()
        self._adapter.create_map(center, zoom)
        self._listeners = [
            self._adapter.subscribe("sizechange", self.resize),
            self._adapter.subscribe("dblclick", self._on_dblclick),
            self._adapter.subscribe("mouseenter", self._on_mouseenter),
            self._adapter.subscribe("mouseleave", self._on_mouseleave),
        ]
        self._status = STATUS_READY
        self.render()

    # ------------------------------------------------------------------- data

    def set_data(self, raw_rows: Iterable[Mapping[str, Any]]) -> NormalizationResult:
        result = normalize_rows(raw_rows, self.config.columns, self.config.metric)
        self.set_records(result.records)
        return result

    def set_records(self, records: Sequence[RegionRecord]) -> None:
        self._navigator.sync(records)
        self._detail = None
        if self._status == STATUS_READY:
            self.render()

    def set_filter_state(self, filter_state: Mapping[str, Any] | None) -> None:
        self._filter_state = filter_state

    def set_display(self, **changes: Any) -> None:
        """Update display toggles (``show_heatmap=True`` etc.) and re-render."""
        display = dataclasses.replace(self.config.display, **changes)
        self.config = dataclasses.replace(self.config, display=display)
        if self._status == STATUS_READY:
            self.render()

    def resize(self, width_px: float, height_px: float) -> None:
        self._viewport = Viewport.of(width_px, height_px)
        if self._status != STATUS_READY:
            return
        _bounds, center, zoom = self.view()
        self._adapter.set_center(center, zoom, CENTER_DURATION_MS)

    # ----------------------------------------------------------------- render

    def render(self) -> RenderReport:
        report = RenderReport()
        self.last_report = report
        if self._status != STATUS_READY or self._adapter.is_destroyed:
            report.add_info(f"Render skipped: widget status is {self._status}")
            return report

        self._teardown_pass()
        visible = self.visible_records()
        try:
            colors = self.color_map(visible)
            _bounds, center, zoom = self.view(visible)
            report.center = center
            report.zoom = zoom
            self._adapter.set_center(center, zoom, CENTER_DURATION_MS)
            with open_pass(self._adapter) as render_pass:
                for record in visible:
                    self._build_region(render_pass, record, colors, zoom, report)
        except Exception as exc:
            _LOGGER.error("Render failed; partial overlays removed: %s", exc)
            report.add_error(f"Render failed: {exc}")
            report.rendered_regions.clear()
            self._base_styles.clear()
            return report

        self._pass = render_pass
        report.add_info(
            f"Level {self._navigator.state.current_level}: "
            f"{len(report.rendered_regions)} regions at zoom {zoom}"
        )
        return report

    def _build_region(
        self,
        render_pass: RenderPass,
        record: RegionRecord,
        colors: Mapping[str, str],
        zoom: int,
        report: RenderReport,
    ) -> None:
        parsed = parse_geometry(record.geojson)
        geometry = normalize_geometry(parsed.geometry) if parsed is not None else None
        if geometry is None:
            report.add_warning(f"Skipped region {record.id}: geometry could not be parsed")
            report.skipped_regions.append(record.id)
            return
        if not is_drawable(geometry):
            report.add_warning(f"Skipped region {record.id}: malformed coordinates")
            report.skipped_regions.append(record.id)
            return

        display = self.config.display
        style = self._polygon_style(colors.get(record.id))
        properties = {
            "region_id": record.id,
            "region_name": record.display_name,
            "info_html": record.message_html,
            "metric_label": self.config.metric or "value",
            "metric_value": number_format(record.metric_value),
        }
        for rings in geometry.polygons:
            handle = self._adapter.create_polygon(rings, style, properties)
            if handle is None:
                raise RuntimeError(f"Adapter refused polygon for region {record.id}")
            render_pass.track(record.id, handle)
            self._base_styles[handle.handle_id] = dict(style)

        center = compute_centroid(geometry)
        info = self._adapter.create_marker(
            center,
            {
                "kind": "info",
                "offset": INFO_ICON_OFFSET,
                "scale": info_scale_factor(zoom, display.info_scale),
                "z_index": 1500,
            },
            properties,
        )
        label = self._adapter.create_marker(
            center,
            {
                "kind": "label",
                "position": display.label_position,
                "offset": label_offset(display.label_position, record.display_name),
                "z_index": 1400,
            },
            {"region_id": record.id, "region_name": record.display_name},
        )
        if info is None or label is None:
            raise RuntimeError(f"Adapter refused markers for region {record.id}")
        render_pass.track(record.id, info, visible=display.show_info)
        render_pass.track(record.id, label, visible=display.show_labels)
        report.rendered_regions.append(record.id)
        _LOGGER.debug("Region %s drawn with %d polygons", record.id, len(geometry.polygons))

    def _polygon_style(self, fill_color: str | None) -> dict[str, Any]:
        policy = _STYLE_POLICY
        display = self.config.display
        style: dict[str, Any] = {
            "fill_color": fill_color,
            "stroke_color": policy.stroke_color,
            "stroke_width": policy.mobile_stroke_width if self._mobile else policy.stroke_width,
            "fill_opacity": policy.fill_opacity,
            "stroke_opacity": policy.stroke_opacity,
            "z_index": policy.z_index,
            "has_hint": display.show_hints,
        }
        if display.show_heatmap:
            style["stroke_color"] = darken_color(self.config.heatmap.base_color, policy.heatmap_stroke_darken)
            style["stroke_width"] = policy.heatmap_stroke_width
            style["fill_opacity"] = self.config.heatmap.opacity
        return style

    def _teardown_pass(self) -> None:
        if self._pass is not None:
            self._pass.teardown()
            self._pass = None
        self._base_styles.clear()
        self._hovered.clear()

    # ------------------------------------------------------------ interaction

    def _on_mouseenter(self, handle: Overlay) -> None:
        base = self._base_styles.get(handle.handle_id)
        if base is None or handle.handle_id in self._hovered:
            return
        policy = _STYLE_POLICY
        self._hovered.add(handle.handle_id)
        if self.config.display.show_heatmap:
            stroke_color = darken_color(base["stroke_color"], policy.heatmap_hover_darken)
        else:
            stroke_color = policy.hover_stroke_color
        self._adapter.set_options(
            handle,
            {
                "fill_opacity": min(base["fill_opacity"] + policy.hover_opacity_boost, 1.0),
                "stroke_color": stroke_color,
                "stroke_width": base["stroke_width"] * (1.0 if self._mobile else policy.hover_width_factor),
                "stroke_opacity": 1.0,
                "z_index": policy.hover_z_index,
            },
        )

    def _on_mouseleave(self, handle: Overlay) -> None:
        base = self._base_styles.get(handle.handle_id)
        if base is None:
            return
        self._hovered.discard(handle.handle_id)
        self._adapter.set_options(handle, base)

    def _on_dblclick(self, handle: Overlay) -> None:
        if handle.region_id is not None and handle.kind == "polygon":
            self.open_detail(handle.region_id)

    def _visible_record(self, region_id: str) -> RegionRecord | None:
        for record in self.visible_records():
            if record.id == region_id:
                return record
        return None

    def open_detail(self, region_id: str) -> DetailView | None:
        record = self._visible_record(region_id)
        if record is None:
            _LOGGER.debug("Detail requested for region %s which is not visible", region_id)
            return None
        self._detail = DetailView(
            region=record,
            has_children=self._navigator.has_children(record),
            has_parent=self._navigator.has_parent(record),
            can_return_to_min=self._navigator.can_return_to_min,
            filter_active=is_filter_active(record.region_name, self._filter_state),
            cross_filter_enabled=self.config.cross_filter.enabled,
        )
        return self._detail

    def close_detail(self) -> None:
        self._detail = None

    def drill_down(self, region_id: str | None = None) -> bool:
        record = self._detail_or_visible(region_id)
        if record is None:
            return False
        return self._navigate(self._navigator.to_children(record))

    def roll_up(self) -> bool:
        return self._navigate(self._navigator.to_parent())

    def return_to_min(self) -> bool:
        return self._navigate(self._navigator.to_min_level())

    def cross_filter(self, region_name: str | None = None) -> dict[str, Any] | None:
        """Emit a data mask for ``region_name`` (default: the open region)."""
        if not self.config.cross_filter.enabled:
            return None
        if region_name is None:
            if self._detail is None:
                return None
            region_name = self._detail.region.region_name
        if not region_name:
            return None
        mask = build_data_mask(
            region_name,
            selected_values_of(self._filter_state),
            self.config.cross_filter.field,
        )
        if self._set_data_mask is not None:
            self._set_data_mask(mask)
        self._filter_state = mask["filter_state"]
        self._detail = None
        return mask

    def _detail_or_visible(self, region_id: str | None) -> RegionRecord | None:
        if region_id is None:
            return self._detail.region if self._detail is not None else None
        return self._visible_record(region_id)

    def _navigate(self, changed: bool) -> bool:
        self._detail = None
        if changed and self._status == STATUS_READY:
            self.render()
        return changed
