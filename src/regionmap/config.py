"""Typed configuration loader for chart settings (`config.yaml` or host form data)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, cast

import yaml

from .colors import DEFAULT_COLOR, color_to_hex, get_safe_color, is_valid_color
from .geometry import FALLBACK_POINT
from .models import Viewport


POSITIONS = ("top", "bottom", "left", "right")
DEFAULT_SCRIPT_URL = "https://api-maps.yandex.ru/2.1/"
DEFAULT_INITIAL_ZOOM = 4

_LOGGER = logging.getLogger("regionmap.config")


def _mapping(value: Any, field_name: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ValueError(f"Expected mapping for '{field_name}'")
    return cast(Mapping[str, Any], value)


def _section(raw: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = raw.get(key)
    if value is None:
        return {}
    return _mapping(value, key)


def _str(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Expected non-empty string for '{field_name}'")
    return value.strip()


def _opt_str(value: Any, field_name: str) -> str | None:
    if value is None or value == "":
        return None
    return _str(value, field_name)


def _int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Expected integer for '{field_name}'")
    return value


def _float(value: Any, field_name: str) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    raise ValueError(f"Expected float for '{field_name}'")


def _bool(value: Any, field_name: str) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"Expected bool for '{field_name}'")
    return value


def _position(value: Any, field_name: str) -> str:
    position = _str(value, field_name).casefold()
    if position not in POSITIONS:
        raise ValueError(f"{field_name} must be one of: " + ", ".join(POSITIONS))
    return position


def extract_column_name(value: Any) -> str | None:
    """Column name from a plain string or a host column/metric object."""
    if not value:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)):
        return extract_column_name(value[0])
    if isinstance(value, Mapping):
        for key in ("column_name", "label", "name", "value"):
            if value.get(key):
                return str(value[key])
        column = value.get("column")
        if isinstance(column, Mapping):
            for key in ("column_name", "verbose_name", "columnName"):
                if column.get(key):
                    return str(column[key])
    return None


def _column(raw: Mapping[str, Any], key: str, default: str | None) -> str | None:
    if key not in raw:
        return default
    value = raw.get(key)
    if value is None or value == "" or value == []:
        return None
    name = extract_column_name(value)
    if name is None:
        raise ValueError(f"Expected column name for 'columns.{key}'")
    return name


@dataclass(frozen=True, slots=True)
class ColumnsConfig:
    """Input column names mapped onto the canonical record fields."""

    id: str
    geojson: str
    level: str
    region_name: str | None = "region_name"
    message_html: str | None = "message_html"
    parent_id: str | None = "parent_id"
    color: str | None = None

    @property
    def mapped(self) -> dict[str, str]:
        """Input column -> canonical field, for every configured column."""
        out: dict[str, str] = {}
        for canonical in ("id", "geojson", "level", "region_name", "message_html", "parent_id", "color"):
            column = getattr(self, canonical)
            if column:
                out[column] = canonical
        return out

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> ColumnsConfig:
        required = {}
        for key in ("id", "geojson", "level"):
            name = _column(raw, key, key)
            if name is None:
                raise ValueError(f"Expected column name for 'columns.{key}'")
            required[key] = name
        return cls(
            id=required["id"],
            geojson=required["geojson"],
            level=required["level"],
            region_name=_column(raw, "region_name", "region_name"),
            message_html=_column(raw, "message_html", "message_html"),
            parent_id=_column(raw, "parent_id", "parent_id"),
            color=_column(raw, "color", None),
        )


@dataclass(frozen=True, slots=True)
class DisplayConfig:
    show_info: bool = True
    show_heatmap: bool = False
    show_labels: bool = False
    show_legend: bool = False
    legend_position: str = "top"
    label_position: str = "top"
    # None scales info cards with the map zoom.
    info_scale: float | None = 1.0

    @property
    def show_hints(self) -> bool:
        return not self.show_info and not self.show_labels

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> DisplayConfig:
        info_scale_raw = raw.get("info_scale", 1.0)
        info_scale = None if info_scale_raw is None else _float(info_scale_raw, "display.info_scale")
        if info_scale is not None and not 0.1 <= info_scale <= 1.0:
            raise ValueError("display.info_scale must be within [0.1, 1.0]")
        return cls(
            show_info=_bool(raw.get("show_info", True), "display.show_info"),
            show_heatmap=_bool(raw.get("show_heatmap", False), "display.show_heatmap"),
            show_labels=_bool(raw.get("show_labels", False), "display.show_labels"),
            show_legend=_bool(raw.get("show_legend", False), "display.show_legend"),
            legend_position=_position(raw.get("legend_position", "top"), "display.legend_position"),
            label_position=_position(raw.get("label_position", "top"), "display.label_position"),
            info_scale=info_scale,
        )


@dataclass(frozen=True, slots=True)
class HeatmapConfig:
    base_color: str = DEFAULT_COLOR
    opacity: float = 0.8

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> HeatmapConfig:
        raw_color = color_to_hex(raw.get("base_color"))
        if not is_valid_color(raw_color):
            _LOGGER.warning("Invalid heatmap.base_color %r; using %s", raw_color, DEFAULT_COLOR)
        base_color = get_safe_color(raw_color)
        opacity = _float(raw.get("opacity", 0.8), "heatmap.opacity")
        if not 0.0 <= opacity <= 1.0:
            raise ValueError("heatmap.opacity must be within [0, 1]")
        return cls(base_color=base_color, opacity=opacity)


@dataclass(frozen=True, slots=True)
class ViewportConfig:
    initial_center_lat: float = FALLBACK_POINT[0]
    initial_center_lon: float = FALLBACK_POINT[1]
    initial_zoom: int = DEFAULT_INITIAL_ZOOM
    use_initial_zoom: bool = False
    width_px: int | None = None
    height_px: int | None = None

    @property
    def initial_center(self) -> tuple[float, float]:
        return (self.initial_center_lat, self.initial_center_lon)

    @property
    def viewport(self) -> Viewport:
        return Viewport.of(self.width_px, self.height_px)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> ViewportConfig:
        lat = _float(raw.get("initial_center_lat", FALLBACK_POINT[0]), "viewport.initial_center_lat")
        lon = _float(raw.get("initial_center_lon", FALLBACK_POINT[1]), "viewport.initial_center_lon")
        if not -90.0 <= lat <= 90.0:
            raise ValueError("viewport.initial_center_lat must be within [-90, 90]")
        if not -180.0 <= lon <= 180.0:
            raise ValueError("viewport.initial_center_lon must be within [-180, 180]")
        zoom = _int(raw.get("initial_zoom", DEFAULT_INITIAL_ZOOM), "viewport.initial_zoom")
        if not 0 <= zoom <= 21:
            raise ValueError("viewport.initial_zoom must be within [0, 21]")
        width_raw = raw.get("width_px")
        height_raw = raw.get("height_px")
        return cls(
            initial_center_lat=lat,
            initial_center_lon=lon,
            initial_zoom=zoom,
            use_initial_zoom=_bool(raw.get("use_initial_zoom", False), "viewport.use_initial_zoom"),
            width_px=None if width_raw is None else _int(width_raw, "viewport.width_px"),
            height_px=None if height_raw is None else _int(height_raw, "viewport.height_px"),
        )


@dataclass(frozen=True, slots=True)
class CrossFilterConfig:
    enabled: bool = False
    field: str = "region_name"

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> CrossFilterConfig:
        return cls(
            enabled=_bool(raw.get("enabled", False), "cross_filter.enabled"),
            field=_str(raw.get("field", "region_name"), "cross_filter.field"),
        )


@dataclass(frozen=True, slots=True)
class ProviderConfig:
    script_url: str = DEFAULT_SCRIPT_URL
    api_key_env: str | None = None
    lang: str = "ru_RU"
    request_timeout_s: float = 10.0

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> ProviderConfig:
        timeout = _float(raw.get("request_timeout_s", 10.0), "provider.request_timeout_s")
        if timeout <= 0:
            raise ValueError("provider.request_timeout_s must be > 0")
        return cls(
            script_url=_str(raw.get("script_url", DEFAULT_SCRIPT_URL), "provider.script_url"),
            api_key_env=_opt_str(raw.get("api_key_env"), "provider.api_key_env"),
            lang=_str(raw.get("lang", "ru_RU"), "provider.lang"),
            request_timeout_s=timeout,
        )


@dataclass(frozen=True, slots=True)
class ChartConfig:
    columns: ColumnsConfig
    metric: str | None = None
    display: DisplayConfig = DisplayConfig()
    heatmap: HeatmapConfig = HeatmapConfig()
    viewport: ViewportConfig = ViewportConfig()
    cross_filter: CrossFilterConfig = CrossFilterConfig()
    provider: ProviderConfig = ProviderConfig()
    source_path: Path | None = None

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], source_path: Path | None = None) -> ChartConfig:
        metric_raw = raw.get("metric")
        if isinstance(metric_raw, (list, tuple)):
            metric_raw = metric_raw[0] if metric_raw else None
        metric = extract_column_name(metric_raw)
        if metric_raw and metric is None:
            raise ValueError("Expected metric name for 'metric'")
        return cls(
            columns=ColumnsConfig.from_mapping(_section(raw, "columns")),
            metric=metric,
            display=DisplayConfig.from_mapping(_section(raw, "display")),
            heatmap=HeatmapConfig.from_mapping(_section(raw, "heatmap")),
            viewport=ViewportConfig.from_mapping(_section(raw, "viewport")),
            cross_filter=CrossFilterConfig.from_mapping(_section(raw, "cross_filter")),
            provider=ProviderConfig.from_mapping(_section(raw, "provider")),
            source_path=source_path.resolve() if source_path is not None else None,
        )


def load_config(path: str | Path) -> ChartConfig:
    """Load and validate the YAML config file into typed settings."""
    cfg_path = Path(path).resolve()
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config file not found: {cfg_path}")
    with cfg_path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh)
    if not isinstance(raw, Mapping):
        raise ValueError("Top-level config must be a YAML mapping")
    return ChartConfig.from_mapping(cast(Mapping[str, Any], raw), cfg_path)
