"""Region fill colors: explicit overrides, hash-derived identity colors, heatmap shading."""

from __future__ import annotations

import colorsys
import logging
import math
import re
from types import MappingProxyType
from typing import Any, Mapping, Sequence

from .formatting import metric_range, normalize_value
from .models import RegionRecord


DEFAULT_COLOR = "#FF6D00"
DEFAULT_ALPHA = "BB"
HEATMAP_MIN_OPACITY = 0.8
HEATMAP_MAX_OPACITY = 1.0

_HEX_COLOR_RE = re.compile(r"^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3}|[A-Fa-f0-9]{8})$")

_LOGGER = logging.getLogger("regionmap.colors")


def is_valid_color(color: Any) -> bool:
    return isinstance(color, str) and _HEX_COLOR_RE.match(color) is not None


def get_safe_color(color: Any, default: str = DEFAULT_COLOR) -> str:
    return color if is_valid_color(color) else default


def resolve_region_color(record: RegionRecord) -> str:
    """Explicit record color when valid, otherwise a stable color derived from the region name."""
    if record.color is not None and record.color != "":
        if is_valid_color(record.color):
            return record.color + DEFAULT_ALPHA if len(record.color) == 7 else record.color
        _LOGGER.debug("Ignoring invalid color %r for region %s", record.color, record.id)
    return deterministic_color(record.color_seed)


def deterministic_color(seed: str, alpha: str = DEFAULT_ALPHA) -> str:
    hash_value = 0
    for ch in seed:
        hash_value = (ord(ch) + (hash_value << 5) - hash_value) & 0xFFFFFFFF
    r = (hash_value & 0xFF0000) >> 16
    g = (hash_value & 0x00FF00) >> 8
    b = hash_value & 0x0000FF
    return f"#{r:02x}{g:02x}{b:02x}{alpha}"


def heatmap_color(
    normalized_value: float,
    base_color: str = DEFAULT_COLOR,
    opacity: float = 0.9,
) -> str:
    """Shade ``base_color`` so that higher normalized values come out darker.

    Opacity is clamped to [0.8, 1.0] regardless of the configured value.
    """
    safe_opacity = max(HEATMAP_MIN_OPACITY, min(HEATMAP_MAX_OPACITY, float(opacity)))
    r, g, b = _hex_to_rgb(get_safe_color(base_color))
    hue, _lightness, saturation = colorsys.rgb_to_hls(r / 255.0, g / 255.0, b / 255.0)
    lightness = 0.9 - normalized_value * 0.8
    new_r, new_g, new_b = colorsys.hls_to_rgb(hue, lightness, saturation)
    return _rgb_to_hex(new_r, new_g, new_b) + f"{_round_half_up(safe_opacity * 255):02x}"


def resolve_heatmap_color(
    value: float,
    min_value: float,
    max_value: float,
    base_color: str = DEFAULT_COLOR,
    opacity: float = 0.9,
) -> str:
    return heatmap_color(normalize_value(value, min_value, max_value), base_color, opacity)


def darken_color(color: str, factor: float = 0.2) -> str:
    r, g, b = _hex_to_rgb(get_safe_color(color))
    scale = 1.0 - factor
    return "#" + "".join(f"{max(0, math.floor(channel * scale)):02x}" for channel in (r, g, b))


def color_to_hex(value: Any, default: str = DEFAULT_COLOR) -> str:
    """Accept a hex string or an ``{r, g, b}`` picker value."""
    if not value:
        return default
    if isinstance(value, str):
        return value
    if isinstance(value, Mapping) and all(value.get(key) is not None for key in ("r", "g", "b")):
        try:
            channels = [_round_half_up(float(value[key])) for key in ("r", "g", "b")]
        except (TypeError, ValueError):
            return default
        return "#" + "".join(f"{max(0, min(255, channel)):02x}" for channel in channels)
    return default


def build_color_map(
    records: Sequence[RegionRecord],
    *,
    heatmap: bool,
    base_color: str = DEFAULT_COLOR,
    opacity: float = 0.8,
) -> Mapping[str, str]:
    """Read-only region id -> fill color mapping for the visible records."""
    colors: dict[str, str] = {}
    if heatmap:
        min_value, max_value = metric_range(record.metric_value for record in records)
        for record in records:
            colors[record.id] = resolve_heatmap_color(
                record.metric_value, min_value, max_value, base_color, opacity
            )
    else:
        for record in records:
            colors[record.id] = resolve_region_color(record)
    return MappingProxyType(colors)


def _hex_to_rgb(color: str) -> tuple[int, int, int]:
    digits = color.lstrip("#")
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    return (int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16))


def _rgb_to_hex(r: float, g: float, b: float) -> str:
    return "#" + "".join(f"{_round_half_up(channel * 255):02x}" for channel in (r, g, b))


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))
