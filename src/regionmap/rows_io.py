"""Loading raw region rows from JSON, CSV, YAML and spatial files."""

from __future__ import annotations

import csv
import json
import logging
import math
from pathlib import Path
from typing import Any, Iterable, Mapping, Sequence

import yaml

from .config import ColumnsConfig


TABULAR_SUFFIXES = (".json", ".csv", ".yaml", ".yml")
SPATIAL_SUFFIXES = (".geojson", ".gpkg", ".shp")
ID_COLUMN_CANDIDATES = ("id", "ID", "region_id", "code")

_LOGGER = logging.getLogger("regionmap.rows_io")


def _first_existing_column(columns: Iterable[str], candidates: Sequence[str]) -> str | None:
    existing = {col.lower(): col for col in columns}
    for candidate in candidates:
        match = existing.get(candidate.lower())
        if match:
            return match
    return None


def load_rows(path: str | Path, columns: ColumnsConfig | None = None) -> list[dict[str, Any]]:
    """Read raw rows from a data file; the format follows the file suffix."""
    data_path = Path(path)
    if not data_path.exists():
        raise FileNotFoundError(f"Data file not found: {data_path}")
    suffix = data_path.suffix.casefold()
    if suffix == ".json":
        rows = _load_json(data_path)
    elif suffix == ".csv":
        rows = _load_csv(data_path)
    elif suffix in (".yaml", ".yml"):
        rows = _load_yaml(data_path)
    elif suffix in SPATIAL_SUFFIXES:
        rows = _load_spatial(data_path, columns)
    else:
        raise ValueError(
            f"Unsupported data file '{data_path.name}'; expected one of: "
            + ", ".join(TABULAR_SUFFIXES + SPATIAL_SUFFIXES)
        )
    _LOGGER.info("Loaded %d rows from %s", len(rows), data_path)
    return rows


def _rows_from_document(raw: Any, source: Path) -> list[dict[str, Any]]:
    if isinstance(raw, Mapping):
        for key in ("rows", "data"):
            if key in raw:
                raw = raw[key]
                break
    if not isinstance(raw, list):
        raise ValueError(f"Expected a list of rows in {source}")
    rows: list[dict[str, Any]] = []
    for idx, item in enumerate(raw):
        if not isinstance(item, Mapping):
            raise ValueError(f"Row {idx} in {source} is not a mapping")
        rows.append(dict(item))
    return rows


def _load_json(path: Path) -> list[dict[str, Any]]:
    with path.open("r", encoding="utf-8") as fh:
        return _rows_from_document(json.load(fh), path)


def _load_yaml(path: Path) -> list[dict[str, Any]]:
    with path.open("r", encoding="utf-8") as fh:
        return _rows_from_document(yaml.safe_load(fh), path)


def _load_csv(path: Path) -> list[dict[str, Any]]:
    with path.open("r", encoding="utf-8", newline="") as fh:
        return [
            {key: (value if value != "" else None) for key, value in row.items()}
            for row in csv.DictReader(fh)
        ]


def _load_spatial(path: Path, columns: ColumnsConfig | None) -> list[dict[str, Any]]:
    """One row per feature; the geometry becomes an ``{id, geometry}`` payload."""
    gpd = _require_geopandas()
    mapping = _require_shapely_mapping()
    frame = gpd.read_file(path)
    geometry_col = frame.geometry.name
    attribute_cols = [col for col in frame.columns if col != geometry_col]

    cfg = columns if columns is not None else ColumnsConfig.from_mapping({})
    id_col = _first_existing_column(attribute_cols, (cfg.id, *ID_COLUMN_CANDIDATES))
    if id_col is None:
        raise ValueError(f"Spatial file {path.name} has no id column (expected '{cfg.id}')")

    rows: list[dict[str, Any]] = []
    for record in frame.to_dict(orient="records"):
        geometry = record.pop(geometry_col, None)
        row = {key: _plain_value(value) for key, value in record.items()}
        if geometry is None or geometry.is_empty:
            row[cfg.geojson] = None
        else:
            row[cfg.geojson] = {"id": row.get(id_col), "geometry": mapping(geometry)}
        if id_col != cfg.id:
            row.setdefault(cfg.id, row.get(id_col))
        rows.append(row)
    return rows


def _plain_value(value: Any) -> Any:
    if hasattr(value, "item") and callable(value.item):
        try:
            value = value.item()
        except (TypeError, ValueError):
            return value
    if isinstance(value, float) and math.isnan(value):
        return None
    return value


def _require_geopandas() -> Any:
    try:
        import geopandas as gpd
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("geopandas is required for spatial data loading") from exc
    return gpd


def _require_shapely_mapping() -> Any:
    try:
        from shapely.geometry import mapping
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("shapely is required for spatial data loading") from exc
    return mapping
