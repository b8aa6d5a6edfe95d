"""Normalization of raw query rows into `RegionRecord` values."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from .config import ColumnsConfig
from .formatting import coerce_metric
from .models import RegionRecord


_LOGGER = logging.getLogger("regionmap.rows")


@dataclass(slots=True)
class NormalizationResult:
    records: list[RegionRecord] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def skipped(self) -> int:
        return len(self.warnings)


def normalize_rows(
    raw_rows: Iterable[Mapping[str, Any]],
    columns: ColumnsConfig,
    metric_name: str | None = None,
) -> NormalizationResult:
    """Map configured input columns onto canonical fields.

    Columns that are neither mapped nor the metric are kept in ``extras``.
    Rows without an id or with a level below 1 are skipped.
    """
    result = NormalizationResult()
    consumed = set(columns.mapped)
    if metric_name:
        consumed.add(metric_name)

    for position, row in enumerate(raw_rows, start=1):
        if not isinstance(row, Mapping):
            _skip(result, f"Row {position}: expected a mapping, got {type(row).__name__}")
            continue

        region_id = _coerce_id(row.get(columns.id))
        if region_id is None:
            _skip(result, f"Row {position}: missing id in column '{columns.id}'")
            continue

        level = _coerce_level(row.get(columns.level))
        if level is None:
            _skip(
                result,
                f"Row {position} ({region_id}): invalid level {row.get(columns.level)!r} in column '{columns.level}'",
            )
            continue

        region_name = _opt_text(row.get(columns.region_name)) if columns.region_name else None
        message_html = _opt_text(row.get(columns.message_html)) if columns.message_html else None
        parent_id = _coerce_id(row.get(columns.parent_id)) if columns.parent_id else None
        color = _opt_text(row.get(columns.color)) if columns.color else None
        metric_value = coerce_metric(row.get(metric_name)) if metric_name else 0.0
        extras = {key: value for key, value in row.items() if key not in consumed}

        result.records.append(
            RegionRecord(
                id=region_id,
                geojson=row.get(columns.geojson),
                level=level,
                display_name=region_name or f"Region {position}",
                region_name=region_name,
                message_html=message_html or "",
                parent_id=parent_id,
                metric_value=metric_value,
                color=color,
                extras=MappingProxyType(extras),
            )
        )

    _LOGGER.debug("Normalized %s rows, skipped %s", len(result.records), result.skipped)
    return result


def _skip(result: NormalizationResult, message: str) -> None:
    _LOGGER.warning(message)
    result.warnings.append(message)


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and not value.strip()


def _coerce_id(value: Any) -> str | None:
    if _is_missing(value):
        return None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _coerce_level(value: Any) -> int | None:
    if _is_missing(value) or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not number.is_integer() or number < 1:
        return None
    return int(number)


def _opt_text(value: Any) -> str | None:
    if _is_missing(value):
        return None
    return str(value)
