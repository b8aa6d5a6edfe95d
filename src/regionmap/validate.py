"""Validation of region datasets against the chart configuration."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Sequence

from .bounds import compute_overall_bounds
from .config import ChartConfig
from .geometry import SUPPORTED_TYPES, normalize_geometry
from .models import RegionRecord
from .payload import parse_geometry
from .rows import normalize_rows
from .util import format_code_list


@dataclass(slots=True)
class ValidationReport:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    infos: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)

    def add_info(self, msg: str) -> None:
        self.infos.append(msg)


class DatasetValidator:
    """Checks rows for mapping problems, hierarchy consistency and geometry."""

    def __init__(self, cfg: ChartConfig) -> None:
        self.cfg = cfg

    def run(self, raw_rows: Iterable[Mapping[str, Any]]) -> ValidationReport:
        report = ValidationReport()
        rows = list(raw_rows)
        self._validate_columns(report, rows)
        result = normalize_rows(rows, self.cfg.columns, self.cfg.metric)
        for warning in result.warnings:
            report.add_warning(warning)
        if not result.records:
            report.add_error("Dataset has no usable region rows")
            return report
        report.add_info(f"Normalized {len(result.records)} of {len(rows)} rows")
        self.validate_records(report, result.records)
        return report

    def validate_records(self, report: ValidationReport, records: Sequence[RegionRecord]) -> None:
        self._validate_levels(report, records)
        self._validate_unique_ids(report, records)
        self._validate_parents(report, records)
        self._validate_geometry(report, records)
        self._validate_bounds(report, records)

    def _validate_columns(self, report: ValidationReport, rows: Sequence[Mapping[str, Any]]) -> None:
        present: set[str] = set()
        for row in rows:
            if isinstance(row, Mapping):
                present.update(row)
        if not present:
            return
        columns = self.cfg.columns
        for canonical in ("id", "geojson", "level"):
            column = getattr(columns, canonical)
            if column not in present:
                report.add_error(f"Required column '{column}' ({canonical}) is missing from the data")
        for canonical in ("region_name", "message_html", "parent_id", "color"):
            column = getattr(columns, canonical)
            if column and column not in present:
                report.add_warning(f"Configured column '{column}' ({canonical}) is missing from the data")
        if self.cfg.metric and self.cfg.metric not in present:
            report.add_warning(f"Metric column '{self.cfg.metric}' is missing; values default to 0")

    def _validate_levels(self, report: ValidationReport, records: Sequence[RegionRecord]) -> None:
        per_level = Counter(record.level for record in records)
        levels = sorted(per_level)
        report.add_info(
            "Levels: " + ", ".join(f"{level} ({per_level[level]} regions)" for level in levels)
        )
        if 1 not in per_level:
            report.add_warning(f"No level-1 regions; navigation starts at level {levels[0]}")
        for lower, upper in zip(levels, levels[1:]):
            if upper - lower > 1:
                report.add_warning(f"Level gap between {lower} and {upper}")

    def _validate_unique_ids(self, report: ValidationReport, records: Sequence[RegionRecord]) -> None:
        counts = Counter(record.key for record in records)
        duplicates: dict[int, list[str]] = {}
        for (level, region_id), count in counts.items():
            if count > 1:
                duplicates.setdefault(level, []).append(region_id)
        for level in sorted(duplicates):
            ids = sorted(duplicates[level])
            report.add_error(f"Duplicate ids on level {level} ({len(ids)}): {format_code_list(ids)}")

    def _validate_parents(self, report: ValidationReport, records: Sequence[RegionRecord]) -> None:
        levels_by_id: dict[str, set[int]] = {}
        for record in records:
            levels_by_id.setdefault(record.id, set()).add(record.level)

        missing: list[str] = []
        wrong_level: list[str] = []
        for record in records:
            if record.parent_id is None:
                continue
            parent_levels = levels_by_id.get(record.parent_id)
            if parent_levels is None:
                missing.append(record.id)
            elif record.level - 1 not in parent_levels:
                wrong_level.append(record.id)

        if missing:
            report.add_error(
                f"Regions referencing unknown parents ({len(missing)}): {format_code_list(sorted(missing))}"
            )
        if wrong_level:
            report.add_error(
                "Regions whose parent is not one level up "
                f"({len(wrong_level)}): {format_code_list(sorted(wrong_level))}"
            )

        min_level = min(record.level for record in records)
        orphans = sorted(
            record.id for record in records if record.level > min_level and record.parent_id is None
        )
        if orphans:
            report.add_warning(
                f"Regions below level {min_level} without a parent ({len(orphans)}): {format_code_list(orphans)}"
            )

    def _validate_geometry(self, report: ValidationReport, records: Sequence[RegionRecord]) -> None:
        unparseable: list[str] = []
        unsupported: list[str] = []
        mismatched: list[str] = []
        for record in records:
            parsed = parse_geometry(record.geojson)
            if parsed is None:
                unparseable.append(record.id)
                continue
            if normalize_geometry(parsed.geometry) is None:
                unsupported.append(record.id)
            if parsed.id != record.id:
                mismatched.append(record.id)

        if unparseable:
            report.add_warning(
                f"Unparseable geometry payloads ({len(unparseable)}): {format_code_list(sorted(unparseable))}"
            )
        if unsupported:
            report.add_warning(
                f"Geometry other than {'/'.join(SUPPORTED_TYPES)} ({len(unsupported)}): "
                f"{format_code_list(sorted(unsupported))}"
            )
        if mismatched:
            report.add_info(
                f"Geometry payload id differs from row id ({len(mismatched)}): "
                f"{format_code_list(sorted(mismatched))}"
            )

    def _validate_bounds(self, report: ValidationReport, records: Sequence[RegionRecord]) -> None:
        bounds = compute_overall_bounds(records)
        if bounds is None:
            report.add_error("No drawable geometry in the dataset")
            return
        report.add_info(
            f"Overall bounds lat {bounds.min_lat:.3f}..{bounds.max_lat:.3f}, "
            f"lon {bounds.min_lon:.3f}..{bounds.max_lon:.3f}"
        )
        if bounds.crosses_antimeridian:
            report.add_info("Dataset extent crosses the antimeridian")


def format_report_lines(report: ValidationReport) -> Iterable[str]:
    for info in report.infos:
        yield f"[INFO] {info}"
    for warning in report.warnings:
        yield f"[WARN] {warning}"
    for error in report.errors:
        yield f"[ERROR] {error}"
    if report.ok:
        yield "[OK] Validation completed with no errors."
