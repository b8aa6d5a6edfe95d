"""CLI entrypoint for regionmap."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Sequence

from .config import ChartConfig, load_config
from .inspect_report import build_inspection, write_inspection
from .loader import ProviderLoader
from .preview import PreviewMapAdapter, overlay_counts
from .rows import normalize_rows
from .rows_io import load_rows
from .util import setup_logging
from .validate import DatasetValidator, format_report_lines
from .widget import RegionMapWidget, format_render_lines

LOGGER = logging.getLogger("regionmap.cli")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="regionmap",
        description="Hierarchical region map tooling.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_common(p: argparse.ArgumentParser) -> None:
        p.add_argument("--config", default="config.yaml", help="Path to YAML config.")
        p.add_argument("--data", required=True, help="Rows file (.json, .csv, .yaml, .geojson, .gpkg, .shp).")
        p.add_argument("--log-file", default=None, help="Also write logs to this file.")
        p.add_argument("--verbose", action="store_true", help="Enable debug logs.")

    validate_p = subparsers.add_parser("validate", help="Check hierarchy and geometry of a dataset.")
    add_common(validate_p)

    inspect_p = subparsers.add_parser("inspect", help="Write a JSON report of levels, bounds and zooms.")
    add_common(inspect_p)
    inspect_p.add_argument("--output", default="inspect_report.json", help="Report path.")

    render_p = subparsers.add_parser("render", help="Render a PNG preview of one navigation state.")
    add_common(render_p)
    render_p.add_argument("--output", default="preview.png", help="PNG path.")
    render_p.add_argument(
        "--drill",
        action="append",
        default=[],
        help="Region id to drill into. Can be repeated to go deeper.",
    )
    render_p.add_argument("--heatmap", action="store_true", help="Color regions by metric.")
    render_p.add_argument("--labels", action="store_true", help="Draw region labels.")
    render_p.add_argument("--no-info", action="store_true", help="Hide info cards.")
    render_p.add_argument("--dpi", type=int, default=100, help="Output DPI.")

    return parser


def _load_and_setup(args: argparse.Namespace) -> ChartConfig:
    setup_logging(Path(args.log_file) if args.log_file else None, verbose=args.verbose)
    return load_config(args.config)


def _run_validate(cfg: ChartConfig, *, data_path: Path) -> int:
    rows = load_rows(data_path, cfg.columns)
    report = DatasetValidator(cfg).run(rows)
    for line in format_report_lines(report):
        LOGGER.info(line)
    return 0 if report.ok else 1


def _run_inspect(cfg: ChartConfig, *, data_path: Path, output: Path) -> int:
    rows = load_rows(data_path, cfg.columns)
    result = normalize_rows(rows, cfg.columns, cfg.metric)
    if not result.records:
        LOGGER.error("No usable region rows in %s", data_path)
        return 1
    payload = build_inspection(cfg, result.records, skipped_rows=result.warnings, data_path=data_path)
    write_inspection(output, payload)
    LOGGER.info("Inspection JSON report written to %s", output)
    return 0


def _run_render(
    cfg: ChartConfig,
    *,
    data_path: Path,
    output: Path,
    drill: Sequence[str],
    heatmap: bool,
    labels: bool,
    hide_info: bool,
    dpi: int,
) -> int:
    rows = load_rows(data_path, cfg.columns)
    adapter = PreviewMapAdapter(cfg.viewport.viewport, dpi=dpi)
    # Offline previews need no provider script.
    loader = ProviderLoader(lambda done: done(True))
    widget = RegionMapWidget(cfg, adapter, loader=loader)
    widget.set_data(rows)
    widget.mount()
    widget.set_display(
        show_heatmap=heatmap or cfg.display.show_heatmap,
        show_labels=labels or cfg.display.show_labels,
        show_info=cfg.display.show_info and not hide_info,
    )
    for region_id in drill:
        if not widget.drill_down(region_id):
            LOGGER.error("Cannot drill into region '%s' at level %s", region_id, widget.navigation_state.current_level)
            widget.unmount()
            return 1

    report = widget.last_report
    try:
        if report is None:
            LOGGER.error("Widget did not render (status %s)", widget.status)
            return 1
        for line in format_render_lines(report):
            LOGGER.info(line)
        if not report.ok:
            return 1
        adapter.save_png(output)
        LOGGER.info("Overlays drawn: %s", overlay_counts(adapter.overlays))
    finally:
        widget.unmount()
    return 0


def _dispatch(args: argparse.Namespace) -> int:
    cfg = _load_and_setup(args)
    command = str(args.command)
    data_path = Path(args.data)
    if command == "validate":
        return _run_validate(cfg, data_path=data_path)
    if command == "inspect":
        return _run_inspect(cfg, data_path=data_path, output=Path(args.output))
    if command == "render":
        return _run_render(
            cfg,
            data_path=data_path,
            output=Path(args.output),
            drill=[str(item) for item in args.drill],
            heatmap=bool(args.heatmap),
            labels=bool(args.labels),
            hide_info=bool(args.no_info),
            dpi=int(args.dpi),
        )
    raise ValueError(f"Unknown command: {command}")


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    return _dispatch(args)


if __name__ == "__main__":
    raise SystemExit(main())
