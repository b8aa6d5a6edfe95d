"""
Tests for dataset validation.
"""

from regionmap.config import ChartConfig
from regionmap.models import RegionRecord
from regionmap.validate import DatasetValidator, ValidationReport, format_report_lines


def _validator():
    return DatasetValidator(ChartConfig.from_mapping({}))


class TestDatasetValidator:
    def test_clean_dataset_passes(self, raw_rows, chart_config):
        report = DatasetValidator(chart_config).run(raw_rows)
        assert report.ok
        assert report.warnings == []
        assert "Normalized 3 of 3 rows" in report.infos
        assert list(format_report_lines(report))[-1] == "[OK] Validation completed with no errors."

    def test_missing_required_column(self, raw_rows, chart_config):
        for row in raw_rows:
            del row["tier"]
        report = DatasetValidator(chart_config).run(raw_rows)
        assert not report.ok
        assert any("'tier' (level)" in error for error in report.errors)
        assert "Dataset has no usable region rows" in report.errors

    def test_missing_optional_and_metric_columns_warn(self, raw_rows, chart_config):
        for row in raw_rows:
            del row["note"]
            del row["sales"]
        report = DatasetValidator(chart_config).run(raw_rows)
        assert report.ok
        assert any("'note' (message_html)" in warning for warning in report.warnings)
        assert any("Metric column 'sales'" in warning for warning in report.warnings)

    def test_hierarchy_is_consistent(self, hierarchy):
        report = ValidationReport()
        _validator().validate_records(report, hierarchy)
        assert report.ok
        assert report.warnings == []
        assert "Levels: 1 (2 regions), 2 (2 regions), 3 (2 regions)" in report.infos


class TestHierarchyProblems:
    def test_duplicate_ids_on_one_level(self, make_record):
        records = [make_record("a"), make_record("a"), make_record("a", 2, "a")]
        report = ValidationReport()
        _validator().validate_records(report, records)
        assert report.errors == ["Duplicate ids on level 1 (1): a"]

    def test_unknown_and_misplaced_parents(self, make_record):
        records = [
            make_record("top"),
            make_record("mid", 2, "top"),
            make_record("lost", 2, "nowhere"),
            make_record("deep", 3, "top"),
        ]
        report = ValidationReport()
        _validator().validate_records(report, records)
        assert "Regions referencing unknown parents (1): lost" in report.errors
        assert "Regions whose parent is not one level up (1): deep" in report.errors

    def test_orphans_and_level_gaps_warn(self, make_record):
        records = [make_record("a", 2), make_record("b", 4)]
        report = ValidationReport()
        _validator().validate_records(report, records)
        assert report.ok
        assert "No level-1 regions; navigation starts at level 2" in report.warnings
        assert "Level gap between 2 and 4" in report.warnings
        assert "Regions below level 2 without a parent (1): b" in report.warnings

    def test_geometry_problems(self, make_record):
        good = make_record("a")
        point = RegionRecord(
            id="p",
            geojson={"id": "p", "geometry": {"type": "Point", "coordinates": [1, 2]}},
            level=1,
            display_name="Point",
        )
        broken = RegionRecord(id="x", geojson="garbage", level=1, display_name="Broken")
        renamed = RegionRecord(id="r", geojson=good.geojson, level=1, display_name="Renamed")
        report = ValidationReport()
        _validator().validate_records(report, [good, point, broken, renamed])
        assert "Unparseable geometry payloads (1): x" in report.warnings
        assert "Geometry other than Polygon/MultiPolygon (1): p" in report.warnings
        assert "Geometry payload id differs from row id (1): r" in report.infos

    def test_no_drawable_geometry(self):
        record = RegionRecord(id="a", geojson=None, level=1, display_name="A")
        report = ValidationReport()
        _validator().validate_records(report, [record])
        assert "No drawable geometry in the dataset" in report.errors
