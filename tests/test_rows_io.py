"""
Tests for reading raw rows from data files.
"""

import json

import pytest
import yaml

from regionmap.config import ColumnsConfig
from regionmap.rows_io import load_rows


class TestTabularFiles:
    def test_json_list(self, tmp_path):
        path = tmp_path / "rows.json"
        path.write_text(json.dumps([{"id": "a", "level": 1}]), encoding="utf-8")
        assert load_rows(path) == [{"id": "a", "level": 1}]

    def test_json_rows_key(self, tmp_path):
        path = tmp_path / "rows.json"
        path.write_text(json.dumps({"rows": [{"id": "a"}, {"id": "b"}]}), encoding="utf-8")
        assert [row["id"] for row in load_rows(path)] == ["a", "b"]

    def test_yaml_data_key(self, tmp_path):
        path = tmp_path / "rows.yaml"
        path.write_text(yaml.safe_dump({"data": [{"id": "a", "level": 2}]}), encoding="utf-8")
        assert load_rows(path) == [{"id": "a", "level": 2}]

    def test_csv_blank_cells_become_none(self, tmp_path):
        path = tmp_path / "rows.csv"
        path.write_text("id,level,parent_id\na,1,\nb,2,a\n", encoding="utf-8")
        rows = load_rows(path)
        assert rows == [
            {"id": "a", "level": "1", "parent_id": None},
            {"id": "b", "level": "2", "parent_id": "a"},
        ]

    def test_document_must_hold_rows(self, tmp_path):
        path = tmp_path / "rows.json"
        path.write_text(json.dumps({"meta": 1}), encoding="utf-8")
        with pytest.raises(ValueError, match="Expected a list of rows"):
            load_rows(path)

    def test_rows_must_be_mappings(self, tmp_path):
        path = tmp_path / "rows.json"
        path.write_text(json.dumps([1, 2]), encoding="utf-8")
        with pytest.raises(ValueError, match="Row 0"):
            load_rows(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_rows(tmp_path / "absent.json")

    def test_unsupported_suffix(self, tmp_path):
        path = tmp_path / "rows.txt"
        path.write_text("id\n", encoding="utf-8")
        with pytest.raises(ValueError, match="Unsupported data file"):
            load_rows(path)


class TestSpatialFiles:
    def test_geojson_features_become_payload_rows(self, tmp_path, square):
        pytest.importorskip("geopandas")
        path = tmp_path / "regions.geojson"
        collection = {
            "type": "FeatureCollection",
            "features": [
                {
                    "type": "Feature",
                    "properties": {"code": "msk", "level": 1, "name": "Moscow"},
                    "geometry": square(37.0, 55.0),
                }
            ],
        }
        path.write_text(json.dumps(collection), encoding="utf-8")

        rows = load_rows(path, ColumnsConfig.from_mapping({"id": "code"}))
        assert len(rows) == 1
        row = rows[0]
        assert row["code"] == "msk"
        assert row["level"] == 1
        assert row["geojson"]["id"] == "msk"
        assert row["geojson"]["geometry"]["type"] == "Polygon"
