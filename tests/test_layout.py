"""
Tests for legend entries, label offsets, info scaling and cross-filter masks.
"""

import pytest

from regionmap.colors import build_color_map, resolve_region_color
from regionmap.crossfilter import build_data_mask, is_filter_active, selected_values_of
from regionmap.layout import info_scale_factor, label_offset, legend_items


class TestLegendItems:
    def test_items_follow_record_order(self, make_record):
        records = [make_record("a", name="Alpha", metric=3), make_record("b", metric=5)]
        colors = build_color_map(records, heatmap=False)
        items = legend_items(records, colors)
        assert [item.name for item in items] == ["Alpha", "Region b"]
        assert items[0].color == colors["a"]
        assert items[1].value == 5
        assert items[0].to_dict()["id"] == "a"

    def test_missing_color_uses_identity_color(self, make_record):
        record = make_record("a", name="Alpha")
        assert legend_items([record], {})[0].color == resolve_region_color(record)


class TestLabelOffset:
    @pytest.mark.parametrize(
        "position,expected",
        [
            ("top", (0.0, -42.8)),
            ("bottom", (0.0, 42.8)),
            ("left", (-42.8, 0.0)),
            ("right", (42.8, 0.0)),
            ("middle", (0.0, -42.8)),
        ],
    )
    def test_short_names(self, position, expected):
        dx, dy = label_offset(position, "Tver")
        assert dx == pytest.approx(expected[0])
        assert dy == pytest.approx(expected[1])

    def test_long_names_shift_is_capped(self):
        assert label_offset("top", "x" * 100) == (0.0, -55.0)


class TestInfoScale:
    @pytest.mark.parametrize("zoom,expected", [(3, 0.2), (5, 0.2), (9, 0.6), (13, 1.0), (17, 1.0)])
    def test_interpolated_from_zoom(self, zoom, expected):
        assert info_scale_factor(zoom) == pytest.approx(expected)

    def test_configured_value_wins(self):
        assert info_scale_factor(3, 1.0) == 1.0
        assert info_scale_factor(13, 0.4) == 0.4


class TestCrossFilterMask:
    def test_select(self):
        mask = build_data_mask("Moscow", [])
        assert mask == {
            "extra_form_data": {"filters": [{"col": "region_name", "op": "IN", "val": ["Moscow"]}]},
            "filter_state": {"value": ["Moscow"], "selected_values": ["Moscow"]},
        }

    def test_reselect_clears(self):
        mask = build_data_mask("Moscow", ["Moscow"])
        assert mask == {
            "extra_form_data": {"filters": []},
            "filter_state": {"value": None, "selected_values": None},
        }

    def test_other_selection_is_replaced(self):
        mask = build_data_mask("Tver", ["Moscow"], field="name")
        assert mask["extra_form_data"]["filters"][0] == {"col": "name", "op": "IN", "val": ["Tver"]}

    def test_selected_values_shapes(self):
        assert selected_values_of(None) == []
        assert selected_values_of({"selected_values": None}) == []
        assert selected_values_of({"selectedValues": {"0": "Moscow"}}) == ["Moscow"]
        assert selected_values_of({"selected_values": ["Tver"]}) == ["Tver"]
        assert is_filter_active("Tver", {"selected_values": ["Tver"]})
        assert not is_filter_active(None, {"selected_values": ["Tver"]})
