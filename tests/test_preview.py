"""
Tests for static PNG previews.
"""

import pytest

from regionmap.config import ChartConfig
from regionmap.models import Viewport
from regionmap.preview import PreviewMapAdapter, overlay_counts, view_extent
from regionmap.widget import RegionMapWidget

PNG_MAGIC = b"\x89PNG\r\n\x1a\n"


class TestViewExtent:
    def test_whole_world_at_zoom_zero(self):
        assert view_extent((0.0, 0.0), 0, Viewport(256, 256)) == (-180.0, 180.0, -90.0, 90.0)

    def test_extent_halves_per_zoom_level(self):
        min_lon, max_lon, min_lat, max_lat = view_extent((50.0, 40.0), 3, Viewport(512, 256))
        assert max_lon - min_lon == pytest.approx(90.0)
        assert max_lat - min_lat == pytest.approx(22.5)
        assert (min_lon + max_lon) / 2 == pytest.approx(40.0)

    def test_adapter_without_view(self):
        with pytest.raises(RuntimeError):
            PreviewMapAdapter().extent()


class TestSavePng:
    def test_rendered_widget_is_saved(self, tmp_path, hierarchy, ready_loader):
        adapter = PreviewMapAdapter(Viewport(320, 240), dpi=80)
        cfg = ChartConfig.from_mapping({"display": {"show_labels": True}})
        widget = RegionMapWidget(cfg, adapter, loader=ready_loader)
        widget.set_records(hierarchy)
        widget.mount()
        widget.drill_down("ru")

        output = adapter.save_png(tmp_path / "nested" / "preview.png")
        assert output.exists()
        assert output.read_bytes()[:8] == PNG_MAGIC
        assert overlay_counts(adapter.overlays) == {"polygon": 2, "info": 2, "label": 2}

    def test_empty_map_still_saves(self, tmp_path):
        adapter = PreviewMapAdapter()
        adapter.create_map((55.75, 37.61), 4)
        output = adapter.save_png(tmp_path / "empty.png", background="#ffffff")
        assert output.read_bytes()[:8] == PNG_MAGIC
