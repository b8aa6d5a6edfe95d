"""Render-scoped ownership of map overlays."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from .adapter import MapAdapter, Overlay


_LOGGER = logging.getLogger("regionmap.render_pass")


class RenderPass:
    """Overlays added during one render, keyed by region id.

    ``teardown`` removes everything the pass added; a closed pass accepts no
    further overlays.
    """

    def __init__(self, adapter: MapAdapter) -> None:
        self._adapter = adapter
        self._entries: dict[str, list[Overlay]] = {}
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def region_ids(self) -> list[str]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, region_id: object) -> bool:
        return region_id in self._entries

    def handles(self, region_id: str) -> list[Overlay]:
        return list(self._entries.get(region_id, ()))

    def all_handles(self) -> list[Overlay]:
        return [handle for handles in self._entries.values() for handle in handles]

    def track(self, region_id: str, handle: Overlay, *, visible: bool = True) -> bool:
        """Own ``handle`` for this pass and add it to the map when ``visible``."""
        if self._closed:
            raise RuntimeError("Render pass is closed")
        self._entries.setdefault(region_id, []).append(handle)
        if visible:
            return self._adapter.add(handle)
        return False

    def teardown(self) -> int:
        """Remove every overlay this pass put on the map; returns how many were removed."""
        if self._closed:
            return 0
        removed = 0
        for handle in self.all_handles():
            if self._adapter.contains(handle) and self._adapter.remove(handle):
                removed += 1
        self._entries.clear()
        self._closed = True
        _LOGGER.debug("Render pass torn down (%d overlays removed)", removed)
        return removed


@contextmanager
def open_pass(adapter: MapAdapter) -> Iterator[RenderPass]:
    """Yield a fresh pass, tearing it down if the build raises."""
    render_pass = RenderPass(adapter)
    try:
        yield render_pass
    except BaseException:
        render_pass.teardown()
        raise
