"""Map rendering boundary and an in-memory implementation of it."""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Protocol, Sequence

from .models import Point


_LOGGER = logging.getLogger("regionmap.adapter")

Unsubscribe = Callable[[], None]


@dataclass(eq=False, slots=True)
class Overlay:
    """Handle to a polygon or marker created through an adapter."""

    handle_id: int
    kind: str
    geometry: Any
    options: dict[str, Any] = field(default_factory=dict)
    properties: Mapping[str, Any] = field(default_factory=dict)

    @property
    def region_id(self) -> str | None:
        return self.properties.get("region_id")


class MapAdapter(Protocol):
    """Operations the widget needs from an interactive map provider.

    Every call on a destroyed map is a no-op returning False or None.
    """

    @property
    def is_destroyed(self) -> bool: ...

    def create_map(self, center: Point, zoom: int) -> None: ...

    def destroy(self) -> None: ...

    def create_polygon(
        self,
        rings: Sequence[Sequence[Point]],
        style: Mapping[str, Any],
        properties: Mapping[str, Any],
    ) -> Overlay | None: ...

    def create_marker(
        self,
        point: Point,
        layout: Mapping[str, Any],
        properties: Mapping[str, Any],
    ) -> Overlay | None: ...

    def add(self, handle: Overlay) -> bool: ...

    def remove(self, handle: Overlay) -> bool: ...

    def contains(self, handle: Overlay) -> bool: ...

    def set_options(self, handle: Overlay, options: Mapping[str, Any]) -> bool: ...

    def set_center(self, center: Point, zoom: int, duration_ms: int = 0) -> bool: ...

    def get_zoom(self) -> int | None: ...

    def subscribe(self, event: str, callback: Callable[..., None]) -> Unsubscribe: ...


class InMemoryMapAdapter:
    """Headless adapter that records map state for tests and previews."""

    def __init__(self) -> None:
        self._created = False
        self._destroyed = False
        self._center: Point | None = None
        self._zoom: int | None = None
        self._overlays: dict[int, Overlay] = {}
        self._listeners: dict[str, dict[int, Callable[..., None]]] = {}
        self._ids = itertools.count(1)
        self.center_history: list[tuple[Point, int, int]] = []

    @property
    def is_destroyed(self) -> bool:
        return self._destroyed

    @property
    def is_live(self) -> bool:
        return self._created and not self._destroyed

    @property
    def center(self) -> Point | None:
        return self._center

    @property
    def overlays(self) -> list[Overlay]:
        return list(self._overlays.values())

    def overlays_of_kind(self, kind: str) -> list[Overlay]:
        return [overlay for overlay in self._overlays.values() if overlay.kind == kind]

    def listener_count(self, event: str | None = None) -> int:
        if event is not None:
            return len(self._listeners.get(event, {}))
        return sum(len(callbacks) for callbacks in self._listeners.values())

    def create_map(self, center: Point, zoom: int) -> None:
        if self._destroyed:
            _LOGGER.debug("create_map ignored on destroyed map")
            return
        self._created = True
        self._center = (float(center[0]), float(center[1]))
        self._zoom = int(zoom)

    def destroy(self) -> None:
        if self._destroyed:
            return
        self._destroyed = True
        self._overlays.clear()
        self._listeners.clear()

    def create_polygon(
        self,
        rings: Sequence[Sequence[Point]],
        style: Mapping[str, Any],
        properties: Mapping[str, Any],
    ) -> Overlay | None:
        if self._destroyed:
            return None
        geometry = tuple(tuple(point for point in ring) for ring in rings)
        return Overlay(next(self._ids), "polygon", geometry, dict(style), dict(properties))

    def create_marker(
        self,
        point: Point,
        layout: Mapping[str, Any],
        properties: Mapping[str, Any],
    ) -> Overlay | None:
        if self._destroyed:
            return None
        return Overlay(next(self._ids), "marker", tuple(point), dict(layout), dict(properties))

    def add(self, handle: Overlay) -> bool:
        if not self.is_live or handle.handle_id in self._overlays:
            return False
        self._overlays[handle.handle_id] = handle
        return True

    def remove(self, handle: Overlay) -> bool:
        if not self.is_live:
            return False
        return self._overlays.pop(handle.handle_id, None) is not None

    def contains(self, handle: Overlay) -> bool:
        return self.is_live and handle.handle_id in self._overlays

    def set_options(self, handle: Overlay, options: Mapping[str, Any]) -> bool:
        if not self.is_live:
            return False
        handle.options.update(options)
        return True

    def set_center(self, center: Point, zoom: int, duration_ms: int = 0) -> bool:
        if not self.is_live:
            return False
        self._center = (float(center[0]), float(center[1]))
        self._zoom = int(zoom)
        self.center_history.append((self._center, self._zoom, duration_ms))
        return True

    def get_zoom(self) -> int | None:
        if not self.is_live:
            return None
        return self._zoom

    def subscribe(self, event: str, callback: Callable[..., None]) -> Unsubscribe:
        if self._destroyed:
            return lambda: None
        token = next(self._ids)
        self._listeners.setdefault(event, {})[token] = callback

        def unsubscribe() -> None:
            callbacks = self._listeners.get(event)
            if callbacks is not None:
                callbacks.pop(token, None)

        return unsubscribe

    def emit(self, event: str, *args: Any) -> int:
        """Deliver ``event`` to its listeners; returns how many were called."""
        if not self.is_live:
            return 0
        callbacks = list(self._listeners.get(event, {}).values())
        for callback in callbacks:
            callback(*args)
        return len(callbacks)
