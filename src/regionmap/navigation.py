"""Hierarchy navigation across region levels."""

from __future__ import annotations

import logging
from typing import Callable, Sequence

from .models import NavigationState, RegionRecord


_LOGGER = logging.getLogger("regionmap.navigation")


class HierarchyNavigator:
    """Owns the current navigation state and derives the visible region set.

    Transitions never raise on inconsistent data: states that point at levels
    or parents missing from the dataset fall back to the shallowest level.
    """

    def __init__(
        self,
        records: Sequence[RegionRecord] = (),
        *,
        on_change: Callable[[NavigationState], None] | None = None,
    ) -> None:
        self._records: tuple[RegionRecord, ...] = tuple(records)
        self._state = NavigationState.initial()
        self._on_change = on_change
        self._index()
        if self._records and self._state.is_initial and 1 not in self._levels:
            self._set_state(NavigationState(self.min_level, None))

    @property
    def state(self) -> NavigationState:
        return self._state

    @property
    def records(self) -> tuple[RegionRecord, ...]:
        return self._records

    @property
    def min_level(self) -> int:
        return min(self._levels) if self._levels else 1

    @property
    def levels(self) -> list[int]:
        return sorted(self._levels)

    @property
    def can_return_to_min(self) -> bool:
        return self._state.current_level > self.min_level + 1

    def has_children(self, region: RegionRecord) -> bool:
        return region.id in self._children

    def has_parent(self, region: RegionRecord) -> bool:
        return region.parent_id is not None

    def children_of(self, region_id: str) -> list[RegionRecord]:
        return list(self._children.get(region_id, ()))

    def parent_of(self, region_id: str) -> RegionRecord | None:
        """Record referenced as parent by the first record with ``region_id``."""
        for record in self._records:
            if record.id == region_id:
                if record.parent_id is None:
                    return None
                return self._by_id.get(record.parent_id)
        return None

    def to_children(self, region: RegionRecord) -> bool:
        if not self.has_children(region):
            _LOGGER.debug("Region %s has no children; staying on level %s", region.id, self._state.current_level)
            return False
        self._set_state(NavigationState(region.level + 1, region.id))
        return True

    def to_parent(self) -> bool:
        state = self._state
        if state.current_level == 1:
            return False
        parent = self._by_id.get(state.current_parent_id) if state.current_parent_id is not None else None
        if parent is None:
            _LOGGER.warning(
                "Parent %s of level %s not found; returning to the top level",
                state.current_parent_id,
                state.current_level,
            )
            self._set_state(NavigationState.initial())
        else:
            self._set_state(NavigationState(state.current_level - 1, parent.parent_id))
        return True

    def to_min_level(self) -> bool:
        return self._set_state(NavigationState(self.min_level, None))

    def filtered_data(self) -> list[RegionRecord]:
        """Records visible for the current state, without mutating it."""
        if not self._records:
            return []
        state = self._state
        if state.is_initial and 1 not in self._levels:
            return self._at_level(self.min_level)
        if state.current_level not in self._levels:
            _LOGGER.warning(
                "Level %s has no records; showing level %s",
                state.current_level,
                self.min_level,
            )
            return self._at_level(self.min_level)
        if state.current_parent_id is not None and state.current_parent_id not in self._by_id:
            _LOGGER.warning(
                "Parent %s is missing from the data; showing level %s",
                state.current_parent_id,
                self.min_level,
            )
            return self._at_level(self.min_level)
        return [
            record
            for record in self._records
            if record.level == state.current_level
            and (state.current_parent_id is None or record.parent_id == state.current_parent_id)
        ]

    def sync(self, records: Sequence[RegionRecord]) -> NavigationState:
        """Swap in a new dataset and repair a state that no longer matches it."""
        self._records = tuple(records)
        self._index()
        if not self._records:
            return self._state

        state = self._state
        level_missing = state.current_level not in self._levels
        parent_missing = state.current_parent_id is not None and state.current_parent_id not in self._by_id
        if level_missing or parent_missing:
            target = 1 if 1 in self._levels else self.min_level
            _LOGGER.warning(
                "Navigation state level=%s parent=%s is stale; resetting to level %s",
                state.current_level,
                state.current_parent_id,
                target,
            )
            self._set_state(NavigationState(target, None))
        elif state.is_initial and 1 not in self._levels:
            self._set_state(NavigationState(self.min_level, None))
        return self._state

    def _index(self) -> None:
        self._levels = {record.level for record in self._records}
        self._by_id: dict[str, RegionRecord] = {}
        self._children: dict[str, list[RegionRecord]] = {}
        for record in self._records:
            self._by_id.setdefault(record.id, record)
            if record.parent_id is not None:
                self._children.setdefault(record.parent_id, []).append(record)

    def _at_level(self, level: int) -> list[RegionRecord]:
        return [record for record in self._records if record.level == level]

    def _set_state(self, state: NavigationState) -> bool:
        if state == self._state:
            return False
        _LOGGER.debug("Navigation %s -> %s", self._state, state)
        self._state = state
        if self._on_change is not None:
            self._on_change(state)
        return True
