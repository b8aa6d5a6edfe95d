"""Cross-filter data masks emitted to the host dashboard."""

from __future__ import annotations

from typing import Any, Iterable, Mapping


def selected_values_of(filter_state: Mapping[str, Any] | None) -> list[Any]:
    """Currently selected values from a host filter state (list or keyed mapping)."""
    if not filter_state:
        return []
    selected = filter_state.get("selected_values")
    if selected is None:
        selected = filter_state.get("selectedValues")
    if not selected:
        return []
    if isinstance(selected, Mapping):
        return list(selected.values())
    return list(selected)


def build_data_mask(
    region_name: str,
    selected_values: Iterable[Any] | None = None,
    field: str = "region_name",
) -> dict[str, Any]:
    """Filter on ``region_name``; selecting the active value again clears the filter."""
    already_selected = region_name in list(selected_values or ())
    values = [] if already_selected else [region_name]
    return {
        "extra_form_data": {
            "filters": [{"col": field, "op": "IN", "val": values}] if values else [],
        },
        "filter_state": {
            "value": values if values else None,
            "selected_values": [region_name] if values else None,
        },
    }


def is_filter_active(region_name: str | None, filter_state: Mapping[str, Any] | None) -> bool:
    return region_name is not None and region_name in selected_values_of(filter_state)
