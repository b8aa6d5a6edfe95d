"""Lenient parsing of geometry payloads.

Rows arrive with their geometry either as a structured mapping or as a string
dumped from a Python dict (single quotes, ``True``/``False``/``None``). The
string form is not valid JSON, so the geometry object is cut out by brace
matching and its Python literal tokens are rewritten before ``json.loads``.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Mapping

from .models import ParsedGeometry


_ID_RE = re.compile(r"'id'\s*:\s*'([^']+)'" r'|"id"\s*:\s*"([^"]+)"')
_GEOMETRY_KEY_RE = re.compile(r"'geometry'" r'|"geometry"')
_PY_LITERALS = (
    (re.compile(r"\bTrue\b"), "true"),
    (re.compile(r"\bFalse\b"), "false"),
    (re.compile(r"\bNone\b"), "null"),
)

_LOGGER = logging.getLogger("regionmap.payload")


def parse_geometry(payload: Any) -> ParsedGeometry | None:
    """Extract ``{id, geometry}`` from a row payload, or None when it cannot be parsed."""
    if isinstance(payload, Mapping):
        return _from_mapping(payload)
    if isinstance(payload, str):
        return _from_string(payload)
    return None


def extract_balanced_object(text: str, start: int) -> str | None:
    """Return the balanced ``{...}`` span beginning at the first brace at or after ``start``."""
    open_idx = text.find("{", start)
    if open_idx == -1:
        return None
    depth = 0
    for idx in range(open_idx, len(text)):
        ch = text[idx]
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[open_idx : idx + 1]
    return None


def python_literal_to_json(text: str) -> str:
    out = text.replace("'", '"')
    for pattern, replacement in _PY_LITERALS:
        out = pattern.sub(replacement, out)
    return out


def _from_mapping(payload: Mapping[str, Any]) -> ParsedGeometry | None:
    raw_id = payload.get("id")
    geometry = payload.get("geometry")
    if not raw_id or not geometry or not isinstance(geometry, Mapping):
        return None
    return ParsedGeometry(id=str(raw_id), geometry=geometry)


def _from_string(payload: str) -> ParsedGeometry | None:
    id_match = _ID_RE.search(payload)
    if id_match is None:
        _LOGGER.warning("Geometry payload has no id field")
        return None
    region_id = id_match.group(1) or id_match.group(2)

    key_match = _GEOMETRY_KEY_RE.search(payload)
    if key_match is None:
        _LOGGER.warning("Geometry payload %s has no geometry key", region_id)
        return None

    span = extract_balanced_object(payload, key_match.end())
    if span is None:
        _LOGGER.warning("Geometry payload %s has no balanced geometry object", region_id)
        return None

    try:
        geometry = json.loads(python_literal_to_json(span))
    except json.JSONDecodeError as exc:
        _LOGGER.warning("Geometry payload %s is not parseable: %s", region_id, exc)
        return None
    if not isinstance(geometry, dict):
        _LOGGER.warning("Geometry payload %s did not decode to an object", region_id)
        return None
    return ParsedGeometry(id=region_id, geometry=geometry)
