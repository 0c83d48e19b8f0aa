"""Normalization helpers.

Centralizes lenient parsing and placeholder handling for feed payloads.
"""

from __future__ import annotations

import math
from typing import Any


def safe_float(value: Any) -> float | None:
    if value is None or value == "" or value == "--":
        return None
    if isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def safe_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None


def normalize_heading(value: Any) -> float:
    """Fold a heading into ``[0, 360)``; missing headings point north."""
    parsed = safe_float(value)
    if parsed is None:
        return 0.0
    return parsed % 360.0


def normalize_timestamp_ms(value: Any) -> int | None:
    """Normalize feed timestamps to epoch milliseconds.

    - Empty/missing -> None
    - <= 0 -> None
    - Seconds (< 1e11) -> milliseconds
    """

    ts = safe_float(value)
    if ts is None or ts <= 0:
        return None
    if ts < 1e11:
        ts *= 1000.0
    return int(ts)


def split_coordinates(value: Any) -> tuple[float | None, float | None]:
    """Split a GeoJSON ``[lng, lat, ...]`` coordinate array.

    Coordinates are passed through unchanged; no projection is applied.
    """
    if not isinstance(value, (list, tuple)) or len(value) < 2:
        return None, None
    return safe_float(value[0]), safe_float(value[1])
