"""Deterministic liveness and staleness policy.

This module contains *no* payload parsing. The ingestion/Pydantic boundary
is responsible for producing validated reports.
"""

from __future__ import annotations

from dronetrack.models.journey import Journey
from dronetrack.models.report import PositionReport


def is_landed(report: PositionReport) -> bool:
    """A zero-altitude report ends the track's journey."""
    return report.altitude_m == 0


def is_stale(journey: Journey, *, now_ms: int, stale_window_ms: int) -> bool:
    return journey.last_updated_ms <= now_ms - stale_window_ms


def ingestion_time(previous_ms: int | None, now_ms: int) -> int:
    """Never move a journey's clock backwards, even if the wall clock does."""
    if previous_ms is None:
        return now_ms
    return max(previous_ms, now_ms)
