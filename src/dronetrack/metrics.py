"""Aggregate metrics derived from journey snapshots.

Pure functions: recomputed fresh from every snapshot, never cached and never
allowed to touch the store.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from dronetrack.models.category import Category
from dronetrack.models.report import LngLat
from dronetrack.render.style import category_color
from dronetrack.state.store import Snapshot


class TrackSummary(BaseModel):
    """One row of the active-drone list."""

    model_config = ConfigDict(frozen=True)

    track_id: str
    display_name: str
    serial: str
    operator_name: str
    organization_name: str
    category: Category
    color: str
    altitude_m: float
    heading_deg: float
    position: LngLat
    report_count: int
    first_seen_ms: int
    last_updated_ms: int

    @property
    def duration_ms(self) -> int:
        """How long the track has been followed, in ingestion time."""
        return self.last_updated_ms - self.first_seen_ms


def derive_counts(snapshot: Snapshot) -> dict[Category, int]:
    """Count airborne tracks per category.

    Every category is present in the result. Grounded tracks are excluded,
    though the store normally deletes them before they reach a snapshot.
    """
    counts = dict.fromkeys(Category, 0)
    for journey in snapshot.values():
        if journey.is_airborne:
            counts[journey.category] += 1
    return counts


def active_tracks(snapshot: Snapshot) -> list[TrackSummary]:
    """List airborne tracks in the order they first appeared."""
    summaries: list[TrackSummary] = []
    for journey in snapshot.values():
        current = journey.current
        if current is None or not current.is_airborne or current.position is None:
            continue
        category = journey.category
        summaries.append(
            TrackSummary(
                track_id=journey.track_id,
                display_name=current.display_name,
                serial=current.serial,
                operator_name=current.operator_name,
                organization_name=current.organization_name,
                category=category,
                color=category_color(category, solid=True),
                altitude_m=current.altitude_m,
                heading_deg=current.heading_deg,
                position=current.position,
                report_count=len(journey.history),
                first_seen_ms=journey.first_seen_ms,
                last_updated_ms=journey.last_updated_ms,
            )
        )
    return summaries
