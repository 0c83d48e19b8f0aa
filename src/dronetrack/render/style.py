"""Marker and trail style derivation.

All functions here are pure functions of a report and its track id. The
reconciler calls them on every pass instead of caching derived values.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from dronetrack.models.category import Category, categorize
from dronetrack.models.report import PositionReport

_MARKER_COLORS: dict[Category, str] = {
    Category.CLEARED: "rgba(16, 185, 129, 0.8)",
    Category.RESTRICTED: "rgba(239, 68, 68, 0.8)",
}

_SOLID_COLORS: dict[Category, str] = {
    Category.CLEARED: "#24ff00",
    Category.RESTRICTED: "#FF000f",
}

AIRBORNE_OPACITY = 1.0
GROUNDED_OPACITY = 0.6


class MarkerStyle(BaseModel):
    """Visual attributes of one marker plus its popup content."""

    model_config = ConfigDict(frozen=True)

    category: Category
    color: str
    opacity: float
    title: str
    altitude_m: float
    registration: str


class TrailStyle(BaseModel):
    model_config = ConfigDict(frozen=True)

    color: str
    width: float = 2.0
    opacity: float = 0.8


def category_color(category: Category, *, solid: bool = False) -> str:
    """Marker fill color, or the solid list/accent color with ``solid=True``."""
    palette = _SOLID_COLORS if solid else _MARKER_COLORS
    return palette[category]


def marker_opacity(report: PositionReport) -> float:
    return AIRBORNE_OPACITY if report.is_airborne else GROUNDED_OPACITY


def marker_rotation(report: PositionReport) -> float:
    """Rotation in degrees clockwise from north, in ``[0, 360)``."""
    return report.heading_deg % 360.0


def marker_style(report: PositionReport) -> MarkerStyle:
    category = categorize(report.track_id)
    return MarkerStyle(
        category=category,
        color=category_color(category),
        opacity=marker_opacity(report),
        title=report.display_name or report.track_id,
        altitude_m=report.altitude_m,
        registration=report.track_id,
    )


def trail_style(track_id: str) -> TrailStyle:
    return TrailStyle(color=category_color(categorize(track_id), solid=True))
