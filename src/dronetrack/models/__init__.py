"""Data models for dronetrack."""

from dronetrack.models.category import Category, categorize
from dronetrack.models.journey import Journey
from dronetrack.models.report import LngLat, PositionReport

__all__ = [
    "Category",
    "Journey",
    "LngLat",
    "PositionReport",
    "categorize",
]
