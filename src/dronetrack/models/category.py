"""Track categories derived from the registration string."""

from __future__ import annotations

from enum import StrEnum


class Category(StrEnum):
    CLEARED = "cleared"
    RESTRICTED = "restricted"


def categorize(track_id: str) -> Category:
    """Classify a track from its registration.

    Registrations look like ``"JO-B001"``; the segment after the first dash
    starting with ``B`` marks a cleared flight. Anything else, including ids
    without a dash, is restricted.
    """
    parts = track_id.split("-")
    if len(parts) > 1 and parts[1].startswith("B"):
        return Category.CLEARED
    return Category.RESTRICTED
