"""Journey model: the accumulated state of one track."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from dronetrack.models.category import Category, categorize
from dronetrack.models.report import LngLat, PositionReport


class Journey(BaseModel):
    """History and bookkeeping for one track.

    Journeys are frozen; the store replaces them on every accepted report so
    snapshots handed to readers can never change underneath them.

    Parameters
    ----------
    track_id : str
        Identity key, equal to every report's ``track_id``.
    history : tuple of PositionReport
        Accepted reports in ingestion order. Never empty for a stored journey.
    first_seen_ms : int
        Ingestion time of the first accepted report.
    last_updated_ms : int
        Ingestion time of the latest fold that touched this journey.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    track_id: str
    history: tuple[PositionReport, ...]
    first_seen_ms: int
    last_updated_ms: int

    @classmethod
    def start(cls, report: PositionReport, now_ms: int) -> Journey:
        return cls(
            track_id=report.track_id,
            history=(report,),
            first_seen_ms=now_ms,
            last_updated_ms=now_ms,
        )

    def extended(self, report: PositionReport, now_ms: int) -> Journey:
        """Return a new journey with *report* appended, touched at *now_ms*."""
        # model_copy skips re-validating the (possibly long) history.
        return self.model_copy(
            update={
                "history": (*self.history, report),
                "last_updated_ms": now_ms,
            }
        )

    @property
    def current(self) -> PositionReport | None:
        return self.history[-1] if self.history else None

    @property
    def category(self) -> Category:
        return categorize(self.track_id)

    @property
    def is_airborne(self) -> bool:
        current = self.current
        return current is not None and current.is_airborne

    @property
    def point_count(self) -> int:
        """Number of trail points; every stored report carries a position."""
        return len(self.history)

    def coordinates(self) -> list[LngLat]:
        """Trail geometry: every recorded position, oldest first."""
        return [pos for pos in (report.position for report in self.history) if pos is not None]

    def invariant_error(self) -> str | None:
        """Describe the first broken invariant, or ``None`` when consistent."""
        if not self.history:
            return "journey has an empty history"
        if any(report.track_id != self.track_id for report in self.history):
            return "journey history contains reports for another track"
        if any(report.position is None for report in self.history):
            return "journey history contains a report without coordinates"
        if self.last_updated_ms < self.first_seen_ms:
            return "journey last_updated_ms precedes first_seen_ms"
        return None
