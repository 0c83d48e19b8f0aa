"""Deterministic in-memory journey store.

This is the only component allowed to fold position reports into journeys.
Everything else reads immutable snapshots.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Mapping
from types import MappingProxyType
from typing import Any

from dronetrack.models.journey import Journey
from dronetrack.models.report import PositionReport
from dronetrack.state.policy import ingestion_time, is_landed

_logger = logging.getLogger(__name__)

Snapshot = Mapping[str, Journey]
"""Read-only view of the store: track id to journey."""

EMPTY_SNAPSHOT: Snapshot = MappingProxyType({})


def now_ms() -> int:
    """Current epoch timestamp in milliseconds."""
    return int(time.time() * 1000)


class JourneyStore:
    """In-memory store of per-track journeys.

    Deterministic: given the same sequence of reports and clock readings,
    it produces the same snapshots. Journeys are stamped with ingestion
    time from the injected clock, never with payload timestamps, so a
    misbehaving source clock cannot stall eviction.
    """

    def __init__(self, *, clock: Callable[[], int] = now_ms) -> None:
        self._clock = clock
        self._journeys: dict[str, Journey] = {}

    def __len__(self) -> int:
        return len(self._journeys)

    def __contains__(self, track_id: object) -> bool:
        return track_id in self._journeys

    def get(self, track_id: str) -> Journey | None:
        return self._journeys.get(track_id)

    def snapshot(self) -> Snapshot:
        """Return an immutable view of the current journeys."""
        return MappingProxyType(dict(self._journeys))

    def fold(
        self,
        reports: Iterable[PositionReport | Mapping[str, Any]],
        *,
        now_ms: int | None = None,
    ) -> Snapshot:
        """Fold a batch of reports, in order, and return the new snapshot.

        Raw mappings are validated first; anything that cannot be turned
        into a report with an identity is dropped. Never raises.
        """
        now = self._clock() if now_ms is None else now_ms
        for item in reports:
            report = item if isinstance(item, PositionReport) else PositionReport.from_feature(item)
            if report is None:
                _logger.debug("Rejected report without identity")
                continue
            self._apply(report, now)
        return self.snapshot()

    def _apply(self, report: PositionReport, now: int) -> None:
        track_id = report.track_id
        existing = self._journeys.get(track_id)

        if is_landed(report):
            if existing is not None:
                del self._journeys[track_id]
                _logger.debug("Track %s landed; journey of %d reports dropped", track_id, len(existing.history))
            return

        if report.position is None:
            _logger.debug("Rejected report for %s without coordinates", track_id)
            return

        if existing is None:
            self._journeys[track_id] = Journey.start(report, now)
            _logger.debug("Track %s appeared", track_id)
            return

        self._journeys[track_id] = existing.extended(report, ingestion_time(existing.last_updated_ms, now))

    def remove(self, track_id: str) -> Journey | None:
        """Forget a journey; used by the evictor."""
        return self._journeys.pop(track_id, None)

    def clear(self) -> None:
        self._journeys.clear()
