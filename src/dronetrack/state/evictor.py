"""Time-driven eviction of stale journeys."""

from __future__ import annotations

import logging

from dronetrack.exceptions import InvariantViolation
from dronetrack.state.policy import is_stale
from dronetrack.state.store import JourneyStore, Snapshot

_logger = logging.getLogger(__name__)


class Evictor:
    """Removes journeys that have been silent for a full staleness window.

    The sweep also drops journeys that break their invariants. With
    ``strict=True`` such a journey raises :class:`InvariantViolation`
    instead, so the bug surfaces in tests and development runs.
    """

    def __init__(self, *, stale_window_ms: int, strict: bool = False) -> None:
        self._stale_window_ms = stale_window_ms
        self._strict = strict

    @property
    def stale_window_ms(self) -> int:
        return self._stale_window_ms

    def sweep(self, store: JourneyStore, now_ms: int) -> Snapshot:
        """Evict every journey with ``last_updated_ms <= now_ms - window``.

        Idempotent: a second sweep at the same ``now_ms`` removes nothing.
        In strict mode invariants are checked before anything is removed,
        so a raising sweep leaves the store untouched.
        """
        journeys = store.snapshot()
        broken: dict[str, str] = {}
        for track_id, journey in journeys.items():
            problem = journey.invariant_error()
            if problem is not None:
                broken[track_id] = problem
        if broken and self._strict:
            track_id, problem = next(iter(broken.items()))
            raise InvariantViolation(f"{track_id}: {problem}", track_id=track_id)

        evicted: list[str] = []
        for track_id, journey in journeys.items():
            problem = broken.get(track_id)
            if problem is not None:
                _logger.warning("Dropping inconsistent journey %s: %s", track_id, problem)
                store.remove(track_id)
                continue
            if is_stale(journey, now_ms=now_ms, stale_window_ms=self._stale_window_ms):
                store.remove(track_id)
                evicted.append(track_id)

        if evicted:
            _logger.debug("Evicted %d stale tracks: %s", len(evicted), ", ".join(evicted))
        return store.snapshot()


class SweepSchedule:
    """Explicit periodic schedule for the evictor, driven by an injected clock.

    The schedule never sleeps itself; callers poll :meth:`is_due` (tests
    advance a fake clock, the async service sleeps for
    :meth:`seconds_until_due`).
    """

    def __init__(self, *, interval_ms: int, start_ms: int) -> None:
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        self._interval_ms = interval_ms
        self._next_due_ms = start_ms + interval_ms

    @property
    def interval_ms(self) -> int:
        return self._interval_ms

    @property
    def next_due_ms(self) -> int:
        return self._next_due_ms

    def is_due(self, now_ms: int) -> bool:
        return now_ms >= self._next_due_ms

    def advance(self, now_ms: int) -> None:
        """Mark a sweep as run at *now_ms* and schedule the next one.

        Missed periods are skipped rather than replayed; one sweep covers
        them all.
        """
        self._next_due_ms += self._interval_ms
        if self._next_due_ms <= now_ms:
            missed = (now_ms - self._next_due_ms) // self._interval_ms + 1
            self._next_due_ms += missed * self._interval_ms

    def seconds_until_due(self, now_ms: int) -> float:
        return max(self._next_due_ms - now_ms, 0) / 1000.0
