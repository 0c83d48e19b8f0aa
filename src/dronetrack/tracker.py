"""Tracker core: the single ingress for batches, sweeps and teardown.

Owns the journey store, the evictor and the reconciler, and serializes every
unit of work through one FIFO mutation queue. Work submitted while another
unit is running (for example from inside a listener callback) is queued and
runs once the current unit completes, so the store and the render state
never see concurrent writers.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from dronetrack.config import TrackerConfig
from dronetrack.ingestion.batch import parse_batch
from dronetrack.ingestion.feed import ConnectionStatus
from dronetrack.metrics import TrackSummary, active_tracks, derive_counts
from dronetrack.models.category import Category
from dronetrack.models.report import LngLat, PositionReport
from dronetrack.render.reconciler import ReconcileResult, Reconciler, RenderState
from dronetrack.render.surface import RenderSurface
from dronetrack.state.evictor import Evictor, SweepSchedule
from dronetrack.state.store import EMPTY_SNAPSHOT, JourneyStore, Snapshot, now_ms

_logger = logging.getLogger(__name__)

CountsCallback = Callable[[dict[Category, int]], None]
SelectCallback = Callable[[str, LngLat], None]
StatusCallback = Callable[[ConnectionStatus], None]


class TrackerCore:
    """Synchronous tracker engine.

    Usage::

        core = TrackerCore(surface, config=TrackerConfig())
        core.handle_payload({"features": [...]})
        core.tick()       # call periodically; sweeps when due
        core.shutdown()   # removes every marker and trail
    """

    def __init__(
        self,
        surface: RenderSurface,
        *,
        config: TrackerConfig | None = None,
        clock: Callable[[], int] = now_ms,
        on_counts: CountsCallback | None = None,
        on_select: SelectCallback | None = None,
        on_status: StatusCallback | None = None,
    ) -> None:
        self._config = (config or TrackerConfig()).validate()
        self._clock = clock
        self._surface = surface
        self._store = JourneyStore(clock=clock)
        self._evictor = Evictor(
            stale_window_ms=self._config.stale_window_ms,
            strict=self._config.strict_invariants,
        )
        self._schedule = SweepSchedule(interval_ms=self._config.effective_sweep_interval_ms, start_ms=clock())
        self._reconciler = Reconciler(surface)
        self._on_counts = on_counts
        self._on_select = on_select
        self._on_status = on_status

        self._pending: deque[Callable[[], None]] = deque()
        self._running = False
        self._closing = False
        self._closed = False

        self._counts = derive_counts(EMPTY_SNAPSHOT)
        self._selected: str | None = None
        self._status = ConnectionStatus.DISCONNECTED
        self._last_result = ReconcileResult()

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def config(self) -> TrackerConfig:
        return self._config

    @property
    def snapshot(self) -> Snapshot:
        return self._store.snapshot()

    @property
    def counts(self) -> dict[Category, int]:
        return dict(self._counts)

    @property
    def render_state(self) -> RenderState:
        return self._reconciler.render_state

    @property
    def handle_count(self) -> int:
        return self._reconciler.handle_count

    @property
    def last_reconcile(self) -> ReconcileResult:
        return self._last_result

    @property
    def selected_track_id(self) -> str | None:
        return self._selected

    @property
    def connection_status(self) -> ConnectionStatus:
        return self._status

    @property
    def sweep_schedule(self) -> SweepSchedule:
        return self._schedule

    @property
    def is_closed(self) -> bool:
        return self._closed

    def active_tracks(self) -> list[TrackSummary]:
        return active_tracks(self._store.snapshot())

    def seconds_until_sweep(self) -> float:
        return self._schedule.seconds_until_due(self._clock())

    # ------------------------------------------------------------------
    # Ingress
    # ------------------------------------------------------------------

    def handle_payload(self, payload: Any) -> None:
        """Parse a raw feed payload and fold it."""
        self.handle_batch(parse_batch(payload))

    def handle_batch(self, reports: Iterable[PositionReport | Mapping[str, Any]]) -> None:
        """Fold a batch of reports and reconcile the surface."""
        if self._closing:
            _logger.debug("Tracker shut down; ignoring batch")
            return
        batch = list(reports)
        if not batch:
            return
        self._submit(lambda: self._fold(batch))

    def tick(self) -> bool:
        """Run the eviction sweep if its schedule is due. Returns True if it ran."""
        now = self._clock()
        if self._closing or not self._schedule.is_due(now):
            return False
        self._schedule.advance(now)
        self._submit(lambda: self._sweep(now))
        return True

    def sweep(self, now_ms: int | None = None) -> None:
        """Run an eviction sweep immediately, outside the schedule."""
        if self._closing:
            return
        now = self._clock() if now_ms is None else now_ms
        self._submit(lambda: self._sweep(now))

    def set_connection_status(self, status: ConnectionStatus) -> None:
        """Record feed connectivity. Never touches journeys."""
        if status == self._status:
            return
        _logger.debug("Feed status %s -> %s", self._status, status)
        self._status = status
        self._notify(self._on_status, status)

    def select(self, track_id: str) -> None:
        """Marker interaction: notify listeners with the track's current position."""
        self._submit(lambda: self._select(track_id))

    def focus(self, track_id: str) -> None:
        """Ask the surface to re-center on a track without touching the store."""
        self._submit(lambda: self._focus(track_id))

    def shutdown(self) -> ReconcileResult:
        """Remove every surface object and stop accepting work."""
        if self._closing:
            return ReconcileResult()
        self._closing = True
        result: list[ReconcileResult] = []
        self._submit(lambda: result.append(self._teardown()))
        return result[0] if result else ReconcileResult()

    # ------------------------------------------------------------------
    # Serialized work units
    # ------------------------------------------------------------------

    def _submit(self, work: Callable[[], None]) -> None:
        self._pending.append(work)
        if self._running:
            return
        self._running = True
        try:
            while self._pending:
                job = self._pending.popleft()
                job()
        finally:
            self._running = False

    def _fold(self, batch: list[PositionReport | Mapping[str, Any]]) -> None:
        if self._closed:
            return
        self._recompute(self._store.fold(batch))

    def _sweep(self, now: int) -> None:
        if self._closed:
            return
        before = len(self._store)
        try:
            self._evictor.sweep(self._store, now)
        finally:
            if len(self._store) != before:
                self._recompute(self._store.snapshot())

    def _recompute(self, snapshot: Snapshot) -> None:
        self._last_result = self._reconciler.reconcile(snapshot)
        if self._selected is not None and self._selected not in snapshot:
            _logger.debug("Selected track %s disappeared", self._selected)
            self._selected = None
        self._counts = derive_counts(snapshot)
        self._notify(self._on_counts, dict(self._counts))

    def _select(self, track_id: str) -> None:
        journey = self._store.get(track_id)
        current = journey.current if journey is not None else None
        if current is None or current.position is None:
            _logger.debug("Ignoring selection of unknown track %s", track_id)
            return
        self._selected = track_id
        self._notify(self._on_select, track_id, current.position)

    def _focus(self, track_id: str) -> None:
        if self._closed:
            return
        journey = self._store.get(track_id)
        current = journey.current if journey is not None else None
        if current is None or current.position is None:
            _logger.debug("Ignoring focus on unknown track %s", track_id)
            return
        try:
            self._surface.focus(current.position)
        except Exception as exc:
            _logger.warning("Surface focus on %s failed: %s", track_id, exc)

    def _teardown(self) -> ReconcileResult:
        result = self._reconciler.teardown()
        self._last_result = result
        self._selected = None
        self._closed = True
        _logger.debug("Tracker shut down; %d surface operations issued", len(result.applied))
        return result

    @staticmethod
    def _notify(callback: Callable[..., None] | None, *args: Any) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception:
            _logger.warning("Tracker listener %r raised", callback, exc_info=True)
