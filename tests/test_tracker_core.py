from __future__ import annotations

from typing import Any

import pytest

from dronetrack.config import TrackerConfig
from dronetrack.exceptions import InvariantViolation, TrackerConfigError
from dronetrack.ingestion.feed import ConnectionStatus
from dronetrack.models.category import Category
from dronetrack.models.journey import Journey
from dronetrack.render.memory import InMemorySurface
from dronetrack.render.surface import OpKind
from dronetrack.tracker import TrackerCore


class _Clock:
    def __init__(self, start: int = 0) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now


def _feature(track_id: str, *, alt: float = 120.0, lat: float = 31.95, lng: float = 35.91) -> dict[str, Any]:
    return {"trackId": track_id, "altitudeMeters": alt, "lat": lat, "lng": lng, "headingDegrees": 90}


def _core(clock: _Clock | None = None, **kwargs: Any) -> tuple[TrackerCore, InMemorySurface]:
    surface = InMemorySurface()
    core = TrackerCore(surface, config=TrackerConfig(), clock=clock or _Clock(), **kwargs)
    return core, surface


def test_payload_flows_to_store_surface_and_counts() -> None:
    counts: list[dict[Category, int]] = []
    core, surface = _core(on_counts=counts.append)

    core.handle_payload({"type": "FeatureCollection", "features": [_feature("JO-B001"), _feature("JO-R002")]})

    assert set(core.snapshot) == {"JO-B001", "JO-R002"}
    assert set(surface.markers_by_track()) == {"JO-B001", "JO-R002"}
    assert counts == [{Category.CLEARED: 1, Category.RESTRICTED: 1}]
    assert core.last_reconcile.kinds == [OpKind.CREATE_MARKER, OpKind.CREATE_MARKER]
    assert [t.track_id for t in core.active_tracks()] == ["JO-B001", "JO-R002"]


def test_undecodable_payload_changes_nothing() -> None:
    counts: list[dict[Category, int]] = []
    core, surface = _core(on_counts=counts.append)

    core.handle_payload({"status": "ok"})
    core.handle_payload([{"serial": "no-id"}])

    assert len(core.snapshot) == 0
    assert surface.mutations == 0
    assert counts == []


def test_silent_track_is_absent_after_window_and_sweep() -> None:
    clock = _Clock()
    core, surface = _core(clock)
    core.handle_batch([_feature("JO-R002")])

    while clock.now < 41_000:
        clock.now += 1_000
        core.tick()

    assert "JO-R002" not in core.snapshot
    assert surface.markers == {}
    assert core.counts == {Category.CLEARED: 0, Category.RESTRICTED: 0}


def test_tick_only_sweeps_when_due() -> None:
    clock = _Clock()
    core, _ = _core(clock)

    clock.now = 9_999
    assert core.tick() is False
    clock.now = 10_000
    assert core.tick() is True
    assert core.tick() is False
    assert core.seconds_until_sweep() == 10.0


def test_work_submitted_from_a_listener_runs_after_current_unit() -> None:
    seen: list[int] = []
    core: TrackerCore

    def on_counts(counts: dict[Category, int]) -> None:
        seen.append(len(core.snapshot))
        if len(seen) == 1:
            core.handle_batch([_feature("JO-R002")])
            seen.append(len(core.snapshot))

    core, surface = _core(on_counts=on_counts)
    core.handle_batch([_feature("JO-B001")])

    assert seen == [1, 1, 2]
    assert set(surface.markers_by_track()) == {"JO-B001", "JO-R002"}


def test_listener_errors_do_not_break_ingestion() -> None:
    def on_counts(counts: dict[Category, int]) -> None:
        raise RuntimeError("listener bug")

    core, surface = _core(on_counts=on_counts)

    core.handle_batch([_feature("JO-B001")])
    core.handle_batch([_feature("JO-B001", lat=32.0)])

    assert len(core.snapshot["JO-B001"].history) == 2
    assert len(surface.trails) == 1


def test_select_reports_current_position_and_clears_on_removal() -> None:
    selections: list[tuple[str, tuple[float, float]]] = []
    core, _ = _core(on_select=lambda track_id, position: selections.append((track_id, position)))
    core.handle_batch([_feature("JO-B001")])

    core.select("JO-B001")
    core.select("JO-UNKNOWN")

    assert selections == [("JO-B001", (35.91, 31.95))]
    assert core.selected_track_id == "JO-B001"

    core.handle_batch([_feature("JO-B001", alt=0)])
    assert core.selected_track_id is None


def test_focus_recenters_surface_and_tolerates_surface_errors() -> None:
    core, surface = _core()
    core.handle_batch([_feature("JO-B001")])

    core.focus("JO-B001")
    assert surface.center == (35.91, 31.95)

    surface.close()
    core.focus("JO-B001")


def test_status_changes_are_reported_once_and_never_touch_journeys() -> None:
    statuses: list[ConnectionStatus] = []
    core, _ = _core(on_status=statuses.append)
    core.handle_batch([_feature("JO-B001")])

    core.set_connection_status(ConnectionStatus.CONNECTED)
    core.set_connection_status(ConnectionStatus.CONNECTED)
    core.set_connection_status(ConnectionStatus.DISCONNECTED)

    assert statuses == [ConnectionStatus.CONNECTED, ConnectionStatus.DISCONNECTED]
    assert core.connection_status == ConnectionStatus.DISCONNECTED
    assert "JO-B001" in core.snapshot


def test_shutdown_removes_everything_and_ignores_later_batches() -> None:
    core, surface = _core()
    core.handle_batch([_feature("JO-B001"), _feature("JO-B001", lat=32.0), _feature("JO-R002")])

    result = core.shutdown()
    core.handle_batch([_feature("JO-B003")])

    assert len(result.applied) == 3
    assert surface.markers == {}
    assert surface.trails == {}
    assert core.handle_count == 0
    assert core.is_closed
    assert core.shutdown().applied == []


def test_invalid_config_is_rejected() -> None:
    with pytest.raises(TrackerConfigError):
        TrackerCore(InMemorySurface(), config=TrackerConfig(stale_window_ms=1_000, sweep_interval_ms=5_000))


def test_out_of_range_feature_does_not_lose_the_rest_of_the_batch() -> None:
    core, surface = _core()

    core.handle_payload({"features": [_feature("JO-R002", alt=int("9" * 400)), _feature("JO-B001")]})

    assert list(core.snapshot) == ["JO-B001"]
    assert set(surface.markers_by_track()) == {"JO-B001"}


@pytest.mark.parametrize("strict", [False, True])
def test_sweep_with_inconsistent_journey_keeps_surface_within_store(strict: bool) -> None:
    clock = _Clock()
    surface = InMemorySurface()
    core = TrackerCore(surface, config=TrackerConfig(strict_invariants=strict), clock=clock)
    core.handle_batch([_feature("JO-R002")])
    core._store._journeys["JO-BAD"] = Journey(track_id="JO-BAD", history=(), first_seen_ms=0, last_updated_ms=0)  # noqa: SLF001

    clock.now = 40_000
    if strict:
        with pytest.raises(InvariantViolation):
            core.sweep()
    else:
        core.sweep()

    assert set(surface.markers_by_track()) <= set(core.snapshot)
    assert sum(core.counts.values()) == len(core.active_tracks())
    if not strict:
        assert len(core.snapshot) == 0
        assert surface.markers == {}
