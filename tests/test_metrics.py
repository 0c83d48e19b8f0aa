from __future__ import annotations

from dronetrack.metrics import active_tracks, derive_counts
from dronetrack.models.category import Category
from dronetrack.models.report import PositionReport
from dronetrack.state.store import EMPTY_SNAPSHOT, JourneyStore


def _store() -> JourneyStore:
    return JourneyStore(clock=lambda: 0)


def test_counts_two_categories() -> None:
    snapshot = _store().fold(
        [
            {"trackId": "JO-B001", "altitudeMeters": 120, "lat": 31.95, "lng": 35.91},
            {"trackId": "JO-R002", "altitudeMeters": 60, "lat": 31.90, "lng": 35.80},
        ]
    )

    assert derive_counts(snapshot) == {Category.CLEARED: 1, Category.RESTRICTED: 1}


def test_empty_snapshot_reports_every_category_as_zero() -> None:
    assert derive_counts(EMPTY_SNAPSHOT) == {Category.CLEARED: 0, Category.RESTRICTED: 0}


def test_negative_altitude_is_not_counted() -> None:
    snapshot = _store().fold(
        [
            {"trackId": "JO-B001", "altitudeMeters": -2, "lat": 31.95, "lng": 35.91},
            {"trackId": "JO-B002", "altitudeMeters": 40, "lat": 31.95, "lng": 35.91},
        ]
    )

    assert derive_counts(snapshot)[Category.CLEARED] == 1
    assert [t.track_id for t in active_tracks(snapshot)] == ["JO-B002"]


def test_active_tracks_summarize_current_report() -> None:
    store = _store()
    store.fold([PositionReport(track_id="JO-R002", lat=31.0, lng=35.0, altitude_m=50.0)])
    snapshot = store.fold(
        [
            PositionReport(
                track_id="JO-R002",
                serial="SN-9",
                display_name="Patrol",
                operator_name="Omar",
                organization_name="Civil",
                lat=31.1,
                lng=35.1,
                altitude_m=70.0,
                heading_deg=180.0,
            )
        ]
    )

    (summary,) = active_tracks(snapshot)

    assert summary.track_id == "JO-R002"
    assert summary.category == Category.RESTRICTED
    assert summary.color == "#FF000f"
    assert summary.position == (35.1, 31.1)
    assert summary.altitude_m == 70.0
    assert summary.report_count == 2
    assert summary.display_name == "Patrol"


def test_active_tracks_expose_journey_duration() -> None:
    now = {"ms": 1_000}
    store = JourneyStore(clock=lambda: now["ms"])
    store.fold([{"trackId": "JO-B001", "altitudeMeters": 40, "lat": 31.95, "lng": 35.91}])
    now["ms"] = 16_000
    snapshot = store.fold([{"trackId": "JO-B001", "altitudeMeters": 45, "lat": 31.96, "lng": 35.91}])

    (summary,) = active_tracks(snapshot)

    assert summary.first_seen_ms == 1_000
    assert summary.last_updated_ms == 16_000
    assert summary.duration_ms == 15_000
