"""Headless in-memory render surface.

Keeps a plain scene graph of markers and trails. Used by the probe script
to run the tracker without a map widget, and by tests as the reference
surface.
"""

from __future__ import annotations

import itertools
from collections.abc import Sequence
from dataclasses import dataclass

from dronetrack.exceptions import SurfaceError, SurfaceUnavailableError
from dronetrack.models.report import LngLat
from dronetrack.render.style import MarkerStyle, TrailStyle


@dataclass
class MarkerRecord:
    track_id: str
    position: LngLat
    rotation: float
    style: MarkerStyle


@dataclass
class TrailRecord:
    track_id: str
    coordinates: list[LngLat]
    style: TrailStyle


class InMemorySurface:
    """Scene graph kept in dictionaries keyed by integer handles."""

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self.markers: dict[int, MarkerRecord] = {}
        self.trails: dict[int, TrailRecord] = {}
        self.center: LngLat | None = None
        self.mutations = 0
        self._closed = False

    @property
    def is_closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Tear the surface down; every later call raises."""
        self._closed = True
        self.markers.clear()
        self.trails.clear()

    def _check_open(self) -> None:
        if self._closed:
            raise SurfaceUnavailableError("Surface has been closed")

    def create_marker(self, track_id: str, position: LngLat, rotation: float, style: MarkerStyle) -> int:
        self._check_open()
        handle = next(self._ids)
        self.markers[handle] = MarkerRecord(track_id=track_id, position=position, rotation=rotation, style=style)
        self.mutations += 1
        return handle

    def move_marker(self, handle: int, position: LngLat, rotation: float, style: MarkerStyle) -> None:
        self._check_open()
        record = self.markers.get(handle)
        if record is None:
            raise SurfaceError(f"Unknown marker handle {handle}", handle=handle)
        record.position = position
        record.rotation = rotation
        record.style = style
        self.mutations += 1

    def remove_marker(self, handle: int) -> None:
        self._check_open()
        if self.markers.pop(handle, None) is None:
            raise SurfaceError(f"Unknown marker handle {handle}", handle=handle)
        self.mutations += 1

    def create_trail(self, track_id: str, coordinates: Sequence[LngLat], style: TrailStyle) -> int:
        self._check_open()
        handle = next(self._ids)
        self.trails[handle] = TrailRecord(track_id=track_id, coordinates=list(coordinates), style=style)
        self.mutations += 1
        return handle

    def update_trail(self, handle: int, coordinates: Sequence[LngLat]) -> None:
        self._check_open()
        record = self.trails.get(handle)
        if record is None:
            raise SurfaceError(f"Unknown trail handle {handle}", handle=handle)
        record.coordinates = list(coordinates)
        self.mutations += 1

    def remove_trail(self, handle: int) -> None:
        self._check_open()
        if self.trails.pop(handle, None) is None:
            raise SurfaceError(f"Unknown trail handle {handle}", handle=handle)
        self.mutations += 1

    def focus(self, position: LngLat) -> None:
        self._check_open()
        self.center = position

    def markers_by_track(self) -> dict[str, MarkerRecord]:
        return {record.track_id: record for record in self.markers.values()}

    def trails_by_track(self) -> dict[str, TrailRecord]:
        return {record.track_id: record for record in self.trails.values()}
