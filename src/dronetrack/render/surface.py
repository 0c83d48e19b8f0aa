"""Render surface interface and surface operation records."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Protocol

from dronetrack.models.report import LngLat
from dronetrack.render.style import MarkerStyle, TrailStyle


class RenderSurface(Protocol):
    """Stateful map drawing capability driven by the reconciler.

    Handles are opaque to the tracker. Mutation calls are expected to be
    synchronous in-memory scene edits. Implementations raise
    :class:`~dronetrack.exceptions.SurfaceError` when an operation fails and
    :class:`~dronetrack.exceptions.SurfaceUnavailableError` once torn down.
    """

    def create_marker(self, track_id: str, position: LngLat, rotation: float, style: MarkerStyle) -> Any: ...

    def move_marker(self, handle: Any, position: LngLat, rotation: float, style: MarkerStyle) -> None: ...

    def remove_marker(self, handle: Any) -> None: ...

    def create_trail(self, track_id: str, coordinates: Sequence[LngLat], style: TrailStyle) -> Any: ...

    def update_trail(self, handle: Any, coordinates: Sequence[LngLat]) -> None: ...

    def remove_trail(self, handle: Any) -> None: ...

    def focus(self, position: LngLat) -> None: ...


class OpKind(StrEnum):
    CREATE_MARKER = "create_marker"
    MOVE_MARKER = "move_marker"
    REMOVE_MARKER = "remove_marker"
    CREATE_TRAIL = "create_trail"
    UPDATE_TRAIL = "update_trail"
    REMOVE_TRAIL = "remove_trail"


@dataclass(frozen=True)
class SurfaceOp:
    """One planned surface mutation for one track."""

    kind: OpKind
    track_id: str
    position: LngLat | None = None
    rotation: float | None = None
    marker_style: MarkerStyle | None = None
    coordinates: tuple[LngLat, ...] = field(default=())
    trail_style: TrailStyle | None = None
