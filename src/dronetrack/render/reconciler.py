"""Render reconciliation.

The reconciler is the only component allowed to call render surface
mutation primitives. It keeps a private mirror (the render state) of every
handle it has created and diffs each new journey snapshot against that
mirror, so only the minimal set of surface operations is issued.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from dronetrack.exceptions import SurfaceUnavailableError
from dronetrack.models.report import LngLat
from dronetrack.render.style import MarkerStyle, marker_rotation, marker_style, trail_style
from dronetrack.render.surface import OpKind, RenderSurface, SurfaceOp
from dronetrack.state.store import EMPTY_SNAPSHOT, Snapshot

_logger = logging.getLogger(__name__)

_REMOVALS = frozenset({OpKind.REMOVE_MARKER, OpKind.REMOVE_TRAIL})

#: A trail needs two points to be a line.
MIN_TRAIL_POINTS = 2


@dataclass
class RenderedTrack:
    """Mirror of the surface objects drawn for one track."""

    marker: Any | None
    position: LngLat
    rotation: float
    style: MarkerStyle
    trail: Any | None = None
    trail_points: int = 0


RenderState = Mapping[str, RenderedTrack]


@dataclass
class ReconcileResult:
    """Outcome of one reconcile pass."""

    applied: list[SurfaceOp] = field(default_factory=list)
    failed: list[SurfaceOp] = field(default_factory=list)
    dropped: list[SurfaceOp] = field(default_factory=list)

    @property
    def kinds(self) -> list[OpKind]:
        return [op.kind for op in self.applied]


def plan(snapshot: Snapshot, render_state: RenderState) -> list[SurfaceOp]:
    """Compute the surface operations that bring *render_state* to *snapshot*.

    Removed, added and retained tracks are disjoint sets, and all operations
    for one track are adjacent in the returned list, removals first.
    """
    ops: list[SurfaceOp] = []

    for track_id, rendered in render_state.items():
        if track_id in snapshot:
            continue
        if rendered.marker is not None:
            ops.append(SurfaceOp(OpKind.REMOVE_MARKER, track_id))
        if rendered.trail is not None:
            ops.append(SurfaceOp(OpKind.REMOVE_TRAIL, track_id))

    for track_id, journey in snapshot.items():
        current = journey.current
        position = current.position if current is not None else None
        if current is None or position is None:
            # Inconsistent journey; the next sweep drops it.
            continue

        rotation = marker_rotation(current)
        style = marker_style(current)
        points = journey.point_count
        rendered = render_state.get(track_id)

        if rendered is None or rendered.marker is None:
            ops.append(
                SurfaceOp(OpKind.CREATE_MARKER, track_id, position=position, rotation=rotation, marker_style=style)
            )
        elif (position, rotation, style) != (rendered.position, rendered.rotation, rendered.style):
            ops.append(
                SurfaceOp(OpKind.MOVE_MARKER, track_id, position=position, rotation=rotation, marker_style=style)
            )

        # Coordinates are only materialized when the trail actually changes.
        if points < MIN_TRAIL_POINTS:
            continue
        if rendered is None or rendered.trail is None:
            ops.append(
                SurfaceOp(
                    OpKind.CREATE_TRAIL,
                    track_id,
                    coordinates=tuple(journey.coordinates()),
                    trail_style=trail_style(track_id),
                )
            )
        elif points != rendered.trail_points:
            ops.append(SurfaceOp(OpKind.UPDATE_TRAIL, track_id, coordinates=tuple(journey.coordinates())))

    return ops


class Reconciler:
    """Applies planned operations to a surface, one track at a time.

    Every operation is recorded in the mirror as soon as the surface call
    returns, so an interrupted pass leaves the mirror matching exactly the
    operations that completed. Failed removals are still recorded as done
    so they are not retried on every pass.
    """

    def __init__(self, surface: RenderSurface) -> None:
        self._surface = surface
        self._state: dict[str, RenderedTrack] = {}
        self._detached = False

    @property
    def render_state(self) -> RenderState:
        return MappingProxyType(dict(self._state))

    @property
    def handle_count(self) -> int:
        """Number of surface objects the mirror believes exist."""
        count = 0
        for rendered in self._state.values():
            count += (rendered.marker is not None) + (rendered.trail is not None)
        return count

    @property
    def is_detached(self) -> bool:
        return self._detached

    def reconcile(self, snapshot: Snapshot) -> ReconcileResult:
        result = ReconcileResult()
        if self._detached:
            _logger.debug("Surface detached; skipping reconcile pass")
            return result

        ops = plan(snapshot, self._state)
        for index, op in enumerate(ops):
            try:
                applied = self._apply(op)
            except SurfaceUnavailableError:
                _logger.warning("Render surface unavailable; dropping %d pending operations", len(ops) - index)
                self._detached = True
                result.failed.append(op)
                result.dropped.extend(ops[index + 1 :])
                break
            except Exception as exc:
                _logger.warning("Surface %s failed for %s: %s", op.kind, op.track_id, exc)
                _logger.debug("Surface failure detail", exc_info=True)
                result.failed.append(op)
            else:
                if applied:
                    result.applied.append(op)

        if ops:
            _logger.debug(
                "Reconciled %d tracks: %d applied, %d failed, %d dropped",
                len(snapshot),
                len(result.applied),
                len(result.failed),
                len(result.dropped),
            )
        return result

    def teardown(self) -> ReconcileResult:
        """Remove every surface object this reconciler created and detach."""
        result = self.reconcile(EMPTY_SNAPSHOT)
        if self._state:
            _logger.warning("Forgetting %d tracks the surface could not remove", len(self._state))
            self._state.clear()
        self._detached = True
        return result

    def _apply(self, op: SurfaceOp) -> bool:
        """Run one operation, returning False when it had nothing to act on."""
        if op.kind in _REMOVALS:
            return self._apply_removal(op)

        if op.kind == OpKind.CREATE_MARKER:
            assert op.position is not None and op.rotation is not None and op.marker_style is not None  # noqa: S101
            handle = self._surface.create_marker(op.track_id, op.position, op.rotation, op.marker_style)
            existing = self._state.get(op.track_id)
            if existing is not None:
                existing.marker = handle
                existing.position, existing.rotation, existing.style = op.position, op.rotation, op.marker_style
            else:
                self._state[op.track_id] = RenderedTrack(
                    marker=handle,
                    position=op.position,
                    rotation=op.rotation,
                    style=op.marker_style,
                )
            return True

        rendered = self._state.get(op.track_id)
        if rendered is None:
            _logger.debug("No rendered marker for %s; skipping %s", op.track_id, op.kind)
            return False

        if op.kind == OpKind.MOVE_MARKER:
            assert op.position is not None and op.rotation is not None and op.marker_style is not None  # noqa: S101
            self._surface.move_marker(rendered.marker, op.position, op.rotation, op.marker_style)
            rendered.position, rendered.rotation, rendered.style = op.position, op.rotation, op.marker_style
        elif op.kind == OpKind.CREATE_TRAIL:
            assert op.trail_style is not None  # noqa: S101
            rendered.trail = self._surface.create_trail(op.track_id, op.coordinates, op.trail_style)
            rendered.trail_points = len(op.coordinates)
        elif op.kind == OpKind.UPDATE_TRAIL:
            self._surface.update_trail(rendered.trail, op.coordinates)
            rendered.trail_points = len(op.coordinates)
        return True

    def _apply_removal(self, op: SurfaceOp) -> bool:
        rendered = self._state.get(op.track_id)
        if rendered is None:
            return False
        try:
            if op.kind == OpKind.REMOVE_MARKER and rendered.marker is not None:
                self._surface.remove_marker(rendered.marker)
            elif op.kind == OpKind.REMOVE_TRAIL and rendered.trail is not None:
                self._surface.remove_trail(rendered.trail)
        finally:
            if op.kind == OpKind.REMOVE_MARKER:
                rendered.marker = None
            else:
                rendered.trail = None
                rendered.trail_points = 0
            if rendered.marker is None and rendered.trail is None:
                del self._state[op.track_id]
        return True
