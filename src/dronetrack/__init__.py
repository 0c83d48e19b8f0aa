"""dronetrack - live drone track state, eviction and map reconciliation."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("dronetrack")
except PackageNotFoundError:
    __version__ = "0+local"
from dronetrack.config import TrackerConfig
from dronetrack.exceptions import (
    FeedError,
    InvariantViolation,
    SurfaceError,
    SurfaceUnavailableError,
    TrackerConfigError,
    TrackerError,
)
from dronetrack.ingestion.feed import ConnectionStatus, Feed
from dronetrack.metrics import TrackSummary, active_tracks, derive_counts
from dronetrack.models import Category, Journey, LngLat, PositionReport, categorize
from dronetrack.render.memory import InMemorySurface
from dronetrack.render.reconciler import ReconcileResult, Reconciler, plan
from dronetrack.render.surface import OpKind, RenderSurface, SurfaceOp
from dronetrack.service import TrackerService
from dronetrack.state.evictor import Evictor, SweepSchedule
from dronetrack.state.store import JourneyStore
from dronetrack.tracker import TrackerCore

__all__ = [
    "__version__",
    "Category",
    "ConnectionStatus",
    "Evictor",
    "Feed",
    "FeedError",
    "InMemorySurface",
    "InvariantViolation",
    "Journey",
    "JourneyStore",
    "LngLat",
    "OpKind",
    "PositionReport",
    "ReconcileResult",
    "Reconciler",
    "RenderSurface",
    "SurfaceError",
    "SurfaceOp",
    "SurfaceUnavailableError",
    "SweepSchedule",
    "TrackSummary",
    "TrackerConfig",
    "TrackerConfigError",
    "TrackerCore",
    "TrackerError",
    "TrackerService",
    "active_tracks",
    "categorize",
    "derive_counts",
    "plan",
]
