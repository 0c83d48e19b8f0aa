"""Custom exception hierarchy for dronetrack."""

from __future__ import annotations


class TrackerError(Exception):
    """Base exception for all dronetrack errors."""


class TrackerConfigError(TrackerError):
    """Invalid or missing configuration."""


class FeedError(TrackerError):
    """Ingestion transport failure (connect, subscribe, invalid frame)."""

    def __init__(self, message: str, *, endpoint: str = "") -> None:
        self.endpoint = endpoint
        super().__init__(message)


class SurfaceError(TrackerError):
    """A render surface primitive failed.

    Raised by surface implementations, for example when asked to remove a
    marker or trail handle they do not know about.
    """

    def __init__(self, message: str, *, handle: object | None = None) -> None:
        self.handle = handle
        super().__init__(message)


class SurfaceUnavailableError(SurfaceError):
    """The render surface has been torn down and accepts no more operations."""


class InvariantViolation(TrackerError):
    """Internal state broke one of the journey invariants.

    Only raised when ``TrackerConfig.strict_invariants`` is enabled; in the
    default mode the offending journey is dropped on the next sweep.
    """

    def __init__(self, message: str, *, track_id: str = "") -> None:
        self.track_id = track_id
        super().__init__(message)
