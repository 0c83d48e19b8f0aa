"""Position report model."""

from __future__ import annotations

from typing import Any, ClassVar

from pydantic import AliasChoices, Field, ValidationError, field_validator, model_validator

from dronetrack.ingestion.normalize import (
    normalize_heading,
    normalize_timestamp_ms,
    safe_float,
    safe_str,
    split_coordinates,
)
from dronetrack.models._base import FeedModel
from dronetrack.models.category import Category, categorize

LngLat = tuple[float, float]
"""A ``(longitude, latitude)`` pair, in the order map surfaces expect."""


class PositionReport(FeedModel):
    """One observation of one track at one instant.

    Accepts both the flat feed shape (``trackId``, ``altitudeMeters``,
    ``headingDegrees`` ...) and GeoJSON features whose ``properties`` carry
    ``registration``/``Name``/``altitude``/``yaw`` and whose
    ``geometry.coordinates`` is ``[lng, lat]``.

    Parameters
    ----------
    track_id : str
        Stable external identifier (the registration).
    serial : str
        Airframe serial number; informational only, never used for identity.
    lat, lng : float or None
        Position in degrees. ``None`` when the feed omitted coordinates.
    altitude_m : float
        Altitude in meters. ``0`` means the drone has landed.
    heading_deg : float
        Heading in ``[0, 360)``, clockwise from north.
    observed_at_ms : int or None
        Payload timestamp (epoch ms), if the feed supplied one.
    display_name, operator_name, organization_name : str
        Descriptive metadata for popups and lists.
    """

    _KEY_ALIASES: ClassVar[dict[str, str]] = {"alt": "altitudeMeters", "hdg": "headingDegrees"}

    track_id: str = Field(validation_alias=AliasChoices("track_id", "trackId", "registration"))
    serial: str = Field(default="", validation_alias=AliasChoices("serial", "serialNumber"))
    lat: float | None = Field(default=None, validation_alias=AliasChoices("lat", "latitude"))
    lng: float | None = Field(default=None, validation_alias=AliasChoices("lng", "lon", "longitude"))
    altitude_m: float = Field(validation_alias=AliasChoices("altitude_m", "altitudeMeters", "altitude"))
    heading_deg: float = Field(
        default=0.0,
        validation_alias=AliasChoices("heading_deg", "headingDegrees", "yaw", "heading"),
    )
    observed_at_ms: int | None = Field(
        default=None,
        validation_alias=AliasChoices("observed_at_ms", "observedAtEpochMs", "timestamp"),
    )
    display_name: str = Field(default="", validation_alias=AliasChoices("display_name", "displayName", "name", "Name"))
    operator_name: str = Field(default="", validation_alias=AliasChoices("operator_name", "operatorName", "pilot"))
    organization_name: str = Field(
        default="",
        validation_alias=AliasChoices("organization_name", "organizationName", "organization"),
    )

    @model_validator(mode="before")
    @classmethod
    def _flatten_feature(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        merged = dict(values)
        properties = values.get("properties")
        if isinstance(properties, dict):
            merged.pop("properties")
            merged.update(properties)
        geometry = values.get("geometry")
        if isinstance(geometry, dict):
            merged.pop("geometry")
            lng, lat = split_coordinates(geometry.get("coordinates"))
            merged.setdefault("lng", lng)
            merged.setdefault("lat", lat)
        return FeedModel._clean_dict(merged, cls._KEY_ALIASES)

    @field_validator("track_id", mode="before")
    @classmethod
    def _coerce_track_id(cls, value: Any) -> str:
        track_id = safe_str(value)
        if track_id is None:
            raise ValueError("track_id must be non-empty")
        return track_id

    @field_validator("serial", "display_name", "operator_name", "organization_name", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        return safe_str(value) or ""

    @field_validator("lat", "lng", "altitude_m", mode="before")
    @classmethod
    def _coerce_floats(cls, value: Any) -> float | None:
        return safe_float(value)

    @field_validator("heading_deg", mode="before")
    @classmethod
    def _coerce_heading(cls, value: Any) -> float:
        return normalize_heading(value)

    @field_validator("observed_at_ms", mode="before")
    @classmethod
    def _coerce_timestamp(cls, value: Any) -> int | None:
        return normalize_timestamp_ms(value)

    @classmethod
    def from_feature(cls, payload: Any) -> PositionReport | None:
        """Parse one feed item, returning ``None`` when it is malformed."""
        if isinstance(payload, PositionReport):
            return payload
        if not isinstance(payload, dict):
            return None
        try:
            return cls.model_validate(payload)
        except ValidationError:
            return None

    @property
    def position(self) -> LngLat | None:
        if self.lat is None or self.lng is None:
            return None
        return (self.lng, self.lat)

    @property
    def is_airborne(self) -> bool:
        """Liveness predicate: a zero altitude means the flight has ended."""
        return self.altitude_m > 0

    @property
    def category(self) -> Category:
        return categorize(self.track_id)
