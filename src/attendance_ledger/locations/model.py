from __future__ import annotations

from dataclasses import dataclass

from ..core.constants import DEFAULT_LOCATION_RADIUS_METERS


@dataclass(frozen=True)
class Location:
    """A site employees check in at; the geofence is a circle around it."""

    location_id: int
    name: str
    latitude: float
    longitude: float
    radius: float = DEFAULT_LOCATION_RADIUS_METERS
