from __future__ import annotations

from dataclasses import dataclass
from math import atan2, cos, radians, sin, sqrt

from agriconnect.core.errors import InvariantViolation

"""
Geospatial helpers.

Distances are great-circle (haversine) kilometres on a spherical Earth. That is
plenty for "who is within 20 km" questions and keeps GIS libraries out of the core.
"""

EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class GeoPoint:
    """A latitude/longitude pair in decimal degrees.

    Construction fails loudly on out-of-range values; (0, 0) is a valid point and is
    not treated as "unset".
    """

    lat: float
    lng: float

    def __post_init__(self) -> None:
        if not -90.0 <= float(self.lat) <= 90.0:
            raise InvariantViolation(f"latitude out of range: {self.lat!r}")
        if not -180.0 <= float(self.lng) <= 180.0:
            raise InvariantViolation(f"longitude out of range: {self.lng!r}")


def distance_km(a: GeoPoint, b: GeoPoint) -> float:
    """Compute great-circle distance in kilometres between two points."""
    dlat = radians(b.lat - a.lat)
    dlng = radians(b.lng - a.lng)

    h = sin(dlat / 2) ** 2 + cos(radians(a.lat)) * cos(radians(b.lat)) * sin(dlng / 2) ** 2
    # Rounding can push h just past 1 for near-antipodal pairs.
    h = min(1.0, max(0.0, h))
    return EARTH_RADIUS_KM * 2 * atan2(sqrt(h), sqrt(1 - h))


def round_km(value: float) -> float:
    """Round a distance to one decimal place (the precision shown to users)."""
    return round(float(value), 1)


def format_coordinate(lat: float, lng: float) -> str:
    """Literal location label used when reverse geocoding is unavailable."""
    return f"{lat:.2f}, {lng:.2f}"
