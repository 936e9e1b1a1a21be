"""Great-circle geometry for the Qibla direction."""

import math
from dataclasses import dataclass

EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class GeoPoint:
    """A latitude/longitude pair in decimal degrees."""

    lat: float
    lon: float

    def __post_init__(self):
        if not -90.0 <= self.lat <= 90.0:
            raise ValueError(f"Latitude out of range: {self.lat}")
        if not -180.0 <= self.lon <= 180.0:
            raise ValueError(f"Longitude out of range: {self.lon}")


# The Kaaba, Masjid al-Haram
KAABA = GeoPoint(21.4225, 39.8262)


def normalize_degrees(deg: float) -> float:
    """Wrap an angle into [0, 360)."""
    # float % takes the divisor's sign, and is exact for values already in range
    wrapped = deg % 360.0
    # -1e-15 % 360 rounds up to 360.0
    return 0.0 if wrapped >= 360.0 else wrapped


def initial_bearing(origin: GeoPoint, destination: GeoPoint) -> float:
    """
    Initial great-circle bearing from origin to destination.

    Returns degrees clockwise from true north in [0, 360). Coincident
    points and poles give 0.
    """
    lat1 = math.radians(origin.lat)
    lat2 = math.radians(destination.lat)
    delta_lon = math.radians(destination.lon - origin.lon)

    y = math.sin(delta_lon) * math.cos(lat2)
    x = (math.cos(lat1) * math.sin(lat2) -
         math.sin(lat1) * math.cos(lat2) * math.cos(delta_lon))
    return normalize_degrees(math.degrees(math.atan2(y, x)))


def haversine_km(origin: GeoPoint, destination: GeoPoint) -> float:
    """Great-circle distance in kilometres."""
    phi1 = math.radians(origin.lat)
    phi2 = math.radians(destination.lat)
    delta_phi = math.radians(destination.lat - origin.lat)
    delta_lambda = math.radians(destination.lon - origin.lon)

    a = (math.sin(delta_phi / 2) ** 2 +
         math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2)
    # antipodal rounding can push a a hair past 1
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def circular_distance(a: float, b: float) -> float:
    """Smallest angle between two directions, in [0, 180]."""
    diff = abs(normalize_degrees(a) - normalize_degrees(b))
    return min(diff, 360.0 - diff)
