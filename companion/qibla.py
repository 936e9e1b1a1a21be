"""
Qibla direction and live compass alignment.

compute_bearing_and_distance() is a pure function of two points. QiblaCompass
keeps the reading for the current location and turns each device heading
sample into the rotation for the on-screen arrow.
"""

import enum
import logging
import math
from dataclasses import dataclass
from typing import Optional, Union

from companion.geometry import (
    KAABA,
    GeoPoint,
    circular_distance,
    haversine_km,
    initial_bearing,
    normalize_degrees,
)

logger = logging.getLogger(__name__)

ALIGNMENT_TOLERANCE_DEG = 5.0


@dataclass(frozen=True)
class QiblaReading:
    bearing_degrees: float
    distance_km: float

    @property
    def distance_km_rounded(self) -> int:
        return int(round(self.distance_km))


def compute_bearing_and_distance(origin: GeoPoint, destination: GeoPoint = KAABA) -> QiblaReading:
    return QiblaReading(
        bearing_degrees=initial_bearing(origin, destination),
        distance_km=haversine_km(origin, destination),
    )


@dataclass(frozen=True)
class CompassState:
    device_heading_degrees: float
    relative_angle_degrees: float
    is_aligned: bool


class UnavailableReason(enum.Enum):
    NO_SAMPLE = "no heading received yet"
    PERMISSION_DENIED = "permission denied"
    UNSUPPORTED = "no compass sensor"


@dataclass(frozen=True)
class CompassUnavailable:
    reason: UnavailableReason


CompassReading = Union[CompassState, CompassUnavailable]


class QiblaCompass:
    """Relative arrow angle and alignment for one user location."""

    def __init__(
        self,
        origin: GeoPoint,
        destination: GeoPoint = KAABA,
        tolerance_degrees: float = ALIGNMENT_TOLERANCE_DEG,
    ):
        self.destination = destination
        self.tolerance_degrees = tolerance_degrees
        self.origin = origin
        self.reading = compute_bearing_and_distance(origin, destination)
        self._state: Optional[CompassState] = None
        self._unavailable = CompassUnavailable(UnavailableReason.NO_SAMPLE)

    def update_location(self, origin: GeoPoint) -> QiblaReading:
        self.origin = origin
        self.reading = compute_bearing_and_distance(origin, self.destination)
        logger.info(
            "Qibla from (%.4f, %.4f): %.1f deg, %d km",
            origin.lat, origin.lon, self.reading.bearing_degrees, self.reading.distance_km_rounded,
        )
        if self._state is not None:
            self._state = self._compass_state(self._state.device_heading_degrees)
        return self.reading

    def on_heading_sample(self, device_heading_degrees: float) -> CompassState:
        """Take a clockwise-from-north heading and return the new compass state."""
        if not math.isfinite(device_heading_degrees):
            raise ValueError(f"Heading must be a finite number, got {device_heading_degrees!r}")
        self._state = self._compass_state(normalize_degrees(device_heading_degrees))
        return self._state

    def mark_unavailable(self, reason: UnavailableReason) -> None:
        logger.info("Compass unavailable: %s", reason.value)
        self._state = None
        self._unavailable = CompassUnavailable(reason)

    @property
    def state(self) -> CompassReading:
        if self._state is None:
            return self._unavailable
        return self._state

    @property
    def available(self) -> bool:
        return self._state is not None

    def _compass_state(self, heading: float) -> CompassState:
        relative = normalize_degrees(self.reading.bearing_degrees - heading)
        return CompassState(
            device_heading_degrees=heading,
            relative_angle_degrees=relative,
            is_aligned=circular_distance(relative, 0.0) <= self.tolerance_degrees,
        )
