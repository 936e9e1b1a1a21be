"""
Device-orientation ingestion.

Orientation sources disagree on convention: some report a compass heading
(clockwise from north), others an ``alpha`` angle that grows
counter-clockwise. Raw samples are tagged here and converted to a single
clockwise heading before they reach QiblaCompass.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional, Union

from companion.geometry import normalize_degrees
from companion.qibla import CompassState, QiblaCompass, UnavailableReason

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AbsoluteHeading:
    """Clockwise-from-north heading, e.g. webkitCompassHeading or a manual dial."""

    degrees: float


@dataclass(frozen=True)
class AlphaHeading:
    """Counter-clockwise alpha angle from a deviceorientation event."""

    alpha: float


HeadingSample = Union[AbsoluteHeading, AlphaHeading]


def to_compass_heading(sample: HeadingSample) -> float:
    if isinstance(sample, AbsoluteHeading):
        return normalize_degrees(sample.degrees)
    if isinstance(sample, AlphaHeading):
        return normalize_degrees(360.0 - sample.alpha)
    raise TypeError(f"Unknown heading sample: {sample!r}")


def _number(value) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value) if math.isfinite(value) else None


def sample_from_event(event: dict) -> Optional[HeadingSample]:
    """
    Tag a raw orientation payload.

    ``webkitCompassHeading`` wins when present; otherwise ``alpha`` is used.
    Returns None when the event carries no usable angle.
    """
    heading = _number(event.get("webkitCompassHeading"))
    if heading is not None:
        return AbsoluteHeading(heading)
    alpha = _number(event.get("alpha"))
    if alpha is not None:
        return AlphaHeading(alpha)
    return None


class HeadingFeed:
    """Forwards orientation events to a QiblaCompass."""

    def __init__(self, compass: QiblaCompass):
        self.compass = compass

    def push(self, sample: HeadingSample) -> CompassState:
        return self.compass.on_heading_sample(to_compass_heading(sample))

    def push_event(self, event: dict) -> Optional[CompassState]:
        sample = sample_from_event(event)
        if sample is None:
            logger.debug("Ignoring orientation event without heading: %r", event)
            return None
        return self.push(sample)

    def permission_denied(self) -> None:
        self.compass.mark_unavailable(UnavailableReason.PERMISSION_DENIED)

    def unsupported(self) -> None:
        self.compass.mark_unavailable(UnavailableReason.UNSUPPORTED)
