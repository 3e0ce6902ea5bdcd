# common.py
"""Objects that are shared across multiple modules."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class GeoPoint:
    """WGS-84 style position: degrees, degrees, metres."""
    lat: float
    lon: float
    alt: float = 0.0


@dataclass(frozen=True)
class OrientationSample:
    """Device compass heading and tilt at ``timestamp_ms``."""
    azimuth_deg: float
    elevation_deg: float
    timestamp_ms: Optional[int] = None


@dataclass(frozen=True)
class GpsFix:
    position: GeoPoint
    accuracy_m: float = 0.0
    timestamp_ms: Optional[int] = None


@dataclass(frozen=True)
class SightingInput:
    """Per-detection operator input; never persisted."""
    pixel_x: float
    pixel_y: float
    object_real_size_m: float


@dataclass(frozen=True)
class TrackPoint:
    id: int
    timestamp_ms: int
    position: GeoPoint
    distance_m: float  # Slant range used to derive ``position``
    bearing_deg: float


@dataclass
class Track:
    """
    Append-only sequence of detections for one tracking session.
    Only the TrackBuilder appends; everybody else reads ``points``.
    """
    id: str
    _points: List[TrackPoint] = field(default_factory=list, repr=False)

    @property
    def points(self) -> Tuple[TrackPoint, ...]:
        return tuple(self._points)

    def append(self, point: TrackPoint) -> None:
        self._points.append(point)

    def __len__(self) -> int:
        return len(self._points)


@dataclass(frozen=True)
class KinematicsReport:
    """
    Velocity snapshot derived from the two most recent track points.
    ``prediction`` is where the target is expected after ``horizon_s``.
    """
    speed_ms: float
    speed_kmh: float
    heading_deg: float
    vertical_speed_ms: float
    dt_s: float
    horizontal_distance_m: float
    prediction: GeoPoint
    horizon_s: float
    time_monotonic: bool = True
