# sensors.py
"""Latest pushed GPS fix and device orientation, read at call time."""
from __future__ import annotations

import logging
import threading
import time
from typing import Optional, Tuple

from geo_tracking.common import GeoPoint, GpsFix, OrientationSample

LOG = logging.getLogger(__name__)


class SensorState:
    """
    Holder for the most recent committed sensor readings.

    Geolocation / orientation providers push into ``update_*``; detections call
    :meth:`snapshot` right before computing, so they never work on a reading
    captured earlier. With ``max_age_ms`` set, readings older than that are
    reported as absent.
    """

    def __init__(self, max_age_ms: Optional[int] = None) -> None:
        self.max_age_ms = max_age_ms
        self._fix: Optional[GpsFix] = None
        self._orientation: Optional[OrientationSample] = None
        self._lock = threading.Lock()

    @staticmethod
    def _now_ms() -> int:
        return int(time.time() * 1000)

    # ------------------------- push side -------------------------
    def update_position(
        self,
        lat: float,
        lon: float,
        alt: Optional[float] = None,
        accuracy: float = 0.0,
        timestamp_ms: Optional[int] = None,
    ) -> GpsFix:
        fix = GpsFix(
            position=GeoPoint(lat, lon, alt if alt is not None else 0.0),
            accuracy_m=accuracy,
            timestamp_ms=self._now_ms() if timestamp_ms is None else timestamp_ms,
        )
        with self._lock:
            self._fix = fix
        return fix

    def update_orientation(
        self,
        azimuth: Optional[float],
        elevation: Optional[float],
        timestamp_ms: Optional[int] = None,
    ) -> OrientationSample:
        # Browsers report null alpha/beta on devices without the sensor
        sample = OrientationSample(
            azimuth_deg=azimuth or 0.0,
            elevation_deg=elevation or 0.0,
            timestamp_ms=self._now_ms() if timestamp_ms is None else timestamp_ms,
        )
        with self._lock:
            self._orientation = sample
        return sample

    def reset(self) -> None:
        with self._lock:
            self._fix = None
            self._orientation = None

    # ------------------------- read side -------------------------
    def _fresh(self, stamp: Optional[int], now: int) -> bool:
        if self.max_age_ms is None or stamp is None:
            return True
        return now - stamp <= self.max_age_ms

    def snapshot(self, now_ms: Optional[int] = None) -> Tuple[Optional[GpsFix], Optional[OrientationSample]]:
        now = self._now_ms() if now_ms is None else now_ms
        with self._lock:
            fix, orientation = self._fix, self._orientation
        if fix is not None and not self._fresh(fix.timestamp_ms, now):
            LOG.debug("Position fix is stale (%d ms old)", now - fix.timestamp_ms)
            fix = None
        if orientation is not None and not self._fresh(orientation.timestamp_ms, now):
            LOG.debug("Orientation sample is stale (%d ms old)", now - orientation.timestamp_ms)
            orientation = None
        return fix, orientation

    def is_ready(self, now_ms: Optional[int] = None) -> bool:
        fix, orientation = self.snapshot(now_ms)
        return fix is not None and orientation is not None
