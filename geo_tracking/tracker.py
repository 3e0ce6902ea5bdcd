# tracker.py
"""Track building: sighting + sensors → absolute TrackPoint, and the auto-tracking timer."""
from __future__ import annotations

import itertools
import logging
import math
import threading
import time
from typing import Callable, Iterable, Optional, Tuple

from geo_tracking.common import (
    GeoPoint,
    GpsFix,
    OrientationSample,
    SightingInput,
    Track,
    TrackPoint,
)
from geo_tracking.config import CameraIntrinsics
from geo_tracking.errors import TrackingError
from geo_tracking.geodesy import destination
from geo_tracking.projection import CameraProjection, require_sensors
from geo_tracking.ranging import estimate_range

LOG = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


class TrackBuilder:
    """
    Sole owner of track mutation. Points are only ever appended.
    """

    _id_counter = itertools.count(1)
    _last_id = 0
    _id_lock = threading.Lock()

    def __init__(self, use_true_vertical_fov: bool = False) -> None:
        self.use_true_vertical_fov = use_true_vertical_fov
        self._tracks: list[Track] = []

    # ------------------------------------------------------------------ #
    #   S T A T I C   ID
    # ------------------------------------------------------------------ #
    @classmethod
    def _next_id(cls) -> int:
        with cls._id_lock:
            cls._last_id = next(cls._id_counter)
            return cls._last_id

    @classmethod
    def _reserve_ids_through(cls, max_id: int) -> None:
        """Make sure ids handed out from now on are all above ``max_id``."""
        with cls._id_lock:
            if max_id > cls._last_id:
                cls._id_counter = itertools.count(max_id + 1)
                cls._last_id = max_id

    # ------------------------------------------------------------------ #
    #   R E A D   A C C E S S
    # ------------------------------------------------------------------ #
    @property
    def tracks(self) -> Tuple[Track, ...]:
        return tuple(self._tracks)

    @property
    def current_track(self) -> Optional[Track]:
        return self._tracks[0] if self._tracks else None

    # ------------------------------------------------------------------ #
    #   D E T E C T
    # ------------------------------------------------------------------ #
    def locate(
        self,
        sighting: SightingInput,
        intrinsics: CameraIntrinsics,
        orientation: Optional[OrientationSample],
        fix: Optional[GpsFix],
    ) -> Tuple[GeoPoint, float, float]:
        """
        Pure part of a detection: returns ``(position, distance_m, azimuth_deg)``
        without touching any track.
        """
        require_sensors(orientation, fix)
        projection = CameraProjection(intrinsics, self.use_true_vertical_fov)
        azimuth, elevation = projection.project(
            sighting.pixel_x, sighting.pixel_y, orientation, fix
        )
        dist = estimate_range(
            sighting.object_real_size_m, projection.fov_x_rad, intrinsics.resolution_x
        )

        ground = destination(fix.position, azimuth, dist)
        alt = (
            fix.position.alt
            + intrinsics.camera_height_m
            + dist * math.sin(math.radians(elevation))
        )
        return GeoPoint(ground.lat, ground.lon, alt), dist, azimuth

    def detect(
        self,
        sighting: SightingInput,
        intrinsics: CameraIntrinsics,
        orientation: Optional[OrientationSample],
        fix: Optional[GpsFix],
        timestamp_ms: Optional[int] = None,
    ) -> TrackPoint:
        """
        Locate the sighted object and append it to the current track
        (``track-1`` is created on first use). Any exception leaves every
        track exactly as it was.
        """
        position, dist, azimuth = self.locate(sighting, intrinsics, orientation, fix)

        point = TrackPoint(
            id=self._next_id(),
            timestamp_ms=now_ms() if timestamp_ms is None else int(timestamp_ms),
            position=position,
            distance_m=dist,
            bearing_deg=azimuth,
        )
        if not self._tracks:
            self._tracks.append(Track(id="track-1"))
        self._tracks[0].append(point)
        LOG.debug(
            "Point %d: %.8f, %.8f alt=%.2f m range=%.2f m bearing=%.2f°",
            point.id, position.lat, position.lon, position.alt, dist, azimuth,
        )
        return point

    # ------------------------------------------------------------------ #
    #   S E S S I O N   M A N A G E M E N T
    # ------------------------------------------------------------------ #
    def clear(self) -> None:
        self._tracks = []

    def load(self, tracks: Iterable[Track]) -> None:
        """
        Replace all tracks, e.g. with the contents of an export file.
        Later detections never reuse a loaded point id.
        """
        self._tracks = list(tracks)
        max_id = max((p.id for t in self._tracks for p in t.points), default=0)
        self._reserve_ids_through(max_id)


class AutoTracker:
    """
    Periodic re-detection on a background thread.

    ``detect`` is called every ``interval_s`` until :meth:`stop`. A failing
    tick (sensors not ready, bad geometry) is logged and the timer keeps going.
    The owner must call :meth:`stop` (or use the object as a context manager).
    """

    def __init__(self, detect: Callable[[], TrackPoint], interval_s: float = 2.0):
        if interval_s <= 0:
            raise ValueError("interval_s must be > 0")
        self._detect = detect
        self.interval_s = interval_s
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.ticks = 0
        self.failures = 0

    def is_running(self) -> bool:
        return bool(self._thread and self._thread.is_alive())

    def start(self) -> None:
        if self.is_running():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="auto-tracker", daemon=True)
        self._thread.start()
        LOG.info("Auto-tracking started (every %.1f s)", self.interval_s)

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread:
            self._thread.join(timeout)
            self._thread = None
            LOG.info("Auto-tracking stopped after %d ticks", self.ticks)

    def _run(self) -> None:
        while not self._stop.wait(self.interval_s):
            self.ticks += 1
            try:
                self._detect()
            except TrackingError as exc:
                self.failures += 1
                LOG.warning("Auto-tracking tick failed: %s", exc)

    def __enter__(self) -> "AutoTracker":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()
