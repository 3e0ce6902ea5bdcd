# kinematics.py
"""Speed / heading / vertical rate of a track, plus short-horizon prediction."""
from __future__ import annotations

import logging
import math
from typing import Optional, Sequence

import numpy as np
from filterpy.common import Q_discrete_white_noise
from filterpy.kalman import KalmanFilter

from geo_tracking.common import GeoPoint, KinematicsReport, Track, TrackPoint
from geo_tracking.config import TrackerConfig
from geo_tracking.geodesy import (
    destination,
    distance,
    flat_offset,
    from_local_en,
    local_en,
    normalize_bearing,
)

LOG = logging.getLogger(__name__)

PREDICTION_METHODS = ("flat", "geodesic")


def _points(track: Track | Sequence[TrackPoint] | None) -> Sequence[TrackPoint]:
    if track is None:
        return ()
    if isinstance(track, Track):
        return track.points
    return track


def predict(last: GeoPoint, heading_deg: float, speed_ms: float, horizon_s: float,
            method: str = "flat") -> GeoPoint:
    travel = speed_ms * horizon_s
    if method == "flat":
        return flat_offset(last, heading_deg, travel)
    if method == "geodesic":
        return destination(last, heading_deg, travel)
    raise ValueError(f"Unknown prediction method {method!r}; expected one of {PREDICTION_METHODS}")


def estimate(
    track: Track | Sequence[TrackPoint] | None,
    horizon_s: float = 5.0,
    method: str = "flat",
) -> Optional[KinematicsReport]:
    """
    Kinematics from the last two points of ``track``.

    Returns None when there are fewer than two points. A zero or negative
    time step yields zero speed and vertical rate with ``time_monotonic``
    set to False instead of raising.
    """
    pts = _points(track)
    if len(pts) < 2:
        return None

    prev, last = pts[-2], pts[-1]
    horizontal = distance(prev.position, last.position)
    dt = (last.timestamp_ms - prev.timestamp_ms) / 1000.0

    if dt > 0:
        speed_ms = horizontal / dt
        vertical_ms = (last.position.alt - prev.position.alt) / dt
        monotonic = True
    else:
        LOG.warning(
            "Non-monotonic timestamps between points %d and %d (dt=%.3f s); "
            "reporting zero velocity",
            prev.id, last.id, dt,
        )
        speed_ms = vertical_ms = 0.0
        monotonic = False

    heading = last.bearing_deg
    return KinematicsReport(
        speed_ms=speed_ms,
        speed_kmh=speed_ms * 3.6,
        heading_deg=heading,
        vertical_speed_ms=vertical_ms,
        dt_s=dt,
        horizontal_distance_m=horizontal,
        prediction=predict(last.position, heading, speed_ms, horizon_s, method),
        horizon_s=horizon_s,
        time_monotonic=monotonic,
    )


class SmoothedKinematics:
    """
    4-state constant-velocity Kalman filter over local east/north metres.

    The tangent plane is anchored at the first point fed in. Unlike
    :func:`estimate` the heading is the filtered course over ground, not the
    bearing from the camera.
    """

    def __init__(self, cfg: TrackerConfig | None = None):
        self.cfg = cfg or TrackerConfig()

        self.kf = KalmanFilter(dim_x=4, dim_z=2)
        self.kf.F = np.eye(4)
        self.kf.H = np.array([[1, 0, 0, 0], [0, 1, 0, 0]], dtype=float)

        mvar = self.cfg.measurement_noise_std**2
        self.kf.R = np.diag([mvar, mvar])
        self._reset_covariance()
        self.kf.x = np.zeros((4, 1))

        self.origin: Optional[GeoPoint] = None
        self.last_time_ms: Optional[int] = None
        self.prev_point: Optional[TrackPoint] = None
        self.last_point: Optional[TrackPoint] = None
        self.updates = 0

    # ------------------------------------------------------------------ #
    #   I N T E R N A L S
    # ------------------------------------------------------------------ #
    def _reset_covariance(self) -> None:
        pos_var = self.cfg.measurement_noise_std**2
        vel_var = self.cfg.initial_velocity_error_std**2
        self.kf.P = np.diag([pos_var, pos_var, vel_var, vel_var])

    def _set_dt(self, dt: float) -> None:
        self.kf.F[0, 2] = dt
        self.kf.F[1, 3] = dt
        self.kf.Q = Q_discrete_white_noise(
            dim=2, dt=dt, var=self.cfg.process_noise_std**2,
            order_by_dim=False, block_size=2,
        )

    # ------------------------------------------------------------------ #
    #   P U B L I C   A P I
    # ------------------------------------------------------------------ #
    def update(self, point: TrackPoint) -> None:
        if self.origin is None:
            self.origin = point.position
            self.kf.x = np.zeros((4, 1))
            self._reset_covariance()
            self.last_time_ms = point.timestamp_ms
            self.last_point = point
            self.updates = 1
            return

        east, north = local_en(self.origin, point.position)
        dt = (point.timestamp_ms - self.last_time_ms) / 1000.0
        if dt > 1e-6:
            self._set_dt(dt)
            self.kf.predict()
            self.last_time_ms = point.timestamp_ms
        else:
            LOG.debug("Skipping predict for point %d (dt=%.3f s)", point.id, dt)
        self.kf.update(np.array([[east], [north]]))
        self.prev_point, self.last_point = self.last_point, point
        self.updates += 1

    def feed(self, track: Track | Sequence[TrackPoint]) -> "SmoothedKinematics":
        for point in _points(track):
            self.update(point)
        return self

    def report(self) -> Optional[KinematicsReport]:
        if self.origin is None or self.updates < 2:
            return None
        east, north, ve, vn = (float(v) for v in self.kf.x.flatten())
        speed = math.hypot(ve, vn)
        course = normalize_bearing(math.degrees(math.atan2(ve, vn)))
        # Vertical rate, step and distance are measured over the last two raw points
        prev, last = self.prev_point, self.last_point
        dt = (last.timestamp_ms - prev.timestamp_ms) / 1000.0
        vertical = (last.position.alt - prev.position.alt) / dt if dt > 0 else 0.0

        lead = self.cfg.predict_lead_time_s
        future = from_local_en(
            self.origin, east + ve * lead, north + vn * lead, last.position.alt
        )
        return KinematicsReport(
            speed_ms=speed,
            speed_kmh=speed * 3.6,
            heading_deg=course,
            vertical_speed_ms=vertical,
            dt_s=dt,
            horizontal_distance_m=distance(prev.position, last.position),
            prediction=future,
            horizon_s=lead,
            time_monotonic=dt > 0,
        )
