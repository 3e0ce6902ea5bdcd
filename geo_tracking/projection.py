# projection.py
"""Pixel offset → absolute azimuth / elevation for a pinhole camera."""
from __future__ import annotations

import math
from typing import List, Optional, Tuple

from geo_tracking.common import GpsFix, OrientationSample
from geo_tracking.config import CameraIntrinsics
from geo_tracking.errors import SensorsNotReady
from geo_tracking.geodesy import clamp_elevation, normalize_bearing


def horizontal_fov_rad(intrinsics: CameraIntrinsics) -> float:
    return 2.0 * math.atan(intrinsics.sensor_width_mm / (2.0 * intrinsics.focal_length_mm))


def vertical_fov_rad(intrinsics: CameraIntrinsics) -> float:
    """Vertical FOV derived from the horizontal one and the image aspect ratio."""
    hfov = horizontal_fov_rad(intrinsics)
    return 2.0 * math.atan(
        (intrinsics.resolution_y / intrinsics.resolution_x) * math.tan(hfov / 2.0)
    )


def require_sensors(
    orientation: Optional[OrientationSample], fix: Optional[GpsFix]
) -> None:
    missing: List[str] = []
    if fix is None:
        missing.append("position fix")
    if orientation is None:
        missing.append("orientation sample")
    if missing:
        raise SensorsNotReady(missing)


class CameraProjection:
    """
    Maps image-plane pixels to viewing angles.

    By default both axes use the horizontal degrees-per-pixel scale
    (``fovX / resolution_x``). Pass ``use_true_vertical_fov=True`` to scale the
    vertical axis by ``vfov / resolution_y`` instead; this changes results for
    any off-centre ``pixel_y``.
    """

    def __init__(self, intrinsics: CameraIntrinsics, use_true_vertical_fov: bool = False):
        self.intrinsics = intrinsics
        self.use_true_vertical_fov = use_true_vertical_fov

    @property
    def fov_x_rad(self) -> float:
        return horizontal_fov_rad(self.intrinsics)

    @property
    def deg_per_px_h(self) -> float:
        return math.degrees(self.fov_x_rad) / self.intrinsics.resolution_x

    @property
    def deg_per_px_v(self) -> float:
        if self.use_true_vertical_fov:
            return math.degrees(vertical_fov_rad(self.intrinsics)) / self.intrinsics.resolution_y
        return self.deg_per_px_h

    def angular_offset(self, pixel_x: float, pixel_y: float) -> Tuple[float, float]:
        """Degrees right of / below the optical axis."""
        ex = pixel_x - self.intrinsics.resolution_x / 2.0
        ey = pixel_y - self.intrinsics.resolution_y / 2.0
        return ex * self.deg_per_px_h, ey * self.deg_per_px_v

    def project(
        self,
        pixel_x: float,
        pixel_y: float,
        orientation: Optional[OrientationSample],
        fix: Optional[GpsFix],
    ) -> Tuple[float, float]:
        """
        Returns ``(azimuth_deg, elevation_deg)`` of the sighted pixel.
        Raises SensorsNotReady before doing any work if a sensor is missing.
        """
        require_sensors(orientation, fix)
        off_x, off_y = self.angular_offset(pixel_x, pixel_y)
        azimuth = normalize_bearing(orientation.azimuth_deg + off_x)
        elevation = clamp_elevation(orientation.elevation_deg + off_y)
        return azimuth, elevation
