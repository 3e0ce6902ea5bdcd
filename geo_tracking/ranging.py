# ranging.py
"""Slant-range estimate from a known object size."""
from __future__ import annotations

import math

from geo_tracking.errors import InvalidGeometry


def angular_size_deg(object_real_size_m: float, fov_x_rad: float, resolution_x: float) -> float:
    # The object is taken to span ``object_real_size_m`` pixels of the frame width
    return (object_real_size_m / resolution_x) * math.degrees(fov_x_rad)


def estimate_range(object_real_size_m: float, fov_x_rad: float, resolution_x: float) -> float:
    """Distance in metres to an object of the given real size."""
    if not (object_real_size_m > 0 and fov_x_rad > 0 and resolution_x > 0):
        raise InvalidGeometry(
            f"object size ({object_real_size_m}), FOV ({fov_x_rad}) and "
            f"resolution ({resolution_x}) must all be positive"
        )

    size_deg = angular_size_deg(object_real_size_m, fov_x_rad, resolution_x)
    if not math.isfinite(size_deg) or not 0.0 < size_deg < 90.0:
        raise InvalidGeometry(
            f"angular size {size_deg:.4f}° is outside (0°, 90°); adjust object size"
        )

    dist = object_real_size_m / math.tan(math.radians(size_deg))
    if not math.isfinite(dist) or dist <= 0:
        raise InvalidGeometry(f"range estimate {dist} is not a usable distance")
    return dist
