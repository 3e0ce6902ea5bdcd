# geodesy.py
"""Spherical-earth helpers: haversine distance, direct projection, angles."""
from __future__ import annotations

import math
from typing import Tuple

from geo_tracking.common import GeoPoint

EARTH_RADIUS_M = 6_371_000.0
METERS_PER_DEG_LAT = 111_000.0  # Flat-earth approximation


def normalize_bearing(deg: float) -> float:
    """Wrap any finite angle into [0, 360)."""
    out = math.fmod(deg, 360.0)
    if out < 0:
        out += 360.0
    # fmod(-1e-17, 360) + 360 rounds to 360.0
    return 0.0 if out >= 360.0 else out


def clamp_elevation(deg: float) -> float:
    return max(-90.0, min(90.0, deg))


def _normalize_lon(deg: float) -> float:
    return normalize_bearing(deg + 180.0) - 180.0


def distance(p1: GeoPoint, p2: GeoPoint) -> float:
    """Great-circle distance in metres (haversine). Altitude is ignored."""
    phi1 = math.radians(p1.lat)
    phi2 = math.radians(p2.lat)
    d_phi = math.radians(p2.lat - p1.lat)
    d_lambda = math.radians(p2.lon - p1.lon)

    a = (
        math.sin(d_phi / 2.0) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2.0) ** 2
    )
    # Rounding can push ``a`` a hair above 1 for antipodal points
    a = min(1.0, a)
    return EARTH_RADIUS_M * 2.0 * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))


def destination(origin: GeoPoint, bearing_deg: float, distance_m: float) -> GeoPoint:
    """
    Point reached by travelling ``distance_m`` from ``origin`` along the
    great circle that starts at ``bearing_deg`` (clockwise from true north).
    The returned altitude is the origin's; callers compute their own.
    """
    theta = math.radians(normalize_bearing(bearing_deg))
    delta = distance_m / EARTH_RADIUS_M
    phi1 = math.radians(origin.lat)
    lambda1 = math.radians(origin.lon)

    sin_phi2 = (
        math.sin(phi1) * math.cos(delta)
        + math.cos(phi1) * math.sin(delta) * math.cos(theta)
    )
    phi2 = math.asin(max(-1.0, min(1.0, sin_phi2)))
    lambda2 = lambda1 + math.atan2(
        math.sin(theta) * math.sin(delta) * math.cos(phi1),
        math.cos(delta) - math.sin(phi1) * math.sin(phi2),
    )
    return GeoPoint(
        lat=math.degrees(phi2),
        lon=_normalize_lon(math.degrees(lambda2)),
        alt=origin.alt,
    )


def initial_bearing(p1: GeoPoint, p2: GeoPoint) -> float:
    """Forward azimuth from ``p1`` to ``p2`` in [0, 360)."""
    phi1 = math.radians(p1.lat)
    phi2 = math.radians(p2.lat)
    d_lambda = math.radians(p2.lon - p1.lon)
    y = math.sin(d_lambda) * math.cos(phi2)
    x = math.cos(phi1) * math.sin(phi2) - math.sin(phi1) * math.cos(phi2) * math.cos(d_lambda)
    return normalize_bearing(math.degrees(math.atan2(y, x)))


def flat_offset(origin: GeoPoint, bearing_deg: float, distance_m: float) -> GeoPoint:
    """
    Short-range linear projection: 1° latitude ≈ 111 km, longitude scaled by
    cos(latitude). Good enough for a few seconds of extrapolation.
    """
    theta = math.radians(bearing_deg)
    d_lat = distance_m * math.cos(theta) / METERS_PER_DEG_LAT
    d_lon = distance_m * math.sin(theta) / (
        METERS_PER_DEG_LAT * math.cos(math.radians(origin.lat))
    )
    return GeoPoint(lat=origin.lat + d_lat, lon=origin.lon + d_lon, alt=origin.alt)


def local_en(origin: GeoPoint, point: GeoPoint) -> Tuple[float, float]:
    """East/north metres of ``point`` on the tangent plane at ``origin``."""
    east = math.radians(point.lon - origin.lon) * EARTH_RADIUS_M * math.cos(
        math.radians(origin.lat)
    )
    north = math.radians(point.lat - origin.lat) * EARTH_RADIUS_M
    return east, north


def from_local_en(origin: GeoPoint, east: float, north: float, alt: float) -> GeoPoint:
    """Inverse of :func:`local_en`."""
    lat = origin.lat + math.degrees(north / EARTH_RADIUS_M)
    lon = origin.lon + math.degrees(
        east / (EARTH_RADIUS_M * math.cos(math.radians(origin.lat)))
    )
    return GeoPoint(lat=lat, lon=_normalize_lon(lon), alt=alt)
