# config.py
"""Typed configuration blobs for the whole system."""
from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List


# ---------------------- Camera ----------------------
@dataclass
class CameraIntrinsics:
    focal_length_mm: float = 2.8
    sensor_width_mm: float = 3.6
    resolution_x: int = 1920  # px
    resolution_y: int = 1080  # px
    camera_height_m: float = 2.0  # Lens height above the GPS antenna

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if not isinstance(value, (int, float)) or not math.isfinite(value) or value <= 0:
                raise ValueError(f"{f.name} must be a positive number, got {value!r}")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def replace(self, **changes: Any) -> "CameraIntrinsics":
        """Return a validated copy with ``changes`` applied."""
        return CameraIntrinsics(**{**asdict(self), **changes})


# ---------------------- Tracker ---------------------
@dataclass
class TrackerConfig:
    # Kinematics prediction
    prediction_horizon_s: float = 5.0
    prediction_method: str = "flat"  # "flat" | "geodesic"

    # Auto-tracking timer
    auto_track_interval_s: float = 2.0

    # Sensor samples older than this are treated as absent (None = never stale)
    sensor_max_age_ms: int | None = None

    # Smoothed kinematics (Kalman over local east/north metres)
    measurement_noise_std: float = 5.0        # m
    process_noise_std: float = 2.0            # m/s²
    initial_velocity_error_std: float = 10.0  # m/s
    predict_lead_time_s: float = 5.0


# ---------------------- Sampler ---------------------
@dataclass
class SamplerConfig:
    jpeg_quality: int = 80                    # 0‒100, ~0.8 lossy
    seek_timeout_s: float = 5.0
    short_clip_threshold_s: float = 2.0
    offsets: List[float] = field(default_factory=lambda: [0.1, 0.5, 0.9])
    short_clip_offset: float = 0.5
