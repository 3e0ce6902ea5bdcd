# geo_tracking/__init__.py
"""Geo-tracking package – re-export high-level API."""
from .processor import PositioningSession                       # noqa: F401
from .config import CameraIntrinsics, SamplerConfig, TrackerConfig  # noqa: F401
from .common import (                                            # noqa: F401
    GeoPoint, GpsFix, KinematicsReport, OrientationSample,
    SightingInput, Track, TrackPoint,
)
from .errors import (                                            # noqa: F401
    AnalysisError, FrameExtractionError, InvalidGeometry,
    MediaLoadError, SensorsNotReady, TrackingError,
)
from .kinematics import SmoothedKinematics, estimate             # noqa: F401
from .sampler import FrameSampler, SampledFrame                  # noqa: F401
from .tracker import AutoTracker, TrackBuilder                   # noqa: F401

__version__ = "0.1.0"
