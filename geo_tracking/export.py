# export.py
"""JSON download format: ``{"tracks": [...], "cameraSpecs": {...}}``."""
from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Tuple

from geo_tracking.common import GeoPoint, Track, TrackPoint
from geo_tracking.config import CameraIntrinsics

# dataclass field -> JSON key
_CAMERA_KEYS = {
    "focal_length_mm": "focalLength",
    "sensor_width_mm": "sensorWidth",
    "resolution_x": "resolutionX",
    "resolution_y": "resolutionY",
    "camera_height_m": "cameraHeight",
}


def _point_to_dict(p: TrackPoint) -> Dict[str, Any]:
    return {
        "id": p.id,
        "timestamp": p.timestamp_ms,
        "geo": {"lat": p.position.lat, "lon": p.position.lon, "alt": p.position.alt},
        "distance": p.distance_m,
        "bearing": p.bearing_deg,
    }


def _point_from_dict(d: Dict[str, Any]) -> TrackPoint:
    geo = d["geo"]
    return TrackPoint(
        id=int(d["id"]),
        timestamp_ms=int(d["timestamp"]),
        position=GeoPoint(float(geo["lat"]), float(geo["lon"]), float(geo["alt"])),
        distance_m=float(d["distance"]),
        bearing_deg=float(d["bearing"]),
    )


def to_dict(tracks: Iterable[Track], intrinsics: CameraIntrinsics) -> Dict[str, Any]:
    return {
        "tracks": [
            {"id": t.id, "points": [_point_to_dict(p) for p in t.points]} for t in tracks
        ],
        "cameraSpecs": {
            key: getattr(intrinsics, attr) for attr, key in _CAMERA_KEYS.items()
        },
    }


def export_tracks(tracks: Iterable[Track], intrinsics: CameraIntrinsics) -> str:
    return json.dumps(to_dict(tracks, intrinsics), indent=2)


def load_export(text: str) -> Tuple[List[Track], CameraIntrinsics]:
    """
    Parse an export back into tracks and intrinsics.
    Raises ValueError on malformed documents.
    """
    try:
        doc = json.loads(text)
        tracks: List[Track] = []
        for t in doc["tracks"]:
            track = Track(id=str(t["id"]))
            for p in t["points"]:
                track.append(_point_from_dict(p))
            tracks.append(track)
        specs = doc["cameraSpecs"]
        intrinsics = CameraIntrinsics(
            **{attr: specs[key] for attr, key in _CAMERA_KEYS.items()}
        )
    except (KeyError, TypeError) as exc:
        raise ValueError(f"Malformed tracking export: {exc}") from exc
    return tracks, intrinsics


def default_filename(now: datetime | None = None) -> str:
    stamp = (now or datetime.now(timezone.utc)).strftime("%Y-%m-%dT%H-%M-%S")
    return f"tracking_data_{stamp}.json"


def write_export(
    path: str | Path, tracks: Iterable[Track], intrinsics: CameraIntrinsics
) -> Path:
    """Write the export to ``path``; a directory gets a timestamped file name."""
    out = Path(path).expanduser()
    if out.is_dir():
        out = out / default_filename()
    out.write_text(export_tracks(tracks, intrinsics), encoding="utf-8")
    return out


def read_export(path: str | Path) -> Tuple[List[Track], CameraIntrinsics]:
    return load_export(Path(path).expanduser().read_text(encoding="utf-8"))
